from typing import List, Optional
from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime
import logging

from app.config import settings
from app.database.models.expense import Expense, ExpenseApproval
from app.database.models.users import User
from app.database.services.approval_service import ApprovalFlowService
from app.database.services.user_service import UserService
from app.logic.approval_routing import (
    ApprovalFlow,
    current_step_number,
    should_fast_track,
    is_fully_approved,
)
from app.ReqResModels.approvalmodels import (
    ApprovalRole,
    ApprovalDecision,
    DecisionStatus,
    NextApproverResponse,
    ExpenseApprovalResponse,
    ApprovalDecisionResponse,
    PendingReviewResponse,
    ApproverPendingReviewsResponse,
)
from app.ReqResModels.expensemodels import ExpenseStatus
from app.logic.exceptions import (
    BaseCustomError,
    ExpenseNotFoundError,
    UserNotFoundError,
    NotFoundError,
    ConfigurationError,
    ValidationError,
    AuthorizationError,
    DatabaseError
)

logger = logging.getLogger(__name__)

class ExpenseApprovalService:
    """Routes expenses through their company's approval flow.

    ``get_next_approver`` is read-only: it walks the expense's approval
    records in step order and resolves whoever owns the first step that is
    not yet approved. ``process_approval_decision`` checks the actor against
    that result, records the decision and moves the expense to its next
    status inside a single transaction.
    """

    @staticmethod
    def get_next_approver(db: Session, expense_id: int) -> Optional[NextApproverResponse]:
        """Return the approver who must act next, or None when nothing is pending"""
        expense = db.query(Expense).filter(Expense.id == expense_id).first()
        if not expense:
            raise ExpenseNotFoundError(f"Expense with ID {expense_id} not found")

        flow = ApprovalFlowService.load_flow(db, expense.company_id)
        return ExpenseApprovalService._resolve_next_approver(db, expense, flow)

    @staticmethod
    def process_approval_decision(
        db: Session,
        expense_id: int,
        approver_id: int,
        decision: ApprovalDecision,
        comments: Optional[str] = None
    ) -> ApprovalDecisionResponse:
        """Record an approve/reject decision for the currently pending step"""
        decision = ApprovalDecision(decision)
        try:
            # Row lock serializes concurrent decisions on the same expense
            expense = db.query(Expense).filter(Expense.id == expense_id).with_for_update().first()
            if not expense:
                raise ExpenseNotFoundError(f"Expense with ID {expense_id} not found")
            # Approved and rejected are terminal
            if expense.status != ExpenseStatus.PENDING.value:
                raise ValidationError("No pending approval for this expense")

            flow = ApprovalFlowService.load_flow(db, expense.company_id)
            next_approver = ExpenseApprovalService._resolve_next_approver(db, expense, flow)
            if next_approver is None:
                raise ValidationError("No pending approval for this expense")

            if next_approver.approver_id != approver_id:
                logger.warning(
                    f"User {approver_id} tried to decide step {next_approver.step_number} "
                    f"of expense {expense_id} assigned to user {next_approver.approver_id}"
                )
                raise AuthorizationError("You are not authorized to approve this expense at this step")

            step_number = next_approver.step_number
            approver_role = next_approver.approver_role
            approval = ExpenseApprovalService._upsert_approval(
                db, expense_id, step_number, approver_id, approver_role, decision, comments
            )

            fast_tracked = False
            if decision == ApprovalDecision.REJECTED:
                expense.status = ExpenseStatus.REJECTED.value
                message = "Expense rejected"
            else:
                fast_tracked = should_fast_track(
                    expense.company_currency_amount,
                    approver_role,
                    settings.FAST_TRACK_THRESHOLD,
                    settings.FINANCE_APPROVAL_ROLE,
                )
                if fast_tracked:
                    if flow.is_last_step(step_number):
                        expense.status = ExpenseStatus.APPROVED.value
                else:
                    all_approvals = db.query(ExpenseApproval).filter(
                        ExpenseApproval.expense_id == expense_id
                    ).all()
                    if is_fully_approved(all_approvals, flow.total_steps):
                        expense.status = ExpenseStatus.APPROVED.value
                message = "Approval recorded successfully"

            expense.updated_at = datetime.utcnow()
            db.commit()
            db.refresh(approval)

            logger.info(
                f"Expense {expense_id} step {step_number} {decision.value} by user {approver_id} "
                f"(fast_tracked={fast_tracked}); expense status is now {expense.status}"
            )

            return ApprovalDecisionResponse(
                message=message,
                approval=ExpenseApprovalService._approval_to_response(approval),
                expense_status=expense.status,
                fast_tracked=fast_tracked
            )

        except BaseCustomError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseError(f"Failed to record approval decision: {str(e)}")

    @staticmethod
    def get_approval_history(db: Session, expense_id: int) -> List[ExpenseApprovalResponse]:
        """All approval records of an expense ordered by step"""
        expense = db.query(Expense).filter(Expense.id == expense_id).first()
        if not expense:
            raise ExpenseNotFoundError(f"Expense with ID {expense_id} not found")

        approvals = db.query(ExpenseApproval).options(
            joinedload(ExpenseApproval.approver)
        ).filter(ExpenseApproval.expense_id == expense_id).order_by(ExpenseApproval.step_number).all()
        return [ExpenseApprovalService._approval_to_response(a) for a in approvals]

    @staticmethod
    def get_pending_reviews(db: Session, approver_id: int) -> ApproverPendingReviewsResponse:
        """Pending expenses whose next step belongs to the given approver"""
        approver = db.query(User).filter(User.id == approver_id).first()
        if not approver:
            raise UserNotFoundError(f"User with ID {approver_id} not found")

        expenses = db.query(Expense).options(
            joinedload(Expense.submitted_by_user)
        ).filter(
            Expense.company_id == approver.company_id,
            Expense.status == ExpenseStatus.PENDING.value
        ).order_by(Expense.created_at.desc()).all()

        flow = ApprovalFlowService.load_flow(db, approver.company_id)
        reviews = []
        for expense in expenses:
            try:
                next_approver = ExpenseApprovalService._resolve_next_approver(db, expense, flow)
            except (ConfigurationError, ValidationError, NotFoundError) as e:
                logger.warning(f"Skipping expense {expense.id} in pending reviews: {e.message}")
                continue
            if next_approver is None or next_approver.approver_id != approver_id:
                continue
            reviews.append(PendingReviewResponse(
                expense_id=expense.id,
                submitted_by_id=expense.submitted_by,
                submitted_by_name=expense.submitted_by_user.name if expense.submitted_by_user else "",
                amount=float(expense.amount),
                currency_code=expense.currency_code,
                company_currency_amount=float(expense.company_currency_amount),
                category=expense.category,
                description=expense.description,
                submitted_date=expense.created_at,
                step_number=next_approver.step_number,
                approver_role=next_approver.approver_role
            ))

        return ApproverPendingReviewsResponse(
            pending_reviews=reviews,
            total_count=len(reviews),
            total_amount=sum(r.company_currency_amount for r in reviews)
        )

    @staticmethod
    def _resolve_next_approver(db: Session, expense: Expense, flow: ApprovalFlow) -> Optional[NextApproverResponse]:
        if flow.is_empty():
            raise ConfigurationError("No approval flow defined for this company")

        approvals = db.query(ExpenseApproval).filter(
            ExpenseApproval.expense_id == expense.id
        ).order_by(ExpenseApproval.step_number).all()

        step_number = current_step_number(approvals)
        if step_number is None:
            return None  # rejected
        if step_number > flow.total_steps:
            return None  # every step approved

        step = flow.get_step(step_number)
        if step is None:
            raise ConfigurationError(f"Approval flow step {step_number} not found")

        approver = ExpenseApprovalService._approver_for_step(db, expense, step)
        if not approver:
            raise UserNotFoundError("Approver user not found")

        return NextApproverResponse(
            step_number=step_number,
            approver_role=step.approver_role,
            approver_id=approver.id,
            approver_name=approver.name,
            approver_email=approver.email
        )

    @staticmethod
    def _approver_for_step(db: Session, expense: Expense, step) -> Optional[User]:
        if step.approver_role == ApprovalRole.MANAGER:
            submitter = db.query(User).filter(User.id == expense.submitted_by).first()
            if not submitter:
                raise UserNotFoundError(f"User with ID {expense.submitted_by} not found")
            if submitter.manager_id is None:
                raise ValidationError("Employee has no assigned manager")
            return UserService.get_assigned_manager(db, submitter)
        if step.static_approver_id:
            return db.query(User).filter(User.id == step.static_approver_id).first()
        raise ConfigurationError(f"No approver found for step {step.step_number}")

    @staticmethod
    def _upsert_approval(
        db: Session,
        expense_id: int,
        step_number: int,
        approver_id: int,
        approver_role: str,
        decision: ApprovalDecision,
        comments: Optional[str]
    ) -> ExpenseApproval:
        status = DecisionStatus.APPROVED if decision == ApprovalDecision.APPROVED else DecisionStatus.REJECTED
        now = datetime.utcnow()

        approval = db.query(ExpenseApproval).filter(
            ExpenseApproval.expense_id == expense_id,
            ExpenseApproval.step_number == step_number
        ).first()
        if approval is None:
            approval = ExpenseApproval(
                expense_id=expense_id,
                step_number=step_number,
                created_at=now
            )
            db.add(approval)

        approval.approver_id = approver_id
        approval.approver_role = approver_role
        approval.status = status.value
        approval.comments = comments
        approval.decided_at = now
        db.flush()
        return approval

    @staticmethod
    def _approval_to_response(approval: ExpenseApproval) -> ExpenseApprovalResponse:
        return ExpenseApprovalResponse(
            id=approval.id,
            expense_id=approval.expense_id,
            step_number=approval.step_number,
            approver_id=approval.approver_id,
            approver_name=approval.approver.name if approval.approver else None,
            approver_role=approval.approver_role,
            status=approval.status,
            comments=approval.comments,
            created_at=approval.created_at,
            decided_at=approval.decided_at
        )
