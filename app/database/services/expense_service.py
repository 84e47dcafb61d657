from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime
import logging

from app.database.models.expense import Expense, ExpenseApproval
from app.database.models.users import User, Company
from app.database.services.expense_approval_service import ExpenseApprovalService
from app.ReqResModels.expensemodels import (
    ExpenseStatus,
    ExpenseSubmitRequest,
    ExpenseResponse,
    ExpenseDetailResponse,
    ExpenseListResponse,
    ExpenseSubmitResponse,
    ExpenseQueryParams,
)
from app.logic.exceptions import (
    CompanyNotFoundError,
    UserNotFoundError,
    ExpenseNotFoundError,
    ConfigurationError,
    ValidationError,
    NotFoundError,
    DatabaseError
)

logger = logging.getLogger(__name__)

class ExpenseService:
    """Service class for handling expense-related operations"""

    @staticmethod
    def create_expense(db: Session, request: ExpenseSubmitRequest) -> ExpenseSubmitResponse:
        """Create a new pending expense and surface its first approver"""
        try:
            company = db.query(Company).filter(Company.id == request.company_id).first()
            if not company:
                raise CompanyNotFoundError(f"Company with ID {request.company_id} not found")

            submitter = db.query(User).filter(User.id == request.submitted_by).first()
            if not submitter:
                raise UserNotFoundError(f"Submitted by user with ID {request.submitted_by} not found")
            if submitter.company_id != company.id:
                raise ValidationError(f"User {submitter.id} does not belong to company {company.id}")

            company_currency_amount = request.company_currency_amount
            if company_currency_amount is None:
                if request.currency_code != company.currency_code.upper():
                    raise ValidationError(
                        f"company_currency_amount is required when the expense currency "
                        f"({request.currency_code}) differs from the company currency ({company.currency_code})"
                    )
                company_currency_amount = request.amount

            expense = Expense(
                submitted_by=request.submitted_by,
                company_id=request.company_id,
                amount=request.amount,
                currency_code=request.currency_code,
                company_currency_amount=company_currency_amount,
                category=request.category,
                description=request.description,
                expense_date=request.expense_date,
                status=ExpenseStatus.PENDING.value,
                created_at=datetime.utcnow()
            )

            db.add(expense)
            db.commit()
            db.refresh(expense)
            logger.info(f"Expense {expense.id} submitted by user {expense.submitted_by}")

        except (CompanyNotFoundError, UserNotFoundError, ValidationError):
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseError(f"Failed to submit expense: {str(e)}")

        # The expense stays submitted even when the flow cannot be resolved yet
        try:
            next_approver = ExpenseApprovalService.get_next_approver(db, expense.id)
            warning = None
        except (ConfigurationError, ValidationError, NotFoundError) as e:
            logger.warning(f"Expense {expense.id} created without a resolvable approver: {e.message}")
            next_approver = None
            warning = f"Expense created but approval flow could not be resolved: {e.message}"

        return ExpenseSubmitResponse(
            expense=ExpenseService._build_expense_response(expense),
            next_approver=next_approver,
            warning=warning
        )

    @staticmethod
    def get_expense_by_id(db: Session, expense_id: int) -> ExpenseDetailResponse:
        """Get expense with its approvals and the approver it currently waits on"""
        expense = db.query(Expense).options(
            joinedload(Expense.submitted_by_user),
            joinedload(Expense.approvals).joinedload(ExpenseApproval.approver)
        ).filter(Expense.id == expense_id).first()

        if not expense:
            raise ExpenseNotFoundError(f"Expense with ID {expense_id} not found")

        next_approver = None
        if expense.status == ExpenseStatus.PENDING:
            try:
                next_approver = ExpenseApprovalService.get_next_approver(db, expense_id)
            except (ConfigurationError, ValidationError, NotFoundError) as e:
                logger.info(f"No next approver for expense {expense_id}: {e.message}")

        base = ExpenseService._build_expense_response(expense)
        return ExpenseDetailResponse(
            **base.model_dump(),
            approvals=[ExpenseApprovalService._approval_to_response(a) for a in expense.approvals],
            next_approver=next_approver
        )

    @staticmethod
    def get_expenses(db: Session, params: ExpenseQueryParams) -> ExpenseListResponse:
        """Get expenses with filtering"""
        query = db.query(Expense).options(joinedload(Expense.submitted_by_user))

        if params.company_id:
            query = query.filter(Expense.company_id == params.company_id)

        if params.submitted_by:
            query = query.filter(Expense.submitted_by == params.submitted_by)

        if params.status:
            query = query.filter(Expense.status == params.status.value)

        expenses = query.order_by(Expense.created_at.desc(), Expense.id.desc()).all()

        return ExpenseListResponse(
            expenses=[ExpenseService._build_expense_response(expense) for expense in expenses],
            total_count=len(expenses)
        )

    @staticmethod
    def _build_expense_response(expense: Expense) -> ExpenseResponse:
        """Build expense response from database model"""
        return ExpenseResponse(
            id=expense.id,
            submitted_by=expense.submitted_by,
            company_id=expense.company_id,
            amount=expense.amount,
            currency_code=expense.currency_code,
            company_currency_amount=expense.company_currency_amount,
            category=expense.category,
            description=expense.description,
            expense_date=expense.expense_date,
            status=expense.status,
            created_at=expense.created_at,
            updated_at=expense.updated_at,
            submitted_by_name=expense.submitted_by_user.name if expense.submitted_by_user else None
        )
