from typing import List
from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import SQLAlchemyError
import logging

from app.database.models.approval import ApprovalFlowStep
from app.database.models.users import User, Company
from app.logic.approval_routing import ApprovalFlow
from app.ReqResModels.approvalmodels import (
    ApprovalRole,
    CreateFlowStepRequest,
    SeedDefaultFlowRequest,
    FlowStepResponse,
    SeedDefaultFlowResponse,
)
from app.logic.exceptions import (
    CompanyNotFoundError,
    UserNotFoundError,
    ValidationError,
    DatabaseError
)

logger = logging.getLogger(__name__)

class ApprovalFlowService:
    """Configuration of a company's ordered approval steps"""

    @staticmethod
    def load_flow(db: Session, company_id: int) -> ApprovalFlow:
        steps = db.query(ApprovalFlowStep).filter(
            ApprovalFlowStep.company_id == company_id
        ).order_by(ApprovalFlowStep.step_number).all()
        return ApprovalFlow(company_id, steps)

    @staticmethod
    def create_flow_step(db: Session, request: CreateFlowStepRequest) -> FlowStepResponse:
        """Add one step to a company's approval flow"""
        try:
            ApprovalFlowService._get_company(db, request.company_id)

            if request.approver_role != ApprovalRole.MANAGER and not request.static_approver_id:
                raise ValidationError("Finance and director steps require a static_approver_id")

            if request.static_approver_id:
                ApprovalFlowService._get_static_approver(db, request.static_approver_id, request.company_id)

            existing = db.query(ApprovalFlowStep).filter(
                ApprovalFlowStep.company_id == request.company_id,
                ApprovalFlowStep.step_number == request.step_number
            ).first()
            if existing:
                raise ValidationError(f"Step {request.step_number} already exists for company {request.company_id}")

            # Steps are numbered 1..N without gaps
            step_count = db.query(ApprovalFlowStep).filter(
                ApprovalFlowStep.company_id == request.company_id
            ).count()
            if request.step_number != step_count + 1:
                raise ValidationError(f"Next step for company {request.company_id} must be step {step_count + 1}")

            step = ApprovalFlowStep(
                company_id=request.company_id,
                step_number=request.step_number,
                approver_role=request.approver_role.value,
                static_approver_id=request.static_approver_id
            )
            db.add(step)
            db.commit()
            db.refresh(step)
            logger.info(f"Added approval step {step.step_number} ({step.approver_role}) to company {step.company_id}")

            return ApprovalFlowService._step_to_response(step)

        except (CompanyNotFoundError, UserNotFoundError, ValidationError):
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseError(f"Failed to create approval flow step: {str(e)}")

    @staticmethod
    def get_flow_steps(db: Session, company_id: int) -> List[FlowStepResponse]:
        steps = db.query(ApprovalFlowStep).options(
            joinedload(ApprovalFlowStep.static_approver)
        ).filter(ApprovalFlowStep.company_id == company_id).order_by(ApprovalFlowStep.step_number).all()
        return [ApprovalFlowService._step_to_response(step) for step in steps]

    @staticmethod
    def seed_default_flow(db: Session, request: SeedDefaultFlowRequest) -> SeedDefaultFlowResponse:
        """Replace the company's flow with manager -> finance -> director"""
        try:
            ApprovalFlowService._get_company(db, request.company_id)
            ApprovalFlowService._get_static_approver(db, request.finance_approver_id, request.company_id)
            ApprovalFlowService._get_static_approver(db, request.director_approver_id, request.company_id)

            db.query(ApprovalFlowStep).filter(ApprovalFlowStep.company_id == request.company_id).delete()
            db.flush()

            steps = [
                ApprovalFlowStep(company_id=request.company_id, step_number=1,
                                 approver_role=ApprovalRole.MANAGER.value),
                ApprovalFlowStep(company_id=request.company_id, step_number=2,
                                 approver_role=ApprovalRole.FINANCE.value,
                                 static_approver_id=request.finance_approver_id),
                ApprovalFlowStep(company_id=request.company_id, step_number=3,
                                 approver_role=ApprovalRole.DIRECTOR.value,
                                 static_approver_id=request.director_approver_id),
            ]
            db.add_all(steps)
            db.commit()
            for step in steps:
                db.refresh(step)
            logger.info(f"Seeded default 3-step approval flow for company {request.company_id}")

            return SeedDefaultFlowResponse(
                message="Default 3-step approval flow created",
                steps=[ApprovalFlowService._step_to_response(step) for step in steps]
            )

        except (CompanyNotFoundError, UserNotFoundError, ValidationError):
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseError(f"Failed to seed approval flow: {str(e)}")

    @staticmethod
    def _get_company(db: Session, company_id: int) -> Company:
        company = db.query(Company).filter(Company.id == company_id).first()
        if not company:
            raise CompanyNotFoundError(f"Company with ID {company_id} not found")
        return company

    @staticmethod
    def _get_static_approver(db: Session, user_id: int, company_id: int) -> User:
        approver = db.query(User).filter(User.id == user_id).first()
        if not approver:
            raise UserNotFoundError(f"Approver with ID {user_id} not found")
        if approver.company_id != company_id:
            raise ValidationError(f"Approver with ID {user_id} does not belong to company {company_id}")
        return approver

    @staticmethod
    def _step_to_response(step: ApprovalFlowStep) -> FlowStepResponse:
        return FlowStepResponse(
            id=step.id,
            company_id=step.company_id,
            step_number=step.step_number,
            approver_role=step.approver_role,
            static_approver_id=step.static_approver_id,
            static_approver_name=step.static_approver.name if step.static_approver else None
        )
