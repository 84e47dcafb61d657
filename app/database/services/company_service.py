from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime
import logging

from app.database.models.users import Company, User
from app.database.models.approval import ApprovalFlowStep
from app.database.models.expense import Expense
from app.database.services.approval_service import ApprovalFlowService
from app.ReqResModels.companymodels import (
    CreateCompanyRequest,
    CompanyResponse,
    CompanyDetailResponse,
    CompanyListResponse,
)
from app.logic.exceptions import (
    CompanyNotFoundError,
    CompanyAlreadyExistsError,
    DatabaseError
)

logger = logging.getLogger(__name__)

class CompanyService:

    @staticmethod
    def create_company(db: Session, request: CreateCompanyRequest) -> CompanyResponse:
        """Create a new company"""
        try:
            existing_company = db.query(Company).filter(Company.name == request.name).first()
            if existing_company:
                raise CompanyAlreadyExistsError(f"Company with name '{request.name}' already exists")

            db_company = Company(
                name=request.name,
                country=request.country,
                currency_code=request.currency_code,
                created_at=datetime.utcnow()
            )

            db.add(db_company)
            db.commit()
            db.refresh(db_company)
            logger.info(f"Created company {db_company.id} ({db_company.name}, {db_company.currency_code})")

            return CompanyService._model_to_response(db, db_company, CompanyResponse)

        except CompanyAlreadyExistsError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseError(f"Failed to create company: {str(e)}")

    @staticmethod
    def get_company_by_id(db: Session, company_id: int) -> CompanyDetailResponse:
        """Get company by ID together with its approval flow"""
        company = db.query(Company).options(
            joinedload(Company.approval_flow).joinedload(ApprovalFlowStep.static_approver)
        ).filter(Company.id == company_id).first()
        if not company:
            raise CompanyNotFoundError(f"Company with ID {company_id} not found")

        base = CompanyService._model_to_response(db, company, CompanyResponse)
        return CompanyDetailResponse(
            **base.model_dump(),
            approval_flow=[ApprovalFlowService._step_to_response(step) for step in company.approval_flow]
        )

    @staticmethod
    def get_companies(db: Session) -> CompanyListResponse:
        companies = db.query(Company).order_by(Company.id).all()
        return CompanyListResponse(
            companies=[CompanyService._model_to_response(db, c, CompanyResponse) for c in companies],
            total=len(companies)
        )

    @staticmethod
    def _model_to_response(db: Session, company: Company, response_type):
        """Convert SQLAlchemy model to Pydantic response model"""
        user_count = db.query(func.count(User.id)).filter(User.company_id == company.id).scalar() or 0
        expense_count = db.query(func.count(Expense.id)).filter(Expense.company_id == company.id).scalar() or 0

        return response_type(
            id=company.id,
            name=company.name,
            country=company.country,
            currency_code=company.currency_code,
            created_at=company.created_at,
            updated_at=company.updated_at,
            user_count=user_count,
            expense_count=expense_count
        )
