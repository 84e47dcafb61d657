from typing import Optional
from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime
import logging
import bcrypt

from app.database.models.users import User, Company
from app.ReqResModels.usermodels import (
    CreateUserRequest,
    AssignManagerRequest,
    UserRole,
    UserResponse,
    UserListResponse,
    ManagerAssignmentResponse,
    ManagerAssignmentListResponse,
)
from app.logic.exceptions import (
    UserNotFoundError,
    UserAlreadyExistsError,
    CompanyNotFoundError,
    ValidationError,
    DatabaseError
)

logger = logging.getLogger(__name__)

MANAGER_CAPABLE_ROLES = {UserRole.MANAGER.value, UserRole.ADMIN.value}

class UserService:

    @staticmethod
    def create_user(db: Session, request: CreateUserRequest) -> UserResponse:
        """Create a new user"""
        try:
            existing_user = db.query(User).filter(User.email == request.email).first()
            if existing_user:
                raise UserAlreadyExistsError(f"User with email '{request.email}' already exists")

            company = db.query(Company).filter(Company.id == request.company_id).first()
            if not company:
                raise CompanyNotFoundError(f"Company with ID {request.company_id} not found")

            if request.manager_id:
                UserService._get_manager_in_company(db, request.manager_id, request.company_id)

            password_hash = bcrypt.hashpw(request.password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')

            db_user = User(
                company_id=request.company_id,
                name=request.name,
                email=request.email,
                password_hash=password_hash,
                role=request.role.value,
                manager_id=request.manager_id,
                created_at=datetime.utcnow()
            )

            db.add(db_user)
            db.commit()
            db.refresh(db_user)
            logger.info(f"Created user {db_user.id} ({db_user.role}) in company {db_user.company_id}")

            return UserService._model_to_response(db_user)

        except (UserAlreadyExistsError, CompanyNotFoundError, UserNotFoundError, ValidationError):
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseError(f"Failed to create user: {str(e)}")

    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> UserResponse:
        user = db.query(User).options(joinedload(User.manager)).filter(User.id == user_id).first()
        if not user:
            raise UserNotFoundError(f"User with ID {user_id} not found")
        return UserService._model_to_response(user)

    @staticmethod
    def get_users(db: Session, company_id: Optional[int] = None) -> UserListResponse:
        query = db.query(User).options(joinedload(User.manager))
        if company_id:
            query = query.filter(User.company_id == company_id)
        users = query.order_by(User.id).all()
        return UserListResponse(
            users=[UserService._model_to_response(user) for user in users],
            total=len(users)
        )

    @staticmethod
    def get_assigned_manager(db: Session, user: User) -> Optional[User]:
        """Return the user's assigned manager, or None when unassigned"""
        if user.manager_id is None:
            return None
        return db.query(User).filter(User.id == user.manager_id).first()

    @staticmethod
    def assign_manager(db: Session, request: AssignManagerRequest) -> ManagerAssignmentResponse:
        """Set (or replace) the single manager of an employee"""
        try:
            employee = db.query(User).filter(User.id == request.employee_id).first()
            if not employee:
                raise UserNotFoundError(f"Employee with ID {request.employee_id} not found")
            if employee.company_id != request.company_id:
                raise ValidationError(f"Employee with ID {request.employee_id} does not belong to company {request.company_id}")
            if request.employee_id == request.manager_id:
                raise ValidationError("A user cannot be their own manager")

            manager = UserService._get_manager_in_company(db, request.manager_id, request.company_id)

            employee.manager_id = manager.id
            employee.updated_at = datetime.utcnow()
            db.commit()
            logger.info(f"Assigned manager {manager.id} to employee {employee.id}")

            return ManagerAssignmentResponse(
                company_id=employee.company_id,
                employee_id=employee.id,
                employee_name=employee.name,
                manager_id=manager.id,
                manager_name=manager.name
            )

        except (UserNotFoundError, ValidationError):
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseError(f"Failed to assign manager: {str(e)}")

    @staticmethod
    def get_manager_assignments(db: Session, company_id: Optional[int] = None) -> ManagerAssignmentListResponse:
        query = db.query(User).options(joinedload(User.manager)).filter(User.manager_id.isnot(None))
        if company_id:
            query = query.filter(User.company_id == company_id)
        assignments = [
            ManagerAssignmentResponse(
                company_id=user.company_id,
                employee_id=user.id,
                employee_name=user.name,
                manager_id=user.manager.id,
                manager_name=user.manager.name
            )
            for user in query.order_by(User.id).all()
        ]
        return ManagerAssignmentListResponse(assignments=assignments, total=len(assignments))

    @staticmethod
    def _get_manager_in_company(db: Session, manager_id: int, company_id: int) -> User:
        manager = db.query(User).filter(User.id == manager_id).first()
        if not manager:
            raise UserNotFoundError(f"Manager with ID {manager_id} not found")
        if manager.company_id != company_id:
            raise ValidationError(f"Manager with ID {manager_id} not found in the same company")
        if manager.role not in MANAGER_CAPABLE_ROLES:
            raise ValidationError("Manager must have manager or admin role")
        return manager

    @staticmethod
    def _model_to_response(user: User) -> UserResponse:
        """Convert SQLAlchemy model to Pydantic response model"""
        return UserResponse(
            id=user.id,
            company_id=user.company_id,
            name=user.name,
            email=user.email,
            role=user.role,
            manager_id=user.manager_id,
            manager_name=user.manager.name if user.manager else None,
            created_at=user.created_at,
            updated_at=user.updated_at
        )
