from fastapi import APIRouter, Depends, HTTPException, Query, status as http_status
from sqlalchemy.orm import Session
from typing import Optional

from app.database.database import get_db
from app.database.services.user_service import UserService
from app.ReqResModels.usermodels import (
    CreateUserRequest,
    AssignManagerRequest,
    UserResponse,
    UserListResponse,
    ManagerAssignmentResponse,
    ManagerAssignmentListResponse,
    UserErrorResponse,
)
from app.logic.exceptions import (
    UserNotFoundError,
    UserAlreadyExistsError,
    CompanyNotFoundError,
    ValidationError,
    DatabaseError
)

router = APIRouter(
    prefix="/users",
    tags=["users"],
    responses={
        404: {"model": UserErrorResponse, "description": "User not found"},
        400: {"model": UserErrorResponse, "description": "Bad request"},
        500: {"model": UserErrorResponse, "description": "Internal server error"}
    }
)

@router.post(
    "/",
    response_model=UserResponse,
    status_code=http_status.HTTP_201_CREATED,
    summary="Create a new user",
    description="Create a user in a company, optionally with an assigned manager"
)
def create_user(
    request: CreateUserRequest,
    db: Session = Depends(get_db)
):
    """Create a new user"""
    try:
        return UserService.create_user(db, request)
    except UserAlreadyExistsError as e:
        raise HTTPException(
            status_code=http_status.HTTP_409_CONFLICT,
            detail=e.message
        )
    except (CompanyNotFoundError, UserNotFoundError) as e:
        raise HTTPException(
            status_code=http_status.HTTP_404_NOT_FOUND,
            detail=e.message
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=http_status.HTTP_400_BAD_REQUEST,
            detail=e.message
        )
    except DatabaseError as e:
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=e.message
        )

@router.get(
    "/",
    response_model=UserListResponse,
    summary="Get users",
    description="List users, optionally filtered by company"
)
def get_users(
    company_id: Optional[int] = Query(None, description="Filter by company"),
    db: Session = Depends(get_db)
):
    return UserService.get_users(db, company_id)

@router.post(
    "/manager-assignments",
    response_model=ManagerAssignmentResponse,
    status_code=http_status.HTTP_201_CREATED,
    summary="Assign a manager",
    description="Set the manager who approves an employee's expenses at manager steps"
)
def assign_manager(
    request: AssignManagerRequest,
    db: Session = Depends(get_db)
):
    """Assign a manager to an employee"""
    try:
        return UserService.assign_manager(db, request)
    except UserNotFoundError as e:
        raise HTTPException(
            status_code=http_status.HTTP_404_NOT_FOUND,
            detail=e.message
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=http_status.HTTP_400_BAD_REQUEST,
            detail=e.message
        )
    except DatabaseError as e:
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=e.message
        )

@router.get(
    "/manager-assignments",
    response_model=ManagerAssignmentListResponse,
    summary="List manager assignments"
)
def get_manager_assignments(
    company_id: Optional[int] = Query(None, description="Filter by company"),
    db: Session = Depends(get_db)
):
    return UserService.get_manager_assignments(db, company_id)

@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get user by ID"
)
def get_user(
    user_id: int,
    db: Session = Depends(get_db)
):
    """Get user by ID"""
    try:
        return UserService.get_user_by_id(db, user_id)
    except UserNotFoundError as e:
        raise HTTPException(
            status_code=http_status.HTTP_404_NOT_FOUND,
            detail=e.message
        )
