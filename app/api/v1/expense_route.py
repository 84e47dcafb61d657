from fastapi import APIRouter, Depends, HTTPException, Query, status as http_status
from sqlalchemy.orm import Session
from typing import Optional

from app.database.database import get_db
from app.database.services.expense_service import ExpenseService
from app.database.services.expense_approval_service import ExpenseApprovalService
from app.ReqResModels.expensemodels import (
    ExpenseStatus,
    ExpenseSubmitRequest,
    ExpenseDetailResponse,
    ExpenseListResponse,
    ExpenseSubmitResponse,
    ExpenseQueryParams,
    NextApproverLookupResponse,
    ExpenseErrorResponse
)
from app.logic.exceptions import (
    NotFoundError,
    ConfigurationError,
    ValidationError,
    DatabaseError
)

router = APIRouter(
    prefix="/expenses",
    tags=["expenses"],
    responses={
        404: {"model": ExpenseErrorResponse, "description": "Expense not found"},
        400: {"model": ExpenseErrorResponse, "description": "Bad request"},
        500: {"model": ExpenseErrorResponse, "description": "Internal server error"}
    }
)

@router.post(
    "/",
    response_model=ExpenseSubmitResponse,
    status_code=http_status.HTTP_201_CREATED,
    summary="Submit a new expense",
    description="Submit an expense and return the approver of its first step"
)
def submit_expense(
    request: ExpenseSubmitRequest,
    db: Session = Depends(get_db)
):
    """Submit a new expense"""
    try:
        return ExpenseService.create_expense(db, request)
    except NotFoundError as e:
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
    response_model=ExpenseListResponse,
    summary="Get expenses with filtering",
    description="List expenses, newest first"
)
def get_expenses(
    company_id: Optional[int] = Query(None, description="Filter by company ID"),
    submitted_by: Optional[int] = Query(None, description="Filter by submitter user ID"),
    status: Optional[ExpenseStatus] = Query(None, description="Filter by expense status"),
    db: Session = Depends(get_db)
):
    params = ExpenseQueryParams(
        company_id=company_id,
        submitted_by=submitted_by,
        status=status
    )
    return ExpenseService.get_expenses(db, params)

@router.get(
    "/{expense_id}",
    response_model=ExpenseDetailResponse,
    summary="Get expense by ID",
    description="Retrieve an expense with its approval records and next approver"
)
def get_expense(
    expense_id: int,
    db: Session = Depends(get_db)
):
    """Get expense by ID"""
    try:
        return ExpenseService.get_expense_by_id(db, expense_id)
    except NotFoundError as e:
        raise HTTPException(
            status_code=http_status.HTTP_404_NOT_FOUND,
            detail=e.message
        )

@router.get(
    "/{expense_id}/next-approver",
    response_model=NextApproverLookupResponse,
    summary="Get the next approver",
    description="Resolve who must act next on the expense"
)
def get_next_approver(
    expense_id: int,
    db: Session = Depends(get_db)
):
    try:
        next_approver = ExpenseApprovalService.get_next_approver(db, expense_id)
    except NotFoundError as e:
        raise HTTPException(
            status_code=http_status.HTTP_404_NOT_FOUND,
            detail=e.message
        )
    except (ConfigurationError, ValidationError) as e:
        raise HTTPException(
            status_code=http_status.HTTP_400_BAD_REQUEST,
            detail=e.message
        )

    if next_approver is None:
        return NextApproverLookupResponse(
            message="No pending approvals - all steps completed or expense already decided",
            next_approver=None
        )
    return NextApproverLookupResponse(
        message=f"Waiting on step {next_approver.step_number} ({next_approver.approver_role})",
        next_approver=next_approver
    )
