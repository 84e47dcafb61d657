from fastapi import APIRouter, Depends, HTTPException, Query, status as http_status
from sqlalchemy.orm import Session
from typing import List

from app.database.database import get_db
from app.database.services.approval_service import ApprovalFlowService
from app.database.services.expense_approval_service import ExpenseApprovalService
from app.ReqResModels.approvalmodels import (
    CreateFlowStepRequest,
    SeedDefaultFlowRequest,
    ApprovalDecisionRequest,
    FlowStepResponse,
    SeedDefaultFlowResponse,
    ApprovalDecisionResponse,
    ExpenseApprovalResponse,
    ApproverPendingReviewsResponse,
    ApprovalErrorResponse,
)
from app.logic.exceptions import (
    NotFoundError,
    ConfigurationError,
    ValidationError,
    AuthorizationError,
    DatabaseError
)

router = APIRouter(
    prefix="/approval-flow",
    tags=["approval-flow"],
    responses={
        404: {"model": ApprovalErrorResponse, "description": "Expense, user or company not found"},
        400: {"model": ApprovalErrorResponse, "description": "Bad request"},
        403: {"model": ApprovalErrorResponse, "description": "Not the approver of the pending step"},
        500: {"model": ApprovalErrorResponse, "description": "Internal server error"}
    }
)

@router.post(
    "/",
    response_model=FlowStepResponse,
    status_code=http_status.HTTP_201_CREATED,
    summary="Create an approval flow step",
    description="Add a numbered step to a company's approval flow"
)
def create_flow_step(
    request: CreateFlowStepRequest,
    db: Session = Depends(get_db)
):
    """Create an approval flow step"""
    try:
        return ApprovalFlowService.create_flow_step(db, request)
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
    response_model=List[FlowStepResponse],
    summary="Get approval flow",
    description="List a company's approval steps in order"
)
def get_flow_steps(
    company_id: int = Query(..., description="Company ID"),
    db: Session = Depends(get_db)
):
    return ApprovalFlowService.get_flow_steps(db, company_id)

@router.post(
    "/seed-default",
    response_model=SeedDefaultFlowResponse,
    status_code=http_status.HTTP_201_CREATED,
    summary="Create the default 3-step flow",
    description="Replace a company's flow with manager, finance and director steps"
)
def seed_default_flow(
    request: SeedDefaultFlowRequest,
    db: Session = Depends(get_db)
):
    try:
        return ApprovalFlowService.seed_default_flow(db, request)
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

@router.post(
    "/approve",
    response_model=ApprovalDecisionResponse,
    summary="Approve or reject an expense",
    description="Record the decision of the approver at the currently pending step"
)
def approve_or_reject(
    request: ApprovalDecisionRequest,
    db: Session = Depends(get_db)
):
    """Process an approval decision"""
    try:
        return ExpenseApprovalService.process_approval_decision(
            db,
            request.expense_id,
            request.approver_id,
            request.decision,
            request.comments
        )
    except NotFoundError as e:
        raise HTTPException(
            status_code=http_status.HTTP_404_NOT_FOUND,
            detail=e.message
        )
    except AuthorizationError as e:
        raise HTTPException(
            status_code=http_status.HTTP_403_FORBIDDEN,
            detail=e.message
        )
    except (ValidationError, ConfigurationError) as e:
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
    "/pending",
    response_model=ApproverPendingReviewsResponse,
    summary="Get an approver's pending reviews",
    description="Pending expenses whose current step is assigned to the approver"
)
def get_pending_reviews(
    approver_id: int = Query(..., description="Approver user ID"),
    db: Session = Depends(get_db)
):
    try:
        return ExpenseApprovalService.get_pending_reviews(db, approver_id)
    except NotFoundError as e:
        raise HTTPException(
            status_code=http_status.HTTP_404_NOT_FOUND,
            detail=e.message
        )

@router.get(
    "/history",
    response_model=List[ExpenseApprovalResponse],
    summary="Get approval history",
    description="Approval records of an expense ordered by step"
)
def get_approval_history(
    expense_id: int = Query(..., description="Expense ID"),
    db: Session = Depends(get_db)
):
    try:
        return ExpenseApprovalService.get_approval_history(db, expense_id)
    except NotFoundError as e:
        raise HTTPException(
            status_code=http_status.HTTP_404_NOT_FOUND,
            detail=e.message
        )
