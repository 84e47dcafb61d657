from pydantic import BaseModel, Field, ConfigDict, field_validator
from datetime import datetime
from typing import Optional, List
from enum import Enum

class ApprovalRole(str, Enum):
    MANAGER = "manager"  # resolved to the submitter's assigned manager
    FINANCE = "finance"
    DIRECTOR = "director"

class DecisionStatus(str, Enum):
    """Outcome of a single approval step"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class ApprovalDecision(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"

# Request Models
class CreateFlowStepRequest(BaseModel):
    company_id: int = Field(..., gt=0, description="Company ID")
    step_number: int = Field(..., gt=0, description="Position in the approval sequence")
    approver_role: ApprovalRole = Field(..., description="Role acting at this step")
    static_approver_id: Optional[int] = Field(None, gt=0, description="Fixed approver for finance/director steps")

    @field_validator('approver_role', mode='before')
    @classmethod
    def parse_approver_role(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

class SeedDefaultFlowRequest(BaseModel):
    company_id: int = Field(..., gt=0)
    finance_approver_id: int = Field(..., gt=0)
    director_approver_id: int = Field(..., gt=0)

class ApprovalDecisionRequest(BaseModel):
    expense_id: int = Field(..., gt=0, description="Expense ID")
    approver_id: int = Field(..., gt=0, description="ID of the acting approver")
    decision: ApprovalDecision = Field(..., description="approved or rejected")
    comments: Optional[str] = Field(None, max_length=1000, description="Optional decision comments")

    @field_validator('decision', mode='before')
    @classmethod
    def parse_decision(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

# Response Models
class FlowStepResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    company_id: int
    step_number: int
    approver_role: str
    static_approver_id: Optional[int] = None
    static_approver_name: Optional[str] = None

class SeedDefaultFlowResponse(BaseModel):
    message: str
    steps: List[FlowStepResponse]

class NextApproverResponse(BaseModel):
    step_number: int
    approver_role: str
    approver_id: int
    approver_name: str
    approver_email: str

class ExpenseApprovalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    expense_id: int
    step_number: int
    approver_id: int
    approver_name: Optional[str] = None
    approver_role: str
    status: str
    comments: Optional[str] = None
    created_at: Optional[datetime] = None
    decided_at: Optional[datetime] = None

class ApprovalDecisionResponse(BaseModel):
    message: str
    approval: ExpenseApprovalResponse
    expense_status: str
    fast_tracked: bool

class PendingReviewResponse(BaseModel):
    """Expense waiting on a specific approver"""
    expense_id: int
    submitted_by_id: int
    submitted_by_name: str
    amount: float
    currency_code: str
    company_currency_amount: float
    category: str
    description: Optional[str] = None
    submitted_date: Optional[datetime] = None
    step_number: int
    approver_role: str

class ApproverPendingReviewsResponse(BaseModel):
    pending_reviews: List[PendingReviewResponse]
    total_count: int
    total_amount: float

# Error Response Models
class ApprovalErrorResponse(BaseModel):
    error: str
    message: str
    details: Optional[dict] = None
