from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from app.ReqResModels.approvalmodels import ExpenseApprovalResponse, NextApproverResponse

class ExpenseStatus(str, Enum):
    """Lifecycle of an expense; approved and rejected are terminal"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

# Request Models
class ExpenseSubmitRequest(BaseModel):
    submitted_by: int = Field(..., gt=0, description="ID of the user submitting the expense")
    company_id: int = Field(..., gt=0, description="ID of the company")
    amount: Decimal = Field(..., gt=0, description="Amount of the expense")
    currency_code: str = Field(..., min_length=3, max_length=3, description="Currency of the amount")
    company_currency_amount: Optional[Decimal] = Field(None, gt=0, description="Amount in the company default currency")
    category: str = Field(..., min_length=1, max_length=100, description="Expense category")
    description: Optional[str] = Field(None, description="Expense description")
    expense_date: date = Field(..., description="Date when the expense occurred")

    @field_validator('currency_code')
    @classmethod
    def upper_currency(cls, v):
        return v.upper()

    @field_validator('expense_date')
    @classmethod
    def validate_expense_date(cls, v):
        if v > date.today():
            raise ValueError('Expense date cannot be in the future')
        return v

# Response Models
class ExpenseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    submitted_by: int
    company_id: int
    amount: Decimal
    currency_code: str
    company_currency_amount: Decimal
    category: str
    description: Optional[str] = None
    expense_date: date
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    submitted_by_name: Optional[str] = None

class ExpenseDetailResponse(ExpenseResponse):
    """Expense with its approval ledger and, while pending, the approver it waits on"""
    approvals: List[ExpenseApprovalResponse] = []
    next_approver: Optional[NextApproverResponse] = None

class ExpenseListResponse(BaseModel):
    expenses: List[ExpenseResponse]
    total_count: int

class ExpenseSubmitResponse(BaseModel):
    expense: ExpenseResponse
    next_approver: Optional[NextApproverResponse] = None
    warning: Optional[str] = None

class NextApproverLookupResponse(BaseModel):
    message: str
    next_approver: Optional[NextApproverResponse] = None

class ExpenseQueryParams(BaseModel):
    company_id: Optional[int] = Field(None, description="Filter by company ID")
    submitted_by: Optional[int] = Field(None, description="Filter by submitter user ID")
    status: Optional[ExpenseStatus] = Field(None, description="Filter by expense status")

# Error Response
class ExpenseErrorResponse(BaseModel):
    error: str
    detail: str
    expense_id: Optional[int] = None
