from pydantic import BaseModel, Field, ConfigDict, field_validator
from datetime import datetime
from typing import Optional, List

from app.ReqResModels.approvalmodels import FlowStepResponse

# Request Models
class CreateCompanyRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Company name")
    country: Optional[str] = Field(None, min_length=2, max_length=100, description="Country name")
    currency_code: str = Field(..., min_length=3, max_length=3, description="Default currency code (ISO 4217)")

    @field_validator('currency_code')
    @classmethod
    def upper_currency(cls, v):
        return v.upper()

# Response Models
class CompanyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    country: Optional[str] = None
    currency_code: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user_count: int = 0
    expense_count: int = 0

class CompanyDetailResponse(CompanyResponse):
    approval_flow: List[FlowStepResponse] = []

class CompanyListResponse(BaseModel):
    companies: List[CompanyResponse]
    total: int

# Error Response Models
class ErrorResponse(BaseModel):
    error: str
    message: str
    details: Optional[dict] = None
