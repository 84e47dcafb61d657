from pydantic import BaseModel, Field, EmailStr, ConfigDict, field_validator
from datetime import datetime
from typing import Optional, List
from enum import Enum

class UserRole(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"

# Request Models
class CreateUserRequest(BaseModel):
    company_id: int = Field(..., gt=0, description="Company ID")
    name: str = Field(..., min_length=1, max_length=255, description="User full name")
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=6, max_length=100, description="User password")
    role: UserRole = Field(default=UserRole.EMPLOYEE, description="User role")
    manager_id: Optional[int] = Field(None, gt=0, description="Manager ID (optional)")

    @field_validator('role', mode='before')
    @classmethod
    def parse_role(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

class AssignManagerRequest(BaseModel):
    company_id: int = Field(..., gt=0)
    employee_id: int = Field(..., gt=0)
    manager_id: int = Field(..., gt=0)

# Response Models
class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    company_id: int
    name: str
    email: str
    role: str
    manager_id: Optional[int] = None
    manager_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class UserListResponse(BaseModel):
    users: List[UserResponse]
    total: int

class ManagerAssignmentResponse(BaseModel):
    company_id: int
    employee_id: int
    employee_name: str
    manager_id: int
    manager_name: str

class ManagerAssignmentListResponse(BaseModel):
    assignments: List[ManagerAssignmentResponse]
    total: int

# Error Response Models
class UserErrorResponse(BaseModel):
    error: str
    message: str
    details: Optional[dict] = None
