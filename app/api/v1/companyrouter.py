from fastapi import APIRouter, Depends, HTTPException, status as http_status
from sqlalchemy.orm import Session

from app.database.database import get_db
from app.database.services.company_service import CompanyService
from app.ReqResModels.companymodels import (
    CreateCompanyRequest,
    CompanyResponse,
    CompanyDetailResponse,
    CompanyListResponse,
    ErrorResponse,
)
from app.logic.exceptions import (
    CompanyNotFoundError,
    CompanyAlreadyExistsError,
    DatabaseError
)

router = APIRouter(
    prefix="/companies",
    tags=["companies"],
    responses={
        404: {"model": ErrorResponse, "description": "Company not found"},
        400: {"model": ErrorResponse, "description": "Bad request"},
        500: {"model": ErrorResponse, "description": "Internal server error"}
    }
)

@router.post(
    "/",
    response_model=CompanyResponse,
    status_code=http_status.HTTP_201_CREATED,
    summary="Create a new company",
    description="Create a company with its default currency"
)
def create_company(
    request: CreateCompanyRequest,
    db: Session = Depends(get_db)
):
    """Create a new company"""
    try:
        return CompanyService.create_company(db, request)
    except CompanyAlreadyExistsError as e:
        raise HTTPException(
            status_code=http_status.HTTP_409_CONFLICT,
            detail=e.message
        )
    except DatabaseError as e:
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=e.message
        )

@router.get(
    "/",
    response_model=CompanyListResponse,
    summary="List companies",
    description="List all companies with user and expense counts"
)
def get_companies(db: Session = Depends(get_db)):
    return CompanyService.get_companies(db)

@router.get(
    "/{company_id}",
    response_model=CompanyDetailResponse,
    summary="Get company by ID",
    description="Retrieve a company together with its approval flow"
)
def get_company(
    company_id: int,
    db: Session = Depends(get_db)
):
    """Get company by ID"""
    try:
        return CompanyService.get_company_by_id(db, company_id)
    except CompanyNotFoundError as e:
        raise HTTPException(
            status_code=http_status.HTTP_404_NOT_FOUND,
            detail=e.message
        )
