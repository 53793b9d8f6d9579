"""
Company Routes

GET /companies - List companies with seat availability (any logged-in user)
POST /companies - Create company (admin)
PUT /companies/{company_id} - Update company (admin)
DELETE /companies/{company_id} - Delete company and its applications (admin)
"""

from typing import List

from fastapi import APIRouter, Depends

from placement_portal.core.auth import verify_jwt, require_admin
from placement_portal.services.admin_service import AdminService
from placement_portal.schemas.schemas import (
    CompanyCreate, CompanyUpdate, CompanyResponse, MessageResponse
)

router = APIRouter(prefix="/companies", tags=["Companies"], dependencies=[Depends(verify_jwt)])


@router.get("", response_model=List[CompanyResponse])
async def list_companies():
    return AdminService().list_companies()


@router.post("", response_model=MessageResponse, status_code=201, dependencies=[Depends(require_admin)])
async def create_company(data: CompanyCreate):
    company = AdminService().create_company(data)
    return MessageResponse(message="Company created successfully", data=company)


@router.put("/{company_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
async def update_company(company_id: str, data: CompanyUpdate):
    """Update company. total_seats cannot go below the seats already filled."""
    company = AdminService().update_company(company_id, data)
    return MessageResponse(message="Company updated successfully", data=company)


@router.delete("/{company_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
async def delete_company(company_id: str):
    AdminService().delete_company(company_id)
    return MessageResponse(message="Company deleted successfully")
