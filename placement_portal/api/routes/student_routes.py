"""
Student Routes

GET /students/me - Own profile
GET /students/applications - Own applications
PUT /students/preferred-domains - Replace preferred domains
POST /students/choices - Submit ordered company choices
POST /students/resume - Upload resume (PDF, max 1MB)
"""

from typing import List

from fastapi import APIRouter, Depends

from placement_portal.core.auth import require_student
from placement_portal.services.student_service import StudentPortalService
from placement_portal.utils.file_upload import StoredFile, pdf_upload
from placement_portal.schemas.schemas import (
    StudentResponse, ApplicationResponse, PreferredDomainsRequest, ChoicesRequest, MessageResponse
)

router = APIRouter(prefix="/students", tags=["Students"])


@router.get("/me", response_model=StudentResponse)
async def get_profile(student: dict = Depends(require_student)):
    return StudentPortalService().get_profile(student["id"])


@router.get("/applications", response_model=List[ApplicationResponse])
async def get_my_applications(student: dict = Depends(require_student)):
    return StudentPortalService().get_applications(student["id"])


@router.put("/preferred-domains", response_model=MessageResponse)
async def set_preferred_domains(data: PreferredDomainsRequest, student: dict = Depends(require_student)):
    profile = StudentPortalService().set_preferred_domains(student["id"], data.domains)
    return MessageResponse(message="Preferred domains updated", data=profile["preferred_domains"])


@router.post("/choices", response_model=MessageResponse)
async def submit_choices(data: ChoicesRequest, student: dict = Depends(require_student)):
    """Submit companies in order of preference. Replaces earlier pending choices."""
    applications = StudentPortalService().submit_choices(student["id"], data.company_ids)
    return MessageResponse(
        message="Choices submitted successfully",
        data=[ApplicationResponse(**a).model_dump(mode="json") for a in applications]
    )


@router.post("/resume", response_model=MessageResponse, status_code=201)
async def upload_resume(
    student: dict = Depends(require_student),
    stored: StoredFile = Depends(pdf_upload)
):
    """Upload resume. PDF only, max 1MB. Auth is checked before anything is written."""
    result = StudentPortalService().attach_resume(student["id"], stored)
    return MessageResponse(message="Resume uploaded successfully", data=result)
