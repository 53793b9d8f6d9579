"""
Admin Routes

POST   /admin/register-student                - Register student (temp password)
POST   /admin/bulk-register                   - Register students from table rows
POST   /admin/register-faculty                - Register faculty (temp password)
PUT    /admin/faculties/{faculty_id}          - Update faculty
DELETE /admin/faculties/{faculty_id}          - Delete faculty
GET    /admin/all-students                    - List students
GET    /admin/all-faculties                   - List faculty
GET    /admin/student-details/{email}         - Student with applications
DELETE /admin/students/{student_id}           - Delete student
POST   /admin/update-student                  - Update student profile
GET    /admin/all-student-applications        - List applications
POST   /admin/allocate-company                - Allocate application's company
POST   /admin/reject-application              - Reject application
POST   /admin/update-allocated-company        - Move student to another company
POST   /admin/reset-student-choices           - Clear choices and allocations
POST   /admin/full-reset-students             - Clear choices, allocations and domains
GET    /admin/download-student-temp-passwords - Excel export of temp passwords

Every route runs verify_jwt and requires the admin role.
"""

import io
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from placement_portal.core.auth import verify_jwt, require_admin
from placement_portal.services.admin_service import AdminService, TEMP_PASSWORD_FILENAME
from placement_portal.schemas.schemas import (
    StudentRegister, BulkStudentRegister, FacultyRegister, FacultyUpdate, StudentUpdate,
    StudentResponse, FacultyResponse, StudentDetailsResponse, ApplicationResponse,
    ApplicationStatus, AllocateCompanyRequest, RejectApplicationRequest,
    UpdateAllocatedCompanyRequest, MessageResponse
)

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(verify_jwt), Depends(require_admin)]
)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.post("/register-student", response_model=MessageResponse, status_code=201)
async def register_student(data: StudentRegister):
    """Register a student. The generated temp password is returned once and kept for export."""
    account = AdminService().register_student(data)
    return MessageResponse(message="Student registered successfully", data=account.model_dump())


@router.post("/bulk-register", response_model=MessageResponse, status_code=201)
async def bulk_register_students(data: BulkStudentRegister):
    """Register students from table rows. Existing emails are skipped, not failed."""
    result = AdminService().bulk_register_students(data.students)
    return MessageResponse(
        message=f"{len(result.created)} students registered, {len(result.skipped)} skipped",
        data=result.model_dump()
    )


@router.post("/register-faculty", response_model=MessageResponse, status_code=201)
async def register_faculty(data: FacultyRegister):
    account = AdminService().register_faculty(data)
    return MessageResponse(message="Faculty registered successfully", data=account.model_dump())


@router.put("/faculties/{faculty_id}", response_model=MessageResponse)
async def update_faculty(faculty_id: str, data: FacultyUpdate):
    faculty = AdminService().update_faculty(faculty_id, data)
    return MessageResponse(message="Faculty updated successfully", data=FacultyResponse(**faculty).model_dump())


@router.delete("/faculties/{faculty_id}", response_model=MessageResponse)
async def delete_faculty(faculty_id: str):
    AdminService().delete_faculty(faculty_id)
    return MessageResponse(message="Faculty deleted successfully")


@router.get("/all-students", response_model=List[StudentResponse])
async def get_all_students():
    return AdminService().list_students()


@router.get("/all-faculties", response_model=List[FacultyResponse])
async def get_all_faculties():
    return AdminService().list_faculties()


@router.get("/student-details/{email}", response_model=StudentDetailsResponse)
async def get_student_details(email: str):
    return AdminService().get_student_details(email)


@router.delete("/students/{student_id}", response_model=MessageResponse)
async def delete_student(student_id: str):
    """Delete a student and their applications. An allocated seat is released."""
    AdminService().delete_student(student_id)
    return MessageResponse(message="Student deleted successfully")


@router.post("/update-student", response_model=MessageResponse)
async def update_student(data: StudentUpdate):
    student = AdminService().update_student(data)
    return MessageResponse(message="Student updated successfully", data=StudentResponse(**student).model_dump())


@router.get("/all-student-applications", response_model=List[ApplicationResponse])
async def get_all_student_applications(status: Optional[ApplicationStatus] = Query(None)):
    return AdminService().list_applications(status.value if status else None)


@router.post("/allocate-company", response_model=MessageResponse)
async def allocate_company(data: AllocateCompanyRequest):
    result = AdminService().allocate_company(data.application_id)
    return MessageResponse(
        message=f"{result['company_name']} allocated to {result['student_email']}",
        data=result
    )


@router.post("/reject-application", response_model=MessageResponse)
async def reject_application(data: RejectApplicationRequest):
    result = AdminService().reject_application(data.application_id, data.remarks)
    return MessageResponse(message="Application rejected", data=result)


@router.post("/update-allocated-company", response_model=MessageResponse)
async def update_allocated_company(data: UpdateAllocatedCompanyRequest):
    result = AdminService().update_allocated_company(data.student_id, data.company_id)
    return MessageResponse(message=f"Allocation updated to {result['company_name']}", data=result)


@router.post("/reset-student-choices", response_model=MessageResponse)
async def reset_student_choices():
    """
    Clear every student's choices and allocation, delete all applications
    and reset company filled seats. Preferred domains are kept.
    """
    result = AdminService().reset_student_choices()
    return MessageResponse(message="All student choices reset successfully", data=result)


@router.post("/full-reset-students", response_model=MessageResponse)
async def full_reset_students():
    """Everything reset-student-choices does, plus clearing preferred domains."""
    result = AdminService().full_reset_students()
    return MessageResponse(message="Full reset completed successfully", data=result)


@router.get("/download-student-temp-passwords")
async def download_student_temp_passwords():
    """Excel workbook of student temp passwords."""
    content = AdminService().export_temp_passwords()
    return StreamingResponse(
        io.BytesIO(content),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={TEMP_PASSWORD_FILENAME}"}
    )
