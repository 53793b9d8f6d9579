"""
Admin Service - placement workflows driven from the admin dashboard.

PURPOSE:
Everything behind the /admin routes that touches more than one collection:
- Account registration with generated temporary passwords (single + bulk)
- Allocation of a company to a student, rejection, re-allocation
- Bulk resets of student choices (soft) and placement data (full)
- Export of temp passwords as an Excel workbook

INVARIANTS:
- company.filled_seats counts the allocated applications of that company
- a student has at most one allocated application, mirrored in
  student.allocated_company
"""

import io
import logging
from typing import List, Optional

import pandas as pd
from fastapi import HTTPException

from placement_portal.core.auth import hash_password, generate_temp_password
from placement_portal.core.config import get_settings
from placement_portal.schemas.schemas import (
    StudentRegister, FacultyRegister, StudentUpdate, FacultyUpdate,
    CompanyCreate, CompanyUpdate, RegisteredAccount, SkippedRow, BulkRegisterResult
)
from placement_portal.services.mongo_service import (
    AdminAccountService,
    StudentService,
    FacultyService,
    CompanyService,
    ApplicationService,
    serialize_doc,
    to_object_id,
)

logger = logging.getLogger(__name__)

TEMP_PASSWORD_FILENAME = "student_temp_passwords.xlsx"
TEMP_PASSWORD_COLUMNS = ["Name", "Email", "Roll No", "Department", "Batch", "Temp Password", "Password Changed"]


# ============================================================
# DOCUMENT -> RESPONSE HELPERS
# ============================================================

def student_to_response(doc: dict) -> dict:
    """Public view of a student document."""
    out = serialize_doc(doc)
    out.pop("password_hash", None)
    out.pop("temp_password", None)
    out["resume_uploaded"] = bool(out.pop("resume_path", None))
    out.setdefault("preferred_domains", [])
    out.setdefault("choices", [])
    out.setdefault("allocation_status", "unallocated")
    out.setdefault("is_password_changed", False)
    return out


def faculty_to_response(doc: dict) -> dict:
    out = serialize_doc(doc)
    out.pop("password_hash", None)
    out.pop("temp_password", None)
    out.setdefault("is_password_changed", False)
    return out


def company_to_response(doc: dict) -> dict:
    out = serialize_doc(doc)
    out["available_seats"] = max(out.get("total_seats", 0) - out.get("filled_seats", 0), 0)
    return out


def application_to_response(doc: dict, student: dict = None, company: dict = None) -> dict:
    out = serialize_doc(doc)
    if student:
        out["student_name"] = student.get("name")
        out["student_email"] = student.get("email")
    if company:
        out["company_name"] = company.get("name")
    return out


class AdminService:
    """Placement admin workflows over the collection services."""

    def __init__(self):
        self.students = StudentService()
        self.faculties = FacultyService()
        self.companies = CompanyService()
        self.applications = ApplicationService()

    # --------------------------------------------------------
    # Registration
    # --------------------------------------------------------

    def register_student(self, data: StudentRegister) -> RegisteredAccount:
        """Create a student with a temp password. Raises 400 if the email exists."""
        if self.students.email_exists(data.email):
            raise HTTPException(status_code=400, detail="Student with this email already exists")

        temp_password = generate_temp_password()
        student_id = self.students.insert({
            **data.model_dump(),
            "password_hash": hash_password(temp_password),
            "temp_password": temp_password,
            "is_password_changed": False,
            "preferred_domains": [],
            "choices": [],
            "allocated_company": None,
            "allocation_status": "unallocated",
            "resume_path": None,
        })
        logger.info("Registered student %s", data.email)
        return RegisteredAccount(id=str(student_id), email=data.email, temp_password=temp_password)

    def bulk_register_students(self, rows: List[StudentRegister]) -> BulkRegisterResult:
        """Register table rows one by one; duplicates (in DB or in the batch) are skipped."""
        result = BulkRegisterResult()
        seen = set()
        for row in rows:
            if row.email in seen:
                result.skipped.append(SkippedRow(email=row.email, reason="Duplicate email in upload"))
                continue
            seen.add(row.email)
            try:
                result.created.append(self.register_student(row))
            except HTTPException as e:
                result.skipped.append(SkippedRow(email=row.email, reason=str(e.detail)))
        logger.info("Bulk registration: %d created, %d skipped", len(result.created), len(result.skipped))
        return result

    def register_faculty(self, data: FacultyRegister) -> RegisteredAccount:
        if self.faculties.email_exists(data.email):
            raise HTTPException(status_code=400, detail="Faculty with this email already exists")

        temp_password = generate_temp_password()
        faculty_id = self.faculties.insert({
            **data.model_dump(),
            "password_hash": hash_password(temp_password),
            "temp_password": temp_password,
            "is_password_changed": False,
        })
        logger.info("Registered faculty %s", data.email)
        return RegisteredAccount(id=str(faculty_id), email=data.email, temp_password=temp_password)

    # --------------------------------------------------------
    # Faculty management
    # --------------------------------------------------------

    def update_faculty(self, faculty_id: str, data: FacultyUpdate) -> dict:
        oid = to_object_id(faculty_id, "faculty id")
        fields = data.model_dump(exclude_none=True)
        if not fields:
            raise HTTPException(status_code=400, detail="No fields to update")
        if not self.faculties.update_fields(oid, fields):
            raise HTTPException(status_code=404, detail="Faculty not found")
        return faculty_to_response(self.faculties.get_by_id(oid))

    def delete_faculty(self, faculty_id: str) -> None:
        oid = to_object_id(faculty_id, "faculty id")
        if not self.faculties.delete(oid):
            raise HTTPException(status_code=404, detail="Faculty not found")
        logger.info("Deleted faculty %s", faculty_id)

    def list_faculties(self) -> List[dict]:
        return [faculty_to_response(doc) for doc in self.faculties.list_all()]

    # --------------------------------------------------------
    # Student management
    # --------------------------------------------------------

    def list_students(self) -> List[dict]:
        return [student_to_response(doc) for doc in self.students.list_all()]

    def get_student_details(self, email: str) -> dict:
        """Student profile plus every application with company names."""
        student = self.students.get_by_email(email)
        if not student:
            raise HTTPException(status_code=404, detail="Student not found")

        applications = self.applications.list_by_student(student["_id"])
        company_ids = {a["company_id"] for a in applications}
        if student.get("allocated_company"):
            company_ids.add(student["allocated_company"])
        companies = self.companies.get_many(company_ids)

        details = student_to_response(student)
        allocated = companies.get(student.get("allocated_company"))
        details["allocated_company_name"] = allocated["name"] if allocated else None
        details["applications"] = [
            application_to_response(a, student, companies.get(a["company_id"])) for a in applications
        ]
        return details

    def update_student(self, data: StudentUpdate) -> dict:
        if data.student_id:
            student = self.students.require(to_object_id(data.student_id, "student id"))
        else:
            student = self.students.get_by_email(data.email)
            if not student:
                raise HTTPException(status_code=404, detail="Student not found")

        fields = data.model_dump(exclude_none=True, exclude={"student_id", "email"})
        if not fields:
            raise HTTPException(status_code=400, detail="No fields to update")

        self.students.update_fields(student["_id"], fields)
        return student_to_response(self.students.get_by_id(student["_id"]))

    def delete_student(self, student_id: str) -> None:
        """Delete a student and their applications, freeing an allocated seat."""
        oid = to_object_id(student_id, "student id")
        student = self.students.require(oid)

        if student.get("allocated_company"):
            self.companies.release_seat(student["allocated_company"])
        removed = self.applications.delete_by_student(oid)
        self.students.delete(oid)
        logger.info("Deleted student %s (%d applications removed)", student["email"], removed)

    # --------------------------------------------------------
    # Companies
    # --------------------------------------------------------

    def list_companies(self) -> List[dict]:
        return [company_to_response(doc) for doc in self.companies.list_all()]

    def create_company(self, data: CompanyCreate) -> dict:
        company_id = self.companies.insert(
            name=data.name, total_seats=data.total_seats,
            domain=data.domain, description=data.description
        )
        logger.info("Created company %s (%d seats)", data.name, data.total_seats)
        return company_to_response(self.companies.get_by_id(company_id))

    def update_company(self, company_id: str, data: CompanyUpdate) -> dict:
        oid = to_object_id(company_id, "company id")
        fields = data.model_dump(exclude_none=True)
        if not fields:
            raise HTTPException(status_code=400, detail="No fields to update")
        self.companies.update_fields(oid, fields)
        return company_to_response(self.companies.get_by_id(oid))

    def delete_company(self, company_id: str) -> None:
        """Remove a company with its applications; allocated students become unallocated."""
        oid = to_object_id(company_id, "company id")
        company = self.companies.require(oid)
        unallocated = self.students.clear_allocations_to(oid)
        self.students.pull_choice(oid)
        removed = self.applications.delete_by_company(oid)
        self.companies.delete(oid)
        logger.info(
            "Deleted company %s (%d applications removed, %d students unallocated)",
            company["name"], removed, unallocated
        )

    # --------------------------------------------------------
    # Applications & allocation
    # --------------------------------------------------------

    def list_applications(self, status: Optional[str] = None) -> List[dict]:
        applications = self.applications.list_all(status)
        students = {
            s["_id"]: s for s in self.students.collection.find(
                {"_id": {"$in": list({a["student_id"] for a in applications})}},
                {"name": 1, "email": 1}
            )
        }
        companies = self.companies.get_many({a["company_id"] for a in applications})
        return [
            application_to_response(a, students.get(a["student_id"]), companies.get(a["company_id"]))
            for a in applications
        ]

    def allocate_company(self, application_id: str) -> dict:
        """
        Allocate the company of a pending application to its student.
        Takes a seat, marks the application allocated and rejects the
        student's remaining pending choices.
        """
        app_oid = to_object_id(application_id, "application id")
        application = self.applications.require(app_oid)
        if application["status"] == "allocated":
            raise HTTPException(status_code=400, detail="Application is already allocated")
        if application["status"] != "pending":
            raise HTTPException(status_code=400, detail="Only pending applications can be allocated")

        student = self.students.require(application["student_id"])
        company_oid = application["company_id"]
        # Claim the student before the seat; only one allocation can win the claim
        if not self.students.claim_allocation(student["_id"], company_oid):
            raise HTTPException(
                status_code=400,
                detail="Student is already allocated to a company. Use update-allocated-company to change it."
            )

        try:
            company = self.companies.reserve_seat(company_oid)
        except HTTPException:
            self.students.claim_allocation(student["_id"], None, expected=company_oid)
            raise

        self.applications.set_status(app_oid, "allocated")
        self.applications.reject_pending_except(
            student["_id"], app_oid, remarks=f"Allocated to {company['name']}"
        )

        logger.info("Allocated %s to %s", student["email"], company["name"])
        return {
            "application_id": application_id,
            "student_email": student["email"],
            "company_id": str(company["_id"]),
            "company_name": company["name"],
        }

    def reject_application(self, application_id: str, remarks: Optional[str] = None) -> dict:
        """Reject an application; an allocated one gives its seat back."""
        app_oid = to_object_id(application_id, "application id")
        application = self.applications.require(app_oid)
        if application["status"] == "rejected":
            raise HTTPException(status_code=400, detail="Application is already rejected")

        if application["status"] == "allocated":
            self.companies.release_seat(application["company_id"])
            self.students.clear_allocation(application["student_id"])

        self.applications.set_status(app_oid, "rejected", remarks=remarks)
        logger.info("Rejected application %s", application_id)
        return {"application_id": application_id, "status": "rejected"}

    def update_allocated_company(self, student_id: str, company_id: str) -> dict:
        """Move an allocated student to another company."""
        student_oid = to_object_id(student_id, "student id")
        company_oid = to_object_id(company_id, "company id")

        student = self.students.require(student_oid)
        old_company_id = student.get("allocated_company")
        if not old_company_id:
            raise HTTPException(status_code=400, detail="Student has no allocated company")
        if old_company_id == company_oid:
            raise HTTPException(status_code=400, detail="Student is already allocated to this company")

        if not self.students.claim_allocation(student_oid, company_oid, expected=old_company_id):
            raise HTTPException(status_code=409, detail="Student allocation changed, please retry")

        # A full target hands the claim back, so the current allocation stays untouched
        try:
            new_company = self.companies.reserve_seat(company_oid)
        except HTTPException:
            self.students.claim_allocation(student_oid, old_company_id, expected=company_oid)
            raise
        self.companies.release_seat(old_company_id)

        old_application = self.applications.find_for(student_oid, old_company_id)
        if old_application:
            self.applications.set_status(
                old_application["_id"], "rejected", remarks=f"Moved to {new_company['name']}"
            )

        new_application = self.applications.find_for(student_oid, company_oid)
        if new_application:
            self.applications.set_status(new_application["_id"], "allocated")
        else:
            preference = len(self.applications.list_by_student(student_oid)) + 1
            self.applications.insert(student_oid, company_oid, preference, status="allocated",
                                     remarks="Allocated by admin")

        logger.info("Moved %s to %s", student["email"], new_company["name"])
        return {
            "student_id": student_id,
            "company_id": company_id,
            "company_name": new_company["name"],
        }

    # --------------------------------------------------------
    # Bulk resets
    # --------------------------------------------------------

    def reset_student_choices(self) -> dict:
        """Clear choices, allocations and applications; keep preferred domains."""
        return self._reset(clear_domains=False)

    def full_reset_students(self) -> dict:
        """Same as reset_student_choices and also wipe preferred domains."""
        return self._reset(clear_domains=True)

    def _reset(self, clear_domains: bool) -> dict:
        students = self.students.reset_placement_state(clear_domains=clear_domains)
        applications = self.applications.delete_all()
        companies = self.companies.reset_filled_seats()
        logger.info(
            "%s reset: %d students, %d applications removed, %d companies",
            "Full" if clear_domains else "Choice", students, applications, companies
        )
        return {
            "students_reset": students,
            "applications_removed": applications,
            "companies_reset": companies,
        }

    # --------------------------------------------------------
    # Export
    # --------------------------------------------------------

    def export_temp_passwords(self) -> bytes:
        """Excel workbook listing every student with their temp password."""
        students = list(self.students.collection.find({}).sort([("roll_no", 1), ("name", 1)]))
        if not students:
            raise HTTPException(status_code=404, detail="No students found")

        rows = [
            {
                "Name": s.get("name"),
                "Email": s.get("email"),
                "Roll No": s.get("roll_no") or "",
                "Department": s.get("department") or "",
                "Batch": s.get("batch") or "",
                "Temp Password": s.get("temp_password") or "",
                "Password Changed": "Yes" if s.get("is_password_changed") else "No",
            }
            for s in students
        ]
        df = pd.DataFrame(rows, columns=TEMP_PASSWORD_COLUMNS)

        output = io.BytesIO()
        with pd.ExcelWriter(output, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name="Temp Passwords", index=False)
        return output.getvalue()


def ensure_default_admin() -> bool:
    """Create the configured admin account if no admin with that email exists."""
    settings = get_settings()
    admins = AdminAccountService()
    if admins.email_exists(settings.admin_email):
        return False
    admins.insert({
        "email": settings.admin_email,
        "name": settings.admin_name,
        "password_hash": hash_password(settings.admin_password),
    })
    logger.info("Seeded default admin %s", settings.admin_email)
    return True
