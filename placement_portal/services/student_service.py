"""
Student Service - actions a logged-in student performs on their own record.

Choices are an ordered list of companies. Submitting choices replaces the
student's non-allocated applications with fresh pending ones, ranked in the
submitted order. Choices are locked once the student is allocated.
"""

import logging
from typing import List

from fastapi import HTTPException

from placement_portal.core.config import get_settings
from placement_portal.services.admin_service import (
    student_to_response,
    application_to_response,
)
from placement_portal.services.mongo_service import (
    StudentService,
    CompanyService,
    ApplicationService,
    to_object_id,
)
from placement_portal.utils.file_upload import StoredFile, remove_stored_file

logger = logging.getLogger(__name__)
settings = get_settings()


class StudentPortalService:

    def __init__(self):
        self.students = StudentService()
        self.companies = CompanyService()
        self.applications = ApplicationService()

    def _student(self, student_id: str) -> dict:
        return self.students.require(to_object_id(student_id, "student id"))

    def get_profile(self, student_id: str) -> dict:
        return student_to_response(self._student(student_id))

    def get_applications(self, student_id: str) -> List[dict]:
        student = self._student(student_id)
        applications = self.applications.list_by_student(student["_id"])
        companies = self.companies.get_many({a["company_id"] for a in applications})
        return [application_to_response(a, student, companies.get(a["company_id"])) for a in applications]

    def set_preferred_domains(self, student_id: str, domains: List[str]) -> dict:
        student = self._student(student_id)
        self.students.update_fields(student["_id"], {"preferred_domains": domains})
        return student_to_response(self.students.get_by_id(student["_id"]))

    def submit_choices(self, student_id: str, company_ids: List[str]) -> List[dict]:
        """Replace the student's choices with the given ordered companies."""
        student = self._student(student_id)
        if student.get("allocated_company"):
            raise HTTPException(status_code=400, detail="Choices are locked after allocation")

        if len(company_ids) > settings.max_student_choices:
            raise HTTPException(
                status_code=400,
                detail=f"At most {settings.max_student_choices} choices are allowed"
            )

        oids = [to_object_id(cid, "company id") for cid in company_ids]
        if len(set(oids)) != len(oids):
            raise HTTPException(status_code=400, detail="Duplicate company in choices")

        companies = self.companies.get_many(oids)
        missing = [str(oid) for oid in oids if oid not in companies]
        if missing:
            raise HTTPException(status_code=404, detail=f"Company not found: {', '.join(missing)}")

        self.applications.delete_unallocated_for_student(student["_id"])
        for rank, company_id in enumerate(oids, start=1):
            self.applications.insert(student["_id"], company_id, rank)
        self.students.update_fields(student["_id"], {"choices": oids})

        logger.info("Student %s submitted %d choices", student["email"], len(oids))
        return self.get_applications(student_id)

    def attach_resume(self, student_id: str, stored: StoredFile) -> dict:
        """Point the student at the new resume and delete the one it replaces."""
        student = self._student(student_id)
        self.students.update_fields(student["_id"], {"resume_path": stored.path})
        previous = student.get("resume_path")
        if previous and previous != stored.path and remove_stored_file(previous):
            logger.info("Removed previous resume %s", previous)
        return {"filename": stored.filename, "size": stored.size}
