"""
Tests for the /api/admin routes.

Covers:
- every admin route rejects requests without / with an invalid credential
- student and faculty registration, listing, update and deletion
- allocation, rejection and re-allocation keeping seat counts consistent
- overlapping allocations for one student and seat reservation contention
- choice reset vs full reset
- temp password export
"""

import io
from unittest.mock import MagicMock

import pandas as pd
import pytest
from bson import ObjectId
from fastapi import HTTPException

from placement_portal.services.admin_service import AdminService
from placement_portal.services.mongo_service import (
    ApplicationService, CompanyService, StudentService
)

ADMIN_ROUTES = [
    ("post", "/api/admin/register-student"),
    ("post", "/api/admin/bulk-register"),
    ("post", "/api/admin/register-faculty"),
    ("put", f"/api/admin/faculties/{ObjectId()}"),
    ("delete", f"/api/admin/faculties/{ObjectId()}"),
    ("get", "/api/admin/all-students"),
    ("get", "/api/admin/all-faculties"),
    ("get", "/api/admin/student-details/someone@college.edu"),
    ("delete", f"/api/admin/students/{ObjectId()}"),
    ("post", "/api/admin/update-student"),
    ("get", "/api/admin/all-student-applications"),
    ("post", "/api/admin/allocate-company"),
    ("post", "/api/admin/reject-application"),
    ("post", "/api/admin/update-allocated-company"),
    ("post", "/api/admin/reset-student-choices"),
    ("post", "/api/admin/full-reset-students"),
    ("get", "/api/admin/download-student-temp-passwords"),
]


def company_doc(company_id):
    return CompanyService().get_by_id(ObjectId(company_id))


def student_doc(student_id):
    return StudentService().get_by_id(ObjectId(student_id))


def submit_choices(client, headers, company_ids):
    response = client.post("/api/students/choices", json={"company_ids": company_ids}, headers=headers)
    assert response.status_code == 200, response.text
    return {a["company_id"]: a["id"] for a in response.json()["data"]}


class TestAdminAuthGuard:

    @pytest.mark.parametrize("method,path", ADMIN_ROUTES)
    def test_no_credentials(self, client, method, path):
        response = getattr(client, method)(path)
        assert response.status_code == 401

    @pytest.mark.parametrize("method,path", ADMIN_ROUTES)
    def test_invalid_credentials(self, client, method, path):
        response = getattr(client, method)(path, headers={"Authorization": "Bearer invalid.token.value"})
        assert response.status_code == 401


class TestRegistration:

    def test_register_student(self, client, admin_headers):
        response = client.post("/api/admin/register-student", json={
            "name": "Ravi Kumar", "email": "Ravi@College.edu", "roll_no": "CS001", "department": "CSE"
        }, headers=admin_headers)
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["email"] == "ravi@college.edu"
        assert len(data["temp_password"]) >= 6

        doc = student_doc(data["id"])
        assert doc["temp_password"] == data["temp_password"]
        assert doc["password_hash"] != data["temp_password"]
        assert doc["allocation_status"] == "unallocated"

    def test_duplicate_student(self, client, admin_headers, make_student):
        make_student(email="ravi@college.edu")
        response = client.post("/api/admin/register-student", json={
            "name": "Ravi Again", "email": "ravi@college.edu"
        }, headers=admin_headers)
        assert response.status_code == 400
        assert "already exists" in response.json()["message"]

    def test_invalid_email(self, client, admin_headers):
        response = client.post("/api/admin/register-student", json={
            "name": "Nobody", "email": "not-an-email"
        }, headers=admin_headers)
        assert response.status_code == 422

    def test_bulk_register_skips_duplicates(self, client, admin_headers, make_student):
        make_student(email="existing@college.edu")
        response = client.post("/api/admin/bulk-register", json={"students": [
            {"name": "First One", "email": "first@college.edu"},
            {"name": "Second One", "email": "second@college.edu"},
            {"name": "First Again", "email": "first@college.edu"},
            {"name": "Existing", "email": "existing@college.edu"},
        ]}, headers=admin_headers)
        assert response.status_code == 201
        data = response.json()["data"]
        assert [a["email"] for a in data["created"]] == ["first@college.edu", "second@college.edu"]
        assert {s["email"] for s in data["skipped"]} == {"first@college.edu", "existing@college.edu"}
        assert StudentService().collection.count_documents({}) == 3

    def test_register_faculty(self, client, admin_headers):
        response = client.post("/api/admin/register-faculty", json={
            "name": "Dr. Meera", "email": "meera@college.edu", "department": "ECE"
        }, headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["data"]["temp_password"]


class TestFaculty:

    @pytest.fixture
    def faculty_id(self, client, admin_headers):
        response = client.post("/api/admin/register-faculty", json={
            "name": "Dr. Meera", "email": "meera@college.edu", "department": "ECE"
        }, headers=admin_headers)
        return response.json()["data"]["id"]

    def test_list_hides_secrets(self, client, admin_headers, faculty_id):
        response = client.get("/api/admin/all-faculties", headers=admin_headers)
        assert response.status_code == 200
        faculty = response.json()
        assert len(faculty) == 1
        assert "password_hash" not in faculty[0]
        assert "temp_password" not in faculty[0]

    def test_update(self, client, admin_headers, faculty_id):
        response = client.put(f"/api/admin/faculties/{faculty_id}", json={"designation": "Professor"},
                              headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["data"]["designation"] == "Professor"
        assert response.json()["data"]["department"] == "ECE"

    def test_update_empty(self, client, admin_headers, faculty_id):
        response = client.put(f"/api/admin/faculties/{faculty_id}", json={}, headers=admin_headers)
        assert response.status_code == 400

    def test_update_missing(self, client, admin_headers):
        response = client.put(f"/api/admin/faculties/{ObjectId()}", json={"name": "Someone"},
                              headers=admin_headers)
        assert response.status_code == 404

    def test_invalid_id(self, client, admin_headers):
        response = client.delete("/api/admin/faculties/not-an-id", headers=admin_headers)
        assert response.status_code == 400

    def test_delete(self, client, admin_headers, faculty_id):
        response = client.delete(f"/api/admin/faculties/{faculty_id}", headers=admin_headers)
        assert response.status_code == 200
        response = client.delete(f"/api/admin/faculties/{faculty_id}", headers=admin_headers)
        assert response.status_code == 404


class TestStudents:

    def test_list_students(self, client, admin_headers, make_student):
        make_student(email="a@college.edu", name="Student A")
        make_student(email="b@college.edu", name="Student B")
        response = client.get("/api/admin/all-students", headers=admin_headers)
        assert response.status_code == 200
        students = response.json()
        assert {s["email"] for s in students} == {"a@college.edu", "b@college.edu"}
        assert all("password_hash" not in s and "temp_password" not in s for s in students)

    def test_student_details(self, client, admin_headers, make_student, student_headers, make_company):
        account = make_student(email="a@college.edu")
        acme = make_company("Acme", 2)
        submit_choices(client, student_headers(account), [acme])

        response = client.get("/api/admin/student-details/a@college.edu", headers=admin_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["email"] == "a@college.edu"
        assert body["applications"][0]["company_name"] == "Acme"
        assert body["applications"][0]["status"] == "pending"
        assert body["allocated_company_name"] is None

    def test_student_details_missing(self, client, admin_headers):
        response = client.get("/api/admin/student-details/ghost@college.edu", headers=admin_headers)
        assert response.status_code == 404

    def test_update_by_email(self, client, admin_headers, make_student):
        account = make_student(email="a@college.edu")
        response = client.post("/api/admin/update-student", json={
            "email": "a@college.edu", "cgpa": 8.7, "department": "IT"
        }, headers=admin_headers)
        assert response.status_code == 200
        doc = student_doc(account.id)
        assert doc["cgpa"] == 8.7
        assert doc["department"] == "IT"

    def test_update_by_id(self, client, admin_headers, make_student):
        account = make_student()
        response = client.post("/api/admin/update-student", json={
            "student_id": account.id, "preferred_domains": ["Data Science"]
        }, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["data"]["preferred_domains"] == ["Data Science"]

    def test_update_requires_identifier(self, client, admin_headers):
        response = client.post("/api/admin/update-student", json={"cgpa": 9.0}, headers=admin_headers)
        assert response.status_code == 422

    def test_update_nothing(self, client, admin_headers, make_student):
        make_student(email="a@college.edu")
        response = client.post("/api/admin/update-student", json={"email": "a@college.edu"},
                               headers=admin_headers)
        assert response.status_code == 400

    def test_delete_allocated_student_frees_seat(self, client, admin_headers, make_student,
                                                 student_headers, make_company):
        account = make_student()
        acme = make_company("Acme", 1)
        apps = submit_choices(client, student_headers(account), [acme])
        client.post("/api/admin/allocate-company", json={"application_id": apps[acme]}, headers=admin_headers)
        assert company_doc(acme)["filled_seats"] == 1

        response = client.delete(f"/api/admin/students/{account.id}", headers=admin_headers)
        assert response.status_code == 200
        assert company_doc(acme)["filled_seats"] == 0
        assert student_doc(account.id) is None
        assert ApplicationService().collection.count_documents({}) == 0

    def test_delete_missing_student(self, client, admin_headers):
        response = client.delete(f"/api/admin/students/{ObjectId()}", headers=admin_headers)
        assert response.status_code == 404


class TestAllocation:

    @pytest.fixture
    def setup(self, client, make_student, student_headers, make_company):
        acme = make_company("Acme", 1)
        globex = make_company("Globex", 2)
        first = make_student(email="first@college.edu", name="First Student")
        second = make_student(email="second@college.edu", name="Second Student")
        first_apps = submit_choices(client, student_headers(first), [acme, globex])
        second_apps = submit_choices(client, student_headers(second), [acme])
        return {
            "acme": acme, "globex": globex,
            "first": first, "second": second,
            "first_apps": first_apps, "second_apps": second_apps,
        }

    def allocate(self, client, admin_headers, application_id):
        return client.post("/api/admin/allocate-company", json={"application_id": application_id},
                           headers=admin_headers)

    def test_list_applications(self, client, admin_headers, setup):
        response = client.get("/api/admin/all-student-applications", headers=admin_headers)
        assert response.status_code == 200
        apps = response.json()
        assert len(apps) == 3
        assert all(a["status"] == "pending" for a in apps)
        assert {a["student_email"] for a in apps} == {"first@college.edu", "second@college.edu"}

        response = client.get("/api/admin/all-student-applications?status=allocated", headers=admin_headers)
        assert response.json() == []

    def test_allocate(self, client, admin_headers, setup):
        response = self.allocate(client, admin_headers, setup["first_apps"][setup["acme"]])
        assert response.status_code == 200
        assert response.json()["data"]["company_name"] == "Acme"

        assert company_doc(setup["acme"])["filled_seats"] == 1
        student = student_doc(setup["first"].id)
        assert str(student["allocated_company"]) == setup["acme"]
        assert student["allocation_status"] == "allocated"

        other = ApplicationService().get_by_id(ObjectId(setup["first_apps"][setup["globex"]]))
        assert other["status"] == "rejected"
        assert other["remarks"] == "Allocated to Acme"

    def test_allocate_full_company(self, client, admin_headers, setup):
        self.allocate(client, admin_headers, setup["first_apps"][setup["acme"]])
        response = self.allocate(client, admin_headers, setup["second_apps"][setup["acme"]])
        assert response.status_code == 400
        assert response.json()["message"] == "No seats available in Acme"
        assert company_doc(setup["acme"])["filled_seats"] == 1
        assert student_doc(setup["second"].id)["allocated_company"] is None

    def test_allocate_twice(self, client, admin_headers, setup):
        self.allocate(client, admin_headers, setup["first_apps"][setup["acme"]])
        response = self.allocate(client, admin_headers, setup["first_apps"][setup["acme"]])
        assert response.status_code == 400

    def test_allocate_student_already_allocated(self, client, admin_headers, setup):
        self.allocate(client, admin_headers, setup["first_apps"][setup["acme"]])
        # rejected by the first allocation, so no longer pending
        response = self.allocate(client, admin_headers, setup["first_apps"][setup["globex"]])
        assert response.status_code == 400
        assert company_doc(setup["globex"])["filled_seats"] == 0

    def test_allocate_unknown_application(self, client, admin_headers, setup):
        response = self.allocate(client, admin_headers, str(ObjectId()))
        assert response.status_code == 404

    def test_reject_allocated_releases_seat(self, client, admin_headers, setup):
        app_id = setup["first_apps"][setup["acme"]]
        self.allocate(client, admin_headers, app_id)
        response = client.post("/api/admin/reject-application",
                               json={"application_id": app_id, "remarks": "Failed interview"},
                               headers=admin_headers)
        assert response.status_code == 200
        assert company_doc(setup["acme"])["filled_seats"] == 0
        assert student_doc(setup["first"].id)["allocated_company"] is None
        application = ApplicationService().get_by_id(ObjectId(app_id))
        assert application["status"] == "rejected"
        assert application["remarks"] == "Failed interview"

        # the freed seat can go to someone else
        response = self.allocate(client, admin_headers, setup["second_apps"][setup["acme"]])
        assert response.status_code == 200

    def test_reject_twice(self, client, admin_headers, setup):
        app_id = setup["second_apps"][setup["acme"]]
        client.post("/api/admin/reject-application", json={"application_id": app_id}, headers=admin_headers)
        response = client.post("/api/admin/reject-application", json={"application_id": app_id},
                               headers=admin_headers)
        assert response.status_code == 400

    def test_update_allocated_company(self, client, admin_headers, setup):
        self.allocate(client, admin_headers, setup["first_apps"][setup["acme"]])
        response = client.post("/api/admin/update-allocated-company", json={
            "student_id": setup["first"].id, "company_id": setup["globex"]
        }, headers=admin_headers)
        assert response.status_code == 200

        assert company_doc(setup["acme"])["filled_seats"] == 0
        assert company_doc(setup["globex"])["filled_seats"] == 1
        assert str(student_doc(setup["first"].id)["allocated_company"]) == setup["globex"]
        apps = ApplicationService()
        assert apps.get_by_id(ObjectId(setup["first_apps"][setup["acme"]]))["status"] == "rejected"
        assert apps.get_by_id(ObjectId(setup["first_apps"][setup["globex"]]))["status"] == "allocated"

    def test_update_allocated_company_without_application(self, client, admin_headers, setup, make_company):
        initech = make_company("Initech", 1)
        self.allocate(client, admin_headers, setup["second_apps"][setup["acme"]])
        response = client.post("/api/admin/update-allocated-company", json={
            "student_id": setup["second"].id, "company_id": initech
        }, headers=admin_headers)
        assert response.status_code == 200
        created = ApplicationService().find_for(ObjectId(setup["second"].id), ObjectId(initech))
        assert created["status"] == "allocated"

    def test_update_allocated_company_to_full_company(self, client, admin_headers, setup, make_company):
        full = make_company("Full Corp", 0)
        self.allocate(client, admin_headers, setup["first_apps"][setup["acme"]])
        response = client.post("/api/admin/update-allocated-company", json={
            "student_id": setup["first"].id, "company_id": full
        }, headers=admin_headers)
        assert response.status_code == 400
        assert company_doc(setup["acme"])["filled_seats"] == 1
        assert str(student_doc(setup["first"].id)["allocated_company"]) == setup["acme"]

    def test_update_allocated_company_requires_allocation(self, client, admin_headers, setup):
        response = client.post("/api/admin/update-allocated-company", json={
            "student_id": setup["first"].id, "company_id": setup["globex"]
        }, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Student has no allocated company"

    def test_allocate_rejected_application(self, client, admin_headers, setup):
        app_id = setup["second_apps"][setup["acme"]]
        client.post("/api/admin/reject-application", json={"application_id": app_id}, headers=admin_headers)
        response = self.allocate(client, admin_headers, app_id)
        assert response.status_code == 400
        assert response.json()["message"] == "Only pending applications can be allocated"
        assert company_doc(setup["acme"])["filled_seats"] == 0

    def test_overlapping_allocations_for_one_student(self, setup, monkeypatch):
        acme_app = setup["first_apps"][setup["acme"]]
        globex_app = setup["first_apps"][setup["globex"]]
        reserve = CompanyService.reserve_seat
        overlapping = {}

        def reserve_after_second_allocation(service, company_id):
            if not overlapping:
                with pytest.raises(HTTPException) as exc:
                    AdminService().allocate_company(globex_app)
                overlapping["status"] = exc.value.status_code
            return reserve(service, company_id)

        monkeypatch.setattr(CompanyService, "reserve_seat", reserve_after_second_allocation)
        AdminService().allocate_company(acme_app)

        assert overlapping["status"] == 400
        assert company_doc(setup["acme"])["filled_seats"] == 1
        assert company_doc(setup["globex"])["filled_seats"] == 0
        allocated = ApplicationService().list_all(status="allocated")
        assert [str(a["_id"]) for a in allocated] == [acme_app]
        assert str(student_doc(setup["first"].id)["allocated_company"]) == setup["acme"]

    def test_full_company_leaves_student_unclaimed(self, setup):
        AdminService().allocate_company(setup["first_apps"][setup["acme"]])
        with pytest.raises(HTTPException):
            AdminService().allocate_company(setup["second_apps"][setup["acme"]])
        student = student_doc(setup["second"].id)
        assert student["allocated_company"] is None
        assert student["allocation_status"] == "unallocated"

    def test_move_after_allocation_changed(self, setup, monkeypatch):
        AdminService().allocate_company(setup["first_apps"][setup["acme"]])
        service = AdminService()
        stale = dict(student_doc(setup["first"].id), allocated_company=ObjectId())
        monkeypatch.setattr(service.students, "require", lambda student_id: stale)

        with pytest.raises(HTTPException) as exc:
            service.update_allocated_company(setup["first"].id, setup["globex"])
        assert exc.value.status_code == 409
        assert company_doc(setup["acme"])["filled_seats"] == 1
        assert company_doc(setup["globex"])["filled_seats"] == 0


class TestSeatReservation:

    def test_contention_gives_409(self, make_company, monkeypatch):
        company_id = ObjectId(make_company("Acme", 3))
        service = CompanyService()
        update_one = MagicMock(return_value=MagicMock(modified_count=0))
        monkeypatch.setattr(service.collection, "update_one", update_one)

        with pytest.raises(HTTPException) as exc:
            service.reserve_seat(company_id)
        assert exc.value.status_code == 409
        assert update_one.call_count == CompanyService.RESERVE_ATTEMPTS
        assert CompanyService().get_by_id(company_id)["filled_seats"] == 0

    def test_retry_after_lost_race(self, make_company, monkeypatch):
        company_id = ObjectId(make_company("Acme", 3))
        service = CompanyService()
        real_update = service.collection.update_one
        misses = iter([MagicMock(modified_count=0)])

        def update_one(*args, **kwargs):
            return next(misses, None) or real_update(*args, **kwargs)

        monkeypatch.setattr(service.collection, "update_one", update_one)
        service.reserve_seat(company_id)
        assert CompanyService().get_by_id(company_id)["filled_seats"] == 1


class TestResets:

    @pytest.fixture
    def allocated(self, client, admin_headers, make_student, student_headers, make_company):
        acme = make_company("Acme", 3)
        account = make_student()
        headers = student_headers(account)
        client.put("/api/students/preferred-domains", json={"domains": ["Web", "ML"]}, headers=headers)
        apps = submit_choices(client, headers, [acme])
        client.post("/api/admin/allocate-company", json={"application_id": apps[acme]}, headers=admin_headers)
        return account, acme

    def test_reset_choices_keeps_domains(self, client, admin_headers, allocated):
        account, acme = allocated
        response = client.post("/api/admin/reset-student-choices", headers=admin_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "All student choices reset successfully"
        assert body["data"]["applications_removed"] == 1

        student = student_doc(account.id)
        assert student["choices"] == []
        assert student["allocated_company"] is None
        assert student["allocation_status"] == "unallocated"
        assert student["preferred_domains"] == ["Web", "ML"]
        assert company_doc(acme)["filled_seats"] == 0
        assert ApplicationService().collection.count_documents({}) == 0

    def test_full_reset_clears_domains(self, client, admin_headers, allocated):
        account, acme = allocated
        response = client.post("/api/admin/full-reset-students", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Full reset completed successfully"

        student = student_doc(account.id)
        assert student["preferred_domains"] == []
        assert student["allocated_company"] is None
        assert company_doc(acme)["filled_seats"] == 0

    def test_reset_on_empty_database(self, client, admin_headers):
        response = client.post("/api/admin/reset-student-choices", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["data"]["students_reset"] == 0


class TestTempPasswordExport:

    def test_download(self, client, admin_headers, make_student):
        first = make_student(email="a@college.edu", name="Student A", roll_no="CS001")
        second = make_student(email="b@college.edu", name="Student B", roll_no="CS002")

        response = client.get("/api/admin/download-student-temp-passwords", headers=admin_headers)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith(
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        assert "student_temp_passwords.xlsx" in response.headers["content-disposition"]

        df = pd.read_excel(io.BytesIO(response.content))
        assert list(df["Email"]) == ["a@college.edu", "b@college.edu"]
        assert list(df["Temp Password"]) == [first.temp_password, second.temp_password]

    def test_changed_password_not_exported(self, client, admin_headers, make_student, student_headers):
        account = make_student(email="a@college.edu", roll_no="CS001")
        client.post("/api/auth/change-password",
                    json={"old_password": account.temp_password, "new_password": "my-own-password"},
                    headers=student_headers(account))

        response = client.get("/api/admin/download-student-temp-passwords", headers=admin_headers)
        df = pd.read_excel(io.BytesIO(response.content), keep_default_na=False)
        assert df.loc[0, "Temp Password"] == ""
        assert df.loc[0, "Password Changed"] == "Yes"

    def test_no_students(self, client, admin_headers):
        response = client.get("/api/admin/download-student-temp-passwords", headers=admin_headers)
        assert response.status_code == 404
