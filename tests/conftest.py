"""Test configuration and shared fixtures.

MongoDB is replaced by an in-memory mongomock client per test, installed
into the module-level singletons of placement_portal.db.mongodb.
"""

import os

# Must be set before placement_portal reads its settings
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import mongomock
import pytest
from fastapi.testclient import TestClient

from placement_portal.core.auth import create_access_token, hash_password
from placement_portal.db import mongodb
from placement_portal.main import app
from placement_portal.schemas.schemas import StudentRegister
from placement_portal.services.admin_service import AdminService
from placement_portal.services.mongo_service import AdminAccountService, CompanyService
from placement_portal.utils import file_upload


@pytest.fixture(autouse=True)
def mongo_db(monkeypatch):
    """Fresh in-memory database for every test."""
    client = mongomock.MongoClient()
    monkeypatch.setattr(mongodb, "_client", client)
    monkeypatch.setattr(mongodb, "_db", client["placement_portal_test"])
    mongodb.init_mongo_indexes()
    yield mongodb._db


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    """Uploads go to a per-test temp directory."""
    path = tmp_path / "uploads"
    monkeypatch.setattr(file_upload.settings, "upload_dir", str(path))
    return path


@pytest.fixture
def client():
    return TestClient(app)


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_id():
    return AdminAccountService().insert({
        "email": "admin@college.edu",
        "name": "Test Admin",
        "password_hash": hash_password("admin-password"),
    })


@pytest.fixture
def admin_headers(admin_id):
    return bearer(create_access_token({"sub": str(admin_id), "role": "admin"}))


@pytest.fixture
def make_student():
    """Register a student through the admin service; returns the RegisteredAccount."""
    def _make(email="student@college.edu", name="Test Student", **fields):
        return AdminService().register_student(StudentRegister(email=email, name=name, **fields))
    return _make


@pytest.fixture
def student_headers():
    def _headers(account) -> dict:
        return bearer(create_access_token({"sub": account.id, "role": "student"}))
    return _headers


@pytest.fixture
def make_company():
    def _make(name="Acme", total_seats=1, domain="Software"):
        return str(CompanyService().insert(name=name, total_seats=total_seats, domain=domain))
    return _make
