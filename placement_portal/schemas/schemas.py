"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional, List, Any
from datetime import datetime
from enum import Enum


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    admin = "admin"
    student = "student"
    faculty = "faculty"


class ApplicationStatus(str, Enum):
    pending = "pending"
    allocated = "allocated"
    rejected = "rejected"


class AllocationStatus(str, Enum):
    unallocated = "unallocated"
    allocated = "allocated"


# ============================================================
# COMMON
# ============================================================

class MessageResponse(BaseModel):
    success: bool = True
    message: str
    data: Optional[Any] = None


# ============================================================
# AUTH SCHEMAS
# ============================================================

class LoginRequest(BaseModel):
    email: EmailStr
    password: str
    role: UserRole = UserRole.student

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    role: str
    must_change_password: bool = False

class IdentityResponse(BaseModel):
    id: str
    email: str
    role: str
    name: Optional[str] = None

class ChangePasswordRequest(BaseModel):
    old_password: str
    new_password: str = Field(..., min_length=8)


# ============================================================
# STUDENT SCHEMAS
# ============================================================

class StudentRegister(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    roll_no: Optional[str] = None
    department: Optional[str] = None
    batch: Optional[str] = None
    cgpa: Optional[float] = Field(None, ge=0, le=10)
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()

class BulkStudentRegister(BaseModel):
    students: List[StudentRegister] = Field(..., min_length=1)

class StudentUpdate(BaseModel):
    """Admin-side profile edit. The student is addressed by id or email."""
    student_id: Optional[str] = None
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    roll_no: Optional[str] = None
    department: Optional[str] = None
    batch: Optional[str] = None
    cgpa: Optional[float] = Field(None, ge=0, le=10)
    phone: Optional[str] = None
    preferred_domains: Optional[List[str]] = None

    @model_validator(mode="after")
    def require_identifier(self):
        if not self.student_id and not self.email:
            raise ValueError("student_id or email is required")
        return self

class StudentResponse(BaseModel):
    id: str
    name: str
    email: str
    roll_no: Optional[str] = None
    department: Optional[str] = None
    batch: Optional[str] = None
    cgpa: Optional[float] = None
    phone: Optional[str] = None
    preferred_domains: List[str] = []
    choices: List[str] = []
    allocated_company: Optional[str] = None
    allocation_status: AllocationStatus = AllocationStatus.unallocated
    is_password_changed: bool = False
    resume_uploaded: bool = False
    created_at: Optional[datetime] = None

class PreferredDomainsRequest(BaseModel):
    domains: List[str]

    @field_validator("domains")
    @classmethod
    def strip_domains(cls, v: List[str]) -> List[str]:
        cleaned = []
        for domain in v:
            domain = domain.strip()
            if domain and domain not in cleaned:
                cleaned.append(domain)
        return cleaned

class ChoicesRequest(BaseModel):
    company_ids: List[str] = Field(..., min_length=1)


# ============================================================
# FACULTY SCHEMAS
# ============================================================

class FacultyRegister(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    department: Optional[str] = None
    designation: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()

class FacultyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    department: Optional[str] = None
    designation: Optional[str] = None
    phone: Optional[str] = None

class FacultyResponse(BaseModel):
    id: str
    name: str
    email: str
    department: Optional[str] = None
    designation: Optional[str] = None
    phone: Optional[str] = None
    is_password_changed: bool = False
    created_at: Optional[datetime] = None


# ============================================================
# ACCOUNT REGISTRATION RESULTS
# ============================================================

class RegisteredAccount(BaseModel):
    id: str
    email: str
    temp_password: str

class SkippedRow(BaseModel):
    email: str
    reason: str

class BulkRegisterResult(BaseModel):
    created: List[RegisteredAccount] = []
    skipped: List[SkippedRow] = []


# ============================================================
# COMPANY SCHEMAS
# ============================================================

class CompanyCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=200)
    domain: Optional[str] = None
    description: Optional[str] = None
    total_seats: int = Field(..., ge=0)

class CompanyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=200)
    domain: Optional[str] = None
    description: Optional[str] = None
    total_seats: Optional[int] = Field(None, ge=0)

class CompanyResponse(BaseModel):
    id: str
    name: str
    domain: Optional[str] = None
    description: Optional[str] = None
    total_seats: int
    filled_seats: int
    available_seats: int


# ============================================================
# APPLICATION SCHEMAS
# ============================================================

class ApplicationResponse(BaseModel):
    id: str
    student_id: str
    student_name: Optional[str] = None
    student_email: Optional[str] = None
    company_id: str
    company_name: Optional[str] = None
    preference: Optional[int] = None
    status: ApplicationStatus
    remarks: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class StudentDetailsResponse(StudentResponse):
    allocated_company_name: Optional[str] = None
    applications: List[ApplicationResponse] = []

class AllocateCompanyRequest(BaseModel):
    application_id: str

class RejectApplicationRequest(BaseModel):
    application_id: str
    remarks: Optional[str] = None

class UpdateAllocatedCompanyRequest(BaseModel):
    student_id: str
    company_id: str
