"""
MongoDB Service - CRUD operations for the portal collections.

Collections in this database:
1. admins               - Admin accounts
2. students             - Student accounts, profile, choices and allocation
3. faculties            - Faculty accounts and profile
4. companies            - Recruiting companies with seat counters
5. student_applications - One document per (student, company) choice

Each service wraps a single collection. Cross-collection workflows
(allocation, resets) live in admin_service.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any
from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from placement_portal.db.mongodb import get_collection, COLLECTIONS


# ============================================================
# HELPERS: ObjectId parsing and JSON serialization
# ============================================================

def to_object_id(value: Any, label: str = "id") -> ObjectId:
    """Parse a client-supplied id, raising 400 when it is not an ObjectId."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail=f"Invalid {label}")


def serialize_doc(doc: dict) -> dict:
    """Convert MongoDB document to JSON-serializable dict (ObjectIds become strings)."""
    if doc is None:
        return None
    out = {}
    for key, value in doc.items():
        if key == "_id":
            out["id"] = str(value)
        elif isinstance(value, ObjectId):
            out[key] = str(value)
        elif isinstance(value, list):
            out[key] = [str(v) if isinstance(v, ObjectId) else v for v in value]
        else:
            out[key] = value
    return out


def serialize_docs(docs: list) -> list:
    """Convert list of MongoDB documents to JSON-serializable list."""
    return [serialize_doc(doc) for doc in docs]


def without_secrets(doc: dict) -> dict:
    """Drop the password hash before a document leaves the service layer."""
    if doc is None:
        return None
    doc = dict(doc)
    doc.pop("password_hash", None)
    return doc


# ============================================================
# ACCOUNT COLLECTIONS (admins, students, faculties)
# ============================================================

class AccountService:
    """
    Shared CRUD for collections holding login accounts.
    Emails are stored lower-cased and are unique per collection.
    """

    collection_key: str = None
    entity_name: str = "Account"

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS[self.collection_key])

    def get_by_id(self, account_id: ObjectId) -> Optional[dict]:
        return self.collection.find_one({"_id": account_id})

    def get_by_email(self, email: str) -> Optional[dict]:
        return self.collection.find_one({"email": email.lower()})

    def require(self, account_id: ObjectId) -> dict:
        """Fetch by id or raise 404."""
        doc = self.get_by_id(account_id)
        if not doc:
            raise HTTPException(status_code=404, detail=f"{self.entity_name} not found")
        return doc

    def email_exists(self, email: str) -> bool:
        return self.collection.count_documents({"email": email.lower()}, limit=1) > 0

    def insert(self, doc: dict) -> ObjectId:
        """Insert a new account. Raises 400 if the email is taken."""
        now = datetime.utcnow()
        doc = {**doc, "email": doc["email"].lower(), "created_at": now, "updated_at": now}
        try:
            result = self.collection.insert_one(doc)
        except DuplicateKeyError:
            raise HTTPException(status_code=400, detail=f"{self.entity_name} with this email already exists")
        return result.inserted_id

    def update_fields(self, account_id: ObjectId, fields: dict) -> bool:
        """$set the given fields. Returns False if the account does not exist."""
        result = self.collection.update_one(
            {"_id": account_id},
            {"$set": {**fields, "updated_at": datetime.utcnow()}}
        )
        return result.matched_count > 0

    def set_password(self, account_id: ObjectId, password_hash: str) -> bool:
        """Store a user-chosen password; the temp password is no longer valid to export."""
        return self.update_fields(account_id, {
            "password_hash": password_hash,
            "temp_password": None,
            "is_password_changed": True,
        })

    def delete(self, account_id: ObjectId) -> bool:
        result = self.collection.delete_one({"_id": account_id})
        return result.deleted_count > 0

    def list_all(self, sort_field: str = "created_at") -> List[dict]:
        cursor = self.collection.find({}, {"password_hash": 0}).sort(sort_field, 1)
        return list(cursor)


class AdminAccountService(AccountService):
    collection_key = "admins"
    entity_name = "Admin"


class FacultyService(AccountService):
    collection_key = "faculties"
    entity_name = "Faculty"


class StudentService(AccountService):
    """
    Students carry placement state on top of the account:
    preferred_domains, choices (ordered company ids), allocated_company
    and allocation_status.
    """

    collection_key = "students"
    entity_name = "Student"

    def claim_allocation(self, student_id: ObjectId, company_id: Optional[ObjectId],
                         expected: Optional[ObjectId] = None) -> bool:
        """
        Point allocated_company at company_id (None unallocates) only if it
        still holds `expected`. False means another allocation got there first.
        """
        result = self.collection.update_one(
            {"_id": student_id, "allocated_company": expected},
            {"$set": {
                "allocated_company": company_id,
                "allocation_status": "allocated" if company_id else "unallocated",
                "updated_at": datetime.utcnow(),
            }}
        )
        return result.modified_count > 0

    def clear_allocation(self, student_id: ObjectId) -> bool:
        return self.update_fields(student_id, {
            "allocated_company": None,
            "allocation_status": "unallocated",
        })

    def clear_allocations_to(self, company_id: ObjectId) -> int:
        """Unallocate every student placed in the given company."""
        result = self.collection.update_many(
            {"allocated_company": company_id},
            {"$set": {
                "allocated_company": None,
                "allocation_status": "unallocated",
                "updated_at": datetime.utcnow(),
            }}
        )
        return result.modified_count

    def pull_choice(self, company_id: ObjectId) -> int:
        result = self.collection.update_many(
            {"choices": company_id},
            {"$pull": {"choices": company_id}}
        )
        return result.modified_count

    def reset_placement_state(self, clear_domains: bool = False) -> int:
        """Bulk-clear choices and allocations of every student."""
        fields = {
            "choices": [],
            "allocated_company": None,
            "allocation_status": "unallocated",
            "updated_at": datetime.utcnow(),
        }
        if clear_domains:
            fields["preferred_domains"] = []
        result = self.collection.update_many({}, {"$set": fields})
        return result.matched_count


# ============================================================
# COMPANIES COLLECTION
# ============================================================

class CompanyService:
    """
    Handles companies and their seat counters.
    filled_seats never exceeds total_seats: reservations are conditional
    updates on the filled_seats value that was read.
    """

    RESERVE_ATTEMPTS = 5

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["companies"])

    def insert(self, name: str, total_seats: int, domain: str = None, description: str = None) -> ObjectId:
        now = datetime.utcnow()
        doc = {
            "name": name,
            "domain": domain,
            "description": description,
            "total_seats": total_seats,
            "filled_seats": 0,
            "created_at": now,
            "updated_at": now,
        }
        return self.collection.insert_one(doc).inserted_id

    def get_by_id(self, company_id: ObjectId) -> Optional[dict]:
        return self.collection.find_one({"_id": company_id})

    def require(self, company_id: ObjectId) -> dict:
        doc = self.get_by_id(company_id)
        if not doc:
            raise HTTPException(status_code=404, detail="Company not found")
        return doc

    def get_many(self, company_ids: List[ObjectId]) -> Dict[ObjectId, dict]:
        cursor = self.collection.find({"_id": {"$in": list(company_ids)}})
        return {doc["_id"]: doc for doc in cursor}

    def list_all(self) -> List[dict]:
        return list(self.collection.find({}).sort("name", 1))

    def update_fields(self, company_id: ObjectId, fields: dict) -> None:
        """Update company details. total_seats may not drop below filled_seats."""
        company = self.require(company_id)
        query = {"_id": company_id}
        if "total_seats" in fields:
            query["filled_seats"] = {"$lte": fields["total_seats"]}
        result = self.collection.update_one(query, {"$set": {**fields, "updated_at": datetime.utcnow()}})
        if result.matched_count == 0:
            raise HTTPException(
                status_code=400,
                detail=f"total_seats cannot be lower than filled seats ({company['filled_seats']})"
            )

    def delete(self, company_id: ObjectId) -> bool:
        result = self.collection.delete_one({"_id": company_id})
        return result.deleted_count > 0

    def reserve_seat(self, company_id: ObjectId) -> dict:
        """
        Take one seat in the company. Raises 404 for an unknown company,
        400 when it is full and 409 if concurrent updates keep winning.
        """
        for _ in range(self.RESERVE_ATTEMPTS):
            company = self.require(company_id)
            filled = company.get("filled_seats", 0)
            if filled >= company.get("total_seats", 0):
                raise HTTPException(status_code=400, detail=f"No seats available in {company['name']}")
            result = self.collection.update_one(
                {"_id": company_id, "filled_seats": filled},
                {"$inc": {"filled_seats": 1}, "$set": {"updated_at": datetime.utcnow()}}
            )
            if result.modified_count:
                return company
        raise HTTPException(status_code=409, detail="Seat reservation conflict, please retry")

    def release_seat(self, company_id: ObjectId) -> bool:
        """Give a seat back, never going below zero."""
        result = self.collection.update_one(
            {"_id": company_id, "filled_seats": {"$gt": 0}},
            {"$inc": {"filled_seats": -1}, "$set": {"updated_at": datetime.utcnow()}}
        )
        return result.modified_count > 0

    def reset_filled_seats(self) -> int:
        result = self.collection.update_many(
            {},
            {"$set": {"filled_seats": 0, "updated_at": datetime.utcnow()}}
        )
        return result.matched_count


# ============================================================
# STUDENT APPLICATIONS COLLECTION
# ============================================================

class ApplicationService:
    """
    One document per student choice.
    status: pending -> allocated | rejected
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["applications"])

    def get_by_id(self, application_id: ObjectId) -> Optional[dict]:
        return self.collection.find_one({"_id": application_id})

    def require(self, application_id: ObjectId) -> dict:
        doc = self.get_by_id(application_id)
        if not doc:
            raise HTTPException(status_code=404, detail="Application not found")
        return doc

    def find_for(self, student_id: ObjectId, company_id: ObjectId) -> Optional[dict]:
        return self.collection.find_one({"student_id": student_id, "company_id": company_id})

    def list_by_student(self, student_id: ObjectId) -> List[dict]:
        return list(self.collection.find({"student_id": student_id}).sort("preference", 1))

    def list_all(self, status: str = None) -> List[dict]:
        query = {"status": status} if status else {}
        return list(self.collection.find(query).sort("created_at", 1))

    def insert(self, student_id: ObjectId, company_id: ObjectId, preference: Optional[int],
               status: str = "pending", remarks: str = None) -> ObjectId:
        now = datetime.utcnow()
        doc = {
            "student_id": student_id,
            "company_id": company_id,
            "preference": preference,
            "status": status,
            "remarks": remarks,
            "created_at": now,
            "updated_at": now,
        }
        return self.collection.insert_one(doc).inserted_id

    def set_status(self, application_id: ObjectId, status: str, remarks: str = None) -> bool:
        fields = {"status": status, "updated_at": datetime.utcnow()}
        if remarks is not None:
            fields["remarks"] = remarks
        result = self.collection.update_one({"_id": application_id}, {"$set": fields})
        return result.matched_count > 0

    def reject_pending_except(self, student_id: ObjectId, keep_id: ObjectId, remarks: str) -> int:
        """Reject a student's other pending applications once one is allocated."""
        result = self.collection.update_many(
            {"student_id": student_id, "_id": {"$ne": keep_id}, "status": "pending"},
            {"$set": {"status": "rejected", "remarks": remarks, "updated_at": datetime.utcnow()}}
        )
        return result.modified_count

    def delete_unallocated_for_student(self, student_id: ObjectId) -> int:
        result = self.collection.delete_many({"student_id": student_id, "status": {"$ne": "allocated"}})
        return result.deleted_count

    def delete_by_student(self, student_id: ObjectId) -> int:
        return self.collection.delete_many({"student_id": student_id}).deleted_count

    def delete_by_company(self, company_id: ObjectId) -> int:
        return self.collection.delete_many({"company_id": company_id}).deleted_count

    def delete_all(self) -> int:
        return self.collection.delete_many({}).deleted_count
