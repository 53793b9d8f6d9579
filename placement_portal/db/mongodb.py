"""
MongoDB Connection Utility

MongoDB stores every portal entity:
- admins, students, faculties (accounts with hashed passwords)
- companies (with total/filled seat counters)
- student_applications (a student's ranked company choices and their status)
"""
import logging

from pymongo import MongoClient, ASCENDING
from pymongo.database import Database
from pymongo.collection import Collection

from placement_portal.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(settings.mongodb_uri)
    return _client


def get_mongo_db() -> Database:
    """Get the portal database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[settings.mongodb_db]
    return _db


def get_collection(name: str) -> Collection:
    """Get a specific collection. Use the COLLECTIONS constants for names."""
    db = get_mongo_db()
    return db[name]


def test_mongo_connection() -> bool:
    """
    Test if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        client = get_mongo_client()
        # ping command checks connection
        client.admin.command('ping')
        return True
    except Exception as e:
        logger.warning("MongoDB connection failed: %s", e)
        return False


# Collection name constants (avoid typos)
COLLECTIONS = {
    "admins": "admins",
    "students": "students",
    "faculties": "faculties",
    "companies": "companies",
    "applications": "student_applications",
}


def init_mongo_indexes():
    """
    Create indexes for uniqueness and query performance.
    Call this once during app startup.
    """
    db = get_mongo_db()

    # Account emails are unique per collection
    db[COLLECTIONS["admins"]].create_index("email", unique=True)
    db[COLLECTIONS["students"]].create_index("email", unique=True)
    db[COLLECTIONS["faculties"]].create_index("email", unique=True)

    # One application per (student, company) pair
    db[COLLECTIONS["applications"]].create_index([
        ("student_id", ASCENDING),
        ("company_id", ASCENDING)
    ], unique=True)
    db[COLLECTIONS["applications"]].create_index("status")

    logger.info("MongoDB indexes created successfully")
