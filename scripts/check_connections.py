#!/usr/bin/env python3
"""
Connection Check Script

Run this to verify MongoDB is reachable and the indexes/default admin exist.
Usage: python scripts/check_connections.py
"""
import sys
sys.path.insert(0, '.')

from placement_portal.db.mongodb import test_mongo_connection, init_mongo_indexes
from placement_portal.services.admin_service import ensure_default_admin
from placement_portal.core.config import get_settings


def main():
    settings = get_settings()
    print("=" * 50)
    print("PLACEMENT PORTAL - CONNECTION CHECK")
    print("=" * 50)

    print("\n[1] Testing MongoDB...")
    print(f"    URI: {settings.mongodb_uri}")
    print(f"    Database: {settings.mongodb_db}")
    if not test_mongo_connection():
        print("    ❌ MongoDB: FAILED")
        return 1
    print("    ✅ MongoDB: CONNECTED")

    print("\n[2] Creating indexes...")
    init_mongo_indexes()
    print("    ✅ Indexes ready")

    print("\n[3] Default admin...")
    if ensure_default_admin():
        print(f"    ✅ Created {settings.admin_email}")
    else:
        print(f"    ✅ {settings.admin_email} already exists")

    print("\n" + "=" * 50)
    print("Connection check complete!")
    print("=" * 50)
    return 0


if __name__ == "__main__":
    sys.exit(main())
