"""
Authentication Utility - JWT and Password handling.

Provides:
- Password hashing with bcrypt
- Temporary password generation for admin-created accounts
- JWT token creation/verification
- verify_jwt: the FastAPI dependency guarding every protected route
"""

import secrets
import string
from datetime import datetime, timedelta
from typing import Optional
from bson import ObjectId
from bson.errors import InvalidId
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from placement_portal.core.config import get_settings
from placement_portal.db.mongodb import get_collection, COLLECTIONS

settings = get_settings()

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.bcrypt_rounds)

# Bearer token extractor (missing header handled in verify_jwt so it is always a 401)
bearer_scheme = HTTPBearer(auto_error=False)

# Which collection holds the accounts for each role claim
ROLE_COLLECTIONS = {
    "admin": COLLECTIONS["admins"],
    "student": COLLECTIONS["students"],
    "faculty": COLLECTIONS["faculties"],
}

TEMP_PASSWORD_ALPHABET = string.ascii_letters + string.digits


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def generate_temp_password(length: Optional[int] = None) -> str:
    """Random alphanumeric password containing at least one letter and one digit."""
    length = max(length or settings.temp_password_length, 6)
    while True:
        password = "".join(secrets.choice(TEMP_PASSWORD_ALPHABET) for _ in range(length))
        if any(c.isdigit() for c in password) and any(c.isalpha() for c in password):
            return password


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


async def verify_jwt(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> dict:
    """
    FastAPI dependency - validate the bearer token and attach the identity.

    The identity is stored on request.state.user and returned:
        {"id": str, "email": str, "role": str, "name": str | None}

    Usage:
        @router.get("/protected")
        async def route(user: dict = Depends(verify_jwt)):
            return user
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized request",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(credentials.credentials)
    if not payload:
        raise credentials_exception

    user_id = payload.get("sub")
    role = payload.get("role")
    if not user_id or role not in ROLE_COLLECTIONS:
        raise credentials_exception

    try:
        oid = ObjectId(user_id)
    except (InvalidId, TypeError):
        raise credentials_exception

    # Verify account still exists
    account = get_collection(ROLE_COLLECTIONS[role]).find_one({"_id": oid}, {"password_hash": 0})
    if not account:
        raise credentials_exception

    user = {
        "id": str(account["_id"]),
        "email": account["email"],
        "role": role,
        "name": account.get("name"),
    }
    request.state.user = user
    return user


async def require_admin(user: dict = Depends(verify_jwt)) -> dict:
    """Dependency - Require admin role."""
    if user["role"] != "admin":
        raise HTTPException(status_code=403, detail="Admins only")
    return user


async def require_student(user: dict = Depends(verify_jwt)) -> dict:
    """Dependency - Require student role."""
    if user["role"] != "student":
        raise HTTPException(status_code=403, detail="Students only")
    return user
