"""
Authentication Routes

POST /auth/login - Login and get JWT token
GET /auth/me - Get current identity
POST /auth/change-password - Replace the (temporary) password
"""

from fastapi import APIRouter, HTTPException, Depends

from placement_portal.core.auth import (
    hash_password, verify_password, create_access_token, verify_jwt
)
from placement_portal.services.mongo_service import (
    AdminAccountService, StudentService, FacultyService, to_object_id
)
from placement_portal.schemas.schemas import (
    LoginRequest, TokenResponse, IdentityResponse, ChangePasswordRequest, MessageResponse
)

router = APIRouter(prefix="/auth", tags=["Authentication"])

ACCOUNT_SERVICES = {
    "admin": AdminAccountService,
    "student": StudentService,
    "faculty": FacultyService,
}


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    """
    accounts = ACCOUNT_SERVICES[request.role.value]()
    account = accounts.get_by_email(request.email)

    if not account or not verify_password(request.password, account.get("password_hash")):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token = create_access_token(data={"sub": str(account["_id"]), "role": request.role.value})

    return TokenResponse(
        access_token=token,
        user_id=str(account["_id"]),
        role=request.role.value,
        must_change_password=request.role.value != "admin" and not account.get("is_password_changed", False)
    )


@router.get("/me", response_model=IdentityResponse)
async def get_me(user: dict = Depends(verify_jwt)):
    """Get current authenticated identity."""
    return IdentityResponse(**user)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(data: ChangePasswordRequest, user: dict = Depends(verify_jwt)):
    """Change password. Clears the temp password so it no longer appears in exports."""
    accounts = ACCOUNT_SERVICES[user["role"]]()
    account_id = to_object_id(user["id"])
    account = accounts.require(account_id)

    if not verify_password(data.old_password, account.get("password_hash")):
        raise HTTPException(status_code=400, detail="Old password is incorrect")
    if data.old_password == data.new_password:
        raise HTTPException(status_code=400, detail="New password must differ from the old password")

    accounts.set_password(account_id, hash_password(data.new_password))
    return MessageResponse(message="Password changed successfully")
