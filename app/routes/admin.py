# ========================================
# app/routes/admin.py - admin panel authentication
# ========================================

import logging
import secrets

from fastapi import APIRouter, Depends, status
from pydantic import ValidationError as ModelValidationError

from app.config import ADMIN_SECRET_KEY
from app.database import get_db
from app.models.user import Admin
from app.schemas.admin import (
    AdminRegister,
    AdminLogin,
    AdminProfileUpdate,
    AdminAuthResponse,
    AdminProfileResponse,
)
from app.utils.auth import create_access_token, get_current_admin
from app.utils.errors import AuthError, ConflictError, ValidationError
from app.utils.security import get_password_hash, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])


def _admin_out(admin):
    return {
        "id": str(admin["_id"]),
        "name": admin["name"],
        "email": admin["email"],
        "role": "admin",
    }


def _secret_matches(secret_key):
    if not ADMIN_SECRET_KEY or not secret_key:
        return False
    return secrets.compare_digest(secret_key, ADMIN_SECRET_KEY)


async def _ensure_email_free(db, email, current_id=None):
    existing_admin = await db.admins.find_one({"email": email})
    if existing_admin and existing_admin["_id"] != current_id:
        raise ConflictError("Email already registered")


# ✅ 1. REGISTER
@router.post("/register", response_model=AdminAuthResponse, status_code=status.HTTP_201_CREATED)
async def register_admin(payload: AdminRegister):
    """Create an admin account. Requires the shared ADMIN_SECRET_KEY."""

    if not _secret_matches(payload.secretKey):
        logger.warning("Admin registration rejected: secret key mismatch")
        raise AuthError("Invalid secret key")

    if not payload.name or not payload.email or not payload.password:
        raise ValidationError("Name, email and password are required")

    try:
        admin = Admin(
            name=payload.name,
            email=payload.email,
            password=get_password_hash(payload.password.strip()),
        )
    except ModelValidationError:
        raise ValidationError("Please provide a valid email")

    db = get_db()

    # Existence check and insert are not atomic
    await _ensure_email_free(db, admin.email)

    admin_doc = admin.to_mongo()
    result = await db.admins.insert_one(admin_doc)
    admin_doc["_id"] = result.inserted_id

    logger.info("Admin registered: %s", payload.email)

    return {
        "success": True,
        "token": create_access_token(result.inserted_id, "admin"),
        "user": _admin_out(admin_doc),
    }


# ✅ 2. LOGIN
@router.post("/login", response_model=AdminAuthResponse)
async def login_admin(credentials: AdminLogin):
    """Login and get a JWT. Unknown email and wrong password look the same."""

    db = get_db()

    admin = await db.admins.find_one({"email": credentials.email})
    if not admin or not verify_password(credentials.password.strip(), admin["password"]):
        raise AuthError("Invalid credentials")

    return {
        "success": True,
        "token": create_access_token(admin["_id"], "admin"),
        "user": _admin_out(admin),
    }


# ✅ 3. GET PROFILE
@router.get("/profile", response_model=AdminProfileResponse)
async def get_admin_profile(current_admin: dict = Depends(get_current_admin)):
    return {"success": True, "data": _admin_out(current_admin)}


# ✅ 4. UPDATE PROFILE
@router.put("/profile", response_model=AdminProfileResponse)
async def update_admin_profile(
    profile_data: AdminProfileUpdate,
    current_admin: dict = Depends(get_current_admin)
):
    """
    Update name/email when present. The password only changes when both
    currentPassword and newPassword are given and the current one matches.
    """

    db = get_db()
    update_data = {}

    if profile_data.currentPassword and profile_data.newPassword:
        if not verify_password(profile_data.currentPassword.strip(), current_admin["password"]):
            raise AuthError("Current password is incorrect")
        update_data["password"] = get_password_hash(profile_data.newPassword.strip())

    if profile_data.name:
        update_data["name"] = profile_data.name
    if profile_data.email and profile_data.email != current_admin["email"]:
        await _ensure_email_free(db, profile_data.email, current_admin["_id"])
        update_data["email"] = profile_data.email

    if update_data:
        await db.admins.update_one({"_id": current_admin["_id"]}, {"$set": update_data})
        current_admin.update(update_data)

    return {"success": True, "data": _admin_out(current_admin)}
