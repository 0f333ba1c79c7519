# ========================================
# app/routes/profile.py - the signed-in user's own profile
# ========================================

import logging

from fastapi import APIRouter, Depends

from app.database import get_db
from app.schemas.user import UserProfileUpdate
from app.routes.auth import validate_linkedin_url
from app.utils.auth import get_current_user
from app.utils.errors import ValidationError
from app.utils.serialize import public_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Profile"])

TOP_LEVEL_FIELDS = ("name", "country")


# ✅ 1. GET MY PROFILE
@router.get("/profile")
async def get_profile(current_user: dict = Depends(get_current_user)):
    return {"success": True, "data": public_user(current_user)}


# ✅ 2. UPDATE MY PROFILE (only the fields sent change)
@router.put("/updateProfile")
async def update_profile(
    profile_data: UserProfileUpdate,
    current_user: dict = Depends(get_current_user)
):
    changes = profile_data.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise ValidationError("No fields to update")

    if "profileLink" in changes and not validate_linkedin_url(changes["profileLink"]):
        raise ValidationError("Invalid LinkedIn URL")

    update_data = {}
    for field, value in changes.items():
        key = field if field in TOP_LEVEL_FIELDS else f"additionalInfo.{field}"
        update_data[key] = value

    db = get_db()
    user = await db.users.find_one_and_update(
        {"_id": current_user["_id"]},
        {"$set": update_data},
        return_document=True,
    )

    logger.info("Profile updated for %s: %s", current_user["_id"], ", ".join(sorted(changes)))
    return {"success": True, "message": "Profile updated successfully", "data": public_user(user)}
