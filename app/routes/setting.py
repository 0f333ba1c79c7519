# ========================================
# app/routes/setting.py - global site settings
# ========================================

import logging

from fastapi import APIRouter, Depends

from app.database import get_db
from app.schemas.setting import SettingUpdate, default_settings
from app.utils.auth import get_current_admin
from app.utils.errors import ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/setting", tags=["Settings"])

SETTINGS_ID = "global"


async def load_settings(db):
    stored = await db.settings.find_one({"_id": SETTINGS_ID}) or {}
    settings = default_settings()
    settings.update({k: v for k, v in stored.items() if k != "_id"})
    return settings


# ✅ 1. READ SETTINGS (public)
@router.get("")
async def get_settings():
    db = get_db()
    return {"success": True, "data": await load_settings(db)}


# ✅ 2. UPDATE SETTINGS (admin)
@router.post("/update")
async def update_settings(payload: SettingUpdate, admin: dict = Depends(get_current_admin)):
    """Partial update of the singleton. Last writer wins."""

    changes = payload.changes()
    if not changes:
        raise ValidationError("No settings to update")

    db = get_db()
    await db.settings.update_one({"_id": SETTINGS_ID}, {"$set": changes}, upsert=True)
    logger.info("Admin %s updated settings: %s", admin["_id"], ", ".join(sorted(changes)))

    return {"success": True, "data": await load_settings(db)}
