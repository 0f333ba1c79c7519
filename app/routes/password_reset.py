from fastapi import APIRouter
from datetime import datetime, timedelta
import logging
import secrets

from app.config import OTP_EXPIRE_MINUTES, OTP_MAX_ATTEMPTS
from app.database import get_db
from app.schemas.password_reset import (
    SendCodeRequest,
    MatchCodeRequest,
    ResetPassRequest,
    MessageResponse
)
from app.utils.email import send_reset_code_email
from app.utils.errors import NotFoundError, TooManyAttemptsError, ValidationError
from app.utils.otp import generate_otp
from app.utils.security import get_password_hash

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Password Reset"])


async def _live_reset(db, email):
    record = await db.password_resets.find_one({"email": email})
    if record and datetime.utcnow() > record["expires_at"]:
        await db.password_resets.delete_one({"_id": record["_id"]})
        return None
    return record


@router.post("/send-code", response_model=MessageResponse)
async def send_code(request: SendCodeRequest):
    """
    Step 1: email a reset code.
    Calling again while a code is still valid re-sends the same code.
    """
    db = get_db()

    user = await db.users.find_one({"email": request.email})
    if not user:
        raise NotFoundError("User not found")

    record = await _live_reset(db, request.email)
    if record:
        code = record["code"]
    else:
        code = generate_otp()
        now = datetime.utcnow()
        await db.password_resets.delete_many({"email": request.email})
        await db.password_resets.insert_one({
            "email": request.email,
            "code": code,
            "created_at": now,
            "expires_at": now + timedelta(minutes=OTP_EXPIRE_MINUTES),
            "attempts": 0,
            "verified": False
        })
        logger.info("Issued password reset code for %s", request.email)

    await send_reset_code_email(request.email, code)

    return MessageResponse(message="Code Sent")


@router.post("/match-code", response_model=MessageResponse)
async def match_code(request: MatchCodeRequest):
    """
    Step 2: check the code. Must succeed before the password can change.
    """
    db = get_db()

    record = await _live_reset(db, request.email)
    if not record:
        raise ValidationError("Invalid Code")

    if record["attempts"] >= OTP_MAX_ATTEMPTS:
        await db.password_resets.delete_one({"_id": record["_id"]})
        raise TooManyAttemptsError("Too many failed attempts. Please request a new code.")

    now = datetime.utcnow()

    # Every guess spends an attempt before it is compared
    claimed = await db.password_resets.find_one_and_update(
        {"_id": record["_id"], "expires_at": {"$gt": now}, "attempts": {"$lt": OTP_MAX_ATTEMPTS}},
        {"$inc": {"attempts": 1}},
        return_document=True,
    )
    if claimed is None or not secrets.compare_digest(claimed["code"], request.code):
        raise ValidationError("Invalid Code")

    await db.password_resets.update_one(
        {"_id": record["_id"]},
        {"$set": {"verified": True, "verified_at": now}}
    )

    return MessageResponse(message="Code Valid")


@router.post("/reset-pass", response_model=MessageResponse)
async def reset_pass(request: ResetPassRequest):
    """
    Step 3: set the new password using a matched code.
    """
    if request.password != request.confirmPassword:
        raise ValidationError("Password and confirm password do not match")

    db = get_db()

    record = await _live_reset(db, request.email)
    if not record or not record.get("verified") or not secrets.compare_digest(record["code"], request.code):
        raise ValidationError("Invalid Code")

    # Single use: only one request gets the record back
    if not await db.password_resets.find_one_and_delete({"_id": record["_id"], "verified": True}):
        raise ValidationError("Invalid Code")

    result = await db.users.update_one(
        {"email": request.email},
        {
            "$set": {
                "password": get_password_hash(request.password),
                "password_reset_at": datetime.utcnow()
            }
        }
    )
    if result.matched_count == 0:
        raise NotFoundError("User not found")

    logger.info("Password changed for %s", request.email)

    return MessageResponse(message="Password Changed")
