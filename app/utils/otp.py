"""
One-time codes for the OAuth sign-in step.

A user has at most one live code per purpose. Codes expire after
OTP_EXPIRE_MINUTES, are invalidated after OTP_MAX_ATTEMPTS wrong guesses
and are consumed by the first successful verification.
"""
import logging
import secrets
from datetime import datetime, timedelta

from app.config import OTP_EXPIRE_MINUTES, OTP_MAX_ATTEMPTS
from app.utils.errors import AuthError, TooManyAttemptsError

logger = logging.getLogger(__name__)

SIGN_IN = "sign_in"


def generate_otp():
    """Generate a 6-digit OTP"""
    return str(secrets.randbelow(1_000_000)).zfill(6)


async def issue_otp(db, user_id, email, purpose=SIGN_IN, context=None):
    """
    Replace any existing code for this user/purpose with a fresh one.

    `context` is stored with the code and handed back by verify_otp.
    """
    otp = generate_otp()
    now = datetime.utcnow()

    await db.otps.delete_many({"userId": str(user_id), "purpose": purpose})
    await db.otps.insert_one({
        "userId": str(user_id),
        "email": email,
        "otp": otp,
        "purpose": purpose,
        "created_at": now,
        "expires_at": now + timedelta(minutes=OTP_EXPIRE_MINUTES),
        "attempts": 0,
        "consumed": False,
        "context": context or {},
    })

    logger.info("Issued %s code for user %s", purpose, user_id)
    return otp


async def get_live_otp(db, user_id, purpose=SIGN_IN):
    record = await db.otps.find_one({"userId": str(user_id), "purpose": purpose, "consumed": False})
    if record and datetime.utcnow() < record["expires_at"]:
        return record
    return None


async def verify_otp(db, user_id, otp_code, purpose=SIGN_IN):
    """
    Check `otp_code` against the live code for `user_id`.

    Raises AuthError for a wrong, missing, expired or already used code
    and TooManyAttemptsError once the attempt budget is spent.
    """
    record = await db.otps.find_one({"userId": str(user_id), "purpose": purpose, "consumed": False})
    if not record:
        raise AuthError("Invalid code")

    if datetime.utcnow() > record["expires_at"]:
        await db.otps.delete_one({"_id": record["_id"]})
        raise AuthError("Code has expired. Please request a new one.")

    if record["attempts"] >= OTP_MAX_ATTEMPTS:
        await db.otps.delete_one({"_id": record["_id"]})
        raise TooManyAttemptsError("Too many failed attempts. Please request a new code.")

    now = datetime.utcnow()
    live = {"_id": record["_id"], "consumed": False, "expires_at": {"$gt": now}}

    # Every guess spends an attempt before it is compared
    claimed = await db.otps.find_one_and_update(
        {**live, "attempts": {"$lt": OTP_MAX_ATTEMPTS}},
        {"$inc": {"attempts": 1}},
        return_document=True,
    )
    if claimed is None:
        raise AuthError("Invalid code")

    if not secrets.compare_digest(claimed["otp"], str(otp_code)):
        logger.info("Wrong %s code for user %s (attempt %d)", purpose, user_id, claimed["attempts"])
        raise AuthError("Invalid code")

    # Only one request can flip `consumed`
    consumed = await db.otps.find_one_and_update(
        live,
        {"$set": {"consumed": True, "consumed_at": now}},
        return_document=True,
    )
    if consumed is None:
        raise AuthError("Invalid code")
    return consumed
