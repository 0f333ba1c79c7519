import logging
from datetime import datetime, timedelta

from bson import ObjectId
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from app.config import JWT_SECRET, JWT_ALGORITHM, JWT_EXPIRE_DAYS
from app.database import get_db
from app.utils.errors import AuthError, ForbiddenError

logger = logging.getLogger(__name__)

# Reads "Authorization: Bearer <JWT>"
security = HTTPBearer(auto_error=False)


def create_access_token(user_id, role: str) -> str:
    expire = datetime.utcnow() + timedelta(days=JWT_EXPIRE_DAYS)
    to_encode = {"id": str(user_id), "role": role, "exp": expire}
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise AuthError("Could not validate credentials")

    if not payload.get("id") or not ObjectId.is_valid(payload["id"]):
        raise AuthError("Could not validate credentials")
    return payload


def _token_from(credentials: HTTPAuthorizationCredentials):
    if credentials is None or not credentials.credentials:
        raise AuthError("Not authorized, no token")
    return credentials.credentials


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """Resolve a user/recruiter token to its document in `users`."""
    payload = decode_access_token(_token_from(credentials))
    if payload.get("role") == "admin":
        raise ForbiddenError("Admin tokens cannot act as users")

    db = get_db()
    user = await db.users.find_one({"_id": ObjectId(payload["id"])})
    if user is None or user.get("isDeleted"):
        raise AuthError("Could not validate credentials")

    return user


async def get_current_admin(credentials: HTTPAuthorizationCredentials = Depends(security)):
    payload = decode_access_token(_token_from(credentials))
    if payload.get("role") != "admin":
        raise ForbiddenError("Admin access required")

    db = get_db()
    admin = await db.admins.find_one({"_id": ObjectId(payload["id"])})
    if admin is None:
        raise AuthError("Could not validate credentials")

    return admin
