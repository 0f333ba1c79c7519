"""
TalkJS REST API helpers.

Messages themselves never pass through this service; it only registers
users and one-on-one conversations and signs session tokens for the
browser widget.
"""
import hashlib
import hmac
import logging
import time

import httpx
from jose import jwt

from app.config import TALKJS_APP_ID, TALKJS_SECRET_KEY, TALKJS_API_URL, HTTP_TIMEOUT_SECONDS
from app.utils.errors import ServerError, UpstreamError

logger = logging.getLogger(__name__)

TOKEN_TTL_SECONDS = 3600


def _require_config():
    if not TALKJS_APP_ID or not TALKJS_SECRET_KEY:
        logger.error("TalkJS configuration missing; set TALKJS_APP_ID and TALKJS_SECRET_KEY")
        raise ServerError("Chat is not configured")


def build_client() -> httpx.AsyncClient:
    _require_config()
    return httpx.AsyncClient(
        base_url=f"{TALKJS_API_URL}/{TALKJS_APP_ID}",
        headers={"Authorization": f"Bearer {TALKJS_SECRET_KEY}"},
        timeout=HTTP_TIMEOUT_SECONDS,
    )


async def _put(path, body, what):
    async with build_client() as client:
        try:
            response = await client.put(path, json=body)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("TalkJS %s failed: %s", what, e)
            raise UpstreamError(f"Failed to {what}")
    return response


async def create_talkjs_user(user: dict):
    """Create or update the TalkJS mirror of a user document."""
    user_id = str(user["_id"])
    await _put(f"/users/{user_id}", {
        "id": user_id,
        "name": user.get("name") or "Unknown User",
        "email": [user["email"]] if user.get("email") else None,
        "role": user.get("userType") or "user",
        "photoUrl": user.get("profileImage"),
        "custom": {},
    }, "create TalkJS user")
    logger.info("TalkJS user created/updated: %s", user_id)


async def create_talkjs_conversation(conversation_id: str, participants: list, invite_id=None):
    names = " and ".join(p.get("name") or "Unknown" for p in participants)
    await _put(f"/conversations/{conversation_id}", {
        "participants": [str(p["_id"]) for p in participants],
        "subject": f"Chat between {names}",
        "custom": {"inviteId": str(invite_id) if invite_id else None, "chatType": "one-on-one"},
    }, "create TalkJS conversation")
    logger.info("TalkJS conversation created: %s", conversation_id)


def generate_talkjs_token(user_id, expires_in: int = TOKEN_TTL_SECONDS) -> str:
    """HS256 session token for the TalkJS widget."""
    _require_config()
    now = int(time.time())
    payload = {
        "appId": TALKJS_APP_ID,
        "userId": str(user_id),
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, TALKJS_SECRET_KEY, algorithm="HS256")


def verify_webhook_signature(body: bytes, signature: str) -> bool:
    if not TALKJS_SECRET_KEY or not signature:
        return False
    expected = hmac.new(TALKJS_SECRET_KEY.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(signature, f"sha256={expected}")
