# ========================================
# app/routes/chat.py - chat sessions on top of accepted invites
# ========================================

import logging
import math
import re
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app.database import get_db
from app.models.chat_session import ChatSession, LastMessage
from app.routes.invite import invite_status_map
from app.schemas.chat import ChatSessionCreate, ChatWebhookEvent
from app.utils.auth import get_current_user
from app.utils.errors import AuthError, NotFoundError, ValidationError
from app.utils.serialize import parse_object_id
from app.utils.talkjs import (
    create_talkjs_conversation,
    create_talkjs_user,
    generate_talkjs_token,
    verify_webhook_signature,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["Chat"])

# Same directory, mounted where the frontend's user list expects it
directory_router = APIRouter(prefix="/api/users", tags=["Chat"])

DIRECTORY_FIELDS = {"name": 1, "email": 1, "userType": 1, "country": 1, "createdAt": 1, "isFeatured": 1, "isPinned": 1}


def _directory_query(current_id):
    return {
        "_id": {"$ne": parse_object_id(current_id, "user ID")},
        "isActive": True,
        "isDeleted": False,
        "isEmailVerified": True,
    }


def _directory_entry(user, invite_map):
    user_id = str(user["_id"])
    return {
        "id": user_id,
        "name": user.get("name"),
        "email": user.get("email"),
        "userType": user.get("userType"),
        "country": user.get("country"),
        "createdAt": user.get("createdAt"),
        "isFeatured": user.get("isFeatured", False),
        "isPinned": user.get("isPinned", False),
        "inviteStatus": invite_map.get(user_id),
    }


def _participant(user):
    if not user:
        return None
    return {"id": str(user["_id"]), "name": user.get("name"), "userType": user.get("userType")}


async def _other_participant(db, session, user_id):
    for participant in session["participants"]:
        if participant != user_id:
            return await db.users.find_one({"_id": parse_object_id(participant, "user ID")})
    return None


async def _session_out(db, session, user_id):
    return {
        "id": str(session["_id"]),
        "talkjsConversationId": session["talkjsConversationId"],
        "otherParticipant": _participant(await _other_participant(db, session, user_id)),
        "status": session["status"],
        "lastActivity": session.get("lastActivity"),
        "lastMessage": session.get("lastMessage"),
        "messageCount": session.get("messageCount", 0),
        "createdAt": session.get("createdAt"),
    }


# ===========================
# DIRECTORY
# ===========================

# ✅ 1. USER DIRECTORY
@router.get("/users")
async def get_user_directory(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str = Query("", max_length=100),
    userType: Optional[Literal["user", "recruiter"]] = Query(None),
    country: Optional[str] = Query(None),
    current_user: dict = Depends(get_current_user)
):
    """Verified, active users other than the caller, pinned and featured first."""
    db = get_db()
    current_id = str(current_user["_id"])

    query = _directory_query(current_id)
    if userType:
        query["userType"] = userType
    if country:
        query["country"] = country
    if search.strip():
        pattern = re.escape(search.strip())
        query["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"email": {"$regex": pattern, "$options": "i"}},
        ]

    users = await db.users.find(query, DIRECTORY_FIELDS).sort(
        [("isPinned", -1), ("isFeatured", -1), ("createdAt", -1)]
    ).skip((page - 1) * limit).limit(limit).to_list(limit)
    total = await db.users.count_documents(query)

    invite_map = await invite_status_map(db, current_id, [str(u["_id"]) for u in users], with_dates=True)

    return {
        "success": True,
        "data": {
            "users": [_directory_entry(user, invite_map) for user in users],
            "pagination": {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit)},
        }
    }


directory_router.add_api_route("/directory", get_user_directory, methods=["GET"])


# ✅ 2. SEARCH USERS
@router.get("/users/search")
async def search_users(q: Optional[str] = Query(None), current_user: dict = Depends(get_current_user)):
    if not q or len(q.strip()) < 2:
        raise ValidationError("Search term must be at least 2 characters")

    db = get_db()
    current_id = str(current_user["_id"])

    pattern = re.escape(q.strip())
    query = _directory_query(current_id)
    query["$or"] = [
        {"name": {"$regex": pattern, "$options": "i"}},
        {"email": {"$regex": pattern, "$options": "i"}},
    ]

    users = await db.users.find(query, DIRECTORY_FIELDS).sort(
        [("isFeatured", -1), ("isPinned", -1), ("name", 1)]
    ).limit(10).to_list(10)

    invite_map = await invite_status_map(db, current_id, [str(u["_id"]) for u in users])
    return {"success": True, "data": {"users": [_directory_entry(user, invite_map) for user in users]}}


# ===========================
# SESSIONS
# ===========================

# ✅ 3. CREATE SESSION FROM ACCEPTED INVITE
@router.post("/session", status_code=status.HTTP_201_CREATED)
async def create_chat_session(payload: ChatSessionCreate, current_user: dict = Depends(get_current_user)):
    """Open (or return the existing) TalkJS conversation for an accepted invite."""
    db = get_db()
    user_id = str(current_user["_id"])
    invite_oid = parse_object_id(payload.inviteId, "invite ID")

    invite = await db.invites.find_one({
        "_id": invite_oid,
        "status": "accepted",
        "$or": [{"sender": user_id}, {"recipient": user_id}],
    })
    if not invite:
        raise NotFoundError("Accepted invite not found")

    existing = await db.chat_sessions.find_one({"inviteId": str(invite_oid)})
    if existing:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"success": True, "data": {"chatSession": jsonable_encoder(await _session_out(db, existing, user_id))}},
        )

    sender = await db.users.find_one({"_id": parse_object_id(invite["sender"], "user ID")})
    recipient = await db.users.find_one({"_id": parse_object_id(invite["recipient"], "user ID")})
    if not sender or not recipient:
        raise NotFoundError("Chat participant not found")

    await create_talkjs_user(sender)
    await create_talkjs_user(recipient)

    conversation_id = f"chat_{invite_oid}"
    await create_talkjs_conversation(conversation_id, [sender, recipient], invite_id=invite_oid)

    now = datetime.utcnow()
    session = ChatSession(
        participants=[invite["sender"], invite["recipient"]],
        talkjsConversationId=conversation_id,
        inviteId=invite_oid,
    )
    session_doc = session.to_mongo()
    result = await db.chat_sessions.insert_one(session_doc)
    session_doc["_id"] = result.inserted_id

    await db.invites.update_one(
        {"_id": invite_oid},
        {"$set": {"talkjsConversationId": conversation_id, "chatInitiatedAt": now, "updatedAt": now}}
    )

    logger.info("Chat session %s created for invite %s", result.inserted_id, invite_oid)
    return {"success": True, "data": {"chatSession": await _session_out(db, session_doc, user_id)}}


# ✅ 4. MY SESSIONS
@router.get("/sessions")
async def get_user_chat_sessions(
    status: Literal["active", "archived", "blocked"] = Query("active"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: dict = Depends(get_current_user)
):
    db = get_db()
    user_id = str(current_user["_id"])

    query = {"participants": user_id, "status": status}
    sessions = await db.chat_sessions.find(query).sort("lastActivity", -1).skip((page - 1) * limit).limit(limit).to_list(limit)
    total = await db.chat_sessions.count_documents(query)

    return {
        "success": True,
        "data": {
            "sessions": [await _session_out(db, s, user_id) for s in sessions],
            "pagination": {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit)},
        }
    }


# ✅ 5. SESSION DETAILS
@router.get("/sessions/{session_id}")
async def get_chat_session(session_id: str, current_user: dict = Depends(get_current_user)):
    db = get_db()
    user_id = str(current_user["_id"])

    session = await db.chat_sessions.find_one({
        "_id": parse_object_id(session_id, "session ID"),
        "participants": user_id,
        "status": {"$ne": "blocked"},
    })
    if not session:
        raise NotFoundError("Chat session not found or access denied")

    data = await _session_out(db, session, user_id)
    invite = await db.invites.find_one({"_id": parse_object_id(session["inviteId"], "invite ID")})
    data["originalInvite"] = {"message": invite["message"]} if invite else None

    return {"success": True, "data": {"session": data}}


async def _set_session_status(session_id, new_status, current_user):
    db = get_db()
    session = await db.chat_sessions.find_one_and_update(
        {"_id": parse_object_id(session_id, "session ID"), "participants": str(current_user["_id"])},
        {"$set": {"status": new_status, "updatedAt": datetime.utcnow()}},
        return_document=True,
    )
    if not session:
        raise NotFoundError("Chat session not found")
    return {"success": True, "data": {"session": {"id": str(session["_id"]), "status": session["status"]}}}


# ✅ 6. ARCHIVE
@router.put("/sessions/{session_id}/archive")
async def archive_chat_session(session_id: str, current_user: dict = Depends(get_current_user)):
    return await _set_session_status(session_id, "archived", current_user)


# ✅ 7. BLOCK
@router.put("/sessions/{session_id}/block")
async def block_chat_session(session_id: str, current_user: dict = Depends(get_current_user)):
    return await _set_session_status(session_id, "blocked", current_user)


# ===========================
# TALKJS
# ===========================

# ✅ 8. WIDGET TOKEN
@router.get("/token")
async def get_talkjs_token(current_user: dict = Depends(get_current_user)):
    await create_talkjs_user(current_user)
    token = generate_talkjs_token(current_user["_id"])

    return {
        "success": True,
        "data": {
            "token": token,
            "user": {
                "id": str(current_user["_id"]),
                "name": current_user.get("name"),
                "email": current_user.get("email"),
                "userType": current_user.get("userType"),
            }
        }
    }


# ✅ 9. WEBHOOK (message activity)
@router.post("/webhook")
async def update_chat_activity(request: Request):
    """
    TalkJS message events bump the session's activity. When a signature
    header is sent it must match the shared secret.
    """
    body = await request.body()
    signature = request.headers.get("x-talkjs-signature")
    if signature is not None and not verify_webhook_signature(body, signature):
        raise AuthError("Invalid webhook signature")

    try:
        event = ChatWebhookEvent.model_validate_json(body or b"{}")
    except ValueError:
        raise ValidationError("Invalid webhook payload")
    if event.type != "message" or not event.conversationId:
        return {"success": True}

    now = datetime.utcnow()
    update = {"$set": {"lastActivity": now, "updatedAt": now}, "$inc": {"messageCount": 1}}
    if event.messageText:
        update["$set"]["lastMessage"] = LastMessage(
            text=event.messageText[:200], senderId=event.senderId, timestamp=now
        ).model_dump()

    await get_db().chat_sessions.update_one({"talkjsConversationId": event.conversationId}, update)
    return {"success": True}
