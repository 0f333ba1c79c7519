# ========================================
# app/routes/invite.py - chat invitations between users
# ========================================

import logging
import math
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status

from app.database import get_db
from app.models.invite import Invite, InvalidInviteTransition, is_expired, transition
from app.schemas.invite import InviteCreate
from app.utils.auth import get_current_user
from app.utils.errors import NotFoundError, ValidationError
from app.utils.serialize import parse_object_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/invites", tags=["Invites"])

InviteStatusFilter = Literal["pending", "accepted", "declined", "cancelled"]


def _party(user):
    if not user:
        return None
    return {
        "id": str(user["_id"]),
        "name": user.get("name"),
        "email": user.get("email"),
        "userType": user.get("userType"),
        "country": user.get("country"),
    }


def _invite_out(invite, **parties):
    data = {
        "id": str(invite["_id"]),
        "message": invite["message"],
        "status": invite["status"],
        "createdAt": invite.get("createdAt"),
        "expiresAt": invite.get("expiresAt"),
    }
    for stamp in ("acceptedAt", "declinedAt", "cancelledAt"):
        if invite.get(stamp):
            data[stamp] = invite[stamp]
    for role, user in parties.items():
        data[role] = _party(user)
    return data


def _pagination(page, limit, total):
    return {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit)}


async def _find_user(db, user_id):
    return await db.users.find_one({"_id": parse_object_id(user_id, "user ID")})


async def cleanup_expired(db):
    """Pending invites past their expiry become cancelled."""
    now = datetime.utcnow()
    result = await db.invites.update_many(
        {"status": "pending", "expiresAt": {"$lt": now}},
        {"$set": {"status": "cancelled", "cancelledAt": now, "updatedAt": now}}
    )
    if result.modified_count:
        logger.info("Cancelled %d expired invites", result.modified_count)


async def find_pending_between(db, user_a, user_b):
    return await db.invites.find_one({
        "status": "pending",
        "$or": [
            {"sender": user_a, "recipient": user_b},
            {"sender": user_b, "recipient": user_a},
        ]
    })


async def invite_status_map(db, current_id, user_ids, with_dates=False):
    """other user id -> pending/accepted invite summary, seen from `current_id`."""
    invites = await db.invites.find({
        "$or": [
            {"sender": current_id, "recipient": {"$in": user_ids}},
            {"sender": {"$in": user_ids}, "recipient": current_id},
        ],
        "status": {"$in": ["pending", "accepted"]},
    }).to_list(length=None)

    result = {}
    for invite in invites:
        sent = invite["sender"] == current_id
        other = invite["recipient"] if sent else invite["sender"]
        summary = {
            "id": str(invite["_id"]),
            "status": invite["status"],
            "direction": "sent" if sent else "received",
        }
        if with_dates:
            summary["createdAt"] = invite.get("createdAt")
            summary["expiresAt"] = invite.get("expiresAt")
        result[other] = summary
    return result


# ✅ 1. SEND INVITE
@router.post("", status_code=status.HTTP_201_CREATED)
async def send_invite(payload: InviteCreate, current_user: dict = Depends(get_current_user)):
    db = get_db()
    sender_id = str(current_user["_id"])

    recipient = await _find_user(db, payload.recipientId)
    if not recipient or not recipient.get("isActive", True) or recipient.get("isDeleted"):
        raise NotFoundError("Recipient not found or inactive")

    if sender_id == payload.recipientId:
        raise ValidationError("Cannot send invite to yourself")

    await cleanup_expired(db)
    if await find_pending_between(db, sender_id, payload.recipientId):
        raise ValidationError("There is already a pending invite between you and this user")

    invite = Invite(sender=sender_id, recipient=payload.recipientId, message=payload.message)
    invite_doc = invite.to_mongo()
    result = await db.invites.insert_one(invite_doc)
    invite_doc["_id"] = result.inserted_id

    logger.info("Invite %s sent from %s to %s", result.inserted_id, sender_id, payload.recipientId)
    return {"success": True, "data": {"invite": _invite_out(invite_doc, recipient=recipient)}}


# ✅ 2. RECEIVED INVITES
@router.get("")
async def get_received_invites(
    status: InviteStatusFilter = Query("pending"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: dict = Depends(get_current_user)
):
    db = get_db()
    await cleanup_expired(db)

    query = {"recipient": str(current_user["_id"]), "status": status}
    if status == "pending":
        query["expiresAt"] = {"$gte": datetime.utcnow()}

    invites = await db.invites.find(query).sort("createdAt", -1).skip((page - 1) * limit).limit(limit).to_list(limit)
    total = await db.invites.count_documents(query)

    data = []
    for invite in invites:
        sender = await _find_user(db, invite["sender"])
        data.append(_invite_out(invite, sender=sender))

    return {"success": True, "data": {"invites": data, "pagination": _pagination(page, limit, total)}}


# ✅ 3. SENT INVITES
@router.get("/sent")
async def get_sent_invites(
    status: Optional[InviteStatusFilter] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: dict = Depends(get_current_user)
):
    db = get_db()

    query = {"sender": str(current_user["_id"])}
    if status:
        query["status"] = status

    invites = await db.invites.find(query).sort("createdAt", -1).skip((page - 1) * limit).limit(limit).to_list(limit)
    total = await db.invites.count_documents(query)

    data = []
    for invite in invites:
        recipient = await _find_user(db, invite["recipient"])
        data.append(_invite_out(invite, recipient=recipient))

    return {"success": True, "data": {"invites": data, "pagination": _pagination(page, limit, total)}}


# ✅ 4. STATS
@router.get("/stats")
async def get_invite_stats(current_user: dict = Depends(get_current_user)):
    db = get_db()
    await cleanup_expired(db)

    user_id = str(current_user["_id"])
    now = datetime.utcnow()

    pending_received = await db.invites.count_documents(
        {"recipient": user_id, "status": "pending", "expiresAt": {"$gte": now}})
    pending_sent = await db.invites.count_documents(
        {"sender": user_id, "status": "pending", "expiresAt": {"$gte": now}})
    accepted_received = await db.invites.count_documents({"recipient": user_id, "status": "accepted"})
    accepted_sent = await db.invites.count_documents({"sender": user_id, "status": "accepted"})

    return {
        "success": True,
        "data": {
            "stats": {
                "pendingReceived": pending_received,
                "pendingSent": pending_sent,
                "acceptedReceived": accepted_received,
                "acceptedSent": accepted_sent,
                "totalPending": pending_received + pending_sent,
                "totalAccepted": accepted_received + accepted_sent,
            }
        }
    }


# ✅ 5. CAN I INVITE THIS USER?
@router.get("/check/{recipient_id}")
async def check_invite_eligibility(recipient_id: str, current_user: dict = Depends(get_current_user)):
    sender_id = str(current_user["_id"])
    if sender_id == recipient_id:
        raise ValidationError("Invalid recipient")

    db = get_db()
    recipient = await _find_user(db, recipient_id)
    if not recipient or not recipient.get("isActive", True) or recipient.get("isDeleted"):
        raise NotFoundError("User not found")

    await cleanup_expired(db)
    existing = await find_pending_between(db, sender_id, recipient_id)

    reason = None
    existing_out = None
    if existing:
        sent = existing["sender"] == sender_id
        reason = "You have already sent an invite to this user" if sent \
            else "This user has already sent you an invite"
        existing_out = {
            "id": str(existing["_id"]),
            "status": existing["status"],
            "direction": "sent" if sent else "received",
        }

    return {
        "success": True,
        "data": {"canSendInvite": existing is None, "reason": reason, "existingInvite": existing_out}
    }


async def _apply_transition(invite_id, action, role, current_user):
    """Load the invite for `current_user` in `role` and apply `action`."""
    db = get_db()
    user_id = str(current_user["_id"])

    invite = await db.invites.find_one({
        "_id": parse_object_id(invite_id, "invite ID"),
        role: user_id,
        "status": "pending",
    })
    if not invite:
        detail = "Invite not found or cannot be cancelled" if action == "cancel" \
            else "Invite not found or already processed"
        raise NotFoundError(detail)

    now = datetime.utcnow()
    if action != "cancel" and is_expired(invite, now):
        await db.invites.update_one({"_id": invite["_id"]}, {"$set": transition(invite, "cancel", invite["sender"], now)})
        raise ValidationError("This invite has expired")

    try:
        changes = transition(invite, action, user_id, now)
    except InvalidInviteTransition as e:
        raise ValidationError(str(e))

    # Guarded on status so a concurrent transition cannot be overwritten
    result = await db.invites.update_one({"_id": invite["_id"], "status": "pending"}, {"$set": changes})
    if result.modified_count == 0:
        raise NotFoundError("Invite not found or already processed")

    invite.update(changes)
    logger.info("Invite %s %s by %s", invite_id, invite["status"], user_id)
    return db, invite


# ✅ 6. ACCEPT
@router.put("/{invite_id}/accept")
async def accept_invite(invite_id: str, current_user: dict = Depends(get_current_user)):
    db, invite = await _apply_transition(invite_id, "accept", "recipient", current_user)
    sender = await _find_user(db, invite["sender"])
    return {"success": True, "data": {"invite": _invite_out(invite, sender=sender)}}


# ✅ 7. DECLINE
@router.put("/{invite_id}/decline")
async def decline_invite(invite_id: str, current_user: dict = Depends(get_current_user)):
    db, invite = await _apply_transition(invite_id, "decline", "recipient", current_user)
    sender = await _find_user(db, invite["sender"])
    return {"success": True, "data": {"invite": _invite_out(invite, sender=sender)}}


# ✅ 8. CANCEL (sender)
@router.delete("/{invite_id}")
async def cancel_invite(invite_id: str, current_user: dict = Depends(get_current_user)):
    db, invite = await _apply_transition(invite_id, "cancel", "sender", current_user)
    recipient = await _find_user(db, invite["recipient"])
    return {"success": True, "data": {"invite": _invite_out(invite, recipient=recipient)}}
