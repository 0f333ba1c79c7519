"""
Chat invites.

    pending --accept (recipient)--> accepted
    pending --decline (recipient)--> declined
    pending --cancel (sender) / expiry--> cancelled

Every state other than `pending` is terminal.
"""
from pydantic import Field
from typing import Literal, Optional
from datetime import datetime, timedelta
from .base import MongoBaseModel, PyObjectId

INVITE_TTL = timedelta(days=7)

InviteStatus = Literal["pending", "accepted", "declined", "cancelled"]

# action -> (who may perform it, resulting status, timestamp field)
TRANSITIONS = {
    "accept": ("recipient", "accepted", "acceptedAt"),
    "decline": ("recipient", "declined", "declinedAt"),
    "cancel": ("sender", "cancelled", "cancelledAt"),
}


class InvalidInviteTransition(Exception):
    pass


class Invite(MongoBaseModel):
    sender: PyObjectId
    recipient: PyObjectId
    message: str = Field(max_length=500)
    status: InviteStatus = "pending"
    acceptedAt: Optional[datetime] = None
    declinedAt: Optional[datetime] = None
    cancelledAt: Optional[datetime] = None
    expiresAt: datetime = Field(default_factory=lambda: datetime.utcnow() + INVITE_TTL)
    talkjsConversationId: Optional[str] = None
    chatInitiatedAt: Optional[datetime] = None
    createdAt: datetime = Field(default_factory=datetime.utcnow)
    updatedAt: datetime = Field(default_factory=datetime.utcnow)


def is_expired(invite: dict, now: Optional[datetime] = None) -> bool:
    now = now or datetime.utcnow()
    return invite.get("status") == "pending" and now > invite["expiresAt"]


def transition(invite: dict, action: str, actor_id: str, now: Optional[datetime] = None) -> dict:
    """
    Return the `$set` update for applying `action` to `invite`.

    Raises InvalidInviteTransition when the invite is no longer pending,
    the actor is not allowed to act, or the action is unknown.
    """
    if action not in TRANSITIONS:
        raise InvalidInviteTransition(f"Unknown invite action '{action}'")

    role, new_status, stamp = TRANSITIONS[action]
    if invite.get("status") != "pending":
        raise InvalidInviteTransition(f"Invite is already {invite.get('status')}")
    if str(invite[role]) != str(actor_id):
        raise InvalidInviteTransition(f"Only the {role} can {action} this invite")

    now = now or datetime.utcnow()
    return {"status": new_status, stamp: now, "updatedAt": now}
