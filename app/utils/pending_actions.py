"""
Replays actions a visitor queued before signing in (apply to a job,
add or submit a snippet) once their OTP is verified.
"""
import logging

from fastapi import HTTPException

from app.routes.contribution import create_contribution
from app.routes.job import create_application

logger = logging.getLogger(__name__)


async def _apply_job(db, user, payload):
    return await create_application(
        db, user, payload.get("jobId"), payload.get("coverLetter"), payload.get("resumeUrl")
    )


async def _add_code(db, user, payload):
    return await create_contribution(
        db, user, payload.get("title"), payload.get("language"), payload.get("code"), status="published"
    )


async def _submit_contribution(db, user, payload):
    return await create_contribution(
        db, user, payload.get("title"), payload.get("language"), payload.get("code"), status="saved"
    )


HANDLERS = {
    "apply_job": _apply_job,
    "add_code": _add_code,
    "submit_contribution": _submit_contribution,
}


async def replay_pending_actions(db, user, actions):
    """
    Run each action for the now-known user. One failing action does not
    stop the others or the sign-in; its error is reported in the result.
    """
    results = []
    for action in actions or []:
        action_type = action.get("type")
        handler = HANDLERS.get(action_type)
        if handler is None:
            results.append({"type": action_type, "success": False, "error": "Unknown action"})
            continue

        try:
            data = await handler(db, user, action.get("payload") or {})
        except HTTPException as e:
            logger.warning("Pending %s for user %s failed: %s", action_type, user["_id"], e.detail)
            results.append({"type": action_type, "success": False, "error": e.detail})
        except ValueError as e:
            # pydantic rejects incomplete payloads
            logger.warning("Pending %s for user %s rejected: %s", action_type, user["_id"], e)
            results.append({"type": action_type, "success": False, "error": "Invalid action payload"})
        else:
            results.append({"type": action_type, "success": True, "data": data})
    return results
