# ========================================
# app/routes/contribution.py - shared code snippets
# ========================================

import logging

from fastapi import APIRouter, Depends, Query, status

from app.database import get_db
from app.models.application import Contribution
from app.schemas.contribution import ContributionCreate
from app.utils.auth import get_current_user
from app.utils.serialize import serialize_doc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contributions", tags=["Contributions"])


async def create_contribution(db, user, title, language, code, status="saved"):
    """Store a snippet for `user`. Shared with OTP replay."""
    contribution = Contribution(
        userId=str(user["_id"]),
        email=user["email"],
        title=title,
        language=language,
        code=code,
        status=status,
    )
    contribution_doc = contribution.to_mongo()
    result = await db.contributions.insert_one(contribution_doc)
    contribution_doc["_id"] = result.inserted_id

    logger.info("Contribution %s (%s) stored for user %s", result.inserted_id, status, user["_id"])
    return serialize_doc(contribution_doc)


# ✅ 1. ADD CODE
@router.post("", status_code=status.HTTP_201_CREATED)
async def add_contribution(payload: ContributionCreate, current_user: dict = Depends(get_current_user)):
    db = get_db()
    contribution = await create_contribution(
        db, current_user, payload.title, payload.language, payload.code, payload.status
    )
    return {"success": True, "data": contribution}


# ✅ 2. PUBLISHED SNIPPETS
@router.get("")
async def list_contributions(
    language: str = Query(None),
    limit: int = Query(50, le=200)
):
    db = get_db()

    query = {"status": "published"}
    if language:
        query["language"] = language

    contributions = await db.contributions.find(query).sort("createdAt", -1).limit(limit).to_list(limit)
    return {"success": True, "count": len(contributions), "data": [serialize_doc(c) for c in contributions]}


# ✅ 3. MY SNIPPETS
@router.get("/mine")
async def my_contributions(current_user: dict = Depends(get_current_user)):
    db = get_db()
    contributions = await db.contributions.find(
        {"userId": str(current_user["_id"])}
    ).sort("createdAt", -1).to_list(200)
    return {"success": True, "count": len(contributions), "data": [serialize_doc(c) for c in contributions]}
