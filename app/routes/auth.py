# ========================================
# app/routes/auth.py - user & recruiter authentication
# ========================================

import logging
import re
import secrets
from datetime import datetime, timedelta
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, status

from app.config import AUTH_STATE_EXPIRE_MINUTES, FRONTEND_URL
from app.database import get_db
from app.models.user import User, AdditionalInfo
from app.schemas.user import (
    UserRegister,
    UserLogin,
    AuthResponse,
    OAuthStateCreate,
    OAuthStateResponse,
    OAuthIdentity,
    OAuthResponse,
    VerifyOTPRequest,
    VerifyOTPResponse,
    ResendOTPRequest,
    SendVerifyLinkRequest,
    VerifyEmailRequest,
)
from app.utils.auth import create_access_token, get_current_user
from app.utils.email import send_otp_email, send_verification_link_email
from app.utils.errors import AuthError, ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.utils.otp import issue_otp, verify_otp, get_live_otp, SIGN_IN
from app.utils.pending_actions import replay_pending_actions
from app.utils.security import get_password_hash, verify_password
from app.utils.serialize import public_user, serialize_doc, parse_object_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

LINKEDIN_URL_RE = re.compile(r"^https?://(www\.)?linkedin\.com/in/[a-zA-Z0-9-_]+/?(?:\?.*)?$")


def validate_linkedin_url(url):
    return bool(LINKEDIN_URL_RE.match(url or ""))


def user_out(user):
    return {
        "id": str(user["_id"]),
        "name": user.get("name"),
        "email": user.get("email"),
        "role": user.get("userType", "user"),
        "country": user.get("country"),
        "isEmailVerified": user.get("isEmailVerified", False),
    }


async def saved_contributions_for(db, user):
    if user.get("userType") != "user":
        return []
    contributions = await db.contributions.find(
        {"userId": str(user["_id"]), "status": "saved"}
    ).sort("createdAt", -1).to_list(100)
    return [serialize_doc(c) for c in contributions]


# ===========================
# CREDENTIAL SIGN-UP / SIGN-IN
# ===========================

# ✅ 1. REGISTER
@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register_user(payload: UserRegister):
    """Register a user or recruiter. The email must be verified before sign-in completes."""

    if payload.password != payload.confirmPassword:
        raise ValidationError("Password and confirm password do not match")

    if payload.profileLink and not validate_linkedin_url(payload.profileLink):
        raise ValidationError("Invalid LinkedIn URL")

    if payload.userType == "recruiter" and not (
        payload.companyName and payload.phoneNumber and payload.description
    ):
        raise ValidationError(
            "Please provide valid company name, phone number, and description for recruiter registration"
        )

    db = get_db()

    # Existence check and insert are not atomic
    existing_user = await db.users.find_one({"email": payload.email})
    if existing_user:
        raise ConflictError("User already exists with this email")

    user = User(
        name=payload.name,
        email=payload.email,
        password=get_password_hash(payload.password),
        userType=payload.userType,
        country=payload.country,
        additionalInfo=AdditionalInfo(
            phoneNumber=payload.phoneNumber,
            profileLink=payload.profileLink,
            companyName=payload.companyName,
            companyWebsite=payload.companyWebsite,
            description=payload.description,
        ),
    )
    user_doc = user.to_mongo()
    result = await db.users.insert_one(user_doc)
    user_doc["_id"] = result.inserted_id

    logger.info("Registered %s %s", payload.userType, payload.email)

    return {
        "success": True,
        "message": "Recruiter registered successfully" if payload.userType == "recruiter"
        else "User registered successfully",
        "user": user_out(user_doc),
    }


# ✅ 2. LOGIN
@router.post("/login", response_model=AuthResponse)
async def login(credentials: UserLogin):
    db = get_db()

    user = await db.users.find_one({"email": credentials.email})
    if not user or not verify_password(credentials.password, user.get("password")):
        raise AuthError("Invalid credentials")

    if user.get("isDeleted") or not user.get("isActive", True):
        raise ForbiddenError("Account is disabled")

    return {
        "success": True,
        "token": create_access_token(user["_id"], user.get("userType", "user")),
        "user": user_out(user),
        "savedContributions": await saved_contributions_for(db, user),
    }


# ✅ 3. CURRENT USER
@router.get("/me")
async def get_me(current_user: dict = Depends(get_current_user)):
    return {"success": True, "data": public_user(current_user)}


# ✅ 4. LOGOUT
@router.post("/logout")
async def logout():
    """Tokens are stateless; the client drops its stored session."""
    return {"success": True, "message": "Logged out successfully"}


# ===========================
# OAUTH + OTP SIGN-IN
# ===========================

# ✅ 5. START OAUTH (server-held selections)
@router.post("/oauth/state", response_model=OAuthStateResponse, status_code=status.HTTP_201_CREATED)
async def create_oauth_state(payload: OAuthStateCreate):
    """
    Remember userType/country and any deferred actions under a nonce
    before the browser leaves for the OAuth provider.
    """
    db = get_db()

    nonce = secrets.token_urlsafe(32)
    now = datetime.utcnow()
    expires_at = now + timedelta(minutes=AUTH_STATE_EXPIRE_MINUTES)

    await db.auth_states.insert_one({
        "_id": nonce,
        "userType": payload.userType,
        "country": payload.country,
        "pendingActions": [action.model_dump() for action in payload.pendingActions],
        "created_at": now,
        "expires_at": expires_at,
    })

    return {"success": True, "state": nonce, "expiresAt": expires_at}


# ✅ 6. OAUTH CALLBACK -> ISSUE OTP
@router.post("/oauth", response_model=OAuthResponse)
async def oauth_auth(identity: OAuthIdentity):
    """Find or create the user for a provider identity and email a sign-in code."""

    db = get_db()

    # The state is single-use
    state = await db.auth_states.find_one_and_delete({"_id": identity.state})
    if not state or datetime.utcnow() > state["expires_at"]:
        raise ValidationError("Invalid or expired sign-in state")

    user = await db.users.find_one({"email": identity.email})

    if user is None:
        new_user = User(
            name=identity.name or identity.email.split("@")[0],
            email=identity.email,
            userType=state["userType"],
            country=state["country"],
            provider=identity.provider,
            providerAccountId=identity.providerAccountId,
        )
        user = new_user.to_mongo()
        result = await db.users.insert_one(user)
        user["_id"] = result.inserted_id
        logger.info("Created %s account via %s for %s", user["userType"], identity.provider, identity.email)
    else:
        if user.get("isDeleted") or not user.get("isActive", True):
            raise ForbiddenError("Account is disabled")
        if not user.get("provider"):
            await db.users.update_one(
                {"_id": user["_id"]},
                {"$set": {"provider": identity.provider, "providerAccountId": identity.providerAccountId}}
            )

    otp = await issue_otp(
        db, user["_id"], user["email"],
        context={"pendingActions": state.get("pendingActions", [])},
    )
    await send_otp_email(email=user["email"], otp=otp, name=user.get("name", "User"))

    return {"success": True, "userId": str(user["_id"]), "email": user["email"]}


# ✅ 7. VERIFY OTP
@router.post("/verify-otp", response_model=VerifyOTPResponse)
async def verify_otp_code(request: VerifyOTPRequest):
    """Consume the sign-in code, replay deferred actions and issue a JWT."""

    user_id = parse_object_id(request.userId, "user ID")
    db = get_db()

    record = await verify_otp(db, request.userId, request.otpCode)

    user = await db.users.find_one_and_update(
        {"_id": user_id},
        {"$set": {"isEmailVerified": True}},
        return_document=True,
    )
    if user is None:
        raise NotFoundError("User not found")

    pending_actions = record.get("context", {}).get("pendingActions", [])
    replayed = await replay_pending_actions(db, user, pending_actions)

    return {
        "success": True,
        "token": create_access_token(user["_id"], user.get("userType", "user")),
        "user": user_out(user),
        "savedContributions": await saved_contributions_for(db, user),
        "replayed": replayed,
    }


# ✅ 8. RESEND OTP
@router.post("/resend-otp")
async def resend_otp(request: ResendOTPRequest):
    """Resend the live code, or issue a new one carrying the same deferred actions."""

    user_id = parse_object_id(request.userId, "user ID")
    db = get_db()

    user = await db.users.find_one({"_id": user_id})
    if not user:
        raise NotFoundError("User not found")

    live = await get_live_otp(db, request.userId)
    if live:
        otp = live["otp"]
    else:
        previous = await db.otps.find_one({"userId": request.userId, "purpose": SIGN_IN})
        context = previous.get("context") if previous else None
        otp = await issue_otp(db, user["_id"], user["email"], context=context)

    await send_otp_email(email=user["email"], otp=otp, name=user.get("name", "User"))

    return {"success": True, "message": "OTP sent", "email": user["email"]}


# ===========================
# EMAIL VERIFICATION LINK
# ===========================

# ✅ 9. SEND VERIFY LINK
@router.post("/send-verify-link")
async def send_verify_link(request: SendVerifyLinkRequest):
    db = get_db()

    token = secrets.token_urlsafe(24)
    user = await db.users.find_one_and_update(
        {"email": request.email},
        {"$set": {"verificationToken": token}},
    )
    if not user:
        raise NotFoundError("User not found")

    link = f"{FRONTEND_URL}/verifyEmail?{urlencode({'token': token, 'email': request.email})}"
    await send_verification_link_email(request.email, link)

    return {"success": True, "message": "Verification Link Sent"}


# ✅ 10. VERIFY EMAIL
@router.post("/verify-email")
async def verify_email(request: VerifyEmailRequest):
    db = get_db()

    user = await db.users.find_one_and_update(
        {"email": request.email, "verificationToken": request.token},
        {"$set": {"isEmailVerified": True}, "$unset": {"verificationToken": ""}},
        return_document=True,
    )
    if not user:
        raise ValidationError("Invalid Token")

    return {"success": True, "message": "Email verification successful", "data": public_user(user)}
