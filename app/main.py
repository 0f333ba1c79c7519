# ========================================
# app/main.py - BeCopy API
# ========================================

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import ALLOWED_ORIGINS, FRONTEND_URL, LOG_LEVEL
from app.database import connect_to_mongo, close_mongo_connection
from app.routes.gpt import close_openai_client

# ===========================
# IMPORT ALL ROUTERS
# ===========================

# Admin panel
from app.routes.admin import router as admin_router
from app.routes.setting import router as setting_router

# Users, OTP sign-in & password reset
from app.routes.auth import router as auth_router
from app.routes.password_reset import router as password_reset_router
from app.routes.profile import router as profile_router

# Jobs & code snippets
from app.routes.job import router as job_router
from app.routes.contribution import router as contribution_router

# Invites & chat
from app.routes.invite import router as invite_router
from app.routes.chat import router as chat_router, directory_router

# AI helpers
from app.routes.gpt import router as gpt_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# ===========================
# CREATE FASTAPI APP
# ===========================

app = FastAPI(
    title="BeCopy API",
    description="Code sharing, job board and chat invitations for users and recruiters",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# ===========================
# CORS MIDDLEWARE
# ===========================
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS or [FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ===========================
# ERROR RESPONSES: {success: false, error}
# ===========================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": f"{field}: {message}" if field else message},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})

# ===========================
# DATABASE EVENTS
# ===========================

@app.on_event("startup")
async def start_db():
    """Connect to MongoDB on startup"""
    await connect_to_mongo()

@app.on_event("shutdown")
async def stop_db():
    """Close MongoDB and the shared OpenAI client on shutdown"""
    await close_mongo_connection()
    await close_openai_client()

# ===========================
# REGISTER ROUTERS
# ===========================

app.include_router(admin_router)
app.include_router(setting_router)

app.include_router(auth_router)
app.include_router(password_reset_router)
app.include_router(profile_router)

app.include_router(job_router)
app.include_router(contribution_router)

app.include_router(invite_router)
app.include_router(chat_router)
app.include_router(directory_router)

app.include_router(gpt_router)

# ===========================
# ROOT ENDPOINTS
# ===========================

@app.get("/")
async def root():
    """API root endpoint with endpoint summary"""
    return {
        "status": "✅ BeCopy API Running",
        "version": "1.0.0",
        "documentation": "/docs",
        "endpoints": {
            "admin": ["/api/admin/register", "/api/admin/login", "/api/admin/profile", "/api/setting/update"],
            "auth": [
                "/api/auth/register",
                "/api/auth/login",
                "/api/auth/oauth/state",
                "/api/auth/oauth",
                "/api/auth/verify-otp",
                "/api/auth/resend-otp",
                "/api/auth/send-code",
                "/api/auth/match-code",
                "/api/auth/reset-pass"
            ],
            "profile": ["/profile", "/updateProfile"],
            "jobs": ["/api/jobs", "/api/jobs/near", "/api/jobs/stats", "/api/jobs/apply"],
            "code": ["/api/contributions", "/api/gpt/convert", "/api/gpt/chat"],
            "chat": ["/api/invites", "/api/chat/session", "/api/chat/sessions", "/api/chat/token", "/api/users/directory"],
            "public": ["/api/setting"]
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "version": "1.0.0"}
