import asyncio
import os

os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.pop("MAIL_USERNAME", None)
os.environ.pop("MAIL_PASSWORD", None)

import httpx
import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

import app.database as database
import app.routes.auth as auth_routes
import app.routes.job as job_routes
import app.routes.password_reset as password_reset_routes
from app.main import app as api
from app.models.user import User
from app.utils.auth import create_access_token
from app.utils.security import get_password_hash


def run(coro):
    """Drive a Motor-style coroutine from a synchronous test."""
    return asyncio.run(coro)


@pytest.fixture
def db():
    database.db = AsyncMongoMockClient()["becopy_test"]
    yield database.db
    database.db = None


@pytest.fixture
def client(db):
    # No `with`: startup would try to reach a real MongoDB
    return TestClient(api)


@pytest.fixture
def outbox(monkeypatch):
    """Captures outgoing mail instead of talking to SMTP."""
    sent = []

    async def fake_otp(email, otp, name="User"):
        sent.append({"kind": "otp", "to": email, "code": otp})
        return True

    async def fake_reset(email, code):
        sent.append({"kind": "reset", "to": email, "code": code})
        return True

    async def fake_link(email, link):
        sent.append({"kind": "link", "to": email, "link": link})
        return True

    async def fake_application(recruiter_email, job, applicant, cover_letter=None, resume_url=None):
        sent.append({"kind": "application", "to": recruiter_email, "job": job["title"]})
        return True

    monkeypatch.setattr(auth_routes, "send_otp_email", fake_otp)
    monkeypatch.setattr(auth_routes, "send_verification_link_email", fake_link)
    monkeypatch.setattr(password_reset_routes, "send_reset_code_email", fake_reset)
    monkeypatch.setattr(job_routes, "send_application_email", fake_application)
    return sent


def make_user(db, email="user@example.com", password=None, **fields):
    fields.setdefault("name", email.split("@")[0].title())
    fields.setdefault("country", "India")
    fields.setdefault("isEmailVerified", True)
    user = User(
        email=email,
        password=get_password_hash(password) if password else None,
        **fields
    ).to_mongo()
    user["_id"] = run(db.users.insert_one(user)).inserted_id
    return user


def auth_header(user, role=None):
    token = create_access_token(user["_id"], role or user.get("userType", "user"))
    return {"Authorization": f"Bearer {token}"}


class _SlowCollection:
    def __init__(self, collection):
        self._collection = collection

    def __getattr__(self, name):
        return getattr(self._collection, name)

    async def find_one(self, *args, **kwargs):
        document = await self._collection.find_one(*args, **kwargs)
        # Yield like a network round-trip so concurrent requests interleave
        await asyncio.sleep(0.01)
        return document


class _SlowDatabase:
    def __init__(self, database):
        self._database = database

    def __getattr__(self, name):
        return _SlowCollection(getattr(self._database, name))


def post_concurrently(db, path, bodies):
    """POST every body at once against the app; returns the responses."""
    async def go():
        transport = httpx.ASGITransport(app=api)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
            return await asyncio.gather(*(http.post(path, json=body) for body in bodies))

    database.db = _SlowDatabase(db)
    try:
        return run(go())
    finally:
        database.db = db
