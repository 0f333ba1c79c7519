import pytest

import app.routes.admin as admin_routes
from conftest import run

SECRET = "let-me-in"


@pytest.fixture(autouse=True)
def admin_secret(monkeypatch):
    monkeypatch.setattr(admin_routes, "ADMIN_SECRET_KEY", SECRET)


def register(client, **overrides):
    body = {"name": "Ada", "email": "a@x.com", "password": "p1", "secretKey": SECRET}
    body.update(overrides)
    return client.post("/api/admin/register", json=body)


def test_register_login_and_wrong_password(client):
    response = register(client)
    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    assert data["token"]
    assert data["user"]["role"] == "admin"

    login = client.post("/api/admin/login", json={"email": "a@x.com", "password": "p1"})
    assert login.status_code == 200
    assert login.json()["user"]["id"] == data["user"]["id"]

    wrong = client.post("/api/admin/login", json={"email": "a@x.com", "password": "p2"})
    assert wrong.status_code == 401
    assert wrong.json() == {"success": False, "error": "Invalid credentials"}


def test_unknown_email_looks_like_wrong_password(client):
    response = client.post("/api/admin/login", json={"email": "ghost@x.com", "password": "p1"})
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid credentials"


def test_wrong_secret_checked_before_other_fields(client):
    response = client.post("/api/admin/register", json={"secretKey": "nope"})
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid secret key"

    response = register(client, secretKey="nope")
    assert response.status_code == 401


def test_missing_fields_with_right_secret(client):
    response = client.post("/api/admin/register", json={"secretKey": SECRET, "email": "a@x.com"})
    assert response.status_code == 400


def test_duplicate_email_conflicts(client):
    assert register(client).status_code == 201
    response = register(client, name="Other")
    assert response.status_code == 409
    assert response.json()["error"] == "Email already registered"


def test_password_is_trimmed_and_hashed(client, db):
    register(client, password="  p1  ")
    stored = run(db.admins.find_one({"email": "a@x.com"}))
    assert stored["password"].startswith("$2")
    assert client.post("/api/admin/login", json={"email": "a@x.com", "password": "p1"}).status_code == 200


def test_profile_read_and_password_change(client):
    token = register(client).json()["token"]
    headers = {"Authorization": f"Bearer {token}"}

    profile = client.get("/api/admin/profile", headers=headers)
    assert profile.status_code == 200
    assert profile.json()["data"]["email"] == "a@x.com"
    assert "password" not in profile.json()["data"]

    bad = client.put("/api/admin/profile", headers=headers,
                     json={"currentPassword": "nope", "newPassword": "p2"})
    assert bad.status_code == 401
    assert bad.json()["error"] == "Current password is incorrect"

    ok = client.put("/api/admin/profile", headers=headers,
                    json={"name": "Ada L", "currentPassword": "p1", "newPassword": "p2"})
    assert ok.status_code == 200
    assert ok.json()["data"]["name"] == "Ada L"
    assert client.post("/api/admin/login", json={"email": "a@x.com", "password": "p2"}).status_code == 200


def test_profile_requires_token(client):
    assert client.get("/api/admin/profile").status_code == 401


def test_malformed_email_is_a_bad_request(client, db):
    response = register(client, email="not-an-email")
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Please provide a valid email"}
    assert run(db.admins.count_documents({})) == 0


def test_profile_email_change_cannot_take_another_admins_email(client):
    register(client)
    token = register(client, name="Bo", email="b@x.com").json()["token"]
    headers = {"Authorization": f"Bearer {token}"}

    taken = client.put("/api/admin/profile", headers=headers, json={"email": "a@x.com"})
    assert taken.status_code == 409

    unchanged = client.put("/api/admin/profile", headers=headers, json={"email": "b@x.com", "name": "Bob"})
    assert unchanged.status_code == 200
    assert unchanged.json()["data"]["name"] == "Bob"

    moved = client.put("/api/admin/profile", headers=headers, json={"email": "c@x.com"})
    assert moved.json()["data"]["email"] == "c@x.com"
