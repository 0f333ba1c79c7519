from urllib.parse import parse_qs, urlsplit

from conftest import run, make_user, auth_header

USER = {
    "name": "Sam",
    "email": "sam@example.com",
    "password": "secret1",
    "confirmPassword": "secret1",
    "userType": "user",
    "country": "India",
}


def test_register_then_login(client, db):
    response = client.post("/api/auth/register", json=USER)
    assert response.status_code == 201
    assert response.json()["user"]["role"] == "user"

    stored = run(db.users.find_one({"email": "sam@example.com"}))
    assert stored["password"] != "secret1"

    login = client.post("/api/auth/login", json={"email": "sam@example.com", "password": "secret1"})
    assert login.status_code == 200
    body = login.json()
    assert body["user"]["isEmailVerified"] is False
    assert body["savedContributions"] == []

    wrong = client.post("/api/auth/login", json={"email": "sam@example.com", "password": "secret2"})
    assert wrong.status_code == 401


def test_duplicate_email(client):
    assert client.post("/api/auth/register", json=USER).status_code == 201
    response = client.post("/api/auth/register", json=USER)
    assert response.status_code == 409


def test_recruiter_needs_company_details(client):
    body = dict(USER, userType="recruiter")
    response = client.post("/api/auth/register", json=body)
    assert response.status_code == 400

    body.update(companyName="Acme", phoneNumber="123", description="We build things",
                profileLink="https://www.linkedin.com/in/sam-r")
    assert client.post("/api/auth/register", json=body).status_code == 201


def test_invalid_linkedin_url(client):
    body = dict(USER, profileLink="https://example.com/sam")
    response = client.post("/api/auth/register", json=body)
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid LinkedIn URL"


def test_me_hides_password(client, db):
    user = make_user(db, email="me@example.com", password="pw1234")
    response = client.get("/api/auth/me", headers=auth_header(user))
    assert response.status_code == 200
    assert response.json()["data"]["email"] == "me@example.com"
    assert "password" not in response.json()["data"]


def test_admin_token_cannot_act_as_user(client, db):
    user = make_user(db, email="me@example.com")
    assert client.get("/api/auth/me", headers=auth_header(user, role="admin")).status_code == 403


def test_email_verification_link(client, db, outbox):
    make_user(db, email="v@example.com", isEmailVerified=False)

    assert client.post("/api/auth/send-verify-link", json={"email": "v@example.com"}).status_code == 200
    token = run(db.users.find_one({"email": "v@example.com"}))["verificationToken"]
    assert token in outbox[-1]["link"]

    bad = client.post("/api/auth/verify-email", json={"email": "v@example.com", "token": "nope"})
    assert bad.status_code == 400

    ok = client.post("/api/auth/verify-email", json={"email": "v@example.com", "token": token})
    assert ok.status_code == 200
    assert ok.json()["data"]["isEmailVerified"] is True
    assert "verificationToken" not in ok.json()["data"]


def test_verification_link_encodes_email(client, db, outbox):
    make_user(db, email="first+tag@example.com", isEmailVerified=False)
    client.post("/api/auth/send-verify-link", json={"email": "first+tag@example.com"})

    query = parse_qs(urlsplit(outbox[-1]["link"]).query)
    assert query["email"] == ["first+tag@example.com"]

    ok = client.post("/api/auth/verify-email", json={"email": query["email"][0], "token": query["token"][0]})
    assert ok.status_code == 200
