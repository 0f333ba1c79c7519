import hashlib
import hmac
import json

import httpx
import pytest
from bson import ObjectId
from jose import jwt

import app.utils.talkjs as talkjs
from conftest import run, make_user, auth_header

SECRET = "talkjs-test-secret"


@pytest.fixture
def talkjs_calls(monkeypatch):
    calls = []

    def handler(request):
        calls.append((request.method, request.url.path, json.loads(request.content or b"{}")))
        return httpx.Response(200, json={})

    monkeypatch.setattr(talkjs, "TALKJS_APP_ID", "app123")
    monkeypatch.setattr(talkjs, "TALKJS_SECRET_KEY", SECRET)
    monkeypatch.setattr(talkjs, "build_client", lambda: httpx.AsyncClient(
        base_url="https://talkjs.test/v1/app123",
        transport=httpx.MockTransport(handler),
    ))
    return calls


@pytest.fixture
def accepted_invite(client, db):
    alice = make_user(db, email="alice@example.com")
    bob = make_user(db, email="bob@example.com", userType="recruiter")
    invite = client.post("/api/invites", headers=auth_header(alice),
                         json={"recipientId": str(bob["_id"]), "message": "Want to pair on this?"}).json()
    invite_id = invite["data"]["invite"]["id"]
    client.put(f"/api/invites/{invite_id}/accept", headers=auth_header(bob))
    return alice, bob, invite_id


def test_session_requires_accepted_invite(client, db, talkjs_calls):
    alice = make_user(db, email="alice@example.com")
    bob = make_user(db, email="bob@example.com")
    invite_id = client.post("/api/invites", headers=auth_header(alice),
                            json={"recipientId": str(bob["_id"]), "message": "Pending for now"}).json()["data"]["invite"]["id"]

    response = client.post("/api/chat/session", headers=auth_header(alice), json={"inviteId": invite_id})
    assert response.status_code == 404
    assert talkjs_calls == []


def test_session_is_created_once(client, db, talkjs_calls, accepted_invite):
    alice, bob, invite_id = accepted_invite

    created = client.post("/api/chat/session", headers=auth_header(alice), json={"inviteId": invite_id})
    assert created.status_code == 201
    session = created.json()["data"]["chatSession"]
    assert session["talkjsConversationId"] == f"chat_{invite_id}"
    assert session["otherParticipant"]["id"] == str(bob["_id"])

    paths = [path for _, path, _ in talkjs_calls]
    assert paths == [
        f"/v1/app123/users/{alice['_id']}",
        f"/v1/app123/users/{bob['_id']}",
        f"/v1/app123/conversations/chat_{invite_id}",
    ]
    conversation = talkjs_calls[-1][2]
    assert conversation["participants"] == [str(alice["_id"]), str(bob["_id"])]
    assert conversation["custom"]["inviteId"] == invite_id

    again = client.post("/api/chat/session", headers=auth_header(bob), json={"inviteId": invite_id})
    assert again.status_code == 200
    assert again.json()["data"]["chatSession"]["id"] == session["id"]
    assert len(talkjs_calls) == 3
    assert run(db.chat_sessions.count_documents({})) == 1

    invite = run(db.invites.find_one({"_id": ObjectId(invite_id)}))
    assert invite["talkjsConversationId"] == f"chat_{invite_id}"
    assert invite["chatInitiatedAt"] is not None


def test_session_listing_archive_and_block(client, talkjs_calls, accepted_invite):
    alice, bob, invite_id = accepted_invite
    session_id = client.post("/api/chat/session", headers=auth_header(alice),
                             json={"inviteId": invite_id}).json()["data"]["chatSession"]["id"]

    listed = client.get("/api/chat/sessions", headers=auth_header(bob)).json()["data"]
    assert [s["id"] for s in listed["sessions"]] == [session_id]

    detail = client.get(f"/api/chat/sessions/{session_id}", headers=auth_header(bob)).json()["data"]["session"]
    assert detail["originalInvite"]["message"] == "Want to pair on this?"

    archived = client.put(f"/api/chat/sessions/{session_id}/archive", headers=auth_header(alice))
    assert archived.json()["data"]["session"]["status"] == "archived"
    assert client.get("/api/chat/sessions", headers=auth_header(alice)).json()["data"]["sessions"] == []

    client.put(f"/api/chat/sessions/{session_id}/block", headers=auth_header(bob))
    assert client.get(f"/api/chat/sessions/{session_id}", headers=auth_header(alice)).status_code == 404


def test_session_hidden_from_outsiders(client, db, talkjs_calls, accepted_invite):
    alice, _, invite_id = accepted_invite
    session_id = client.post("/api/chat/session", headers=auth_header(alice),
                             json={"inviteId": invite_id}).json()["data"]["chatSession"]["id"]
    eve = make_user(db, email="eve@example.com")

    assert client.get(f"/api/chat/sessions/{session_id}", headers=auth_header(eve)).status_code == 404
    assert client.post("/api/chat/session", headers=auth_header(eve), json={"inviteId": invite_id}).status_code == 404


def test_token_is_signed_for_widget(client, db, talkjs_calls):
    alice = make_user(db, email="alice@example.com")
    response = client.get("/api/chat/token", headers=auth_header(alice))
    assert response.status_code == 200

    claims = jwt.decode(response.json()["data"]["token"], SECRET, algorithms=["HS256"])
    assert claims["appId"] == "app123"
    assert claims["userId"] == str(alice["_id"])
    assert claims["exp"] - claims["iat"] == 3600


def test_token_without_configuration(client, db, monkeypatch):
    monkeypatch.setattr(talkjs, "TALKJS_APP_ID", None)
    alice = make_user(db, email="alice@example.com")
    response = client.get("/api/chat/token", headers=auth_header(alice))
    assert response.status_code == 500
    assert response.json()["error"] == "Chat is not configured"


def test_webhook_updates_activity(client, db, talkjs_calls, accepted_invite):
    alice, _, invite_id = accepted_invite
    client.post("/api/chat/session", headers=auth_header(alice), json={"inviteId": invite_id})

    event = {"type": "message", "conversationId": f"chat_{invite_id}",
             "messageText": "hi " * 100, "senderId": str(alice["_id"])}
    assert client.post("/api/chat/webhook", json=event).status_code == 200

    session = run(db.chat_sessions.find_one({"talkjsConversationId": f"chat_{invite_id}"}))
    assert session["messageCount"] == 1
    assert len(session["lastMessage"]["text"]) == 200

    body = json.dumps(event).encode()
    bad = client.post("/api/chat/webhook", content=body,
                      headers={"content-type": "application/json", "x-talkjs-signature": "sha256=nope"})
    assert bad.status_code == 401

    signature = "sha256=" + hmac.new(SECRET.encode(), body, hashlib.sha256).hexdigest()
    good = client.post("/api/chat/webhook", content=body,
                       headers={"content-type": "application/json", "x-talkjs-signature": signature})
    assert good.status_code == 200
    assert run(db.chat_sessions.find_one({}))["messageCount"] == 2


def test_directory_includes_invite_status(client, db, accepted_invite):
    alice, bob, invite_id = accepted_invite
    carol = make_user(db, email="carol@example.com")
    make_user(db, email="unverified@example.com", isEmailVerified=False)

    for path in ("/api/chat/users", "/api/users/directory"):
        users = client.get(path, headers=auth_header(alice)).json()["data"]["users"]
        by_email = {u["email"]: u for u in users}
        assert set(by_email) == {"bob@example.com", "carol@example.com"}
        assert by_email["bob@example.com"]["inviteStatus"]["status"] == "accepted"
        assert by_email["bob@example.com"]["inviteStatus"]["direction"] == "sent"
        assert by_email["carol@example.com"]["inviteStatus"] is None

    recruiters = client.get("/api/chat/users?userType=recruiter", headers=auth_header(alice)).json()["data"]["users"]
    assert [u["email"] for u in recruiters] == ["bob@example.com"]


def test_search_users(client, db, accepted_invite):
    alice, _, _ = accepted_invite
    short = client.get("/api/chat/users/search?q=b", headers=auth_header(alice))
    assert short.status_code == 400

    found = client.get("/api/chat/users/search?q=bob", headers=auth_header(alice)).json()["data"]["users"]
    assert [u["email"] for u in found] == ["bob@example.com"]
