from datetime import datetime, timedelta

import pytest
from bson import ObjectId

from conftest import run, make_user, auth_header
from app.models.invite import InvalidInviteTransition, transition


@pytest.fixture
def pair(db):
    return make_user(db, email="alice@example.com"), make_user(db, email="bob@example.com", userType="recruiter")


def send(client, sender, recipient, message="Hello there, let's chat"):
    return client.post("/api/invites", headers=auth_header(sender),
                       json={"recipientId": str(recipient["_id"]), "message": message})


def test_send_and_receive(client, pair):
    alice, bob = pair
    response = send(client, alice, bob)
    assert response.status_code == 201
    invite = response.json()["data"]["invite"]
    assert invite["status"] == "pending"
    assert invite["recipient"]["id"] == str(bob["_id"])

    received = client.get("/api/invites", headers=auth_header(bob)).json()["data"]
    assert [i["id"] for i in received["invites"]] == [invite["id"]]
    assert received["invites"][0]["sender"]["email"] == "alice@example.com"
    assert received["pagination"]["total"] == 1

    sent = client.get("/api/invites/sent", headers=auth_header(alice)).json()["data"]
    assert len(sent["invites"]) == 1


def test_message_length_and_self_invite(client, pair):
    alice, bob = pair
    assert send(client, alice, bob, message="hey").status_code == 400
    assert send(client, alice, bob, message="x" * 501).status_code == 400

    response = send(client, alice, alice)
    assert response.status_code == 400
    assert response.json()["error"] == "Cannot send invite to yourself"


def test_duplicate_pending_rejected_in_both_directions(client, pair):
    alice, bob = pair
    assert send(client, alice, bob).status_code == 201
    assert send(client, alice, bob).status_code == 400
    assert send(client, bob, alice).status_code == 400

    check = client.get(f"/api/invites/check/{bob['_id']}", headers=auth_header(alice)).json()["data"]
    assert check["canSendInvite"] is False
    assert check["existingInvite"]["direction"] == "sent"


def test_inactive_recipient(client, db, pair):
    alice, _ = pair
    gone = make_user(db, email="gone@example.com", isDeleted=True)
    response = send(client, alice, gone)
    assert response.status_code == 404


def test_accept_is_one_way(client, pair):
    alice, bob = pair
    invite_id = send(client, alice, bob).json()["data"]["invite"]["id"]

    # Only the recipient may accept
    assert client.put(f"/api/invites/{invite_id}/accept", headers=auth_header(alice)).status_code == 404

    accepted = client.put(f"/api/invites/{invite_id}/accept", headers=auth_header(bob))
    assert accepted.status_code == 200
    assert accepted.json()["data"]["invite"]["status"] == "accepted"

    for action in ("accept", "decline"):
        again = client.put(f"/api/invites/{invite_id}/{action}", headers=auth_header(bob))
        assert again.status_code == 404
        assert again.json()["error"] == "Invite not found or already processed"

    assert client.delete(f"/api/invites/{invite_id}", headers=auth_header(alice)).status_code == 404

    stats = client.get("/api/invites/stats", headers=auth_header(bob)).json()["data"]["stats"]
    assert stats["acceptedReceived"] == 1
    assert stats["totalPending"] == 0


def test_decline_and_cancel(client, pair):
    alice, bob = pair
    first = send(client, alice, bob).json()["data"]["invite"]["id"]
    declined = client.put(f"/api/invites/{first}/decline", headers=auth_header(bob))
    assert declined.json()["data"]["invite"]["status"] == "declined"

    second = send(client, alice, bob).json()["data"]["invite"]["id"]
    assert client.delete(f"/api/invites/{second}", headers=auth_header(bob)).status_code == 404
    cancelled = client.delete(f"/api/invites/{second}", headers=auth_header(alice))
    assert cancelled.json()["data"]["invite"]["status"] == "cancelled"


def test_expired_invite_is_cancelled_on_accept(client, db, pair):
    alice, bob = pair
    invite_id = send(client, alice, bob).json()["data"]["invite"]["id"]
    run(db.invites.update_one({"_id": ObjectId(invite_id)},
                              {"$set": {"expiresAt": datetime.utcnow() - timedelta(minutes=1)}}))

    response = client.put(f"/api/invites/{invite_id}/accept", headers=auth_header(bob))
    assert response.status_code == 400
    assert response.json()["error"] == "This invite has expired"
    assert run(db.invites.find_one({"_id": ObjectId(invite_id)}))["status"] == "cancelled"

    # An expired invite no longer blocks a new one
    assert send(client, alice, bob).status_code == 201


def test_transition_rules():
    invite = {"status": "pending", "sender": "s", "recipient": "r"}
    assert transition(invite, "accept", "r")["status"] == "accepted"
    assert transition(invite, "cancel", "s")["status"] == "cancelled"

    with pytest.raises(InvalidInviteTransition):
        transition(invite, "accept", "s")
    with pytest.raises(InvalidInviteTransition):
        transition({**invite, "status": "declined"}, "accept", "r")
    with pytest.raises(InvalidInviteTransition):
        transition(invite, "reopen", "r")
