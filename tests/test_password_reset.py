from datetime import datetime, timedelta

from conftest import run, make_user, post_concurrently


def test_full_reset_flow(client, db, outbox):
    make_user(db, email="u@example.com", password="old-pass")

    sent = client.post("/api/auth/send-code", json={"email": "u@example.com"})
    assert sent.status_code == 200
    assert sent.json() == {"message": "Code Sent"}
    code = outbox[-1]["code"]

    matched = client.post("/api/auth/match-code", json={"email": "u@example.com", "code": code})
    assert matched.json() == {"message": "Code Valid"}

    changed = client.post("/api/auth/reset-pass", json={
        "email": "u@example.com", "code": code, "password": "new-pass", "confirmPassword": "new-pass",
    })
    assert changed.status_code == 200
    assert changed.json() == {"message": "Password Changed"}

    assert client.post("/api/auth/login", json={"email": "u@example.com", "password": "new-pass"}).status_code == 200
    assert client.post("/api/auth/login", json={"email": "u@example.com", "password": "old-pass"}).status_code == 401


def test_unknown_email(client, outbox):
    response = client.post("/api/auth/send-code", json={"email": "ghost@example.com"})
    assert response.status_code == 404
    assert response.json()["error"] == "User not found"
    assert outbox == []


def test_resend_keeps_the_same_code(client, db, outbox):
    make_user(db, email="u@example.com")
    client.post("/api/auth/send-code", json={"email": "u@example.com"})
    client.post("/api/auth/send-code", json={"email": "u@example.com"})
    assert outbox[0]["code"] == outbox[1]["code"]


def test_expired_code_is_replaced(client, db, outbox):
    make_user(db, email="u@example.com")
    client.post("/api/auth/send-code", json={"email": "u@example.com"})
    run(db.password_resets.update_one(
        {"email": "u@example.com"}, {"$set": {"expires_at": datetime.utcnow() - timedelta(seconds=1)}}
    ))

    response = client.post("/api/auth/match-code", json={"email": "u@example.com", "code": outbox[-1]["code"]})
    assert response.status_code == 400

    client.post("/api/auth/send-code", json={"email": "u@example.com"})
    assert run(db.password_resets.count_documents({"email": "u@example.com"})) == 1


def test_wrong_code_does_not_advance(client, db, outbox):
    make_user(db, email="u@example.com")
    client.post("/api/auth/send-code", json={"email": "u@example.com"})
    code = outbox[-1]["code"]
    wrong = "000000" if code != "000000" else "111111"

    response = client.post("/api/auth/match-code", json={"email": "u@example.com", "code": wrong})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid Code"

    # reset-pass is gated on a matched code
    response = client.post("/api/auth/reset-pass", json={
        "email": "u@example.com", "code": code, "password": "new-pass", "confirmPassword": "new-pass",
    })
    assert response.status_code == 400


def test_password_mismatch(client, db, outbox):
    make_user(db, email="u@example.com")
    client.post("/api/auth/send-code", json={"email": "u@example.com"})
    code = outbox[-1]["code"]
    client.post("/api/auth/match-code", json={"email": "u@example.com", "code": code})

    response = client.post("/api/auth/reset-pass", json={
        "email": "u@example.com", "code": code, "password": "new-pass", "confirmPassword": "other-pass",
    })
    assert response.status_code == 400


def test_concurrent_wrong_codes_respect_attempt_limit(client, db, outbox):
    make_user(db, email="u@example.com")
    client.post("/api/auth/send-code", json={"email": "u@example.com"})
    code = outbox[-1]["code"]
    wrong = "000000" if code != "000000" else "111111"

    responses = post_concurrently(db, "/api/auth/match-code", [{"email": "u@example.com", "code": wrong}] * 10)
    assert all(r.status_code == 400 for r in responses)
    assert run(db.password_resets.find_one({"email": "u@example.com"}))["attempts"] == 5

    blocked = client.post("/api/auth/match-code", json={"email": "u@example.com", "code": code})
    assert blocked.status_code == 429


def test_matched_code_changes_password_once(client, db, outbox):
    make_user(db, email="u@example.com", password="old-pass")
    client.post("/api/auth/send-code", json={"email": "u@example.com"})
    code = outbox[-1]["code"]
    client.post("/api/auth/match-code", json={"email": "u@example.com", "code": code})

    bodies = [
        {"email": "u@example.com", "code": code, "password": "first-pass", "confirmPassword": "first-pass"},
        {"email": "u@example.com", "code": code, "password": "second-pass", "confirmPassword": "second-pass"},
    ]
    responses = post_concurrently(db, "/api/auth/reset-pass", bodies)
    assert sorted(r.status_code for r in responses) == [200, 400]
