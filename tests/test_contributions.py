from conftest import make_user, auth_header


def add(client, user, **body):
    body = {"title": "Snippet", "language": "python", "code": "print('hi')", **body}
    return client.post("/api/contributions", headers=auth_header(user), json=body)


def test_add_and_list(client, db):
    user = make_user(db, email="coder@example.com")

    saved = add(client, user)
    assert saved.status_code == 201
    assert saved.json()["data"]["status"] == "saved"
    assert saved.json()["data"]["email"] == "coder@example.com"

    add(client, user, title="Go hello", language="go", code="fmt.Println(1)", status="published")
    add(client, user, title="Py hello", status="published")

    public = client.get("/api/contributions").json()
    assert public["count"] == 2

    go_only = client.get("/api/contributions?language=go").json()["data"]
    assert [c["title"] for c in go_only] == ["Go hello"]

    mine = client.get("/api/contributions/mine", headers=auth_header(user)).json()
    assert mine["count"] == 3


def test_add_requires_sign_in_and_code(client, db):
    assert client.post("/api/contributions", json={"title": "x", "language": "py", "code": "1"}).status_code == 401

    user = make_user(db, email="coder@example.com")
    assert add(client, user, code="").status_code == 400
    assert add(client, user, status="deleted").status_code == 400


def test_saved_contributions_returned_on_login(client, db):
    user = make_user(db, email="coder@example.com", password="secret12")
    add(client, user, title="Draft")
    add(client, user, title="Public", status="published")

    body = client.post("/api/auth/login", json={"email": "coder@example.com", "password": "secret12"}).json()
    assert [c["title"] for c in body["savedContributions"]] == ["Draft"]
