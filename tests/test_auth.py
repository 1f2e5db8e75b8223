import pytest
from pymongo.errors import DuplicateKeyError

import auth
from errors import AuthError, ValidationError


def test_hash_password_is_salted():
    first = auth.hash_password("secret123")
    second = auth.hash_password("secret123")
    assert first != second
    assert "secret123" not in first
    assert auth.verify_password("secret123", first)
    assert not auth.verify_password("wrong", first)


def test_verify_password_rejects_malformed_hash():
    assert not auth.verify_password("secret123", "no-separator")


def test_register_then_login(client, fake_db):
    resp = client.post("/api/auth/register", json={"name": "Alice", "email": "alice@example.com", "password": "secret123"})
    assert resp.status_code == 200
    assert resp.json() == {"success": True}
    stored = fake_db["user"].docs[0]
    assert stored["email"] == "alice@example.com"
    assert "secret123" not in stored["passwordHash"]

    resp = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret123"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert auth.verify_token(body["token"])["email"] == "alice@example.com"


def test_login_wrong_password_and_unknown_email_look_the_same(client):
    client.post("/api/auth/register", json={"name": "Alice", "email": "alice@example.com", "password": "secret123"})

    wrong = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "nope"})
    unknown = client.post("/api/auth/login", json={"email": "bob@example.com", "password": "secret123"})
    for resp in (wrong, unknown):
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid credentials"
        assert "token" not in resp.json()


def test_register_duplicate_email(client):
    payload = {"name": "Alice", "email": "alice@example.com", "password": "secret123"}
    client.post("/api/auth/register", json=payload)
    resp = client.post("/api/auth/register", json={**payload, "email": "ALICE@example.com"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Email already registered"


def test_register_missing_field(client):
    resp = client.post("/api/auth/register", json={"email": "alice@example.com", "password": "secret123"})
    assert resp.status_code == 400
    assert "name" in resp.json()["error"]


def test_register_service_requires_fields(fake_db):
    with pytest.raises(ValidationError):
        auth.register("", "alice@example.com", "secret123")


def test_register_rejects_blank_name(client, fake_db):
    resp = client.post("/api/auth/register", json={"name": "   ", "email": "alice@example.com", "password": "secret123"})
    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert fake_db["user"].docs == []
    with pytest.raises(ValidationError):
        auth.register("   ", "alice@example.com", "secret123")


def test_register_race_on_unique_email(client, fake_db, monkeypatch):
    def insert_one(doc):
        raise DuplicateKeyError("E11000 duplicate key error collection: user index: email_1")

    monkeypatch.setattr(fake_db["user"], "insert_one", insert_one)
    resp = client.post("/api/auth/register", json={"name": "Alice", "email": "alice@example.com", "password": "secret123"})
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "Email already registered"}


def test_login_with_malformed_email_is_invalid_credentials(client):
    client.post("/api/auth/register", json={"name": "Alice", "email": "alice@example.com", "password": "secret123"})
    resp = client.post("/api/auth/login", json={"email": "alice", "password": "secret123"})
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "Invalid credentials"}


def test_verify_token_rejects_missing_and_tampered():
    with pytest.raises(AuthError):
        auth.verify_token(None)
    token = auth.issue_token({"_id": "abc", "email": "a@example.com"})
    with pytest.raises(AuthError):
        auth.verify_token(token + "x")


def test_verify_token_expired(monkeypatch):
    token = auth.issue_token({"_id": "abc", "email": "a@example.com"})
    monkeypatch.setattr(auth, "TOKEN_MAX_AGE", -1)
    with pytest.raises(AuthError) as exc:
        auth.verify_token(token)
    assert exc.value.message == "Token expired"


@pytest.mark.parametrize("header,expected", [
    ("Bearer abc.def", "abc.def"),
    ("bearer abc", "abc"),
    ("Basic abc", None),
    ("Bearer ", None),
    (None, None),
])
def test_bearer_token(header, expected):
    assert auth.bearer_token(header) == expected
