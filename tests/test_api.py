from datetime import datetime, timedelta
from http import HTTPStatus

import pytest
from fastapi.testclient import TestClient

from conftest import FakeSocketServer, make_app, register, run

from task_chat.server import auth
from task_chat.server.models import Message, User


def test_root_status(client):
    assert client.get("/").json() == {"status": "ok"}


def test_register_returns_user_and_token(client):
    user, headers = register(client, "alice", email="Alice@Example.com")

    assert user["username"] == "alice"
    assert user["email"] == "alice@example.com"
    assert user["role"] == "user"
    me = client.get("/users/me", headers=headers)
    assert me.status_code == HTTPStatus.OK
    assert me.json()["id"] == user["id"]


def test_register_rejects_duplicates_and_weak_passwords(client):
    register(client, "alice")

    dup = client.post(
        "/auth/register", json={"username": "alice", "email": "other@example.com", "password": "s3cret-pass"}
    )
    assert dup.status_code == HTTPStatus.BAD_REQUEST

    weak = client.post("/auth/register", json={"username": "bob", "email": "bob@example.com", "password": "123456"})
    assert weak.status_code == HTTPStatus.BAD_REQUEST

    bad_email = client.post("/auth/register", json={"username": "carl", "email": "nope", "password": "s3cret-pass"})
    assert bad_email.status_code == HTTPStatus.UNPROCESSABLE_ENTITY


def test_login_and_logout(client):
    register(client, "alice")

    resp = client.post("/auth/login", json={"email": "alice@example.com", "password": "s3cret-pass"})
    assert resp.status_code == HTTPStatus.OK
    headers = {"Authorization": f"Bearer {resp.json()['token']}"}
    assert client.get("/users", headers=headers).status_code == HTTPStatus.OK

    assert client.post("/auth/logout", headers=headers).status_code == HTTPStatus.OK
    assert client.get("/users", headers=headers).status_code == HTTPStatus.UNAUTHORIZED


def test_login_failure_and_lockout(client):
    register(client, "alice")
    bad = {"email": "alice@example.com", "password": "wrong-pass"}

    for _ in range(4):
        assert client.post("/auth/login", json=bad).status_code == HTTPStatus.UNAUTHORIZED
    assert client.post("/auth/login", json=bad).status_code == HTTPStatus.UNAUTHORIZED

    good = {"email": "alice@example.com", "password": "s3cret-pass"}
    assert client.post("/auth/login", json=good).status_code == HTTPStatus.FORBIDDEN
    unknown = {"email": "nobody@example.com", "password": "s3cret-pass"}
    assert client.post("/auth/login", json=unknown).status_code == HTTPStatus.UNAUTHORIZED


def test_expired_token_is_rejected(client):
    _, headers = register(client, "alice")
    token = headers["Authorization"].split(" ", 1)[1]
    auth.TOKEN_STORE[token]["expires"] = datetime.utcnow() - timedelta(seconds=1)

    assert client.get("/users", headers=headers).status_code == HTTPStatus.UNAUTHORIZED
    assert token not in auth.TOKEN_STORE
    assert client.get("/users").status_code == HTTPStatus.UNAUTHORIZED


def test_list_users_sorted_by_username(client):
    register(client, "zoe")
    _, headers = register(client, "adam")

    names = [u["username"] for u in client.get("/users", headers=headers).json()]
    assert names == ["adam", "zoe"]


def test_conversation_flow(client):
    alice, alice_headers = register(client, "alice")
    bob, bob_headers = register(client, "bob")

    sent = client.post(f"/users/{bob['id']}/messages", json={"content": "  hello bob  "}, headers=alice_headers)
    assert sent.status_code == HTTPStatus.CREATED
    assert sent.json()["content"] == "hello bob"
    client.post(f"/users/{alice['id']}/messages", json={"content": "hi alice"}, headers=bob_headers)

    count = client.get(f"/users/{alice['id']}/messages/unread/count", headers=bob_headers)
    assert count.json() == {"count": 1}

    conversation = client.get(f"/users/{alice['id']}/messages", headers=bob_headers).json()
    assert [m["content"] for m in conversation] == ["hello bob", "hi alice"]

    count = client.get(f"/users/{alice['id']}/messages/unread/count", headers=bob_headers)
    assert count.json() == {"count": 0}
    # Reading only marks incoming messages.
    count = client.get(f"/users/{bob['id']}/messages/unread/count", headers=alice_headers)
    assert count.json() == {"count": 1}


def test_message_validation_and_unknown_recipient(client):
    _, headers = register(client, "alice")

    assert client.post("/users/999/messages", json={"content": "hi"}, headers=headers).status_code == 404
    assert client.get("/users/999/messages", headers=headers).status_code == 404
    empty = client.post("/users/1/messages", json={"content": "   "}, headers=headers)
    assert empty.status_code == HTTPStatus.UNPROCESSABLE_ENTITY


def test_mark_single_message_read(client):
    alice, alice_headers = register(client, "alice")
    bob, bob_headers = register(client, "bob")
    message = client.post(f"/users/{bob['id']}/messages", json={"content": "ping"}, headers=alice_headers).json()

    resp = client.put(f"/users/{alice['id']}/messages/{message['id']}/read", headers=bob_headers)
    assert resp.status_code == HTTPStatus.OK
    assert resp.json()["read"] is True

    # Only the recipient can mark it.
    resp = client.put(f"/users/{bob['id']}/messages/{message['id']}/read", headers=alice_headers)
    assert resp.status_code == HTTPStatus.NOT_FOUND


def test_edit_message_within_window(client, db_session_factory):
    _, alice_headers = register(client, "alice")
    bob, bob_headers = register(client, "bob")
    message = client.post(f"/users/{bob['id']}/messages", json={"content": "typo"}, headers=alice_headers).json()
    url = f"/users/{bob['id']}/messages/{message['id']}"

    resp = client.put(url, json={"content": "fixed"}, headers=alice_headers)
    assert resp.status_code == HTTPStatus.OK
    assert resp.json()["content"] == "fixed"
    assert resp.json()["edited"] is True

    db = db_session_factory()
    row = db.get(Message, message["id"])
    row.created_at = datetime.utcnow() - timedelta(minutes=6)
    db.commit()
    db.close()

    resp = client.put(url, json={"content": "too late"}, headers=alice_headers)
    assert resp.status_code == HTTPStatus.FORBIDDEN


def test_only_sender_can_edit_or_delete(client):
    alice, alice_headers = register(client, "alice")
    bob, bob_headers = register(client, "bob")
    _, carol_headers = register(client, "carol")
    message = client.post(f"/users/{bob['id']}/messages", json={"content": "mine"}, headers=alice_headers).json()

    edit = client.put(
        f"/users/{alice['id']}/messages/{message['id']}", json={"content": "theirs"}, headers=bob_headers
    )
    assert edit.status_code == HTTPStatus.NOT_FOUND

    url_for_bob = f"/users/{alice['id']}/messages/{message['id']}"
    assert client.delete(url_for_bob, headers=bob_headers).status_code == HTTPStatus.FORBIDDEN
    assert client.delete(url_for_bob, headers=carol_headers).status_code == HTTPStatus.NOT_FOUND

    resp = client.delete(f"/users/{bob['id']}/messages/{message['id']}", headers=alice_headers)
    assert resp.status_code == HTTPStatus.OK
    assert client.get(f"/users/{bob['id']}/messages", headers=alice_headers).json() == []


def test_online_endpoint_reflects_live_registry(client, app):
    gateway = app.state.gateway
    run(gateway.on_connect("sid-a", {}, {"userId": "alice"}))

    body = client.get("/chat/online").json()
    assert body == {"users": ["alice"], "count": 1}

    run(gateway.on_disconnect("sid-a"))
    assert client.get("/chat/online").json() == {"users": [], "count": 0}


def test_live_chat_and_inbox_are_disjoint(client, app):
    _, headers = register(client, "alice")
    gateway = app.state.gateway
    run(gateway.on_connect("sid-a", {}, {"userId": "1"}))
    run(gateway.on_new_message("sid-a", {"message": {"recipientId": "2", "content": "live only"}}))

    assert len(gateway.relay.store.all()) == 1
    assert client.get("/users/1/messages", headers=headers).json() == []


def test_lock_expiry_resets_failed_attempts(client, db_session_factory):
    user, _ = register(client, "alice")
    db = db_session_factory()
    row = db.get(User, user["id"])
    row.failed_login_attempts = 5
    row.lock_until = datetime.utcnow() - timedelta(seconds=1)
    db.commit()
    db.close()

    bad = {"email": "alice@example.com", "password": "wrong-pass"}
    assert client.post("/auth/login", json=bad).status_code == HTTPStatus.UNAUTHORIZED

    good = {"email": "alice@example.com", "password": "s3cret-pass"}
    assert client.post("/auth/login", json=good).status_code == HTTPStatus.OK


def test_token_identity_mode_uses_account_tokens(db_session_factory):
    sio = FakeSocketServer()
    app = make_app(db_session_factory, sio, identity_mode="token")
    gateway = app.state.gateway
    try:
        with TestClient(app) as test_client:
            user, headers = register(test_client, "alice")
        token = headers["Authorization"].split(" ", 1)[1]

        run(gateway.on_connect("sid-a", {}, {"token": token}))
        assert gateway.online_user_ids() == [str(user["id"])]

        auth.TOKEN_STORE[token]["expires"] = datetime.utcnow() - timedelta(seconds=1)
        with pytest.raises(ConnectionRefusedError):
            run(gateway.on_connect("sid-b", {}, {"token": token}))
        with pytest.raises(ConnectionRefusedError):
            run(gateway.on_connect("sid-c", {}, {"token": "not-a-token", "userId": "alice"}))
        assert gateway.online_user_ids() == [str(user["id"])]
    finally:
        auth.TOKEN_STORE.clear()


def test_unknown_identity_mode_is_rejected(sio):
    with pytest.raises(ValueError):
        make_app(None, sio, identity_mode="bogus")
