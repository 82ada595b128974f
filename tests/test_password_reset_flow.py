from conftest import RecordingSink

PASSWORD = "Abcd123!"
NEW_PASSWORD = "Wxyz789#"


def _verified_account(client, sink: RecordingSink, email: str) -> None:
    client.post("/api/v1/auth/signup", json={"email": email, "password": PASSWORD})
    client.get("/api/v1/auth/verify-email", params={"token": sink.last_token("verification")})


def test_reset_request_never_reveals_existence(client, sink: RecordingSink):
    _verified_account(client, sink, "real@example.com")

    known = client.post("/api/v1/auth/send-password-reset-email", json={"email": "real@example.com"})
    unknown = client.post("/api/v1/auth/send-password-reset-email", json={"email": "ghost@example.com"})

    assert known.status_code == unknown.status_code == 204
    assert known.content == unknown.content == b""


def test_reset_password_end_to_end(client, sink: RecordingSink):
    _verified_account(client, sink, "reset@example.com")
    client.post("/api/v1/auth/send-password-reset-email", json={"email": "reset@example.com"})
    token = sink.last_token("password_reset")

    res = client.post("/api/v1/auth/reset-password", json={"token": token, "newPassword": NEW_PASSWORD})
    assert res.status_code == 200

    old_login = client.post("/api/v1/auth/login", json={"email": "reset@example.com", "password": PASSWORD})
    assert old_login.status_code == 401
    new_login = client.post("/api/v1/auth/login", json={"email": "reset@example.com", "password": NEW_PASSWORD})
    assert new_login.status_code == 200

    replay = client.post("/api/v1/auth/reset-password", json={"token": token, "new_password": "Other789#"})
    assert replay.status_code == 401


def test_reset_password_with_unknown_token(client):
    res = client.post("/api/v1/auth/reset-password", json={"token": "garbage", "newPassword": NEW_PASSWORD})

    assert res.status_code == 401


def test_reset_password_enforces_password_policy(client, sink: RecordingSink):
    res = client.post("/api/v1/auth/reset-password", json={"token": "whatever", "newPassword": "short"})

    assert res.status_code == 422


def test_reset_request_send_failure_returns_500(client, sink: RecordingSink):
    _verified_account(client, sink, "broken@example.com")
    sink.fail = True

    res = client.post("/api/v1/auth/send-password-reset-email", json={"email": "broken@example.com"})

    assert res.status_code == 500
    assert res.json()["code"] == "INTERNAL_ERROR"


def test_reset_request_is_rate_limited(client, sink: RecordingSink):
    for _ in range(3):
        assert client.post("/api/v1/auth/send-password-reset-email", json={"email": "ghost@example.com"}).status_code == 204

    blocked = client.post("/api/v1/auth/send-password-reset-email", json={"email": "ghost@example.com"})
    assert blocked.status_code == 429
