from tests.conftest import auth_headers


def test_register_then_login(client):
    resp = client.post(
        "/auth/register",
        json={"name": "Dana", "email": "Dana@Example.com", "password": "secret123"},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "dana@example.com"
    assert body["user"]["role"] == "user"

    login = client.post("/auth/login", json={"email": "dana@example.com", "password": "secret123"})
    assert login.status_code == 200

    me = client.get("/users/me", headers={"Authorization": f"Bearer {login.json()['access_token']}"})
    assert me.json()["name"] == "Dana"


def test_register_duplicate_email(client, user):
    resp = client.post(
        "/auth/register",
        json={"name": "Again", "email": user.email, "password": "secret123"},
    )
    assert resp.status_code == 400


def test_login_wrong_password(client, user):
    resp = client.post("/auth/login", json={"email": user.email, "password": "nope-nope"})
    assert resp.status_code == 401


def test_invalid_token(client):
    resp = client.get("/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


def test_update_profile_name(client, user):
    resp = client.put("/users/me", json={"name": "Renamed"}, headers=auth_headers(user))
    assert resp.status_code == 200
    assert resp.json()["name"] == "Renamed"


def test_health_check(client):
    body = client.get("/health/check").json()
    assert body["status"] == "ok"
    assert body["database"] == "ok"
