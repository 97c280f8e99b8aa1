from tests.conftest import PASSWORD


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
    assert r.headers.get("X-Request-ID")


def test_register_creates_plain_user(client):
    r = client.post(
        "/api/auth/register",
        json={"name": "New Person", "email": "New@Example.com", "password": "secret1"},
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["success"] is True
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "new@example.com"
    assert body["user"]["role"] == "user"

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["data"]["name"] == "New Person"


def test_register_duplicate_is_conflict(client, user):
    r = client.post("/api/auth/register", json={"name": "Dup", "email": user.email, "password": "secret1"})
    assert r.status_code == 409
    assert r.json() == {"success": False, "detail": "User already exists"}


def test_register_short_password_is_validation_error(client):
    r = client.post("/api/auth/register", json={"name": "X", "email": "x@example.com", "password": "123"})
    assert r.status_code == 422
    body = r.json()
    assert body["success"] is False
    assert any(e["field"] == "password" for e in body["errors"])


def test_login(client, firstline):
    r = client.post("/api/auth/login", json={"email": firstline.email, "password": PASSWORD})
    assert r.status_code == 200, r.text
    assert r.json()["user"]["role"] == "firstline"


def test_login_wrong_password(client, user):
    r = client.post("/api/auth/login", json={"email": user.email, "password": "wrong-password"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid credentials"


def test_login_unknown_email(client):
    r = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": PASSWORD})
    assert r.status_code == 401


def test_form_token_endpoint(client, admin):
    r = client.post("/api/auth/token", data={"username": admin.email, "password": PASSWORD})
    assert r.status_code == 200
    assert r.json()["token_type"] == "bearer"


def test_missing_token(client):
    r = client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.json()["success"] is False


def test_garbage_token(client):
    r = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid or expired token"


def test_register_race_on_email_is_conflict(client, user, monkeypatch):
    from helpdesk.services import auth as auth_service

    async def nobody(db, email):
        return None

    # перевірка "чи існує" проскакує, спрацьовує унікальний індекс
    monkeypatch.setattr(auth_service, "get_user_by_email", nobody)
    r = client.post("/api/auth/register", json={"name": "Twin", "email": user.email, "password": "secret1"})
    assert r.status_code == 409
    assert r.json() == {"success": False, "detail": "User already exists"}
