from datetime import timedelta

from auth import create_token


def register(client, **overrides):
    body = {"username": "mira", "email": "Mira@Example.com", "password": "s3cret"}
    body.update(overrides)
    return client.post("/api/auth/register", json=body)


def test_register_and_login(client, db):
    resp = register(client)
    assert resp.status_code == 201
    assert resp.json()["success"] is True

    stored = db["user"].find_one({"username": "mira"})
    assert stored["email"] == "mira@example.com"
    assert stored["password"] != "s3cret"
    assert stored["role"] == "user"

    resp = client.post("/api/auth/login", json={"email": "mira@example.com", "password": "s3cret"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["user"]["username"] == "mira"
    assert "password" not in data["user"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"}).json()
    assert me["user"]["email"] == "mira@example.com"
    assert "password" not in me["user"]


def test_register_requires_all_fields(client):
    resp = register(client, password="")
    assert resp.status_code == 400
    assert resp.json()["message"] == "All fields are required."


def test_register_rejects_existing_user(client):
    register(client)
    resp = register(client, email="other@example.com")
    assert resp.status_code == 400
    assert resp.json()["message"] == "User already exists."


def test_login_rejects_bad_password(client):
    register(client)
    resp = client.post("/api/auth/login", json={"email": "mira@example.com", "password": "wrong"})
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Invalid credentials."}


def test_expired_token_is_rejected(client):
    token = create_token("user-1", expires_delta=timedelta(seconds=-10))
    resp = client.get("/api/playlist/my", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid token."


def test_admin_routes_reject_regular_users(client, user_headers):
    resp = client.get("/api/analytics", headers=user_headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "Admin access required."


def test_self_registration_cannot_claim_admin(client, db):
    resp = register(client, role="admin")
    assert resp.status_code == 403
    assert resp.json()["message"] == "Admin access required."
    assert db["user"].count_documents({}) == 0


def test_admin_can_register_another_admin(client, db, admin_headers):
    resp = client.post(
        "/api/auth/register",
        json={"username": "ops", "email": "ops@example.com", "password": "pw", "role": "admin"},
        headers=admin_headers,
    )
    assert resp.status_code == 201
    assert db["user"].find_one({"username": "ops"})["role"] == "admin"
