# tests/test_auth_api.py
import pytest
from httpx import ASGITransport, AsyncClient

from mediq import crud, models
from conftest import DOCTOR


@pytest.fixture
async def async_client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def _counts(db):
    db.expire_all()
    return db.query(models.Hospital).count(), db.query(models.User).count()


async def test_register_creates_hospital_and_doctor(async_client, db):
    response = await async_client.post("/api/auth/register", json=DOCTOR)

    assert response.status_code == 201
    assert response.json() == {"message": "Hospital and doctor registered successfully"}

    user = db.query(models.User).filter_by(email=DOCTOR["email"]).one()
    assert user.role == models.UserRole.doctor
    assert user.full_name == DOCTOR["fullName"]
    assert user.password != DOCTOR["password"]
    assert user.hospital.name == DOCTOR["hospitalName"]


@pytest.mark.parametrize("field, value", [
    ("fullName", "A"),
    ("email", "not-an-email"),
    ("password", "12345"),
    ("hospitalName", "X"),
])
async def test_register_rejects_invalid_fields(async_client, db, field, value):
    response = await async_client.post("/api/auth/register", json={**DOCTOR, field: value})

    assert response.status_code == 400
    assert field in response.json()["error"]
    assert _counts(db) == (0, 0)


async def test_register_reports_missing_fields(async_client, db):
    response = await async_client.post("/api/auth/register", json={"email": DOCTOR["email"]})

    assert response.status_code == 400
    errors = response.json()["error"]
    assert {"fullName", "password", "hospitalName"} <= set(errors)
    assert _counts(db) == (0, 0)


async def test_register_same_email_twice_conflicts(async_client, db):
    first = await async_client.post("/api/auth/register", json=DOCTOR)
    second = await async_client.post(
        "/api/auth/register", json={**DOCTOR, "hospitalName": "Another Hospital"}
    )

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json() == {"error": "User with this email already exists"}
    assert _counts(db) == (1, 1)


async def test_register_race_on_email_maps_store_conflict_to_409(async_client, db, monkeypatch):
    first = await async_client.post("/api/auth/register", json=DOCTOR)
    assert first.status_code == 201

    # Simulate the second request passing the pre-check before the first commits
    monkeypatch.setattr(crud, "get_user_by_email", lambda db, email: None)
    second = await async_client.post(
        "/api/auth/register", json={**DOCTOR, "hospitalName": "Racing Hospital"}
    )

    assert second.status_code == 409
    assert second.json() == {"error": "User with this email already exists"}
    # The hospital row of the failed attempt was rolled back with it
    assert _counts(db) == (1, 1)


async def test_register_failure_after_hospital_insert_leaves_no_orphan(async_client, db, monkeypatch):
    def broken_hash(password):
        raise RuntimeError("hashing backend unavailable")

    monkeypatch.setattr(crud, "get_password_hash", broken_hash)
    response = await async_client.post("/api/auth/register", json=DOCTOR)

    assert response.status_code == 500
    assert response.json() == {"error": "Internal Server Error"}
    assert "hashing backend" not in response.text
    assert _counts(db) == (0, 0)


async def test_login_sets_session_cookie_and_returns_sanitized_user(async_client, token_service, db):
    await async_client.post("/api/auth/register", json=DOCTOR)

    response = await async_client.post(
        "/api/auth/login", json={"email": DOCTOR["email"], "password": DOCTOR["password"]}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Logged in successfully"
    user = db.query(models.User).filter_by(email=DOCTOR["email"]).one()
    assert body["user"] == {
        "id": user.id,
        "fullName": DOCTOR["fullName"],
        "email": DOCTOR["email"],
        "role": "doctor",
        "hospitalId": user.hospital_id,
    }
    assert "password" not in response.text

    cookie_header = response.headers["set-cookie"]
    assert cookie_header.startswith("token=")
    assert "HttpOnly" in cookie_header
    assert "Max-Age=86400" in cookie_header
    assert "Path=/" in cookie_header
    assert "samesite=lax" in cookie_header.lower()
    assert "Secure" not in cookie_header

    token = response.cookies["token"]
    assert token_service.verify_token(token) == {"id": user.id, "email": DOCTOR["email"], "role": "doctor"}


async def test_login_failures_are_indistinguishable(async_client):
    await async_client.post("/api/auth/register", json=DOCTOR)

    wrong_password = await async_client.post(
        "/api/auth/login", json={"email": DOCTOR["email"], "password": "wrong-password"}
    )
    unknown_email = await async_client.post(
        "/api/auth/login", json={"email": "nobody@stmarys.org", "password": DOCTOR["password"]}
    )

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.content == unknown_email.content
    assert wrong_password.json() == {"error": "Invalid email or password"}
    assert "set-cookie" not in wrong_password.headers


async def test_login_rejects_malformed_body(async_client):
    response = await async_client.post("/api/auth/login", json={"email": "nope"})

    assert response.status_code == 400
    assert set(response.json()["error"]) == {"email", "password"}


async def test_login_cookie_is_secure_in_production(settings, engine):
    from mediq.main import create_app

    production = settings.model_copy(update={"environment": "production"})
    app = create_app(production, engine=engine)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="https://test") as ac:
        await ac.post("/api/auth/register", json=DOCTOR)
        response = await ac.post(
            "/api/auth/login", json={"email": DOCTOR["email"], "password": DOCTOR["password"]}
        )

    assert response.status_code == 200
    assert "Secure" in response.headers["set-cookie"]


def test_me_returns_current_user(doctor_client):
    response = doctor_client.get("/api/auth/me")

    assert response.status_code == 200
    assert response.json()["email"] == DOCTOR["email"]
    assert response.json()["role"] == "doctor"


def test_me_accepts_bearer_token(client, registered_doctor, token_service, db):
    user = db.query(models.User).filter_by(email=DOCTOR["email"]).one()
    token = token_service.create_access_token({"id": user.id, "email": user.email, "role": user.role})

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json()["id"] == user.id


def test_me_requires_valid_token(client):
    assert client.get("/api/auth/me").status_code == 401

    response = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


def test_logout_clears_session_cookie(doctor_client):
    response = doctor_client.post("/api/auth/logout")

    assert response.status_code == 200
    assert 'token=""' in response.headers["set-cookie"] or "Max-Age=0" in response.headers["set-cookie"]
    assert doctor_client.get("/api/auth/me").status_code == 401
