# tests/conftest.py
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from mediq import models
from mediq.config import Settings
from mediq.database import SessionLocal, drop_tables, init_engine
from mediq.main import create_app
from mediq.security import get_password_hash

TEST_SECRET = "mediq-test-secret-key-0123456789abcdef"

DOCTOR = {
    "fullName": "Dr. Ada Mensah",
    "email": "ada@stmarys.org",
    "password": "s3cure-pass",
    "hospitalName": "St. Mary's General",
}


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        JWT_SECRET=TEST_SECRET,
        DATABASE_URL="sqlite://",
        ENVIRONMENT="testing",
    )


@pytest.fixture
def engine():
    # One shared in-memory database for the app and the test session
    engine = init_engine("sqlite://", poolclass=StaticPool)
    yield engine
    drop_tables(engine)
    engine.dispose()


@pytest.fixture
def app(settings, engine):
    return create_app(settings, engine=engine)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db(app):
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def token_service(app):
    return app.state.token_service


@pytest.fixture
def hospital(db):
    hospital = models.Hospital(name="Riverside Clinic")
    db.add(hospital)
    db.commit()
    db.refresh(hospital)
    return hospital


@pytest.fixture
def make_user(db):
    def _make_user(email, full_name="Pat Patient", role=models.UserRole.patient,
                   hospital_id=None, password="patient-pass"):
        user = models.User(
            full_name=full_name,
            email=email,
            password=get_password_hash(password),
            role=role,
            hospital_id=hospital_id,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


@pytest.fixture
def make_queue_entry(db):
    def _make_queue_entry(hospital_id, priority, created_at, patient_id=None,
                          summary_id=None, status=models.QueueStatus.waiting):
        entry = models.QueueEntry(
            hospital_id=hospital_id,
            patient_id=patient_id,
            summary_id=summary_id,
            priority=priority,
            status=status,
            created_at=created_at,
        )
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry
    return _make_queue_entry


@pytest.fixture
def registered_doctor(client):
    response = client.post("/api/auth/register", json=DOCTOR)
    assert response.status_code == 201
    return DOCTOR


@pytest.fixture
def doctor_client(client, registered_doctor):
    response = client.post(
        "/api/auth/login",
        json={"email": registered_doctor["email"], "password": registered_doctor["password"]},
    )
    assert response.status_code == 200
    return client
