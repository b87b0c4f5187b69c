from dotenv import load_dotenv

load_dotenv(".env")

import os
import pathlib
import sys
import tempfile
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

# Ensure project root on sys.path for application imports
PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Environment needed before any application module is imported
_fd, _DB_PATH = tempfile.mkstemp(prefix="test_db_", suffix=".sqlite")
os.close(_fd)
os.environ["DATABASE_URL"] = os.getenv("DATABASE_URL_TEST") or f"sqlite:///{_DB_PATH}"
os.environ.setdefault("JWT_SECRET_KEY", "testsecret")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", "1440")
os.environ["LOGFIRE_TOKEN"] = ""
os.environ["ENVIRONMENT"] = "test"
# Never reach the hosted model from the suite
os.environ["DEBUG"] = "1"


@pytest.fixture(scope="session")
def test_db_url():
    return os.environ["DATABASE_URL"]


@pytest.fixture(scope="session")
def app(test_db_url):  # noqa: D401
    from main import app as fastapi_app

    return fastapi_app


@pytest.fixture(scope="session")
def engine(app):
    from database.database import Base, engine as engine_

    Base.metadata.create_all(bind=engine_)
    return engine_


@pytest.fixture(scope="function")
def db_session(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def _override_dependency(app, engine):
    from database.database import get_db

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def _get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    yield
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


#########################
# Helper functions – API only
#########################


def _uniq(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


def register(client, *, role: str = "PATIENT", name: str = "Test User", email: str = None, password: str = "password123"):
    """Register an account and return (headers, user)."""
    email = email or f"{_uniq(role.lower())}@example.com"
    r = client.post(
        "/user/register",
        json={"name": name, "email": email, "password": password, "role": role},
    )
    assert r.status_code == 200, r.text
    body = r.json()
    return {"Authorization": f"Bearer {body['token']}"}, body["user"]


def raise_ticket(client, headers, *, title: str = "Fever", issue: str = "High fever for three days"):
    r = client.post(
        "/patient/request",
        json={"title": title, "issue": issue, "name": "Pat", "age": 40},
        headers=headers,
    )
    assert r.status_code == 200, r.text
    return r.json()["data"]


def assign(client, headers, request_id: str):
    r = client.post(f"/volunteer/assign/{request_id}", headers=headers)
    assert r.status_code == 200, r.text
    return r.json()["data"]


@pytest.fixture()
def patient(client):
    return register(client, role="PATIENT", name="Patty Patient")


@pytest.fixture()
def volunteer(client):
    return register(client, role="VOLUNTEER", name="Val Volunteer")


@pytest.fixture()
def assigned_ticket(client, patient, volunteer):
    """A ticket raised by ``patient`` and claimed by ``volunteer``."""
    ticket = raise_ticket(client, patient[0])
    assign(client, volunteer[0], ticket["id"])
    return ticket
