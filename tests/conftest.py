# tests/conftest.py
# PURPOSE: create a TestClient and override the DB dependency to use a temp SQLite file.

# Ensure project root is on sys.path so `import taskforge` works when running pytest.
import sys, os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

# Settings are read at import time: cheap bcrypt, in-memory default DB
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

import tempfile
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from taskforge.db import Base, enable_sqlite_foreign_keys, get_db  # DB metadata + dependency to override
from taskforge.main import app  # FastAPI app
from taskforge.rate_limit import limiter


@pytest.fixture()
def session_factory():
    # 1) Create a temporary SQLite file (so data is isolated per test)
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    test_db_url = f"sqlite:///{tmp.name}"

    # 2) Create a new engine/session factory for tests; cascades need FK enforcement
    engine = create_engine(test_db_url, connect_args={"check_same_thread": False})
    enable_sqlite_foreign_keys(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    # 3) Create tables for tests
    Base.metadata.create_all(bind=engine)

    yield TestingSessionLocal

    # Cleanup: drop tables, dispose engine, delete temp file
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    os.unlink(tmp.name)


@pytest.fixture()
def db_session(session_factory):
    """A session on the test database for arranging data the API has no endpoint for."""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(session_factory):
    # Override the app's get_db dependency to use the test session factory
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    limiter.reset()

    # TestClient as context manager runs startup/shutdown
    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
    limiter.reset()


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def register(client):
    """Register a user; returns (user_json, token)."""

    def _register(email: str, password: str = "password123", **extra):
        r = client.post("/api/auth/register", json={"email": email, "password": password, **extra})
        assert r.status_code == 201, r.text
        body = r.json()
        return body["user"], body["token"]

    return _register


@pytest.fixture()
def create_org(client):
    """Create an organization as the token's user; returns the response JSON."""

    def _create_org(token: str, slug: str = "acme", name: str = "Acme"):
        r = client.post("/api/organizations", json={"name": name, "slug": slug}, headers=auth_headers(token))
        assert r.status_code == 201, r.text
        return r.json()

    return _create_org


@pytest.fixture()
def add_member(db_session):
    """Insert a membership row directly (no endpoint adds members)."""
    import uuid
    from taskforge.store_db import add_member as db_add_member

    def _add_member(org_id: str, user_id: str, role: str = "member"):
        return db_add_member(db_session, uuid.UUID(org_id), uuid.UUID(user_id), role)

    return _add_member
