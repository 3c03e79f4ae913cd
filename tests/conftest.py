import os
import uuid
from pathlib import Path

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("REDIS_URL", "memory://")
os.environ.setdefault("JWT_KEY", "test-signing-key-that-is-long-enough-for-hs256")
os.environ.setdefault("JWT_ISSUER", "cinema-api-tests")
os.environ.setdefault("JWT_AUDIENCE", "cinema-api-clients")

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import cinema_api.models.user
import cinema_api.models.catalog

from cinema_api.main import app
from cinema_api.core.config import get_settings
from cinema_api.core.database import Base, get_db
from cinema_api.core.revocation import InMemoryRevocationStore
from cinema_api.core.security import get_revocation_store


TEST_DATABASE_URL = os.environ["DATABASE_URL"]

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def prepare_db():
    try:
        Path("./test.db").unlink()
    except FileNotFoundError:
        pass
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    Path("./test.db").unlink(missing_ok=True)


@pytest.fixture
def db_session():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store():
    return InMemoryRevocationStore()


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def client(db_session, store):
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_revocation_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def random_username():
    return f"user_{uuid.uuid4().hex[:8]}"


def register(client, username=None, password="StrongPass1", role="User"):
    username = username or random_username()
    r = client.post(
        "/api/auth/register",
        json={
            "username": username,
            "email": f"{username}@x.com",
            "password": password,
            "role": role,
        },
    )
    assert r.status_code == 200, r.text
    return username, r.json()["token"]


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


def decode(token, settings):
    return jwt.decode(
        token,
        settings.jwt.key,
        algorithms=[settings.jwt.algorithm],
        audience=settings.jwt.audience,
        issuer=settings.jwt.issuer,
    )


@pytest.fixture
def user_headers(client):
    _, token = register(client)
    return auth_headers(token)


@pytest.fixture
def admin_headers(client):
    _, token = register(client, role="Admin")
    return auth_headers(token)
