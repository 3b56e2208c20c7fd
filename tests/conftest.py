from contextlib import contextmanager

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event, text

from eventapp.api import create_app
from eventapp.config import Settings
from eventapp.services import build_services

TEST_SECRET = "test-secret-0123456789abcdef0123456789"


@pytest.fixture
def settings():
    """Settings for an isolated in-memory database and cheap password hashing."""
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        jwt_secret=TEST_SECRET,
        argon2_time_cost=1,
        argon2_memory_cost=1024,
        argon2_parallelism=1,
    )


@pytest.fixture
def services(settings):
    services = build_services(settings)
    services.db.init_db()
    yield services
    services.db.dispose()


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as client:
        yield client


def register(client, email="a@x.com", password="password1", name="Ann"):
    return client.post(
        "/auth/register", json={"email": email, "password": password, "name": name}
    )


def login_headers(client, email="a@x.com", password="password1", name="Ann"):
    """Register (if needed) and log in, returning an Authorization header."""
    register(client, email, password, name)
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest.fixture
def auth_headers(client):
    return login_headers(client)


@contextmanager
def conflicting_insert(services, statement, params):
    """Run a raw INSERT just before the next flush, as a concurrent writer would."""
    fired = []

    def insert_first(session, flush_context, instances):
        if not fired:
            fired.append(True)
            session.connection().execute(text(statement), params)

    event.listen(services.db.SessionLocal, "before_flush", insert_first)
    try:
        yield
    finally:
        event.remove(services.db.SessionLocal, "before_flush", insert_first)
    assert fired, "no flush happened inside the block"
