"""
Shared fixtures: an in-memory database per test, fast bcrypt, and a
TestClient wired to both.
"""

import os

# configure before paytrack reads its env
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient

from paytrack.auth import AuthorizationGuard, Principal
from paytrack.db import Base, get_db, make_engine, make_session_factory
from paytrack.deps import get_credentials, get_tokens
from paytrack.main import app
from paytrack.repository import UserRepository
from paytrack.schemas import RegisterIn
from paytrack.security import CredentialStore, TokenIssuer
from paytrack.service import AccountService

from paytrack import models  # noqa: F401  register tables


@pytest.fixture
def engine():
    eng = make_engine("sqlite://")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def credentials():
    """bcrypt at its minimum work factor keeps the suite fast"""
    return CredentialStore(rounds=4)


@pytest.fixture
def tokens():
    return TokenIssuer(secret="test-secret", expire_minutes=60 * 24)


@pytest.fixture
def guard(tokens):
    return AuthorizationGuard(tokens)


@pytest.fixture
def repo(db):
    return UserRepository(db)


@pytest.fixture
def service(db, credentials, tokens):
    return AccountService(db, credentials, tokens)


@pytest.fixture
def admin(service, repo):
    """A registered user promoted to admin"""
    user = service.register(RegisterIn(username="root", email="root@example.com", password="rootpw")).value
    return repo.update(user.id, {"role": "admin"}).value


@pytest.fixture
def alice(service):
    return service.register(RegisterIn(username="alice", email="alice@example.com", password="alicepw")).value


@pytest.fixture
def bob(service):
    return service.register(RegisterIn(username="bob", email="bob@example.com", password="bobpw")).value


@pytest.fixture
def admin_principal(admin):
    return Principal(subject_id=admin.id, role="admin")


@pytest.fixture
def alice_principal(alice):
    return Principal(subject_id=alice.id, role="user")


@pytest.fixture
def client(session_factory, credentials, tokens):
    """TestClient whose requests use the per-test database"""

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_credentials] = lambda: credentials
    app.dependency_overrides[get_tokens] = lambda: tokens
    # not used as a context manager: the lifespan would touch the module engine
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_header(tokens):
    def _header(user):
        return {"Authorization": f"Bearer {tokens.issue(user.id, user.role)}"}
    return _header
