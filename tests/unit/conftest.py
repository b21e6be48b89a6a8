"""
Shared fixtures for FMF access gate unit tests.

Uses an in-memory SQLite database - no docker required. DATABASE_URL is
pointed at SQLite before any service module is imported so the module-level
engine never needs a postgres driver or server.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from fmf.services.shared.database import build_engine, create_all_tables, get_db  # noqa: E402
from fmf.services.shared.identity import DatabaseIdentityStore  # noqa: E402
from fmf.services.shared.models import StaffRole  # noqa: E402

ADMIN_EMAIL = "owner@fmf.gym"
CS_EMAIL    = "desk@fmf.gym"
PASSWORD    = "correct-horse"


def make_engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    create_all_tables(bind=engine)
    return engine


@pytest.fixture
def db():
    engine = make_engine()
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def identity(db):
    return DatabaseIdentityStore(db)


@pytest.fixture
def admin(identity):
    return identity.create_staff(ADMIN_EMAIL, PASSWORD, "Gym Owner", StaffRole.ADMIN)


@pytest.fixture
def cs(identity):
    return identity.create_staff(CS_EMAIL, PASSWORD, "Front Desk", StaffRole.CS)


@pytest.fixture
def client(db):
    """TestClient whose requests all share the fixture session."""
    from fastapi.testclient import TestClient
    from fmf.services.access.main import app

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
