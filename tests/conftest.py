# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

# Set test environment before importing app
os.environ["DARE_DATABASE_URL"] = "sqlite:///./test.db"
os.environ["DARE_LOG_LEVEL"] = "WARNING"

from dare.config import settings
from dare.database import build_engine, get_db
from dare.main import app
from dare.models import Base, User
from dare.services import rbac_service
from dare.services.rbac_seed_service import seed_rbac_data

# Test database setup
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = build_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

AUTH_HEADER = settings.auth_user_header


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def seeded(db_session):
    """Database with the default roles and grants."""
    seed_rbac_data(db_session)
    return db_session


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with database override."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    """Factory creating an active user holding the named role."""

    def _make_user(username: str, role_name: str | None) -> User:
        role = rbac_service.get_role_by_name(db_session, role_name) if role_name else None
        user = User(
            username=username,
            full_name=username.title(),
            email=f"{username}@example.com",
            role_id=role.id if role else None,
            is_active=True,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


def _client_as(client, username):
    client.headers[AUTH_HEADER] = username
    return client


@pytest.fixture
def admin_client(client, seeded, make_user):
    """Client authenticated as a user holding the admin role."""
    make_user("admin", "admin")
    return _client_as(client, "admin")


@pytest.fixture
def mentor_client(client, seeded, make_user):
    """Client authenticated as a user holding the mentor role."""
    make_user("mentor", "mentor")
    return _client_as(client, "mentor")


@pytest.fixture
def manager_client(client, seeded, make_user):
    """Client authenticated as a user holding the manager role."""
    make_user("manager", "manager")
    return _client_as(client, "manager")
