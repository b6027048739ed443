"""
Pytest configuration and fixtures for backend testing.

Provides an in-memory SQLite database per test, a FastAPI test client bound
to it, users with matching authentication headers, and sample data.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from typing import Dict, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from timeflow.api.main import app
from timeflow.auth.jwt_handler import JWTHandler, get_password_hash
from timeflow.database.connection import get_db, create_tables, drop_tables
from timeflow.database.models import User, UserRole
from timeflow.database.storage import Storage

from timeflow.tests.test_base import TEST_PASSWORD


@pytest.fixture(scope="session")
def password_hash() -> str:
    """Hash of TEST_PASSWORD, computed once since bcrypt is slow."""
    return get_password_hash(TEST_PASSWORD)


@pytest.fixture(scope="function")
def engine():
    """Create a fresh in-memory database for each test."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(bind=test_engine)
    yield test_engine
    drop_tables(bind=test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine) -> Generator[Session, None, None]:
    """Create a database session for testing."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def storage(db_session) -> Storage:
    return Storage(db_session)


@pytest.fixture(scope="function")
def client(db_session):
    """Create FastAPI test client with database dependency override."""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_user(storage: Storage, password_hash: str, username: str, full_name: str,
              role: str = UserRole.USER.value, **fields) -> User:
    return storage.create_user(
        username=username,
        email=f"{username}@example.com",
        full_name=full_name,
        password_hash=password_hash,
        role=role,
        **fields
    )


def auth_headers_for(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {JWTHandler.create_user_token(user.id, user.username, user.role)}"}


@pytest.fixture
def admin_user(storage, password_hash) -> User:
    return make_user(storage, password_hash, "admin", "Ada Admin", role=UserRole.ADMIN.value)


@pytest.fixture
def regular_user(storage, password_hash) -> User:
    return make_user(storage, password_hash, "maria", "Maria Silva")


@pytest.fixture
def other_user(storage, password_hash) -> User:
    return make_user(storage, password_hash, "joao", "Joao Souza")


@pytest.fixture
def admin_headers(admin_user) -> Dict[str, str]:
    return auth_headers_for(admin_user)


@pytest.fixture
def auth_headers(regular_user) -> Dict[str, str]:
    return auth_headers_for(regular_user)


@pytest.fixture
def other_headers(other_user) -> Dict[str, str]:
    return auth_headers_for(other_user)


@pytest.fixture
def team(storage, regular_user):
    """Team managed by regular_user."""
    team = storage.create_team(name="Platform Team", description="Builds the platform")
    storage.add_team_member(team.id, regular_user.id)
    storage.add_team_manager(team.id, regular_user.id)
    return team


@pytest.fixture
def shared_project(storage, regular_user, team):
    """Project owned by regular_user and shared with their team."""
    project = storage.create_project(name="Website Redesign", owner_id=regular_user.id)
    storage.bind_project_to_team(project.id, team.id)
    return project


@pytest.fixture
def sample_user_data() -> Dict:
    return {
        "username": "carla",
        "email": "carla@example.com",
        "full_name": "Carla Mendes",
        "role": "user"
    }


@pytest.fixture
def sample_setup_data() -> Dict:
    return {
        "username": "root",
        "email": "root@example.com",
        "full_name": "Root Admin",
        "password": TEST_PASSWORD
    }
