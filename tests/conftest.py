"""Shared test configuration and fixtures."""
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Generator
from uuid import UUID

import pytest

# Set up test environment variables before any imports
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SESSION_SECRET", "test-session-secret-for-testing-only-0123456789")
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("LOG_LEVEL", "ERROR")

# Add project root to path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from ehs.auth.passwords import hash_password  # noqa: E402
from ehs.auth.roles import Role  # noqa: E402
from ehs.auth.tokens import issue_session_token  # noqa: E402
from ehs.config import Settings  # noqa: E402
from ehs.db.connection import DatabaseConnectionManager  # noqa: E402
from ehs.db.models import Tenant, TenantStatus, User, UserTenant  # noqa: E402
from ehs.main import create_app  # noqa: E402
from ehs.services.auth_service import build_session_user  # noqa: E402

TEST_SECRET = "test-session-secret-for-testing-only-0123456789"
TEST_PASSWORD = "Passord123!"

TENANT_ROLES = (
    Role.ADMIN,
    Role.HMS,
    Role.LEDER,
    Role.VERNEOMBUD,
    Role.ANSATT,
    Role.BHT,
    Role.REVISOR,
)


@dataclass
class SeedData:
    """Ids of the seeded tenants and users."""

    tenant_a: UUID
    tenant_b: UUID
    users: dict[str, UUID] = field(default_factory=dict)


@pytest.fixture
def settings() -> Settings:
    """Complete, valid settings for tests."""
    return Settings(
        app_env="testing",
        app_url="http://testserver",
        log_level="ERROR",
        database_url="sqlite://",
        session_secret=TEST_SECRET,
        cookie_secure=False,
        resend_api_key="re_test_key",
        upstash_redis_rest_url="https://redis.example.com",
        upstash_redis_rest_token="test-token",
    )


@pytest.fixture(scope="session")
def password_hash() -> str:
    """bcrypt is slow on purpose; hash the shared test password once."""
    return hash_password(TEST_PASSWORD)


@pytest.fixture
def db_manager() -> Generator[DatabaseConnectionManager, None, None]:
    """Fresh in-memory SQLite database per test."""
    manager = DatabaseConnectionManager("sqlite://")
    manager.create_tables()
    yield manager
    manager.drop_tables()
    manager.dispose()


@pytest.fixture
def seed(db_manager: DatabaseConnectionManager, password_hash: str) -> SeedData:
    """
    Two tenants and one user per role.

    - Tenant A ("Bedrift A") has a member for every role, keyed by the
      lower-case role name ("admin", "hms", ...).
    - Tenant B ("Bedrift B") has its own admin ("admin_b").
    - "multi" belongs to both tenants, "superadmin" and "support" to none.
    """
    with db_manager.get_session() as session:
        tenant_a = Tenant(name="Bedrift A", slug="bedrift-a", status=TenantStatus.ACTIVE)
        tenant_b = Tenant(name="Bedrift B", slug="bedrift-b", status=TenantStatus.ACTIVE)
        session.add_all([tenant_a, tenant_b])
        session.flush()

        data = SeedData(tenant_a=tenant_a.id, tenant_b=tenant_b.id)

        def add_user(key: str, email: str, **flags: bool) -> User:
            user = User(email=email, name=key.title(), password_hash=password_hash, **flags)
            session.add(user)
            session.flush()
            data.users[key] = user.id
            return user

        for role in TENANT_ROLES:
            user = add_user(role.value.lower(), f"{role.value.lower()}@bedrift-a.no")
            session.add(UserTenant(user_id=user.id, tenant_id=tenant_a.id, role=role))

        admin_b = add_user("admin_b", "admin@bedrift-b.no")
        session.add(UserTenant(user_id=admin_b.id, tenant_id=tenant_b.id, role=Role.ADMIN))

        multi = add_user("multi", "konsulent@bedrift-a.no")
        session.add(UserTenant(user_id=multi.id, tenant_id=tenant_a.id, role=Role.LEDER))
        session.add(UserTenant(user_id=multi.id, tenant_id=tenant_b.id, role=Role.ANSATT))

        add_user("superadmin", "superadmin@ehs-platform.no", is_superadmin=True)
        add_user("support", "support@ehs-platform.no", is_support=True)

    return data


@pytest.fixture
def app(settings: Settings, db_manager: DatabaseConnectionManager) -> FastAPI:
    return create_app(settings=settings, db_manager=db_manager)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Test client; lifespan is not run, state comes from create_app."""
    return TestClient(app)


@pytest.fixture
def token_for(
    seed: SeedData,
    settings: Settings,
    db_manager: DatabaseConnectionManager,
) -> Callable[[str], str]:
    """Issue a session token for a seeded user, as login would."""
    def _token_for(key: str) -> str:
        with db_manager.get_session() as session:
            user = session.get(User, seed.users[key])
            session_user = build_session_user(session, user)
        return issue_session_token(session_user, settings)

    return _token_for


@pytest.fixture
def auth_headers(token_for: Callable[[str], str]) -> Callable[[str], dict[str, str]]:
    """Bearer headers for a seeded user."""
    def _auth_headers(key: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_for(key)}"}

    return _auth_headers
