"""Tests for credential login, lockout and tenant selection."""
import logging
from datetime import datetime, timedelta
from uuid import uuid4

import pytest

from conftest import TEST_PASSWORD, SeedData
from ehs.auth.roles import Role
from ehs.config import Settings
from ehs.db.connection import DatabaseConnectionManager
from ehs.db.models import Invoice, InvoiceStatus, Tenant, TenantStatus, User
from ehs.exceptions import (
    AccountLockedError,
    AuthenticationError,
    NotFoundError,
    PermissionDeniedError,
    TenantSuspendedError,
)
from ehs.services.auth_service import (
    authenticate,
    build_session_user,
    list_memberships,
    switch_tenant,
)


def login(db_manager: DatabaseConnectionManager, settings: Settings, email: str, password: str, now=None) -> User:
    with db_manager.get_session() as session:
        return authenticate(session, email, password, settings, now=now)


def set_tenant_status(db_manager: DatabaseConnectionManager, tenant_id, status: TenantStatus) -> None:
    with db_manager.get_session() as session:
        session.get(Tenant, tenant_id).status = status


class TestAuthenticate:
    """Credential verification."""

    def test_success(self, db_manager, seed: SeedData, settings: Settings) -> None:
        user = login(db_manager, settings, "hms@bedrift-a.no", TEST_PASSWORD)

        assert user.id == seed.users["hms"]

    def test_email_is_case_insensitive(self, db_manager, seed: SeedData, settings: Settings) -> None:
        user = login(db_manager, settings, "  HMS@Bedrift-A.no ", TEST_PASSWORD)

        assert user.id == seed.users["hms"]

    def test_unknown_email(self, db_manager, seed: SeedData, settings: Settings) -> None:
        with pytest.raises(AuthenticationError) as exc_info:
            login(db_manager, settings, "nobody@bedrift-a.no", TEST_PASSWORD)

        assert exc_info.value.message == "Invalid credentials"

    def test_user_without_password_cannot_log_in(self, db_manager, seed: SeedData, settings: Settings) -> None:
        with db_manager.get_session() as session:
            session.get(User, seed.users["bht"]).password_hash = None

        with pytest.raises(AuthenticationError):
            login(db_manager, settings, "bht@bedrift-a.no", "")

    def test_wrong_password_counts_attempts(self, db_manager, seed: SeedData, settings: Settings) -> None:
        with pytest.raises(AuthenticationError) as exc_info:
            login(db_manager, settings, "leder@bedrift-a.no", "wrong")

        assert "4 attempt(s) left" in exc_info.value.message
        with db_manager.get_session() as session:
            assert session.get(User, seed.users["leder"]).failed_login_attempts == 1

    def test_lockout_after_max_attempts(self, db_manager, seed: SeedData, settings: Settings) -> None:
        for _ in range(settings.max_login_attempts - 1):
            with pytest.raises(AuthenticationError):
                login(db_manager, settings, "leder@bedrift-a.no", "wrong")

        with pytest.raises(AccountLockedError) as exc_info:
            login(db_manager, settings, "leder@bedrift-a.no", "wrong")
        assert exc_info.value.retry_after == settings.lockout_minutes * 60

        # Correct password is refused while locked
        with pytest.raises(AccountLockedError):
            login(db_manager, settings, "leder@bedrift-a.no", TEST_PASSWORD)

        with db_manager.get_session() as session:
            user = session.get(User, seed.users["leder"])
            assert user.locked_until is not None
            assert user.failed_login_attempts == 0

    def test_lock_expires(self, db_manager, seed: SeedData, settings: Settings) -> None:
        with db_manager.get_session() as session:
            session.get(User, seed.users["leder"]).locked_until = datetime.utcnow() + timedelta(minutes=15)

        later = datetime.utcnow() + timedelta(minutes=16)
        user = login(db_manager, settings, "leder@bedrift-a.no", TEST_PASSWORD, now=later)

        assert user.locked_until is None

    def test_success_resets_counter(self, db_manager, seed: SeedData, settings: Settings) -> None:
        with pytest.raises(AuthenticationError):
            login(db_manager, settings, "leder@bedrift-a.no", "wrong")

        user = login(db_manager, settings, "leder@bedrift-a.no", TEST_PASSWORD)

        assert user.failed_login_attempts == 0


class TestTenantAccessOnLogin:
    """Suspended tenants and invoices."""

    def test_suspended_tenant_rejected(self, db_manager, seed: SeedData, settings: Settings) -> None:
        set_tenant_status(db_manager, seed.tenant_a, TenantStatus.SUSPENDED)

        with pytest.raises(TenantSuspendedError) as exc_info:
            login(db_manager, settings, "admin@bedrift-a.no", TEST_PASSWORD)

        assert exc_info.value.code == "TENANT_SUSPENDED"
        assert "unpaid" not in exc_info.value.message

    def test_suspended_for_overdue_invoice(self, db_manager, seed: SeedData, settings: Settings) -> None:
        set_tenant_status(db_manager, seed.tenant_a, TenantStatus.SUSPENDED)
        with db_manager.get_session() as session:
            session.add(Invoice(
                tenant_id=seed.tenant_a,
                status=InvoiceStatus.OVERDUE,
                amount=4990,
                due_date=datetime.utcnow() - timedelta(days=30),
            ))

        with pytest.raises(TenantSuspendedError, match="unpaid invoices"):
            login(db_manager, settings, "admin@bedrift-a.no", TEST_PASSWORD)

    def test_operators_ignore_suspension(self, db_manager, seed: SeedData, settings: Settings) -> None:
        set_tenant_status(db_manager, seed.tenant_a, TenantStatus.SUSPENDED)

        user = login(db_manager, settings, "superadmin@ehs-platform.no", TEST_PASSWORD)

        assert user.is_superadmin

    def test_pending_invoice_due_soon_logs_warning(
        self, db_manager, seed: SeedData, settings: Settings, caplog: pytest.LogCaptureFixture
    ) -> None:
        with db_manager.get_session() as session:
            session.add(Invoice(
                tenant_id=seed.tenant_a,
                status=InvoiceStatus.PENDING,
                amount=4990,
                due_date=datetime.utcnow() + timedelta(days=2),
            ))

        with caplog.at_level(logging.WARNING, logger="ehs.services.auth_service"):
            login(db_manager, settings, "admin@bedrift-a.no", TEST_PASSWORD)

        assert "pending invoice(s) due within 3 days" in caplog.text


class TestBuildSessionUser:
    """Tenant selection for a fresh session."""

    def build(self, db_manager: DatabaseConnectionManager, user_id):
        with db_manager.get_session() as session:
            return build_session_user(session, session.get(User, user_id))

    def test_single_membership_is_selected(self, db_manager, seed: SeedData) -> None:
        user = self.build(db_manager, seed.users["verneombud"])

        assert user.tenant_id == seed.tenant_a
        assert user.tenant_name == "Bedrift A"
        assert user.role == Role.VERNEOMBUD
        assert not user.has_multiple_tenants

    def test_multiple_memberships_require_selection(self, db_manager, seed: SeedData) -> None:
        user = self.build(db_manager, seed.users["multi"])

        assert user.tenant_id is None
        assert user.role is None
        assert user.has_multiple_tenants
        assert user.needs_tenant_selection

    def test_last_tenant_is_restored(self, db_manager, seed: SeedData) -> None:
        with db_manager.get_session() as session:
            session.get(User, seed.users["multi"]).last_tenant_id = seed.tenant_b

        user = self.build(db_manager, seed.users["multi"])

        assert user.tenant_id == seed.tenant_b
        assert user.role == Role.ANSATT
        assert not user.needs_tenant_selection

    def test_last_tenant_ignored_when_suspended(self, db_manager, seed: SeedData) -> None:
        with db_manager.get_session() as session:
            session.get(User, seed.users["multi"]).last_tenant_id = seed.tenant_b
        set_tenant_status(db_manager, seed.tenant_b, TenantStatus.SUSPENDED)

        user = self.build(db_manager, seed.users["multi"])

        assert user.tenant_id is None
        assert user.needs_tenant_selection

    def test_trial_tenant_is_selectable(self, db_manager, seed: SeedData) -> None:
        with db_manager.get_session() as session:
            session.get(User, seed.users["multi"]).last_tenant_id = seed.tenant_b
        set_tenant_status(db_manager, seed.tenant_b, TenantStatus.TRIAL)

        assert self.build(db_manager, seed.users["multi"]).tenant_id == seed.tenant_b

    def test_operator_without_membership(self, db_manager, seed: SeedData) -> None:
        user = self.build(db_manager, seed.users["support"])

        assert user.is_support
        assert user.is_operator
        assert user.tenant_id is None
        assert not user.needs_tenant_selection


class TestSwitchTenant:
    """Explicit tenant selection."""

    def test_switch_persists_last_tenant(self, db_manager, seed: SeedData) -> None:
        with db_manager.get_session() as session:
            user = switch_tenant(session, seed.users["multi"], seed.tenant_b)

        assert user.tenant_id == seed.tenant_b
        assert user.tenant_name == "Bedrift B"
        assert user.role == Role.ANSATT
        assert user.has_multiple_tenants
        with db_manager.get_session() as session:
            assert session.get(User, seed.users["multi"]).last_tenant_id == seed.tenant_b

    def test_non_member_is_denied(self, db_manager, seed: SeedData) -> None:
        with pytest.raises(PermissionDeniedError):
            with db_manager.get_session() as session:
                switch_tenant(session, seed.users["hms"], seed.tenant_b)

    def test_suspended_tenant_is_denied(self, db_manager, seed: SeedData) -> None:
        set_tenant_status(db_manager, seed.tenant_b, TenantStatus.SUSPENDED)

        with pytest.raises(TenantSuspendedError):
            with db_manager.get_session() as session:
                switch_tenant(session, seed.users["multi"], seed.tenant_b)

    def test_unknown_user(self, db_manager, seed: SeedData) -> None:
        with pytest.raises(NotFoundError):
            with db_manager.get_session() as session:
                switch_tenant(session, uuid4(), seed.tenant_a)

    def test_list_memberships(self, db_manager, seed: SeedData) -> None:
        with db_manager.get_session() as session:
            memberships = list_memberships(session, seed.users["multi"])

        assert {m.tenant_name: m.role for m in memberships} == {
            "Bedrift A": Role.LEDER,
            "Bedrift B": Role.ANSATT,
        }
        assert all(m.status == "ACTIVE" for m in memberships)
