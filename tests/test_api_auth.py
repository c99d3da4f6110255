"""Tests for the /api/auth and /api/me endpoints."""
from fastapi.testclient import TestClient

from conftest import TEST_PASSWORD, SeedData
from ehs.auth.tokens import decode_session_token
from ehs.config import Settings


def login(client: TestClient, email: str, password: str = TEST_PASSWORD):
    return client.post("/api/auth/login", json={"email": email, "password": password})


class TestLogin:
    """POST /api/auth/login"""

    def test_login_sets_session_cookie(self, client: TestClient, seed: SeedData, settings: Settings) -> None:
        response = login(client, "hms@bedrift-a.no")

        assert response.status_code == 200
        body = response.json()
        assert body["user"]["role"] == "HMS"
        assert body["user"]["tenant_id"] == str(seed.tenant_a)
        assert body["needs_tenant_selection"] is False
        assert body["expires_in"] == settings.session_max_age_seconds

        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith("session-token=")
        assert "HttpOnly" in set_cookie
        assert "samesite=lax" in set_cookie.lower()

        user = decode_session_token(body["token"], settings)
        assert user.id == seed.users["hms"]

    def test_multi_tenant_user_must_select(self, client: TestClient, seed: SeedData) -> None:
        response = login(client, "konsulent@bedrift-a.no")

        assert response.status_code == 200
        assert response.json()["needs_tenant_selection"] is True
        assert response.json()["user"]["tenant_id"] is None

    def test_wrong_password(self, client: TestClient, seed: SeedData) -> None:
        response = login(client, "hms@bedrift-a.no", "feil-passord")

        assert response.status_code == 401
        error = response.json()["error"]
        assert error["code"] == "UNAUTHORIZED"
        assert "4 attempt(s) left" in error["message"]

    def test_unknown_user(self, client: TestClient, seed: SeedData) -> None:
        response = login(client, "ukjent@bedrift-a.no")

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid credentials"

    def test_lockout_returns_429(self, client: TestClient, seed: SeedData, settings: Settings) -> None:
        for _ in range(settings.max_login_attempts - 1):
            assert login(client, "ansatt@bedrift-a.no", "feil").status_code == 401

        response = login(client, "ansatt@bedrift-a.no", "feil")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == str(settings.lockout_minutes * 60)
        assert response.json()["error"]["code"] == "ACCOUNT_LOCKED"

        # The lock survives the failed request
        assert login(client, "ansatt@bedrift-a.no").status_code == 429

    def test_invalid_email_is_validation_error(self, client: TestClient, seed: SeedData) -> None:
        response = login(client, "not-an-email")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestSession:
    """Session inspection, tenant listing and switching."""

    def test_session_requires_token(self, client: TestClient) -> None:
        response = client.get("/api/auth/session")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    def test_session_with_bearer(self, client: TestClient, seed: SeedData, auth_headers) -> None:
        response = client.get("/api/auth/session", headers=auth_headers("revisor"))

        assert response.status_code == 200
        assert response.json()["role"] == "REVISOR"
        assert response.json()["email"] == "revisor@bedrift-a.no"

    def test_session_with_cookie(self, client: TestClient, seed: SeedData, token_for) -> None:
        response = client.get("/api/auth/session", headers={"Cookie": f"session-token={token_for('bht')}"})

        assert response.status_code == 200
        assert response.json()["role"] == "BHT"

    def test_logout_clears_cookie(self, client: TestClient) -> None:
        response = client.post("/api/auth/logout")

        assert response.status_code == 200
        assert response.json() == {"status": "logged_out"}
        assert 'session-token=""' in response.headers["set-cookie"]

    def test_list_tenants(self, client: TestClient, seed: SeedData, auth_headers) -> None:
        response = client.get("/api/auth/tenants", headers=auth_headers("multi"))

        assert response.status_code == 200
        assert {t["tenant_slug"]: t["role"] for t in response.json()} == {
            "bedrift-a": "LEDER",
            "bedrift-b": "ANSATT",
        }

    def test_select_tenant_reissues_token(
        self, client: TestClient, seed: SeedData, auth_headers, settings: Settings
    ) -> None:
        response = client.post(
            "/api/auth/select-tenant",
            json={"tenant_id": str(seed.tenant_b)},
            headers=auth_headers("multi"),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["needs_tenant_selection"] is False
        user = decode_session_token(body["token"], settings)
        assert user.tenant_id == seed.tenant_b
        assert user.tenant_name == "Bedrift B"
        assert user.role.value == "ANSATT"

    def test_select_foreign_tenant_is_forbidden(self, client: TestClient, seed: SeedData, auth_headers) -> None:
        response = client.post(
            "/api/auth/select-tenant",
            json={"tenant_id": str(seed.tenant_b)},
            headers=auth_headers("hms"),
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"


class TestMyPermissions:
    """GET /api/me/permissions"""

    def test_employee(self, client: TestClient, seed: SeedData, auth_headers) -> None:
        response = client.get("/api/me/permissions", headers=auth_headers("ansatt"))

        assert response.status_code == 200
        body = response.json()
        assert body["role"] == "ANSATT"
        assert body["role_display_name"] == "Employee"
        assert body["permissions"]["create_incidents"] is True
        assert body["permissions"]["read_incidents"] is False
        assert body["navigation"]["incidents"] is True
        assert body["navigation"]["risks"] is False
        assert {"action": ["create"], "subject": ["Incident"], "inverted": False} in body["rules"]

    def test_admin_rules_end_with_document_revocation(
        self, client: TestClient, seed: SeedData, auth_headers
    ) -> None:
        body = client.get("/api/me/permissions", headers=auth_headers("admin")).json()

        assert body["rules"][0] == {"action": ["manage"], "subject": ["all"], "inverted": False}
        assert body["rules"][-1] == {"action": ["delete"], "subject": ["Document"], "inverted": True}

    def test_unselected_tenant_has_no_rules(self, client: TestClient, seed: SeedData, auth_headers) -> None:
        body = client.get("/api/me/permissions", headers=auth_headers("multi")).json()

        assert body["role"] is None
        assert body["role_display_name"] == ""
        assert body["rules"] == []
        assert not any(body["permissions"].values())

    def test_superadmin(self, client: TestClient, seed: SeedData, auth_headers) -> None:
        body = client.get("/api/me/permissions", headers=auth_headers("superadmin")).json()

        assert body["is_superadmin"] is True
        assert body["rules"] == [{"action": ["manage"], "subject": ["all"], "inverted": False}]
