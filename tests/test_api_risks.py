"""Tests for risk assessment scoring and endpoints."""
import pytest
from fastapi.testclient import TestClient

from conftest import SeedData
from ehs.api.routes.risks import calculate_risk_score, risk_level

RISK = {
    "title": "Fall fra stige",
    "context": "Vedlikehold av lysarmatur i produksjonshallen",
    "likelihood": 3,
    "consequence": 4,
}


class TestRiskScoring:
    """Score is likelihood x consequence, banded into levels."""

    @pytest.mark.parametrize(
        "likelihood,consequence,score,level",
        [
            (1, 1, 1, "LOW"),
            (1, 5, 5, "LOW"),
            (2, 3, 6, "MEDIUM"),
            (3, 4, 12, "HIGH"),
            (4, 4, 16, "HIGH"),
            (4, 5, 20, "CRITICAL"),
            (5, 5, 25, "CRITICAL"),
        ],
    )
    def test_bands(self, likelihood: int, consequence: int, score: int, level: str) -> None:
        assert calculate_risk_score(likelihood, consequence) == score
        assert risk_level(score) == level


class TestRiskEndpoints:
    """CRUD on /api/risks"""

    def test_create_scores_risk(self, client: TestClient, seed: SeedData, auth_headers) -> None:
        response = client.post("/api/risks", json=RISK, headers=auth_headers("verneombud"))

        assert response.status_code == 201
        body = response.json()
        assert body["score"] == 12
        assert body["level"] == "HIGH"
        assert body["status"] == "OPEN"
        assert body["owner_id"] == str(seed.users["verneombud"])

    @pytest.mark.parametrize("field,value", [("likelihood", 0), ("consequence", 6), ("context", "kort")])
    def test_create_validation(self, client: TestClient, seed: SeedData, auth_headers, field: str, value) -> None:
        response = client.post("/api/risks", json={**RISK, field: value}, headers=auth_headers("hms"))

        assert response.status_code == 400

    def test_employee_cannot_create(self, client: TestClient, seed: SeedData, auth_headers) -> None:
        assert client.post("/api/risks", json=RISK, headers=auth_headers("ansatt")).status_code == 403

    def test_update_recomputes_score(self, client: TestClient, seed: SeedData, auth_headers) -> None:
        risk = client.post("/api/risks", json=RISK, headers=auth_headers("hms")).json()

        response = client.patch(
            f"/api/risks/{risk['id']}",
            json={"likelihood": 5, "status": "MITIGATING"},
            headers=auth_headers("leder"),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["score"] == 20
        assert body["level"] == "CRITICAL"
        assert body["status"] == "MITIGATING"

    @pytest.mark.parametrize("field", ["title", "context", "likelihood", "consequence", "status"])
    def test_update_rejects_null_required_field(
        self, client: TestClient, seed: SeedData, auth_headers, field: str
    ) -> None:
        risk = client.post("/api/risks", json=RISK, headers=auth_headers("hms")).json()

        response = client.patch(f"/api/risks/{risk['id']}", json={field: None}, headers=auth_headers("hms"))

        assert response.status_code == 400
        detail = response.json()["error"]["details"][0]
        assert detail["field"] == f"body.{field}"
        assert "cannot be null" in detail["issue"]
        unchanged = client.get(f"/api/risks/{risk['id']}", headers=auth_headers("hms")).json()
        assert unchanged["score"] == 12

    def test_update_clears_optional_field(self, client: TestClient, seed: SeedData, auth_headers) -> None:
        risk = client.post(
            "/api/risks", json={**RISK, "description": "Stigen mangler sklisikring"}, headers=auth_headers("hms")
        ).json()

        response = client.patch(f"/api/risks/{risk['id']}", json={"description": None}, headers=auth_headers("hms"))

        assert response.status_code == 200
        assert response.json()["description"] is None
        assert response.json()["score"] == 12

    def test_verneombud_cannot_update(self, client: TestClient, seed: SeedData, auth_headers) -> None:
        risk = client.post("/api/risks", json=RISK, headers=auth_headers("verneombud")).json()

        response = client.patch(f"/api/risks/{risk['id']}", json={"likelihood": 1}, headers=auth_headers("verneombud"))

        assert response.status_code == 403

    def test_list_is_ordered_by_score(self, client: TestClient, seed: SeedData, auth_headers) -> None:
        headers = auth_headers("hms")
        client.post("/api/risks", json={**RISK, "title": "Lav", "likelihood": 1, "consequence": 2}, headers=headers)
        client.post("/api/risks", json={**RISK, "title": "Høy", "likelihood": 5, "consequence": 5}, headers=headers)
        client.post("/api/risks", json={**RISK, "title": "Middels"}, headers=headers)

        response = client.get("/api/risks", headers=auth_headers("revisor"))

        assert [r["title"] for r in response.json()] == ["Høy", "Middels", "Lav"]

    def test_delete(self, client: TestClient, seed: SeedData, auth_headers) -> None:
        risk = client.post("/api/risks", json=RISK, headers=auth_headers("hms")).json()

        assert client.delete(f"/api/risks/{risk['id']}", headers=auth_headers("bht")).status_code == 403
        assert client.delete(f"/api/risks/{risk['id']}", headers=auth_headers("leder")).status_code == 204
        assert client.delete(f"/api/risks/{risk['id']}", headers=auth_headers("leder")).status_code == 404
