"""
Market / Health 라우트 테스트

테스트 대상: src/api/routes/market.py, src/api/routes/health.py
"""

import pytest
from fastapi.testclient import TestClient

from src.api.app_factory import create_app
from src.api.dependencies import limiter
from src.domain.entities.market import SellerStage
from src.domain.exceptions import (
    ConfigurationError,
    EstimationError,
    MalformedResponseError,
    NoListingsExtractedError,
    ProviderUnavailableError,
)
from src.infrastructure.container import Container


class TestSnapshotRoute:
    """GET /api/market/snapshot"""

    def test_returns_snapshot(self, client, mock_workflow):
        response = client.get("/api/market/snapshot", params={"keyword": "electric kettle"})

        assert response.status_code == 200
        body = response.json()
        assert body["keyword"] == "electric kettle"
        assert body["total_listings"] == 18
        assert body["cpi"]["score"] == 42

        keyword, marketplace, seller_context = mock_workflow.aggregate.await_args.args
        assert keyword == "electric kettle"
        assert marketplace == "US"
        assert seller_context.stage == SellerStage.NEW

    def test_seller_context_and_marketplace(self, client, mock_workflow):
        response = client.get(
            "/api/market/snapshot",
            params={"keyword": "kettle", "marketplace": "uk", "stage": "scaling", "experience_months": 24},
        )

        assert response.status_code == 200
        _, marketplace, seller_context = mock_workflow.aggregate.await_args.args
        assert marketplace == "UK"
        assert seller_context.stage == SellerStage.SCALING
        assert seller_context.experience_months == 24

    def test_default_marketplace_from_config(self, client, app_config, mock_workflow):
        app_config.marketplace = "DE"

        response = client.get("/api/market/snapshot", params={"keyword": "kettle"})

        assert response.status_code == 200
        assert mock_workflow.aggregate.await_args.args[1] == "DE"

    def test_unsupported_marketplace(self, client, mock_workflow):
        response = client.get("/api/market/snapshot", params={"keyword": "kettle", "marketplace": "XX"})

        assert response.status_code == 400
        mock_workflow.aggregate.assert_not_called()

    def test_missing_keyword(self, client):
        assert client.get("/api/market/snapshot").status_code == 422

    def test_invalid_stage(self, client):
        response = client.get("/api/market/snapshot", params={"keyword": "kettle", "stage": "veteran"})
        assert response.status_code == 422

    def test_security_headers(self, client):
        response = client.get("/api/market/snapshot", params={"keyword": "kettle"})
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["Cache-Control"] == "no-store"
        assert "Strict-Transport-Security" not in response.headers

    def test_hsts_from_config(self, app_config, mock_workflow, snapshot_cache, asin_cache):
        app_config.hsts_enabled = True
        Container.reset()
        Container.override("config", app_config)
        Container.override("workflow", mock_workflow)
        Container.override("snapshot_cache", snapshot_cache)
        Container.override("asin_cache", asin_cache)
        limiter.reset()

        with TestClient(create_app(lifespan=None)) as test_client:
            response = test_client.get("/api/market/snapshot", params={"keyword": "kettle"})
        Container.reset()

        assert response.status_code == 200
        assert response.headers["Strict-Transport-Security"].startswith("max-age=31536000")

    def test_explicit_config_restricts_hosts(self, app_config, mock_workflow):
        app_config.allowed_hosts = ["api.example.com"]
        Container.reset()
        Container.override("config", app_config)
        Container.override("workflow", mock_workflow)
        limiter.reset()

        with TestClient(create_app(lifespan=None, config=app_config)) as test_client:
            response = test_client.get("/api/health")
        Container.reset()

        assert response.status_code == 400


class TestSnapshotRouteErrors:
    """도메인 예외 → HTTP 상태 코드"""

    @pytest.mark.parametrize(
        "error, status, code",
        [
            (ValueError("keyword must not be empty"), 400, None),
            (NoListingsExtractedError("no asin", raw_result_count=20), 422, "no_listings_extracted"),
            (EstimationError("bad curve", stage="snapshot"), 500, "estimation_failed"),
            (ProviderUnavailableError("timeout", provider="search"), 503, "provider_unavailable"),
            (MalformedResponseError("not json", provider="search"), 502, "provider_error"),
            (ConfigurationError("SEARCH_API_KEY missing", config_key="SEARCH_API_KEY"), 503, "not_configured"),
        ],
    )
    def test_error_mapping(self, client, mock_workflow, error, status, code):
        mock_workflow.aggregate.side_effect = error

        response = client.get("/api/market/snapshot", params={"keyword": "kettle"})

        assert response.status_code == status
        if code is not None:
            assert response.json()["detail"]["error"] == code

    def test_no_listings_reports_row_count(self, client, mock_workflow):
        mock_workflow.aggregate.side_effect = NoListingsExtractedError("no asin", raw_result_count=20)

        response = client.get("/api/market/snapshot", params={"keyword": "kettle"})

        assert response.json()["detail"]["raw_result_count"] == 20


class TestHealthRoutes:
    """GET / , GET /api/health"""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_health(self, client):
        body = client.get("/api/health").json()

        assert body["status"] == "ok"
        assert body["config"] == {"valid": True, "marketplace": "US", "pricing_enabled": True}
        assert body["cache"]["schema_version"] == "v4"
        assert body["cache"]["size"] == 0
