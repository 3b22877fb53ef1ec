"""
Test fixtures for API layer
===========================
Container 오버라이드 + TestClient
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from src.api.app_factory import create_app
from src.api.dependencies import limiter
from src.application.workflows.market_snapshot_workflow import MarketSnapshotWorkflow
from src.core.cache import SnapshotCache
from src.domain.entities.market import CPIResult, MarketSnapshot
from src.infrastructure.config.config_manager import AppConfig
from src.infrastructure.container import Container
from src.tools.storage.asin_bsr_cache import AsinBsrCache

ADMIN_KEY = "test-admin-key"  # pragma: allowlist secret


@pytest.fixture
def app_config():
    return AppConfig(
        search_api_key="search-key",
        catalog_api_access_token="catalog-token",
        cache_schema_version="v4",
        admin_api_key=ADMIN_KEY,
    )


@pytest.fixture
def snapshot():
    return MarketSnapshot(
        keyword="electric kettle",
        marketplace="US",
        schema_version="v4",
        generated_at=datetime(2026, 1, 1, tzinfo=UTC),
        total_listings=18,
        cpi=CPIResult(score=42, label="moderate"),
    )


@pytest.fixture
def mock_workflow(snapshot):
    workflow = MagicMock(spec=MarketSnapshotWorkflow)
    workflow.aggregate = AsyncMock(return_value=snapshot)
    return workflow


@pytest.fixture
def snapshot_cache():
    return SnapshotCache(schema_version="v4")


@pytest.fixture
def asin_cache():
    return AsinBsrCache(schema_version="v4")


@pytest.fixture
def client(app_config, mock_workflow, snapshot_cache, asin_cache):
    Container.reset()
    Container.override("config", app_config)
    Container.override("workflow", mock_workflow)
    Container.override("snapshot_cache", snapshot_cache)
    Container.override("asin_cache", asin_cache)
    limiter.reset()

    with TestClient(create_app(lifespan=None)) as test_client:
        yield test_client

    Container.reset()
