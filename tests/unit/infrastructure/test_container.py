"""
DI 컨테이너 테스트

테스트 대상: src/infrastructure/container.py
"""

import importlib
import importlib.util
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.application.workflows.market_snapshot_workflow import MarketSnapshotWorkflow
from src.core.cache import SnapshotCache
from src.infrastructure.config.config_manager import AppConfig
from src.infrastructure.container import Container


@pytest.fixture
def container():
    Container.reset()
    Container.override(
        "config",
        AppConfig(
            search_api_key="search-key",
            catalog_api_access_token="catalog-token",
            cache_schema_version="v4",
            call_budget_max=5,
        ),
    )
    yield Container
    Container.reset()


class TestContainerSingleton:
    """Container 싱글톤 동작 테스트"""

    def test_snapshot_cache_singleton(self, container):
        cache = container.get_snapshot_cache()
        assert cache is container.get_snapshot_cache()
        assert cache.schema_version == "v4"

    def test_workflow_singleton(self, container):
        workflow = container.get_workflow()
        assert isinstance(workflow, MarketSnapshotWorkflow)
        assert workflow is container.get_workflow()


class TestContainerDependencyInjection:
    """Container 의존성 주입 테스트"""

    def test_workflow_uses_container_cache(self, container):
        workflow = container.get_workflow()
        assert workflow.cache is container.get_snapshot_cache()
        assert workflow.call_budget_max == 5

    def test_catalog_client_settings_from_config(self, container):
        client = container.get_catalog_client()
        assert client.timeout == container.get_config().provider_timeout_seconds
        # 마켓 코드는 호출마다 전달
        assert not hasattr(client, "marketplace_id")


class TestContainerOverride:
    """Container 오버라이드 테스트"""

    def test_override(self, container):
        mock_cache = MagicMock(spec=SnapshotCache)
        container.override("snapshot_cache", mock_cache)
        assert container.get_snapshot_cache() is mock_cache

    def test_test_override_restores(self, container):
        original = container.get_snapshot_cache()
        with container.test_override("snapshot_cache", MagicMock()):
            assert container.get_snapshot_cache() is not original
        assert container.get_snapshot_cache() is original

    def test_reset_clears_instances(self, container):
        first = container.get_snapshot_cache()
        container.reset()
        container.override("config", AppConfig(search_api_key="a", catalog_api_access_token="b"))
        assert container.get_snapshot_cache() is not first


class TestContainerShutdown:
    @pytest.mark.asyncio
    async def test_shutdown_closes_clients(self, container):
        search_client = container.get_search_client()
        search_client.close = AsyncMock()
        container.get_snapshot_cache()

        await container.shutdown()

        search_client.close.assert_awaited_once()


class TestInfrastructurePackage:
    """패키지 docstring 의 구조 목록과 실제 모듈 일치"""

    @pytest.mark.parametrize(
        "module",
        [
            "src.infrastructure.config.config_manager",
            "src.infrastructure.container",
            "src.infrastructure.http_client",
        ],
    )
    def test_listed_modules_import(self, module):
        assert importlib.import_module(module) is not None

    @pytest.mark.parametrize("stale", ["persistence", "external", "bootstrap"])
    def test_no_stale_layout(self, stale):
        import src.infrastructure as infrastructure

        assert stale not in infrastructure.__doc__
        assert importlib.util.find_spec(f"src.infrastructure.{stale}") is None
