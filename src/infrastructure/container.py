"""
DI (Dependency Injection) 컨테이너

이 모듈은 애플리케이션의 의존성을 중앙에서 관리합니다.

사용 예:
    from src.infrastructure.container import Container

    # 싱글톤 컴포넌트 획득
    cache = Container.get_snapshot_cache()
    workflow = Container.get_workflow()

    # 테스트용 Mock 주입
    Container.override('search_client', mock_client)

    # 초기화
    Container.reset()
"""

import logging
from contextlib import contextmanager
from typing import Any

from src.application.workflows.market_snapshot_workflow import MarketSnapshotWorkflow
from src.core.cache import SnapshotCache
from src.infrastructure.config.config_manager import AppConfig, get_config
from src.tools.enrichment.catalog_client import CatalogProviderClient
from src.tools.enrichment.enrichment_orchestrator import EnrichmentOrchestrator
from src.tools.scrapers.raw_listing_collector import RawListingCollector
from src.tools.scrapers.search_client import SearchProviderClient
from src.tools.storage.asin_bsr_cache import AsinBsrCache

logger = logging.getLogger(__name__)


class Container:
    """
    Dependency Injection Container for the market snapshot service

    싱글톤 컴포넌트:
    - AppConfig
    - SnapshotCache / AsinBsrCache
    - SearchProviderClient / CatalogProviderClient
    - MarketSnapshotWorkflow
    """

    _instances: dict[str, Any] = {}
    _overrides: dict[str, Any] = {}

    @classmethod
    def _resolve(cls, name: str, factory) -> Any:
        if name in cls._overrides:
            return cls._overrides[name]
        if name not in cls._instances:
            cls._instances[name] = factory()
        return cls._instances[name]

    # ========================================
    # 설정 / 캐시
    # ========================================

    @classmethod
    def get_config(cls) -> AppConfig:
        """
        AppConfig 반환 (필수 자격 증명 누락 시 ConfigurationError)
        """
        return cls._resolve("config", get_config)

    @classmethod
    def get_snapshot_cache(cls) -> SnapshotCache:
        def _create() -> SnapshotCache:
            config = cls.get_config()
            return SnapshotCache(
                schema_version=config.cache_schema_version,
                ttl=config.snapshot_ttl,
                max_size=config.cache_max_size,
            )

        return cls._resolve("snapshot_cache", _create)

    @classmethod
    def get_asin_cache(cls) -> AsinBsrCache:
        def _create() -> AsinBsrCache:
            config = cls.get_config()
            return AsinBsrCache(schema_version=config.cache_schema_version, ttl=config.asin_cache_ttl)

        return cls._resolve("asin_cache", _create)

    # ========================================
    # 프로바이더 클라이언트
    # ========================================

    @classmethod
    def get_search_client(cls) -> SearchProviderClient:
        def _create() -> SearchProviderClient:
            config = cls.get_config()
            return SearchProviderClient(
                api_key=config.search_api_key,
                base_url=config.search_api_base_url,
                timeout=config.provider_timeout_seconds,
            )

        return cls._resolve("search_client", _create)

    @classmethod
    def get_catalog_client(cls) -> CatalogProviderClient:
        def _create() -> CatalogProviderClient:
            config = cls.get_config()
            return CatalogProviderClient(
                access_token=config.catalog_api_access_token,
                base_url=config.catalog_api_base_url,
                timeout=config.provider_timeout_seconds,
            )

        return cls._resolve("catalog_client", _create)

    # ========================================
    # 워크플로우
    # ========================================

    @classmethod
    def get_workflow(cls) -> MarketSnapshotWorkflow:
        """
        MarketSnapshotWorkflow 싱글톤 반환

        Returns:
            의존성이 주입된 워크플로우
        """

        def _create() -> MarketSnapshotWorkflow:
            config = cls.get_config()
            enrichment = EnrichmentOrchestrator(
                catalog_client=cls.get_catalog_client(),
                asin_cache=cls.get_asin_cache(),
                batch_size=config.enrichment_batch_size,
                max_concurrency=config.enrichment_max_concurrency,
                pricing_enabled=config.pricing_enabled,
            )
            return MarketSnapshotWorkflow(
                collector=RawListingCollector(cls.get_search_client()),
                enrichment=enrichment,
                cache=cls.get_snapshot_cache(),
                call_budget_max=config.call_budget_max,
            )

        return cls._resolve("workflow", _create)

    # ========================================
    # 수명 주기 / 테스트 지원
    # ========================================

    @classmethod
    async def shutdown(cls) -> None:
        """HTTP 클라이언트 종료 + 백그라운드 캐시 작업 대기"""
        for name in ("snapshot_cache", "asin_cache"):
            instance = cls._instances.get(name)
            if isinstance(instance, SnapshotCache):
                await instance.drain()
            elif isinstance(instance, AsinBsrCache):
                await instance.store_backend.drain()
        for name in ("search_client", "catalog_client"):
            client = cls._instances.get(name)
            if client is not None:
                await client.close()
        logger.info("Container shut down")

    @classmethod
    def override(cls, name: str, instance: Any) -> None:
        """
        컴포넌트 오버라이드 (테스트용)

        Example:
            Container.override('search_client', mock_client)
        """
        cls._overrides[name] = instance

    @classmethod
    def reset(cls) -> None:
        """
        모든 인스턴스 및 오버라이드 초기화

        테스트 간 격리 또는 애플리케이션 재시작 시 사용
        """
        cls._instances.clear()
        cls._overrides.clear()

    @classmethod
    @contextmanager
    def test_override(cls, name: str, instance: Any):
        """
        테스트용 임시 오버라이드 (context manager)

        Example:
            with Container.test_override('workflow', mock_workflow):
                ...
            # 원래 값 복원
        """
        had_override = name in cls._overrides
        old_override = cls._overrides.get(name)
        had_instance = name in cls._instances
        old_instance = cls._instances.pop(name, None)

        cls._overrides[name] = instance
        try:
            yield
        finally:
            if had_override:
                cls._overrides[name] = old_override
            else:
                cls._overrides.pop(name, None)
            if had_instance:
                cls._instances[name] = old_instance
            else:
                cls._instances.pop(name, None)
