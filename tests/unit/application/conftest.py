"""
Test fixtures for Application layer
====================================
검색/카탈로그 프로바이더 mock 과 워크플로우 조립
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.core.cache import SnapshotCache
from src.domain.entities.listing import FulfillmentChannel
from src.domain.value_objects.parsed_field import Unavailable, Value
from src.tools.enrichment.catalog_client import BatchResult, CatalogItem, CatalogProviderClient, PricingItem
from src.tools.enrichment.enrichment_orchestrator import EnrichmentOrchestrator
from src.tools.scrapers.raw_listing_collector import RawListingCollector
from src.tools.scrapers.search_client import SearchProviderClient

# 카탈로그에 순위 정보가 없는 ASIN
NO_RANK_ASIN = "B0000000B9"


class MutableClock:
    """캐시 TTL 테스트용 시계"""

    def __init__(self):
        self.now = datetime(2026, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def mock_search_client(search_payload):
    """예산 1회 차감 후 20행 검색 결과 반환"""
    client = MagicMock(spec=SearchProviderClient)

    async def _search(keyword, marketplace, budget, page=1):
        budget.acquire("search")
        return search_payload

    client.search = AsyncMock(side_effect=_search)
    return client


@pytest.fixture
def mock_catalog_client():
    """BSR/카테고리 + FBA 가격 반환 (NO_RANK_ASIN 은 순위 없음)"""
    client = MagicMock(spec=CatalogProviderClient)

    async def _catalog(asins, budget, marketplace):
        budget.acquire("catalog")
        items = {}
        for index, asin in enumerate(asins):
            bsr = Unavailable("no_category_rank") if asin == NO_RANK_ASIN else Value(200 + index * 150)
            items[asin] = CatalogItem(asin=asin, bsr=bsr, category=Value("Home & Kitchen"))
        return BatchResult(items=items)

    async def _pricing(asins, budget, marketplace):
        budget.acquire("pricing")
        return BatchResult(
            items={
                asin: PricingItem(asin=asin, price=Value(30.0), fulfillment=Value(FulfillmentChannel.FBA))
                for asin in asins
            }
        )

    client.get_catalog_items = AsyncMock(side_effect=_catalog)
    client.get_pricing = AsyncMock(side_effect=_pricing)
    return client


@pytest.fixture
def clock():
    return MutableClock()


@pytest.fixture
def snapshot_cache(clock):
    return SnapshotCache(schema_version="v4", clock=clock)


@pytest.fixture
def workflow(mock_search_client, mock_catalog_client, snapshot_cache):
    from src.application.workflows.market_snapshot_workflow import MarketSnapshotWorkflow

    return MarketSnapshotWorkflow(
        collector=RawListingCollector(mock_search_client),
        enrichment=EnrichmentOrchestrator(mock_catalog_client, batch_size=10),
        cache=snapshot_cache,
        call_budget_max=7,
    )
