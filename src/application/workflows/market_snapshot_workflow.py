"""
Market Snapshot Workflow
========================
키워드 1건에 대한 시장 스냅샷 집계 파이프라인

Flow:
1. 캐시 조회 (HIT 는 즉시 반환, STALE 은 이전 값 반환 + 백그라운드 갱신)
2. 검색 결과 수집 (1회 호출)
3. ASIN 단위 정규화 + 브랜드 워터폴
4. 보조 프로바이더 보강 (남은 호출 예산 범위)
5. 브랜드/배송 주체 확정
6. 수요/매출 추정
7. 브랜드 빈도 승격
8. CPI + 검색량 추정
9. 시장 보정 + 리스팅 할당 + 불변식 검사
10. 스냅샷 생성 후 캐시에 fire-and-forget 저장

Clean Architecture:
- 프로바이더/캐시는 생성자 주입
- 호출 예산은 요청마다 새로 만들어 호출 그래프 전체에 전달
"""

import logging
import time
from collections import Counter
from datetime import UTC, datetime
from typing import Any

from src.core.cache import CacheStatus, SnapshotCache
from src.core.call_budget import ApiCallBudget
from src.domain.entities.listing import CanonicalListing
from src.domain.entities.market import (
    ConfidenceLabel,
    DemandEstimate,
    MarketSnapshot,
    SellerContext,
)
from src.domain.exceptions import EstimationError, MarketSnapshotError, NoListingsExtractedError
from src.shared.constants import (
    CACHE_INPUT_TYPE_KEYWORD,
    DEFAULT_CALL_BUDGET,
    DEFAULT_MARKETPLACE,
    FIXED_PAGE,
    MARKETPLACES,
)
from src.tools.calculators.competitive_pressure import compute_cpi, rebase_cpi
from src.tools.calculators.demand_estimator import DemandEstimator
from src.tools.calculators.invariant_validator import validate_invariants
from src.tools.calculators.market_aggregates import (
    brand_dominance_pct,
    brand_moat,
    fulfillment_mix,
    listing_stats,
    ppc_indicators,
    top_brands,
)
from src.tools.calculators.market_calibration import (
    allocate_units,
    apply_allocation,
    calibrate_market_totals,
)
from src.tools.calculators.search_volume import estimate_search_volume
from src.tools.enrichment.enrichment_orchestrator import EnrichmentOrchestrator, EnrichmentReport
from src.tools.scrapers.raw_listing_collector import CollectionResult, RawListingCollector
from src.tools.utilities.brand_resolver import BrandResolver
from src.tools.utilities.canonicalizer import ListingCanonicalizer
from src.tools.utilities.category_normalizer import normalize_category
from src.tools.utilities.fulfillment_resolver import FulfillmentResolver

logger = logging.getLogger(__name__)

_CONFIDENCE_ORDER = [ConfidenceLabel.LOW, ConfidenceLabel.MEDIUM, ConfidenceLabel.HIGH]


class MarketSnapshotWorkflow:
    """
    시장 스냅샷 집계 워크플로우

    Usage:
        workflow = MarketSnapshotWorkflow(
            collector=RawListingCollector(search_client),
            enrichment=EnrichmentOrchestrator(catalog_client, asin_cache),
            cache=SnapshotCache(schema_version="v4"),
        )
        snapshot = await workflow.aggregate("electric kettle", "US", SellerContext(stage="new"))
    """

    def __init__(
        self,
        collector: RawListingCollector,
        enrichment: EnrichmentOrchestrator,
        cache: SnapshotCache,
        brand_resolver: BrandResolver | None = None,
        fulfillment_resolver: FulfillmentResolver | None = None,
        demand_estimator: DemandEstimator | None = None,
        call_budget_max: int = DEFAULT_CALL_BUDGET,
    ):
        """
        Args:
            collector: 1차 검색 결과 수집기
            enrichment: 보조 프로바이더 보강기
            cache: 스냅샷 캐시
            brand_resolver: 브랜드 판정기
            fulfillment_resolver: 배송 주체 판정기
            demand_estimator: 수요 추정기
            call_budget_max: 요청당 외부 호출 상한
        """
        self.collector = collector
        self.enrichment = enrichment
        self.cache = cache
        self.brand_resolver = brand_resolver or BrandResolver()
        self.canonicalizer = ListingCanonicalizer(self.brand_resolver)
        self.fulfillment_resolver = fulfillment_resolver or FulfillmentResolver()
        self.demand_estimator = demand_estimator or DemandEstimator()
        self.call_budget_max = call_budget_max

    # =========================================================================
    # 진입점
    # =========================================================================

    async def aggregate(
        self,
        keyword: str,
        marketplace: str = DEFAULT_MARKETPLACE,
        seller_context: SellerContext | None = None,
    ) -> MarketSnapshot:
        """
        시장 스냅샷 조회/계산

        Args:
            keyword: 검색 키워드
            marketplace: 마켓 코드
            seller_context: 판매자 컨텍스트 (없으면 new)

        Returns:
            MarketSnapshot

        Raises:
            ValueError: 빈 키워드 또는 지원하지 않는 마켓 코드
            NoListingsExtractedError: 비어 있지 않은 응답에서 리스팅 0건
            EstimationError: 추정 단계 실패
            ProviderError 계열: 검색 호출 실패
        """
        keyword = SnapshotCache.normalize_query(keyword)
        if not keyword:
            raise ValueError("keyword must not be empty")
        marketplace = marketplace.strip().upper()
        if marketplace not in MARKETPLACES:
            raise ValueError(f"Unsupported marketplace: {marketplace}")
        seller_context = seller_context or SellerContext()

        key = self.cache.make_key(marketplace, CACHE_INPUT_TYPE_KEYWORD, keyword, FIXED_PAGE)
        lookup = self.cache.get(key)

        if lookup.status is CacheStatus.HIT:
            logger.info(f"Snapshot cache HIT: {key} (age {lookup.age_seconds:.0f}s)")
            return self._from_cache(lookup.payload, seller_context)

        if lookup.status is CacheStatus.STALE:
            logger.info(f"Snapshot cache STALE: {key} (age {lookup.age_seconds:.0f}s), serving stale")
            self.cache.refresh_in_background(
                key, lambda: self._compute_and_store(key, keyword, marketplace, seller_context)
            )
            return self._from_cache(lookup.payload, seller_context)

        logger.info(f"Snapshot cache MISS: {key}")
        snapshot = await self.cache.run_once(
            key, lambda: self._compute_and_store(key, keyword, marketplace, seller_context)
        )
        return self._rebase(snapshot, seller_context)

    def _from_cache(self, payload: dict[str, Any], seller_context: SellerContext) -> MarketSnapshot:
        return self._rebase(MarketSnapshot.model_validate(payload), seller_context)

    @staticmethod
    def _rebase(snapshot: MarketSnapshot, seller_context: SellerContext) -> MarketSnapshot:
        """다른 판매자 단계 요청이면 CPI 판매자 보정만 교체한 사본"""
        if snapshot.seller_context == seller_context:
            return snapshot
        return snapshot.model_copy(
            update={"seller_context": seller_context, "cpi": rebase_cpi(snapshot.cpi, seller_context)}
        )

    async def _compute_and_store(
        self,
        key: str,
        keyword: str,
        marketplace: str,
        seller_context: SellerContext,
    ) -> MarketSnapshot:
        snapshot = await self.compute(keyword, marketplace, seller_context)
        if snapshot.total_listings > 0:
            self.cache.schedule_put(key, snapshot.model_dump(mode="json"))
        else:
            logger.info(f"Empty snapshot not cached: {key}")
        return snapshot

    # =========================================================================
    # 파이프라인
    # =========================================================================

    async def compute(
        self,
        keyword: str,
        marketplace: str,
        seller_context: SellerContext,
    ) -> MarketSnapshot:
        """
        캐시를 거치지 않는 전체 계산

        Returns:
            MarketSnapshot
        """
        start_time = time.time()
        budget = ApiCallBudget(max_calls=self.call_budget_max)

        collection = await self.collector.collect(keyword, marketplace, budget, page=FIXED_PAGE)
        if collection.is_empty:
            if collection.raw_result_count > 0:
                raise NoListingsExtractedError(
                    f"Search returned {collection.raw_result_count} rows for '{keyword}' "
                    f"but no listing had an ASIN",
                    raw_result_count=collection.raw_result_count,
                )
            logger.warning(f"Search returned no results for '{keyword}'")
            return self._empty_snapshot(keyword, marketplace, seller_context, budget)

        listings = self.canonicalizer.canonicalize(collection.listings, collection.sponsored_meta)
        report = await self.enrichment.enrich(listings, budget, marketplace)

        # 리스팅이 추출된 이후의 실패는 모두 추정 단계 실패로 분류
        try:
            snapshot = self._build_snapshot(
                keyword, marketplace, seller_context, collection, listings, report, budget
            )
        except MarketSnapshotError:
            raise
        except (ArithmeticError, ValueError, TypeError, KeyError) as e:
            raise EstimationError(
                f"Estimation failed for '{keyword}' with {len(listings)} listings: {e}", stage="snapshot"
            ) from e

        logger.info(
            f"Snapshot computed for '{keyword}' ({marketplace}): {snapshot.total_listings} listings, "
            f"CPI {snapshot.cpi.score} ({snapshot.cpi.label}), "
            f"budget {budget.count}/{budget.max_calls}, {time.time() - start_time:.2f}s"
        )
        return snapshot

    def _build_snapshot(
        self,
        keyword: str,
        marketplace: str,
        seller_context: SellerContext,
        collection: CollectionResult,
        listings: list[CanonicalListing],
        report: EnrichmentReport,
        budget: ApiCallBudget,
    ) -> MarketSnapshot:
        for listing in listings:
            self.brand_resolver.apply_secondary_brand(listing)
        self.fulfillment_resolver.resolve_all(listings)

        # 수요 추정 + 예비 할당 (브랜드 매출 비중 계산용)
        demand = self.demand_estimator.estimate(listings)
        apply_allocation(
            [l for l in listings if l.asin in demand.weighted_units],
            allocate_units(demand.weighted_units, demand.estimate.total_units),
        )
        self.brand_resolver.resolve_brand_frequency(listings)

        cpi = compute_cpi(listings, seller_context)
        search_volume = estimate_search_volume(keyword, listings)

        stats = listing_stats(listings)
        price_stats = stats["price_stats"]
        calibration = None
        if demand.estimate.total_units > 0 and price_stats.count:
            calibration = calibrate_market_totals(
                demand.estimate.total_units,
                demand.estimate.total_revenue,
                listings,
                (price_stats.min, price_stats.max),
                category_bucket=self._dominant_category_bucket(listings),
            )

        final_units = calibration.calibrated_units if calibration else demand.estimate.total_units
        estimated = [l for l in listings if l.asin in demand.weighted_units]
        apply_allocation(estimated, allocate_units(demand.weighted_units, final_units))
        violations = validate_invariants(final_units, listings)

        warnings = self._collect_warnings(demand.estimate, report, budget, violations)
        return MarketSnapshot(
            keyword=keyword,
            marketplace=marketplace,
            page=FIXED_PAGE,
            seller_context=seller_context,
            schema_version=self.cache.schema_version,
            generated_at=datetime.now(UTC),
            total_listings=len(listings),
            organic_count=sum(1 for l in listings if l.organic_rank is not None),
            sponsored_count=sum(1 for l in listings if l.is_sponsored),
            sponsored_appearances=collection.sponsored_appearances,
            **stats,
            fulfillment_mix=fulfillment_mix(listings),
            brand_dominance_pct=brand_dominance_pct(listings),
            top_brands=top_brands(listings),
            cpi=cpi,
            search_volume=search_volume,
            demand=demand.estimate,
            calibration=calibration,
            ppc_indicators=ppc_indicators(listings),
            brand_moat=brand_moat(listings),
            overall_confidence=self._overall_confidence(demand.estimate, calibration),
            warnings=warnings,
            violations=violations,
            enrichment_coverage={**report.to_dict(), "budget": budget.to_dict()},
            listings=[l.model_dump(mode="json") for l in listings],
        )

    def _empty_snapshot(
        self,
        keyword: str,
        marketplace: str,
        seller_context: SellerContext,
        budget: ApiCallBudget,
    ) -> MarketSnapshot:
        return MarketSnapshot(
            keyword=keyword,
            marketplace=marketplace,
            page=FIXED_PAGE,
            seller_context=seller_context,
            schema_version=self.cache.schema_version,
            generated_at=datetime.now(UTC),
            cpi=compute_cpi([], seller_context),
            warnings=["No search results returned for this keyword"],
            enrichment_coverage={"budget": budget.to_dict()},
        )

    # =========================================================================
    # 헬퍼
    # =========================================================================

    @staticmethod
    def _dominant_category_bucket(listings: list[CanonicalListing]) -> str | None:
        buckets = Counter(
            normalize_category(l.category.value).calibration_bucket
            for l in listings
            if l.category.is_available
        )
        return buckets.most_common(1)[0][0] if buckets else None

    @staticmethod
    def _overall_confidence(demand: DemandEstimate, calibration) -> ConfidenceLabel:
        labels = [demand.data_confidence]
        if calibration is not None:
            labels.append(calibration.confidence)
        return min(labels, key=_CONFIDENCE_ORDER.index)

    @staticmethod
    def _collect_warnings(
        demand: DemandEstimate,
        report: EnrichmentReport,
        budget: ApiCallBudget,
        violations: list,
    ) -> list[str]:
        warnings: list[str] = []
        if budget.skipped:
            warnings.append(f"Call budget exhausted: {budget.skipped} provider calls skipped")
        if report.catalog_disabled:
            warnings.append("Secondary catalog access denied: BSR and category unavailable for uncached listings")
        if report.pricing_disabled:
            warnings.append("Secondary pricing unavailable: using search prices, fulfillment may be UNKNOWN")
        if report.batches_failed:
            warnings.append(f"{report.batches_failed} enrichment batches failed")
        if demand.estimated_listing_count == 0:
            warnings.append("No listing had both BSR and price: demand could not be estimated")
        elif demand.bsr_coverage_pct < 50:
            warnings.append(f"Low BSR coverage ({demand.bsr_coverage_pct}%): estimates are less reliable")
        errors = sum(1 for v in violations if v.severity == "error")
        if errors:
            warnings.append(f"{errors} invariant violations flagged as errors")
        return warnings
