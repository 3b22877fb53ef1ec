"""
Secondary-Source Enrichment Orchestrator
========================================
중복 제거된 ASIN 을 배치로 나누어 보조 권위 프로바이더(카탈로그/가격)를 호출하고,
반환 필드를 고정된 출처 우선순위 규칙으로 CanonicalListing 에 병합합니다.

흐름:
1. ASIN 캐시 조회 (신선한 항목은 예산 없이 적용)
2. 카탈로그 배치 (배치당 1회 예산 차감, 제한된 동시 실행)
3. 가격 배치 (남은 예산 범위 내)
4. 커버리지 로그

실패 격리:
- 배치/항목 실패는 형제 배치를 중단하지 않음
- 예산 소진 배치는 건너뛰고 같은 요청 내에서 재시도하지 않음
- 403 을 받은 기능(카탈로그 또는 가격)은 요청 전체에서 비활성화, 대기 중인 배치도 호출하지 않음
- BSR 은 보조 프로바이더의 카테고리 순위만 인정, 없으면 unavailable
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from src.core.call_budget import ApiCallBudget
from src.domain.entities.listing import (
    CanonicalListing,
    FieldConfidence,
    FieldSource,
    FieldValue,
)
from src.domain.exceptions import (
    BudgetExhaustedError,
    ProviderError,
    ProviderPermissionDeniedError,
)
from src.domain.interfaces.provider import CatalogProviderProtocol
from src.shared.constants import ENRICHMENT_BATCH_SIZE, ENRICHMENT_MAX_CONCURRENCY
from src.tools.enrichment.catalog_client import BatchResult, CatalogItem, PricingItem
from src.tools.storage.asin_bsr_cache import AsinBsrCache

logger = logging.getLogger(__name__)


@dataclass
class EnrichmentReport:
    """
    보강 커버리지 보고서

    Attributes:
        requested: 대상 ASIN 수
        from_cache: ASIN 캐시에서 적용한 수
        catalog_enriched: 카탈로그 호출로 보강된 수
        catalog_failed: 카탈로그 실패 ASIN 수
        pricing_enriched: 가격 보강 수
        pricing_failed: 가격 실패 ASIN 수
        batches_called / batches_skipped / batches_failed: 배치 통계
        catalog_disabled: 403 으로 카탈로그 기능 비활성화 여부
        pricing_disabled: 403 또는 설정으로 가격 기능 비활성화 여부
        bsr_available: BSR 보유 리스팅 수
    """

    requested: int = 0
    from_cache: int = 0
    catalog_enriched: int = 0
    catalog_failed: int = 0
    pricing_enriched: int = 0
    pricing_failed: int = 0
    batches_called: int = 0
    batches_skipped: int = 0
    batches_failed: int = 0
    catalog_disabled: bool = False
    pricing_disabled: bool = False
    bsr_available: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)

    @property
    def bsr_coverage(self) -> float:
        return self.bsr_available / self.requested if self.requested else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "requested": self.requested,
            "from_cache": self.from_cache,
            "catalog_enriched": self.catalog_enriched,
            "catalog_failed": self.catalog_failed,
            "pricing_enriched": self.pricing_enriched,
            "pricing_failed": self.pricing_failed,
            "batches_called": self.batches_called,
            "batches_skipped": self.batches_skipped,
            "batches_failed": self.batches_failed,
            "catalog_disabled": self.catalog_disabled,
            "pricing_disabled": self.pricing_disabled,
            "bsr_available": self.bsr_available,
            "bsr_coverage_pct": round(self.bsr_coverage * 100, 1),
        }


def chunk(items: list[str], size: int) -> list[list[str]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


def apply_catalog_item(listing: CanonicalListing, item: CatalogItem) -> None:
    """
    카탈로그 결과를 리스팅에 병합

    보조 프로바이더 값은 secondary_provider/high (추론 값은 secondary_provider/medium).
    카탈로그 응답에 카테고리 순위가 없으면 BSR 은 unavailable 로 남습니다.
    """
    for name in ("title", "brand", "image", "category", "bsr"):
        parsed = getattr(item, name)
        incoming = FieldValue.from_parsed(
            parsed,
            source=FieldSource.SECONDARY_PROVIDER,
            confidence=FieldConfidence.HIGH,
        )
        if incoming.source == FieldSource.INFERRED:
            incoming = FieldValue.secondary(incoming.value, FieldConfidence.MEDIUM)
        if incoming.is_available:
            listing.apply_field(name, incoming)
        elif name == "bsr":
            listing.mark_unavailable("bsr")

    if item.category_code and not listing.category_code:
        listing.category_code = item.category_code


def apply_pricing_item(listing: CanonicalListing, item: PricingItem) -> None:
    """가격 결과 병합 (판매가, 배송 주체)"""
    listing.apply_field(
        "price",
        FieldValue.from_parsed(item.price, FieldSource.SECONDARY_PROVIDER, FieldConfidence.HIGH),
    )
    listing.apply_field(
        "fulfillment",
        FieldValue.from_parsed(item.fulfillment, FieldSource.SECONDARY_PROVIDER, FieldConfidence.HIGH),
    )


class EnrichmentOrchestrator:
    """
    보조 프로바이더 보강 오케스트레이터

    Args:
        catalog_client: 카탈로그/가격 클라이언트
        asin_cache: ASIN 단위 캐시 (None 이면 사용 안 함)
        batch_size: 배치당 ASIN 수
        max_concurrency: 동시 실행 배치 수
        pricing_enabled: 가격 조회 사용 여부
    """

    def __init__(
        self,
        catalog_client: CatalogProviderProtocol,
        asin_cache: AsinBsrCache | None = None,
        batch_size: int = ENRICHMENT_BATCH_SIZE,
        max_concurrency: int = ENRICHMENT_MAX_CONCURRENCY,
        pricing_enabled: bool = True,
    ):
        self.catalog_client = catalog_client
        self.asin_cache = asin_cache
        self.batch_size = batch_size
        self.max_concurrency = max_concurrency
        self.pricing_enabled = pricing_enabled

    async def enrich(
        self,
        listings: list[CanonicalListing],
        budget: ApiCallBudget,
        marketplace: str = "US",
    ) -> EnrichmentReport:
        """
        리스팅 보강

        Args:
            listings: 중복 제거된 정규화 리스팅 (제자리 수정)
            budget: 요청 단위 공유 호출 예산
            marketplace: 마켓 코드

        Returns:
            EnrichmentReport (예외를 올리지 않음)
        """
        report = EnrichmentReport(requested=len(listings))
        by_asin = {listing.asin: listing for listing in listings}
        if not by_asin:
            return report

        pending = list(by_asin)

        # 1. ASIN 캐시
        if self.asin_cache is not None:
            cached = await self.asin_cache.lookup(pending, marketplace)
            for asin, record in cached.items():
                apply_catalog_item(by_asin[asin], CatalogItem.from_cache_record(record))
            report.from_cache = len(cached)
            pending = [asin for asin in pending if asin not in cached]

        semaphore = asyncio.Semaphore(self.max_concurrency)

        # 2. 카탈로그 배치
        fresh_records: dict[str, dict[str, Any]] = {}
        catalog_batches = chunk(pending, self.batch_size)
        catalog_results = await asyncio.gather(
            *(self._run_batch("catalog", batch, budget, marketplace, semaphore, report) for batch in catalog_batches)
        )
        for batch, result in zip(catalog_batches, catalog_results):
            if result is None:
                continue
            for asin, item in result.items.items():
                apply_catalog_item(by_asin[asin], item)
                fresh_records[asin] = item.to_cache_record()
            report.catalog_enriched += len(result.items)
            report.catalog_failed += len(batch) - len(result.items)
            report.errors.extend(result.errors)

        if self.asin_cache is not None and fresh_records:
            self.asin_cache.store(fresh_records, marketplace)

        # 3. 가격 배치
        if self.pricing_enabled:
            await self._enrich_pricing(by_asin, budget, marketplace, semaphore, report)
        else:
            report.pricing_disabled = True

        # 4. BSR 없는 리스팅은 명시적으로 unavailable
        for listing in listings:
            if listing.bsr.is_available:
                report.bsr_available += 1
            else:
                listing.mark_unavailable("bsr")

        self._log_coverage(report, budget)
        return report

    async def _enrich_pricing(
        self,
        by_asin: dict[str, CanonicalListing],
        budget: ApiCallBudget,
        marketplace: str,
        semaphore: asyncio.Semaphore,
        report: EnrichmentReport,
    ) -> None:
        targets = [asin for asin, listing in by_asin.items() if not listing.fulfillment.is_authoritative]
        batches = chunk(targets, self.batch_size)

        results = await asyncio.gather(
            *(self._run_batch("pricing", batch, budget, marketplace, semaphore, report) for batch in batches)
        )
        for batch, result in zip(batches, results):
            if result is None:
                continue
            for asin, item in result.items.items():
                if asin in by_asin:
                    apply_pricing_item(by_asin[asin], item)
            report.pricing_enriched += len(result.items)
            report.pricing_failed += len(batch) - len(result.items)
            report.errors.extend(result.errors)

    @staticmethod
    def _is_disabled(report: EnrichmentReport, label: str) -> bool:
        return report.pricing_disabled if label == "pricing" else report.catalog_disabled

    @staticmethod
    def _disable(report: EnrichmentReport, label: str) -> None:
        if label == "pricing":
            report.pricing_disabled = True
        else:
            report.catalog_disabled = True

    async def _run_batch(
        self,
        label: str,
        batch: list[str],
        budget: ApiCallBudget,
        marketplace: str,
        semaphore: asyncio.Semaphore,
        report: EnrichmentReport,
    ) -> BatchResult | None:
        """
        배치 1건 실행 (비활성화/예산 확인은 세마포어 획득 후 호출 직전, 실패는 격리)

        Args:
            label: "catalog" 또는 "pricing"

        Returns:
            BatchResult 또는 None (건너뜀/실패)
        """
        call = self.catalog_client.get_pricing if label == "pricing" else self.catalog_client.get_catalog_items

        async with semaphore:
            if self._is_disabled(report, label):
                report.batches_skipped += 1
                logger.info(f"{label} disabled for this request: skipped batch of {len(batch)} ASINs")
                return None
            if budget.exhausted:
                budget.skipped += 1
                report.batches_skipped += 1
                logger.info(f"Budget exhausted: skipped {label} batch of {len(batch)} ASINs")
                return None
            try:
                result = await call(batch, budget, marketplace)
            except BudgetExhaustedError:
                report.batches_skipped += 1
                logger.info(f"Budget exhausted: skipped {label} batch of {len(batch)} ASINs")
                return None
            except ProviderPermissionDeniedError as e:
                report.batches_failed += 1
                if not self._is_disabled(report, label):
                    fallback = "primary price" if label == "pricing" else "unavailable BSR"
                    logger.warning(
                        f"{label} permission denied (HTTP {e.status_code}); "
                        f"{label} disabled for this request, falling back to {fallback}"
                    )
                self._disable(report, label)
                return None
            except ProviderError as e:
                report.batches_failed += 1
                report.errors.extend({"asin": asin, "code": type(e).__name__, "message": str(e)} for asin in batch)
                logger.warning(f"{label} batch failed ({len(batch)} ASINs): {e}")
                return None

        report.batches_called += 1
        return result

    @staticmethod
    def _log_coverage(report: EnrichmentReport, budget: ApiCallBudget) -> None:
        logger.info(
            f"Enrichment coverage: catalog {report.catalog_enriched + report.from_cache}/{report.requested} "
            f"(cache {report.from_cache}, failed {report.catalog_failed}, disabled={report.catalog_disabled}), "
            f"pricing {report.pricing_enriched} (failed {report.pricing_failed}, disabled={report.pricing_disabled}), "
            f"BSR {report.bsr_available}/{report.requested}, "
            f"batches called={report.batches_called} skipped={report.batches_skipped} "
            f"failed={report.batches_failed}, budget {budget.count}/{budget.max_calls}"
        )
