"""
Listing Canonicalizer
=====================
RawListing (행 단위) → CanonicalListing (ASIN 단위) 변환

- ASIN 기준 중복 제거 (첫 노출 행이 대표)
- 오가닉 순위 = 스폰서가 아닌 첫 노출 위치 (스폰서 전용이면 None)
- AsinSponsoredMeta 는 수집 단계 값을 그대로 부착
- 1차 프로바이더 필드는 primary_provider/medium 으로 기록
- 브랜드는 BrandResolver 워터폴로 판정
"""

import logging
from collections.abc import Sequence

from src.domain.entities.listing import (
    AsinSponsoredMeta,
    BrandSource,
    CanonicalListing,
    FieldValue,
    RawListing,
)
from src.tools.utilities.brand_resolver import BrandResolver

logger = logging.getLogger(__name__)


def _first(rows: Sequence[RawListing], attr: str):
    for row in rows:
        value = getattr(row, attr)
        if value is not None:
            return value
    return None


class ListingCanonicalizer:
    """ASIN 단위 정규화기"""

    def __init__(self, brand_resolver: BrandResolver | None = None):
        self.brand_resolver = brand_resolver or BrandResolver()

    def canonicalize(
        self,
        rows: Sequence[RawListing],
        sponsored_meta: dict[str, AsinSponsoredMeta],
    ) -> list[CanonicalListing]:
        """
        중복 제거 및 정규화

        Args:
            rows: 위치 순 RawListing 목록
            sponsored_meta: 수집 단계에서 계산된 ASIN 별 스폰서 집계

        Returns:
            첫 노출 위치 순 CanonicalListing 목록
        """
        grouped: dict[str, list[RawListing]] = {}
        for row in sorted(rows, key=lambda r: r.position):
            grouped.setdefault(row.asin, []).append(row)

        listings = [
            self._build(asin, group, sponsored_meta.get(asin, AsinSponsoredMeta()))
            for asin, group in grouped.items()
        ]

        # 오가닉 순위는 오가닉 노출끼리의 순번
        organic = sorted(
            (l for l in listings if l.organic_rank is not None), key=lambda l: l.organic_rank
        )
        for rank, listing in enumerate(organic, start=1):
            listing.organic_rank = rank

        logger.info(
            f"Canonicalized {len(rows)} rows into {len(listings)} listings "
            f"({len(organic)} organic, {sum(1 for l in listings if l.is_sponsored)} sponsored ASINs)"
        )
        return listings

    def _build(
        self,
        asin: str,
        rows: list[RawListing],
        meta: AsinSponsoredMeta,
    ) -> CanonicalListing:
        organic_positions = [r.position for r in rows if not r.is_sponsored]
        listing = CanonicalListing(
            asin=asin,
            organic_rank=min(organic_positions) if organic_positions else None,
            positions=[r.position for r in rows],
            sponsored_meta=meta,
            title=FieldValue.primary(_first(rows, "title")),
            image=FieldValue.primary(_first(rows, "image_url")),
            price=FieldValue.primary(_first(rows, "price")),
            rating=_first(rows, "rating"),
            review_count=_first(rows, "review_count"),
            seller_name=_first(rows, "seller_name"),
            delivery_text=_first(rows, "delivery_text"),
            is_prime=_first(rows, "is_prime"),
            fulfillment_hint=_first(rows, "fulfillment_hint"),
        )

        resolution = self.brand_resolver.resolve(rows)
        listing.brand_resolution = resolution
        if resolution.brand_source == BrandSource.INFERRED_FROM_TITLE:
            listing.brand = FieldValue.inferred(resolution.normalized_brand)
        elif resolution.normalized_brand:
            listing.brand = FieldValue.primary(resolution.normalized_brand)
        return listing
