"""
Brand Resolver
==============
리스팅 → 브랜드 판정 (우선순위 워터폴 + 빈도/매출 비중 승격)

## 사용법
```python
resolver = BrandResolver()

# 1. 정규화 단계: 검색 결과 행에서 브랜드 판정
resolution = resolver.resolve(rows)

# 2. 보강 이후: 보조 프로바이더 브랜드 반영
resolver.apply_secondary_brand(listing)

# 3. 추정 이후: 빈도/매출 비중으로 상태 승격
resolver.resolve_brand_frequency(listings)
```

## 워터폴 (첫 매칭 우선)
1. 공식 브랜드 플래그 → canonical
2. 프로바이더 구조화 브랜드 필드 → canonical
3. 판매자/스토어명 (플랫폼 자체 이름 제외) → low_confidence
4. 제목 앞부분 대문자 토큰 1-3개 (일반 단어에서 중단) → low_confidence
5. 그 외 → unknown (raw_brand = None)

raw_brand 는 어떤 단계에서도 지워지지 않습니다.
"""

import logging
import re
from collections import Counter
from collections.abc import Callable, Sequence
from typing import Any

from src.domain.entities.listing import (
    BrandResolution,
    BrandSource,
    BrandStatus,
    CanonicalListing,
    FieldSource,
    RawListing,
)
from src.shared.constants import (
    BRAND_FALLBACK_UNITS_PER_LISTING,
    BRAND_MIN_FREQUENCY,
    BRAND_MIN_REVENUE_SHARE,
    BRAND_NORMALIZATION,
    BRAND_TITLE_STOPWORDS,
    PLATFORM_NAMES,
)

logger = logging.getLogger(__name__)

_TITLE_BRAND_RE = re.compile(r"^([A-Z][a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+){0,2})")
_ALL_CAPS_BRAND_RE = re.compile(r"^([A-Z]{2,}(?:\s+[A-Z]{2,})?)")
_WHITESPACE_RE = re.compile(r"\s+")

BrandStrategy = Callable[[RawListing], BrandResolution | None]


# =============================================================================
# 정규화 헬퍼
# =============================================================================


def normalize_brand(raw: str | None) -> str | None:
    """공백 정리 + 알려진 표기 통일 (예: 'amazonbasics' → 'Amazon Basics')"""
    if raw is None:
        return None
    cleaned = _WHITESPACE_RE.sub(" ", raw).strip()
    if not cleaned:
        return None
    return BRAND_NORMALIZATION.get(cleaned.lower(), cleaned)


def brand_key(name: str | None) -> str | None:
    """빈도 집계용 비교 키"""
    normalized = normalize_brand(name)
    return normalized.lower() if normalized else None


def is_platform_name(name: str) -> bool:
    lowered = name.lower()
    return any(platform in lowered for platform in PLATFORM_NAMES)


def extract_brand_from_title(title: str | None) -> str | None:
    """
    제목 앞부분에서 브랜드 후보 추출

    Args:
        title: 제품명

    Returns:
        대문자로 시작하는 토큰 1-3개 (일반 단어를 만나면 중단), 없으면 None

    Example:
        >>> extract_brand_from_title("Acme Electric Kettle 1.7L")
        'Acme'
    """
    if not title:
        return None
    text = title.strip()

    match = _TITLE_BRAND_RE.match(text)
    if match:
        tokens: list[str] = []
        for token in match.group(1).split():
            if token.lower() in BRAND_TITLE_STOPWORDS:
                break
            tokens.append(token)
        if tokens:
            return " ".join(tokens)

    match = _ALL_CAPS_BRAND_RE.match(text)
    if match:
        tokens = [t for t in match.group(1).split() if t.lower() not in BRAND_TITLE_STOPWORDS]
        if tokens:
            return " ".join(tokens)
    return None


# =============================================================================
# 워터폴 전략 (순수 함수, 우선순위 순)
# =============================================================================


def from_official_flag(row: RawListing) -> BrandResolution | None:
    if not row.is_official_brand or not row.brand:
        return None
    return BrandResolution(
        raw_brand=row.brand,
        normalized_brand=normalize_brand(row.brand),
        brand_status=BrandStatus.CANONICAL,
        brand_source=BrandSource.OFFICIAL_FLAG,
    )


def from_provider_brand_field(row: RawListing) -> BrandResolution | None:
    if not row.brand or not row.brand.strip():
        return None
    return BrandResolution(
        raw_brand=row.brand,
        normalized_brand=normalize_brand(row.brand),
        brand_status=BrandStatus.CANONICAL,
        brand_source=BrandSource.PROVIDER_BRAND_FIELD,
    )


def from_seller_name(row: RawListing) -> BrandResolution | None:
    if not row.seller_name or not row.seller_name.strip() or is_platform_name(row.seller_name):
        return None
    return BrandResolution(
        raw_brand=row.seller_name,
        normalized_brand=normalize_brand(row.seller_name),
        brand_status=BrandStatus.LOW_CONFIDENCE,
        brand_source=BrandSource.SELLER_NAME,
    )


def from_title(row: RawListing) -> BrandResolution | None:
    candidate = extract_brand_from_title(row.title)
    if candidate is None:
        return None
    return BrandResolution(
        raw_brand=candidate,
        normalized_brand=normalize_brand(candidate),
        brand_status=BrandStatus.LOW_CONFIDENCE,
        brand_source=BrandSource.INFERRED_FROM_TITLE,
    )


BRAND_STRATEGIES: tuple[BrandStrategy, ...] = (
    from_official_flag,
    from_provider_brand_field,
    from_seller_name,
    from_title,
)


class BrandResolver:
    """리스팅 브랜드 판정기"""

    def __init__(self, strategies: Sequence[BrandStrategy] = BRAND_STRATEGIES):
        """
        Args:
            strategies: 우선순위 순 전략 목록
        """
        self.strategies = tuple(strategies)

    def resolve(self, rows: Sequence[RawListing]) -> BrandResolution:
        """
        같은 ASIN 의 검색 결과 행들로 브랜드 판정

        전략 순서가 행 순서보다 우선합니다 (1순위 전략을 모든 행에 먼저 적용).

        Returns:
            BrandResolution (매칭 없으면 unknown)
        """
        for strategy in self.strategies:
            for row in rows:
                resolution = strategy(row)
                if resolution is not None:
                    return resolution
        return BrandResolution()

    @staticmethod
    def apply_secondary_brand(listing: CanonicalListing) -> bool:
        """
        보조 프로바이더 브랜드를 판정 결과에 반영

        기존 raw_brand 는 유지하고 정규화 브랜드와 출처만 교체합니다.
        상태 승격은 resolve_brand_frequency 에서 처리합니다.

        Returns:
            반영했으면 True
        """
        field_value = listing.brand
        if field_value.source != FieldSource.SECONDARY_PROVIDER or not field_value.value:
            return False

        current = listing.brand_resolution
        status = current.brand_status
        if status == BrandStatus.UNKNOWN:
            status = BrandStatus.LOW_CONFIDENCE

        listing.brand_resolution = BrandResolution(
            raw_brand=current.raw_brand or field_value.value,
            normalized_brand=normalize_brand(field_value.value),
            brand_status=status,
            brand_source=BrandSource.SECONDARY_PROVIDER,
        )
        return True

    @staticmethod
    def resolve_brand_frequency(listings: Sequence[CanonicalListing]) -> dict[str, Any]:
        """
        빈도/출처/매출 비중 기반 canonical 승격

        승격 조건 (하나라도 충족):
        - 같은 브랜드가 2개 이상 리스팅에 등장
        - 보조 권위 프로바이더에서 온 브랜드
        - 페이지 추정 매출의 3% 이상 (추정치 없으면 price × 50 사용)

        Returns:
            {"upgraded": int, "brand_counts": {brand: count}}
        """
        counts: Counter[str] = Counter()
        revenue: Counter[str] = Counter()
        for listing in listings:
            key = brand_key(listing.brand_name)
            if key is None:
                continue
            counts[key] += 1
            revenue[key] += _listing_revenue(listing)

        total_revenue = sum(revenue.values())
        upgraded = 0
        for listing in listings:
            resolution = listing.brand_resolution
            key = brand_key(listing.brand_name)
            if key is None or resolution.brand_status == BrandStatus.CANONICAL:
                continue

            share = revenue[key] / total_revenue if total_revenue > 0 else 0.0
            if (
                counts[key] >= BRAND_MIN_FREQUENCY
                or resolution.brand_source == BrandSource.SECONDARY_PROVIDER
                or share >= BRAND_MIN_REVENUE_SHARE
            ):
                listing.brand_resolution = resolution.with_status(BrandStatus.CANONICAL)
                upgraded += 1

        if upgraded:
            logger.info(f"Brand frequency pass: upgraded {upgraded} listings to canonical")
        return {"upgraded": upgraded, "brand_counts": dict(counts)}


def _listing_revenue(listing: CanonicalListing) -> float:
    if listing.estimated_revenue is not None:
        return float(listing.estimated_revenue)
    price = listing.price.value if listing.price.is_available else None
    if isinstance(price, (int, float)):
        return float(price) * BRAND_FALLBACK_UNITS_PER_LISTING
    return 0.0
