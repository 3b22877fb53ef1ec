"""
Market Aggregates
=================
스냅샷용 페이지 단위 집계:
- 가격/리뷰/평점/BSR 통계
- 배송 주체 구성비 (합계 정확히 100, 최대 잔여 반올림)
- 브랜드 점유율 / 상위 브랜드
- PPC(광고) 강도 지표
- 브랜드 해자 (매출 비중 기반)
"""

import logging
import math
import statistics
from collections import Counter, defaultdict
from collections.abc import Sequence
from typing import Any

from src.domain.entities.listing import CanonicalListing, FieldSource, FulfillmentChannel
from src.domain.entities.market import (
    BrandMoat,
    BrandShare,
    FulfillmentMix,
    PPCIndicators,
    StatSummary,
)
from src.shared.constants import (
    MOAT_MODERATE,
    MOAT_STRONG,
    MOAT_WEAK_TOP,
    PPC_MAX_SIGNALS,
    PPC_TOP_ORGANIC_SAMPLE,
)
from src.tools.calculators.competitive_pressure import listing_prices, price_spread_ratio

logger = logging.getLogger(__name__)

UNKNOWN_BRAND = "Unknown"


# =============================================================================
# 통계
# =============================================================================


def summarize(values: Sequence[float], sampling_method: str = "all_listings") -> StatSummary:
    if not values:
        return StatSummary(sampling_method=sampling_method)
    return StatSummary(
        count=len(values),
        min=round(min(values), 2),
        max=round(max(values), 2),
        avg=round(sum(values) / len(values), 2),
        median=round(statistics.median(values), 2),
        sampling_method=sampling_method,
    )


def listing_stats(listings: Sequence[CanonicalListing]) -> dict[str, StatSummary]:
    """가격/리뷰/평점/BSR 통계 (값이 있는 리스팅만)"""
    bsr_values = [
        float(l.bsr.value) for l in listings if l.bsr.is_available and isinstance(l.bsr.value, (int, float))
    ]
    return {
        "price_stats": summarize(listing_prices(listings)),
        "review_stats": summarize([float(l.review_count) for l in listings if l.review_count is not None]),
        "rating_stats": summarize([float(l.rating) for l in listings if l.rating is not None]),
        "bsr_stats": summarize(bsr_values, sampling_method="secondary_provider_bsr"),
    }


# =============================================================================
# 배송 주체 구성비
# =============================================================================


def largest_remainder_percentages(counts: dict[str, int]) -> dict[str, int]:
    """
    개수를 정수 백분율로 변환 (합계 정확히 100)

    내림 후 잔여가 큰 순서(동률은 키 순서)로 1씩 더합니다.
    """
    total = sum(counts.values())
    if total <= 0:
        return {key: 0 for key in counts}
    exact = {key: count * 100 / total for key, count in counts.items()}
    floored = {key: math.floor(value) for key, value in exact.items()}
    remainder = 100 - sum(floored.values())
    keys = list(counts)
    order = sorted(keys, key=lambda k: (-(exact[k] - floored[k]), keys.index(k)))
    for key in order[:remainder]:
        floored[key] += 1
    return floored


def fulfillment_mix(listings: Sequence[CanonicalListing]) -> FulfillmentMix:
    """배송 주체 구성비 (리스팅이 없으면 unknown 100)"""
    if not listings:
        return FulfillmentMix()

    counts = {"fba": 0, "fbm": 0, "amazon": 0, "unknown": 0}
    sources: Counter[str] = Counter()
    for listing in listings:
        value = listing.fulfillment.value if listing.fulfillment.is_available else FulfillmentChannel.UNKNOWN
        channel = FulfillmentChannel(value)
        counts[channel.value.lower()] += 1
        if channel != FulfillmentChannel.UNKNOWN:
            sources[listing.fulfillment.source.value] += 1

    percentages = largest_remainder_percentages(counts)
    source = sources.most_common(1)[0][0] if sources else FieldSource.UNAVAILABLE.value
    return FulfillmentMix(**percentages, counts=counts, source=source)


# =============================================================================
# 브랜드
# =============================================================================


def brand_counts(listings: Sequence[CanonicalListing]) -> Counter[str]:
    return Counter(l.brand_name for l in listings if l.brand_name)


def brand_dominance_pct(listings: Sequence[CanonicalListing]) -> float:
    """최상위 브랜드의 리스팅 점유율 (%)"""
    counts = brand_counts(listings)
    if not listings or not counts:
        return 0.0
    return round(counts.most_common(1)[0][1] / len(listings) * 100, 1)


def top_brands(listings: Sequence[CanonicalListing], limit: int = 5) -> list[dict[str, Any]]:
    counts = brand_counts(listings)
    total = len(listings)
    return [
        {"brand": brand, "listing_count": count, "share_pct": round(count / total * 100, 1)}
        for brand, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:limit]
    ]


def brand_moat(listings: Sequence[CanonicalListing]) -> BrandMoat:
    """
    브랜드 해자 (추정 매출 비중 기반)

    - strong: 상위 1개 ≥ 35% 또는 상위 3개 ≥ 65%
    - moderate: 상위 1개 ≥ 25% 또는 상위 3개 ≥ 50%
    - weak: 상위 1개 ≥ 15%
    - none: 그 외
    """
    revenue: dict[str, float] = defaultdict(float)
    asin_counts: Counter[str] = Counter()
    for listing in listings:
        if not listing.estimated_revenue:
            continue
        brand = listing.brand_name or UNKNOWN_BRAND
        revenue[brand] += listing.estimated_revenue
        asin_counts[brand] += 1

    total = sum(revenue.values())
    if total <= 0:
        return BrandMoat()

    breakdown = [
        BrandShare(
            brand=brand,
            asin_count=asin_counts[brand],
            total_revenue=round(value, 2),
            revenue_share_pct=round(value / total * 100, 2),
        )
        for brand, value in sorted(revenue.items(), key=lambda kv: (-kv[1], kv[0]))
    ]
    top = breakdown[0].revenue_share_pct
    top3 = round(sum(b.revenue_share_pct for b in breakdown[:3]), 2)

    if top >= MOAT_STRONG[0] or top3 >= MOAT_STRONG[1]:
        strength = "strong"
    elif top >= MOAT_MODERATE[0] or top3 >= MOAT_MODERATE[1]:
        strength = "moderate"
    elif top >= MOAT_WEAK_TOP:
        strength = "weak"
    else:
        strength = "none"

    return BrandMoat(
        moat_strength=strength,
        total_brands_count=len(breakdown),
        top_brand_revenue_share_pct=top,
        top_3_brands_revenue_share_pct=top3,
        brand_breakdown=breakdown,
    )


# =============================================================================
# PPC 지표
# =============================================================================


def ppc_indicators(listings: Sequence[CanonicalListing]) -> PPCIndicators:
    """
    광고 강도 지표

    점수: 스폰서 비율(≥50: 3, ≥25: 2, >0: 1) + 리뷰 장벽(≥5000: 2, ≥1000: 1)
          + 가격 경쟁(스프레드 < 0.3: 1) + 브랜드 점유(≥40%: 1)
    라벨: ≥4 High, ≥2 Medium, 그 외 Low
    """
    if not listings:
        return PPCIndicators(signals=["No listings available"])

    sponsored_count = sum(1 for l in listings if l.is_sponsored)
    sponsored_pct = round(sponsored_count / len(listings) * 100, 1)

    organic = sorted((l for l in listings if l.organic_rank is not None), key=lambda l: l.organic_rank)
    top_reviews = [l.review_count for l in organic[:PPC_TOP_ORGANIC_SAMPLE] if l.review_count is not None]
    review_barrier = float(statistics.median(top_reviews)) if top_reviews else None

    spread = price_spread_ratio(listings)
    dominance = brand_dominance_pct(listings)

    score = 0
    signals: list[str] = []
    if sponsored_pct >= 50:
        score += 3
        signals.append(f"Heavy sponsored presence: {sponsored_pct}% of listings")
    elif sponsored_pct >= 25:
        score += 2
        signals.append(f"Notable sponsored presence: {sponsored_pct}% of listings")
    elif sponsored_pct > 0:
        score += 1

    if review_barrier is not None and review_barrier >= 5000:
        score += 2
        signals.append(f"High review barrier: median {review_barrier:,.0f} reviews in top organic")
    elif review_barrier is not None and review_barrier >= 1000:
        score += 1
        signals.append(f"Moderate review barrier: median {review_barrier:,.0f} reviews in top organic")

    if spread is not None and spread < 0.3:
        score += 1
        signals.append(f"Tight price band: spread {spread * 100:.0f}% of average price")

    if dominance >= 40:
        score += 1
        signals.append(f"Brand concentration: top brand holds {dominance}% of listings")

    if score >= 4:
        label = "High"
    elif score >= 2:
        label = "Medium"
    else:
        label = "Low"

    if not signals:
        signals.append(f"Sponsored density: {sponsored_pct}%")

    return PPCIndicators(
        sponsored_pct=sponsored_pct,
        sponsored_count=sponsored_count,
        review_barrier=review_barrier,
        price_competition=round(spread, 4) if spread is not None else None,
        dominance=dominance,
        ad_intensity_label=label,
        signals=signals[:PPC_MAX_SIGNALS],
    )
