"""
Search Volume Estimator

리스팅 수 기반 휴리스틱 곱셈 모델로 월 검색량 범위를 추정합니다.
점 추정치는 반환하지 않습니다.

    base = 리스팅 수 × 1500
    × 리뷰 배수 (평균 리뷰 <100: 0.7, <500: 1.0, <1500: 1.3, 그 이상: 1.6)
    × 스폰서 배수 (스폰서 비율 > 30% 이면 1.15)
    × 카테고리 배수 (키워드 추론, high_demand 1.3 / standard 1.0)
    범위 = [추정 × 0.7, 추정 × 1.3]
"""

import logging
from collections.abc import Sequence

from src.domain.entities.listing import CanonicalListing
from src.domain.entities.market import ConfidenceLabel, SearchVolumeEstimate
from src.shared.constants import (
    SEARCH_VOLUME_CATEGORY_BUCKETS,
    SEARCH_VOLUME_PER_LISTING,
    SEARCH_VOLUME_RANGE,
    SEARCH_VOLUME_REVIEW_BANDS,
    SEARCH_VOLUME_REVIEW_CEILING,
    SEARCH_VOLUME_SPONSORED_BUMP,
    SEARCH_VOLUME_SPONSORED_THRESHOLD,
)

logger = logging.getLogger(__name__)


def infer_category_bucket(keyword: str) -> str | None:
    """키워드에서 카테고리 버킷 추론 (없으면 None)"""
    lowered = keyword.lower()
    for bucket, config in SEARCH_VOLUME_CATEGORY_BUCKETS.items():
        if any(term in lowered for term in config["keywords"]):
            return bucket
    return None


def review_multiplier(avg_reviews: float) -> float:
    for upper, multiplier in SEARCH_VOLUME_REVIEW_BANDS:
        if avg_reviews < upper:
            return multiplier
    return SEARCH_VOLUME_REVIEW_CEILING


def format_volume(value: int) -> str:
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if value >= 1000:
        return f"{round(value / 1000)}k"
    return str(value)


def format_range(low: int, high: int) -> str:
    return f"{format_volume(low)}–{format_volume(high)}"


def estimate_search_volume(keyword: str, listings: Sequence[CanonicalListing]) -> SearchVolumeEstimate | None:
    """
    검색량 범위 추정

    Args:
        keyword: 검색 키워드
        listings: 정규화 리스팅

    Returns:
        SearchVolumeEstimate (리스팅이 하나도 없으면 None)
    """
    if not listings:
        return None

    count = len(listings)
    reviews = [l.review_count for l in listings if l.review_count is not None]
    avg_reviews = sum(reviews) / len(reviews) if reviews else 0.0
    sponsored_share = sum(1 for l in listings if l.is_sponsored) / count

    bucket = infer_category_bucket(keyword)
    multipliers = {
        "review": review_multiplier(avg_reviews),
        "sponsored": SEARCH_VOLUME_SPONSORED_BUMP if sponsored_share > SEARCH_VOLUME_SPONSORED_THRESHOLD else 1.0,
        "category": SEARCH_VOLUME_CATEGORY_BUCKETS[bucket]["multiplier"] if bucket else 1.0,
    }

    estimate = count * SEARCH_VOLUME_PER_LISTING
    for value in multipliers.values():
        estimate *= value

    low_factor, high_factor = SEARCH_VOLUME_RANGE
    low = round(estimate * low_factor)
    high = round(estimate * high_factor)
    confidence = ConfidenceLabel.MEDIUM if bucket else ConfidenceLabel.LOW

    logger.debug(
        f"Search volume '{keyword}': {low}-{high} (listings={count}, avg_reviews={avg_reviews:.0f}, "
        f"sponsored={sponsored_share:.0%}, bucket={bucket})"
    )
    return SearchVolumeEstimate(
        min=low,
        max=high,
        confidence=confidence,
        display=format_range(low, high),
        category_bucket=bucket,
        multipliers=multipliers,
    )
