"""
Market Calibration
==================
원시 시장 합계를 경쟁 수준별 신뢰 구간(band)으로 보정합니다.

단계:
1. 경쟁 수준 추론 (리스팅 수, 리뷰 수 분산, 스폰서 밀도)
2. 보정 계수 = clamp(구간 중앙값 / 원시 판매량, 0.8, 1.2) × 카테고리 배수
3. 판매량/매출을 구간 min/max 로 clamp
4. 신뢰도 점수(0-100)로 범위 폭 결정

보정은 합계만 조정하며 리스팅 간 순위는 바꾸지 않습니다.
리스팅 단위 판매량은 보정된 합계를 가중치 비율로 최대 잔여 방식 할당합니다.
"""

import logging
import math
from collections.abc import Sequence

from src.domain.entities.listing import CanonicalListing
from src.domain.entities.market import CalibrationResult, ConfidenceLabel
from src.shared.constants import (
    CALIBRATION_CATEGORY_MULTIPLIERS,
    CALIBRATION_FACTOR_BOUNDS,
    CALIBRATION_RANGE_WIDTH,
    MARKET_RANGES,
)

logger = logging.getLogger(__name__)


def review_dispersion(listings: Sequence[CanonicalListing]) -> float:
    """리뷰 수 모표준편차 (리뷰 0 또는 없음은 제외)"""
    reviews = [l.review_count for l in listings if l.review_count]
    if not reviews:
        return 0.0
    mean = sum(reviews) / len(reviews)
    variance = sum((r - mean) ** 2 for r in reviews) / len(reviews)
    return math.sqrt(variance)


def sponsored_density_pct(listings: Sequence[CanonicalListing]) -> float:
    if not listings:
        return 0.0
    return sum(1 for l in listings if l.is_sponsored) / len(listings) * 100


def competition_level(listing_count: int, dispersion: float, sponsored_pct: float) -> str:
    """low / medium / high"""
    if listing_count < 8 or (dispersion < 500 and sponsored_pct < 20):
        return "low"
    if listing_count >= 15 and (dispersion > 2000 or sponsored_pct > 40):
        return "high"
    return "medium"


def calibration_confidence(
    listing_count: int, dispersion: float, sponsored_pct: float
) -> tuple[int, ConfidenceLabel, str]:
    """
    보정 신뢰도

    Returns:
        (점수 0-100, 라벨, 근거 문자열)
    """
    score = 0
    reasons: list[str] = []

    if listing_count >= 15:
        score += 40
        reasons.append("Strong listing coverage (15+ products)")
    elif listing_count >= 8:
        score += 25
        reasons.append("Moderate listing coverage (8-14 products)")
    elif listing_count >= 5:
        score += 10
        reasons.append("Limited listing coverage (5-7 products)")
    else:
        reasons.append("Sparse listing coverage (< 5 products)")

    if dispersion > 1000:
        score += 30
        reasons.append("High review diversity indicates established market")
    elif dispersion > 500:
        score += 20
        reasons.append("Moderate review diversity")
    elif dispersion > 0:
        score += 10
        reasons.append("Low review diversity - market may be new")
    else:
        reasons.append("No review data available")

    if sponsored_pct < 20:
        score += 30
        reasons.append("Low sponsored density suggests organic competition")
    elif sponsored_pct < 40:
        score += 15
        reasons.append("Moderate sponsored density")
    else:
        score += 5
        reasons.append("High sponsored density may indicate paid competition")

    if score >= 70:
        label = ConfidenceLabel.HIGH
    elif score >= 40:
        label = ConfidenceLabel.MEDIUM
    else:
        label = ConfidenceLabel.LOW
    return score, label, ". ".join(reasons) + "."


def calibrate_market_totals(
    raw_units: int,
    raw_revenue: float,
    listings: Sequence[CanonicalListing],
    price_band: tuple[float, float],
    category_bucket: str | None = None,
) -> CalibrationResult | None:
    """
    시장 합계 보정

    Args:
        raw_units: 감쇠 적용 후 시장 판매량
        raw_revenue: 감쇠 적용 후 시장 매출
        listings: 정규화 리스팅 (경쟁 수준 신호용)
        price_band: (최저가, 최고가)
        category_bucket: electronics / home / beauty / health / default

    Returns:
        CalibrationResult (원시 판매량이 0 이면 None)
    """
    if raw_units <= 0:
        return None

    count = len(listings)
    dispersion = review_dispersion(listings)
    sponsored_pct = sponsored_density_pct(listings)
    level = competition_level(count, dispersion, sponsored_pct)
    band = MARKET_RANGES[level]

    category_multiplier = CALIBRATION_CATEGORY_MULTIPLIERS.get(
        category_bucket or "default", CALIBRATION_CATEGORY_MULTIPLIERS["default"]
    )
    target_units = (band["units_min"] + band["units_max"]) / 2
    low_bound, high_bound = CALIBRATION_FACTOR_BOUNDS
    factor = max(low_bound, min(high_bound, target_units / raw_units))

    units = round(raw_units * factor * category_multiplier)
    units = max(band["units_min"], min(band["units_max"], units))

    revenue = round(raw_revenue * factor * category_multiplier)
    avg_price = (price_band[0] + price_band[1]) / 2
    revenue = max(band["revenue_min"], min(band["revenue_max"], max(units * avg_price, revenue)))

    score, confidence, reason = calibration_confidence(count, dispersion, sponsored_pct)
    width = CALIBRATION_RANGE_WIDTH[confidence.value]
    units_range = (
        max(band["units_min"], round(units * (1 - width))),
        min(band["units_max"], round(units * (1 + width))),
    )
    revenue_range = (
        float(max(band["revenue_min"], round(revenue * (1 - width), 2))),
        float(min(band["revenue_max"], round(revenue * (1 + width), 2))),
    )

    result = CalibrationResult(
        competition_level=level,
        calibrated_units=units,
        calibrated_revenue=round(float(revenue), 2),
        units_range=units_range,
        revenue_range=revenue_range,
        calibration_factor=round(factor * category_multiplier, 4),
        category_multiplier=category_multiplier,
        confidence=confidence,
        confidence_score=score,
        confidence_reason=reason,
    )
    logger.info(
        f"Market calibration: {level} competition, {raw_units} → {units} units, "
        f"factor x{result.calibration_factor}, confidence {confidence.value} ({score})"
    )
    return result


def allocate_units(weights: dict[str, float], total_units: int) -> dict[str, int]:
    """
    합계를 가중치 비율로 정수 할당 (최대 잔여 방식, 합계 정확히 보존)

    Args:
        weights: {asin: 가중 판매량}
        total_units: 할당할 합계

    Returns:
        {asin: 할당 판매량}
    """
    weight_sum = sum(weights.values())
    if weight_sum <= 0 or total_units <= 0:
        return {asin: 0 for asin in weights}

    exact = {asin: total_units * w / weight_sum for asin, w in weights.items()}
    allocated = {asin: math.floor(v) for asin, v in exact.items()}
    remainder = total_units - sum(allocated.values())
    # 잔여가 큰 순 (동률은 ASIN 순)으로 1씩 배분
    order = sorted(exact, key=lambda a: (-(exact[a] - allocated[a]), a))
    for asin in order[:remainder]:
        allocated[asin] += 1
    return allocated


def apply_allocation(listings: Sequence[CanonicalListing], allocation: dict[str, int]) -> None:
    """리스팅별 판매량/매출 기록 (매출 = 판매량 × 가격)"""
    for listing in listings:
        units = allocation.get(listing.asin)
        if units is None:
            listing.estimated_units = None
            listing.estimated_revenue = None
            continue
        price = float(listing.price.value)
        listing.estimated_units = units
        listing.estimated_revenue = round(units * price, 2)
