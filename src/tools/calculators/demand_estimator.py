"""
Demand & Revenue Estimator
==========================
카테고리 BSR 과 가격이 모두 있는 리스팅만으로 월 판매량/매출을 추정합니다.

계산 순서:
1. BSR → 월 판매량 (카테고리 곡선, 정규화된 카테고리명 사용)
2. 순위 가중치: 오가닉 e^(-0.15·(rank-1)), 스폰서 전용 0.5
3. 전체 합산 후 시장 단위 감쇠 계수 1회 적용
   (high ×0.95 / medium ×0.80 / low ×0.65, BSR 커버리지 50% 미만이면 추가 ×0.85)

리스팅 단위 감쇠는 하지 않습니다 (불확실성 이중 반영 방지).

사용법:
    estimator = DemandEstimator()
    result = estimator.estimate(listings)
    print(result.estimate.total_units, result.weighted_units)
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from src.domain.entities.listing import CanonicalListing
from src.domain.entities.market import ConfidenceLabel, DemandEstimate
from src.domain.exceptions import EstimationError
from src.shared.constants import (
    DAMPENING_BY_CONFIDENCE,
    DEMAND_LEVEL_FLOOR,
    DEMAND_LEVELS,
    LOW_BSR_COVERAGE_PENALTY,
    LOW_BSR_COVERAGE_THRESHOLD,
    RANK_DECAY,
    SPONSORED_ONLY_WEIGHT,
)
from src.tools.calculators.bsr_curves import estimate_monthly_units
from src.tools.utilities.category_normalizer import normalize_category

logger = logging.getLogger(__name__)


@dataclass
class DemandComputation:
    """
    추정 결과 + 리스팅별 가중 판매량 (이후 할당 단계에서 사용)

    Attributes:
        estimate: 시장 단위 추정치
        weighted_units: {asin: 가중 판매량 (감쇠 전)}
        curve_by_asin: {asin: 사용한 곡선명}
    """

    estimate: DemandEstimate
    weighted_units: dict[str, float] = field(default_factory=dict)
    curve_by_asin: dict[str, str] = field(default_factory=dict)


def rank_weight(organic_rank: int | None) -> float:
    """오가닉 순위 가중치 (순위 없음 = 스폰서 전용)"""
    if organic_rank is None:
        return SPONSORED_ONLY_WEIGHT
    return math.exp(-RANK_DECAY * (max(organic_rank, 1) - 1))


def data_confidence(bsr_coverage: float, estimated_count: int) -> ConfidenceLabel:
    """BSR 커버리지와 추정 가능 리스팅 수로 데이터 신뢰도 판정"""
    if bsr_coverage >= 0.7 and estimated_count >= 8:
        return ConfidenceLabel.HIGH
    if bsr_coverage >= 0.4 and estimated_count >= 3:
        return ConfidenceLabel.MEDIUM
    return ConfidenceLabel.LOW


def dampening_factor(confidence: ConfidenceLabel, bsr_coverage: float) -> float:
    """시장 단위 감쇠 계수 (단일 값으로 합성)"""
    factor = DAMPENING_BY_CONFIDENCE[confidence.value]
    if bsr_coverage < LOW_BSR_COVERAGE_THRESHOLD:
        factor *= LOW_BSR_COVERAGE_PENALTY
    return factor


def demand_level(total_units: int, estimated_count: int) -> str:
    if estimated_count <= 0:
        return DEMAND_LEVEL_FLOOR
    average = total_units / estimated_count
    for threshold, label in DEMAND_LEVELS:
        if average >= threshold:
            return label
    return DEMAND_LEVEL_FLOOR


def _numeric(value) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


class DemandEstimator:
    """BSR 기반 수요/매출 추정기"""

    def __init__(self, fallback_category: str | None = None):
        """
        Args:
            fallback_category: 리스팅 카테고리가 없을 때 사용할 카테고리명
        """
        self.fallback_category = fallback_category

    def estimate(self, listings: Sequence[CanonicalListing]) -> DemandComputation:
        """
        수요 추정

        Args:
            listings: 보강/정규화가 끝난 리스팅

        Returns:
            DemandComputation

        Raises:
            EstimationError: 곡선 계산 실패 (입력 데이터 부족과 구분됨)
        """
        total = len(listings)
        eligible: list[tuple[CanonicalListing, int, float]] = []
        for listing in listings:
            bsr = _numeric(listing.bsr.value) if listing.bsr.is_available else None
            price = _numeric(listing.price.value) if listing.price.is_available else None
            if bsr is None or bsr < 1 or price is None or price <= 0:
                continue
            eligible.append((listing, int(bsr), price))

        bsr_count = sum(1 for l in listings if l.bsr.is_available)
        coverage = bsr_count / total if total else 0.0
        confidence = data_confidence(coverage, len(eligible))
        factor = dampening_factor(confidence, coverage)

        weighted_units: dict[str, float] = {}
        curve_by_asin: dict[str, str] = {}
        raw_units = 0.0
        raw_revenue = 0.0
        try:
            for listing, bsr, price in eligible:
                category = normalize_category(
                    listing.category.value if listing.category.is_available else None,
                    fallback_category=self.fallback_category,
                )
                units = estimate_monthly_units(bsr, category.curve_name)
                weighted = units * rank_weight(listing.organic_rank)
                weighted_units[listing.asin] = weighted
                curve_by_asin[listing.asin] = category.curve_name
                raw_units += weighted
                raw_revenue += weighted * price
        except (ValueError, TypeError) as e:
            raise EstimationError(f"BSR curve conversion failed: {e}", stage="demand") from e

        total_units = round(raw_units * factor)
        estimate = DemandEstimate(
            total_units=total_units,
            total_revenue=round(raw_revenue * factor, 2),
            raw_units=round(raw_units, 2),
            dampening_factor=round(factor, 4),
            data_confidence=confidence,
            bsr_coverage_pct=round(coverage * 100, 1),
            estimated_listing_count=len(eligible),
            demand_level=demand_level(total_units, len(eligible)),
        )
        logger.info(
            f"Demand estimate: {estimate.total_units} units / ${estimate.total_revenue:,.0f} "
            f"from {len(eligible)}/{total} listings (coverage {estimate.bsr_coverage_pct}%, "
            f"confidence {confidence.value}, dampening x{estimate.dampening_factor})"
        )
        return DemandComputation(estimate=estimate, weighted_units=weighted_units, curve_by_asin=curve_by_asin)
