"""
Competitive Pressure Index (CPI)
================================
페이지 1 리스팅과 판매자 컨텍스트로부터 0-100 경쟁 압력 점수를 계산합니다.
외부 호출이나 난수가 없는 순수 함수이며, 같은 입력은 항상 같은 점수를 냅니다.

구성 요소:
- 리뷰 지배도 (0-30): 리뷰 수 상위 3개 리스팅의 전체 리뷰 점유율
- 브랜드 집중도 (0-25): 최상위 브랜드의 리스팅 점유율
- 스폰서 포화도 (0-20): 페이지 노출 중 스폰서 비율
- 가격 압축도 (0-15): (p90 - p10) / 평균가, 좁을수록 높은 점수
- 판매자 보정 (-10..+10): new +10, established 0, scaling -10

최종 점수 = clamp(합계, 0, 100)
라벨: ≤30 low, ≤60 moderate, ≤80 high, >80 extreme
"""

import logging
from collections import Counter
from collections.abc import Sequence

from src.domain.entities.listing import CanonicalListing
from src.domain.entities.market import CPIBreakdown, CPIResult, SellerContext
from src.shared.constants import (
    CPI_BRAND_CONCENTRATION_BANDS,
    CPI_LABEL_CEILING,
    CPI_LABELS,
    CPI_PRICE_COMPRESSION_BANDS,
    CPI_REVIEW_DOMINANCE_BANDS,
    CPI_SELLER_MODIFIER,
    CPI_SPONSORED_SATURATION_BANDS,
)

logger = logging.getLogger(__name__)


# =============================================================================
# 원시 신호
# =============================================================================


def review_dominance_ratio(listings: Sequence[CanonicalListing]) -> float | None:
    reviews = sorted((l.review_count or 0 for l in listings), reverse=True)
    total = sum(reviews)
    if total <= 0:
        return None
    return sum(reviews[:3]) / total


def brand_concentration_ratio(listings: Sequence[CanonicalListing]) -> float | None:
    if not listings:
        return None
    counts = Counter(l.brand_name.lower() for l in listings if l.brand_name)
    if not counts:
        return 0.0
    return counts.most_common(1)[0][1] / len(listings)


def sponsored_saturation_ratio(listings: Sequence[CanonicalListing]) -> float | None:
    """스폰서 노출 행 수 / 전체 노출 행 수"""
    appearances = sum(max(len(l.positions), 1) for l in listings)
    if appearances == 0:
        return None
    sponsored = sum(len(l.sponsored_meta.sponsored_positions) for l in listings)
    return min(sponsored / appearances, 1.0)


def price_percentiles(prices: Sequence[float]) -> tuple[float, float] | None:
    """정렬된 가격에서 floor(n×0.1), floor(n×0.9) 위치 값"""
    if not prices:
        return None
    ordered = sorted(prices)
    n = len(ordered)
    p10 = ordered[min(int(n * 0.1), n - 1)]
    p90 = ordered[min(int(n * 0.9), n - 1)]
    return p10, p90


def listing_prices(listings: Sequence[CanonicalListing]) -> list[float]:
    prices = []
    for listing in listings:
        value = listing.price.value if listing.price.is_available else None
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
            prices.append(float(value))
    return prices


def price_spread_ratio(listings: Sequence[CanonicalListing]) -> float | None:
    prices = listing_prices(listings)
    if len(prices) < 2:
        return None
    p10, p90 = price_percentiles(prices)
    average = sum(prices) / len(prices)
    return (p90 - p10) / average if average > 0 else None


# =============================================================================
# 점수 구간
# =============================================================================


def _points_at_least(ratio: float | None, bands: list[tuple[float, int]]) -> int:
    if ratio is None:
        return 0
    for minimum, points in bands:
        if ratio >= minimum:
            return points
    return 0


def _points_below(ratio: float | None, bands: list[tuple[float, int]]) -> int:
    if ratio is None:
        return 0
    for maximum, points in bands:
        if ratio < maximum:
            return points
    return 0


def cpi_label(score: int) -> str:
    for ceiling, label in CPI_LABELS:
        if score <= ceiling:
            return label
    return CPI_LABEL_CEILING


def compute_cpi(listings: Sequence[CanonicalListing], seller_context: SellerContext) -> CPIResult:
    """
    CPI 계산

    Args:
        listings: 정규화 리스팅 (중복 제거 후)
        seller_context: 판매자 컨텍스트

    Returns:
        CPIResult (리스팅이 없으면 score 0 + "no data" 설명)
    """
    if not listings:
        return CPIResult(
            score=0,
            label=cpi_label(0),
            explanation="No data: no listings were extracted for this keyword, so competitive pressure cannot be scored.",
        )

    signals = {
        "review_dominance": review_dominance_ratio(listings),
        "brand_concentration": brand_concentration_ratio(listings),
        "sponsored_saturation": sponsored_saturation_ratio(listings),
        "price_spread": price_spread_ratio(listings),
    }
    breakdown = CPIBreakdown(
        review_dominance=_points_at_least(signals["review_dominance"], CPI_REVIEW_DOMINANCE_BANDS),
        brand_concentration=_points_at_least(signals["brand_concentration"], CPI_BRAND_CONCENTRATION_BANDS),
        sponsored_saturation=_points_at_least(signals["sponsored_saturation"], CPI_SPONSORED_SATURATION_BANDS),
        price_compression=_points_below(signals["price_spread"], CPI_PRICE_COMPRESSION_BANDS),
        seller_modifier=CPI_SELLER_MODIFIER.get(seller_context.stage.value, 0),
    )

    total = (
        breakdown.review_dominance
        + breakdown.brand_concentration
        + breakdown.sponsored_saturation
        + breakdown.price_compression
        + breakdown.seller_modifier
    )
    score = max(0, min(100, total))
    label = cpi_label(score)

    return CPIResult(
        score=score,
        label=label,
        breakdown=breakdown,
        explanation=_explain(score, label, breakdown, seller_context),
        signals={k: round(v, 4) if v is not None else None for k, v in signals.items()},
    )


def _explain(score: int, label: str, breakdown: CPIBreakdown, seller_context: SellerContext) -> str:
    parts = [
        f"review dominance {breakdown.review_dominance}/30",
        f"brand concentration {breakdown.brand_concentration}/25",
        f"sponsored saturation {breakdown.sponsored_saturation}/20",
        f"price compression {breakdown.price_compression}/15",
    ]
    modifier = f"{breakdown.seller_modifier:+d}"
    return (
        f"CPI {score} ({label}): " + ", ".join(parts)
        + f"; seller stage '{seller_context.stage.value}' modifier {modifier}."
    )


def rebase_cpi(cpi: CPIResult, seller_context: SellerContext) -> CPIResult:
    """
    저장된 CPI 의 판매자 보정만 다른 판매자 단계로 교체

    시장 신호 구성 요소는 그대로 두고 보정값과 합계만 다시 맞춥니다.
    리스팅이 없던 스냅샷은 그대로 반환합니다.
    """
    modifier = CPI_SELLER_MODIFIER.get(seller_context.stage.value, 0)
    if not cpi.signals or cpi.breakdown.seller_modifier == modifier:
        return cpi

    breakdown = cpi.breakdown.model_copy(update={"seller_modifier": modifier})
    base = (
        breakdown.review_dominance
        + breakdown.brand_concentration
        + breakdown.sponsored_saturation
        + breakdown.price_compression
    )
    score = max(0, min(100, base + modifier))
    label = cpi_label(score)
    return cpi.model_copy(
        update={
            "score": score,
            "label": label,
            "breakdown": breakdown,
            "explanation": _explain(score, label, breakdown, seller_context),
        }
    )
