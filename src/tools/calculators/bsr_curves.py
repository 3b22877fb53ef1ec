"""
BSR → 월 판매량 곡선

카테고리별 구간 선형 곡선으로 BSR 을 월 추정 판매량으로 변환합니다.

사용법:
    from src.tools.calculators.bsr_curves import estimate_monthly_units

    units = estimate_monthly_units(1200, "Home & Kitchen")
"""

import logging

from src.shared.constants import BSR_CURVES

logger = logging.getLogger(__name__)


def curve_for(curve_name: str | None) -> list[tuple[float, float, float, float]]:
    """곡선 조회 (미등록 카테고리는 default)"""
    if curve_name and curve_name in BSR_CURVES:
        return BSR_CURVES[curve_name]
    return BSR_CURVES["default"]


def estimate_monthly_units(bsr: int, curve_name: str | None = None) -> int:
    """
    BSR 을 월 판매량으로 변환

    Args:
        bsr: 카테고리 범위 Best Seller Rank (1 이상)
        curve_name: BSR_CURVES 키 (없으면 default)

    Returns:
        월 추정 판매량 (최소 1)

    Raises:
        ValueError: bsr 이 1 미만
    """
    if bsr < 1:
        raise ValueError(f"BSR must be >= 1, got {bsr}")

    for max_bsr, intercept, slope, floor in curve_for(curve_name):
        if bsr <= max_bsr:
            units = max(floor, intercept - bsr * slope)
            return max(1, round(units))

    # 마지막 구간은 무한대까지 포함
    return 1
