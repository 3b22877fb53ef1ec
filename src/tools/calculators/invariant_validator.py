"""
Invariant Validator
===================
최종 리스팅 집합의 교차 불변식을 검사합니다. 위반은 기록만 하고 예외를 올리지 않습니다.

검사 항목:
- sum_mismatch: 리스팅별 할당 판매량 합계 ≈ 전체 판매량 (±1%)
- asin_dominance: 단일 ASIN 이 전체 판매량의 35% 초과 금지 (canonical 브랜드는 50%)
- revenue_mismatch: 리스팅 매출 = 판매량 × 가격 (±1%)
"""

import logging
from collections.abc import Sequence

from src.domain.entities.listing import BrandStatus, CanonicalListing
from src.domain.entities.market import InvariantViolation
from src.shared.constants import (
    INVARIANT_DOMINANCE_CAP,
    INVARIANT_DOMINANCE_CAP_CANONICAL,
    INVARIANT_REVENUE_ERROR,
    INVARIANT_REVENUE_TOLERANCE,
    INVARIANT_SUM_TOLERANCE,
)

logger = logging.getLogger(__name__)


def check_sum(total_units: int, listings: Sequence[CanonicalListing]) -> InvariantViolation | None:
    allocated = sum(l.estimated_units or 0 for l in listings)
    diff = abs(allocated - total_units)
    diff_ratio = diff / total_units if total_units > 0 else 0.0
    if diff_ratio <= INVARIANT_SUM_TOLERANCE:
        return None
    return InvariantViolation(
        code="sum_mismatch",
        severity="warning",
        message=(
            f"Sum of allocated units ({allocated}) differs from total ({total_units}) "
            f"by {diff_ratio * 100:.2f}%"
        ),
        details={"total_units": total_units, "sum_allocated": allocated, "difference_pct": round(diff_ratio * 100, 2)},
    )


def check_dominance(total_units: int, listings: Sequence[CanonicalListing]) -> list[InvariantViolation]:
    violations: list[InvariantViolation] = []
    if total_units <= 0:
        return violations

    for listing in listings:
        if not listing.estimated_units:
            continue
        share = listing.estimated_units / total_units
        canonical = listing.brand_resolution.brand_status == BrandStatus.CANONICAL
        cap = INVARIANT_DOMINANCE_CAP_CANONICAL if canonical else INVARIANT_DOMINANCE_CAP
        if share <= cap:
            continue
        violations.append(
            InvariantViolation(
                code="asin_dominance",
                severity="error" if share > INVARIANT_DOMINANCE_CAP_CANONICAL else "warning",
                message=(
                    f"ASIN {listing.asin} holds {share * 100:.1f}% of market units "
                    f"(cap {cap * 100:.0f}%{', canonical brand' if canonical else ''})"
                ),
                asin=listing.asin,
                details={
                    "brand": listing.brand_name,
                    "units": listing.estimated_units,
                    "total_units": total_units,
                    "share_pct": round(share * 100, 2),
                    "cap_pct": cap * 100,
                },
            )
        )
    return violations


def check_revenue(listings: Sequence[CanonicalListing]) -> list[InvariantViolation]:
    violations: list[InvariantViolation] = []
    for listing in listings:
        if listing.estimated_units is None or listing.estimated_revenue is None:
            continue
        price = listing.price.value if listing.price.is_available else None
        if not isinstance(price, (int, float)):
            continue
        expected = listing.estimated_units * float(price)
        if expected <= 0:
            continue
        diff_ratio = abs(listing.estimated_revenue - expected) / expected
        if diff_ratio < INVARIANT_REVENUE_TOLERANCE:
            continue
        violations.append(
            InvariantViolation(
                code="revenue_mismatch",
                severity="error" if diff_ratio > INVARIANT_REVENUE_ERROR else "warning",
                message=(
                    f"ASIN {listing.asin} revenue ({listing.estimated_revenue}) does not match "
                    f"units x price ({expected:.2f}), diff {diff_ratio * 100:.2f}%"
                ),
                asin=listing.asin,
                details={
                    "units": listing.estimated_units,
                    "price": price,
                    "expected_revenue": round(expected, 2),
                    "actual_revenue": listing.estimated_revenue,
                },
            )
        )
    return violations


def validate_invariants(total_units: int, listings: Sequence[CanonicalListing]) -> list[InvariantViolation]:
    """
    불변식 검사 (예외 없음)

    Args:
        total_units: 보정된 시장 판매량
        listings: 판매량/매출이 할당된 리스팅

    Returns:
        위반 목록 (없으면 빈 리스트)
    """
    estimated = [l for l in listings if l.estimated_units is not None]
    violations: list[InvariantViolation] = []

    sum_violation = check_sum(total_units, estimated)
    if sum_violation:
        violations.append(sum_violation)
    violations.extend(check_dominance(total_units, estimated))
    violations.extend(check_revenue(estimated))

    for violation in violations:
        log = logger.error if violation.severity == "error" else logger.warning
        log(f"Invariant {violation.code}: {violation.message}")
    if not violations:
        logger.debug(f"All invariants passed ({len(estimated)} listings, {total_units} units)")
    return violations
