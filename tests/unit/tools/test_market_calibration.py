"""Unit tests for market_calibration.py, invariant_validator.py and search_volume.py"""

import pytest

from src.domain.entities.listing import BrandStatus
from src.domain.entities.market import ConfidenceLabel
from src.tools.calculators.invariant_validator import validate_invariants
from src.tools.calculators.market_calibration import (
    allocate_units,
    apply_allocation,
    calibrate_market_totals,
    calibration_confidence,
    competition_level,
)
from src.tools.calculators.search_volume import (
    estimate_search_volume,
    format_volume,
    infer_category_bucket,
)


# =============================================================================
# 시장 보정
# =============================================================================


class TestMarketCalibration:
    """경쟁 수준 구간 보정"""

    def test_competition_level(self):
        assert competition_level(5, 3000, 50) == "low"
        assert competition_level(10, 100, 10) == "low"
        assert competition_level(20, 2500, 10) == "high"
        assert competition_level(10, 800, 25) == "medium"

    def test_calibration_confidence_score(self):
        score, label, reason = calibration_confidence(16, 1200, 10)
        assert score == 100
        assert label == ConfidenceLabel.HIGH
        assert reason.startswith("Strong listing coverage")

    def test_zero_raw_units_returns_none(self, make_listing):
        assert calibrate_market_totals(0, 0.0, [make_listing()], (20.0, 30.0)) is None

    def test_low_competition_band(self, make_listing):
        listings = [make_listing(asin=f"B00000000{i}", organic_rank=i) for i in range(10)]
        result = calibrate_market_totals(3000, 90_000.0, listings, (20.0, 30.0))

        assert result.competition_level == "low"
        # 목표 4000 / 3000 → 1.33 → 상한 1.2
        assert result.calibrated_units == 3600
        assert result.calibrated_revenue == 108_000.0
        assert result.confidence == ConfidenceLabel.MEDIUM
        assert result.units_range == (2700, 4500)
        assert result.units_range[0] <= result.calibrated_units <= result.units_range[1]

    def test_category_multiplier(self, make_listing):
        listings = [make_listing(asin=f"B00000000{i}", organic_rank=i) for i in range(10)]
        result = calibrate_market_totals(4000, 100_000.0, listings, (20.0, 30.0), category_bucket="electronics")
        assert result.category_multiplier == 1.15
        assert result.calibrated_units == 4600


class TestAllocation:
    """최대 잔여 할당"""

    def test_sum_preserved(self):
        allocation = allocate_units({"a": 1.0, "b": 1.0, "c": 1.0}, 10)
        assert allocation == {"a": 4, "b": 3, "c": 3}
        assert sum(allocation.values()) == 10

    def test_order_preserved(self):
        weights = {"a": 900.0, "b": 500.0, "c": 120.0, "d": 5.0}
        allocation = allocate_units(weights, 3611)
        assert allocation["a"] >= allocation["b"] >= allocation["c"] >= allocation["d"]
        assert sum(allocation.values()) == 3611

    def test_zero_total(self):
        assert allocate_units({"a": 1.0}, 0) == {"a": 0}

    def test_apply_allocation_revenue_is_units_times_price(self, make_listing):
        listings = [make_listing(asin="B000000001", price=19.99), make_listing(asin="B000000002", bsr=None)]
        apply_allocation(listings, {"B000000001": 37})
        assert listings[0].estimated_units == 37
        assert listings[0].estimated_revenue == round(37 * 19.99, 2)
        assert listings[1].estimated_units is None


# =============================================================================
# 불변식
# =============================================================================


class TestInvariants:
    """위반은 기록만"""

    def test_clean(self, make_listing):
        listings = [make_listing(asin=f"B00000000{i}", organic_rank=i) for i in range(4)]
        apply_allocation(listings, allocate_units({l.asin: 1.0 for l in listings}, 100))
        assert validate_invariants(100, listings) == []

    def test_sum_mismatch(self, make_listing):
        listings = [make_listing(asin=f"B00000000{i}", organic_rank=i) for i in range(4)]
        apply_allocation(listings, {l.asin: 20 for l in listings})
        violations = validate_invariants(100, listings)
        assert [v.code for v in violations] == ["sum_mismatch"]

    def test_dominance_caps(self, make_listing):
        low = make_listing(
            asin="B000000001", brand="Acme", brand_status=BrandStatus.LOW_CONFIDENCE
        )
        canonical = make_listing(asin="B000000002", organic_rank=2, brand="Zest")
        rest = make_listing(asin="B000000003", organic_rank=3)
        apply_allocation([low, canonical, rest], {"B000000001": 40, "B000000002": 40, "B000000003": 20})

        violations = validate_invariants(100, [low, canonical, rest])

        assert len(violations) == 1
        assert violations[0].code == "asin_dominance"
        assert violations[0].asin == "B000000001"
        assert violations[0].severity == "warning"

    def test_dominance_error_above_canonical_cap(self, make_listing):
        listings = [make_listing(asin="B000000001"), make_listing(asin="B000000002", organic_rank=2)]
        apply_allocation(listings, {"B000000001": 60, "B000000002": 40})
        violations = validate_invariants(100, listings)
        assert violations[0].severity == "error"

    def test_revenue_mismatch(self, make_listing):
        listing = make_listing(asin="B000000001")
        listing.estimated_units = 10
        listing.estimated_revenue = 200.0
        violations = validate_invariants(10, [listing])
        codes = {v.code for v in violations}
        assert "revenue_mismatch" in codes
        assert next(v for v in violations if v.code == "revenue_mismatch").severity == "error"


# =============================================================================
# 검색량
# =============================================================================


class TestSearchVolume:
    """리스팅 기반 검색량 범위"""

    def test_bucket_inference(self):
        assert infer_category_bucket("Phone Charger") == "high_demand"
        assert infer_category_bucket("kitchen scale") == "standard"
        assert infer_category_bucket("electric kettle") is None

    def test_range_without_bucket(self, make_listing):
        listings = [make_listing(asin=f"B00000000{i}", organic_rank=i, review_count=100) for i in range(10)]
        result = estimate_search_volume("electric kettle", listings)

        assert (result.min, result.max) == (10_500, 19_500)
        assert result.confidence == ConfidenceLabel.LOW
        assert result.display == "10k–20k"
        assert result.multipliers == {"review": 1.0, "sponsored": 1.0, "category": 1.0}

    def test_sponsored_and_category_multipliers(self, make_listing):
        listings = [
            make_listing(asin=f"B00000000{i}", organic_rank=i, review_count=2000, sponsored_positions=[i + 1] if i < 4 else [])
            for i in range(10)
        ]
        result = estimate_search_volume("phone charger", listings)
        assert result.multipliers == {"review": 1.6, "sponsored": 1.15, "category": 1.3}
        assert result.confidence == ConfidenceLabel.MEDIUM
        assert result.min < result.max

    def test_no_listings(self):
        assert estimate_search_volume("kettle", []) is None

    @pytest.mark.parametrize("value, text", [(950, "950"), (12_400, "12k"), (1_500_000, "1.5M")])
    def test_format_volume(self, value, text):
        assert format_volume(value) == text
