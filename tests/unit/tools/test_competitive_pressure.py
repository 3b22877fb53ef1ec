"""Unit tests for src/tools/calculators/competitive_pressure.py"""

import pytest

from src.domain.entities.market import SellerContext, SellerStage
from src.tools.calculators.competitive_pressure import (
    compute_cpi,
    cpi_label,
    price_percentiles,
    price_spread_ratio,
    rebase_cpi,
)


@pytest.fixture
def page(make_listing):
    """20개 리스팅: 상위 3개가 리뷰 대부분, 스폰서 4개"""

    def _page(prices=None):
        prices = prices or [25.0] * 20
        listings = []
        for i in range(1, 21):
            sponsored = [i] if i in (1, 5, 9, 13) else []
            listings.append(
                make_listing(
                    asin=f"B0000000{i:02d}",
                    organic_rank=i,
                    price=prices[i - 1],
                    review_count=10_000 if i <= 3 else 100,
                    brand="Acme" if i <= 6 else f"Brand{i}",
                    sponsored_positions=sponsored,
                )
            )
        return listings

    return _page


class TestCpiComponents:
    """구성 요소"""

    def test_price_percentiles(self):
        assert price_percentiles([float(p) for p in range(1, 11)]) == (2.0, 10.0)
        assert price_percentiles([]) is None

    def test_price_compression_only_when_spread_tight(self, page):
        """동일 가격 → 스프레드 0 → 15점, 넓은 가격대 → 0점"""
        tight = compute_cpi(page(), SellerContext(stage=SellerStage.ESTABLISHED))
        wide = compute_cpi(page([20.0 + i for i in range(20)]), SellerContext(stage=SellerStage.ESTABLISHED))

        assert price_spread_ratio(page()) == 0.0
        assert tight.breakdown.price_compression == 15
        assert price_spread_ratio(page([20.0 + i for i in range(20)])) >= 0.15
        assert wide.breakdown.price_compression == 0

    def test_review_brand_sponsored(self, page):
        result = compute_cpi(page(), SellerContext(stage=SellerStage.ESTABLISHED))
        # 리뷰 30000 / 31700 → 0.946
        assert result.breakdown.review_dominance == 30
        # Acme 6/20 = 0.30
        assert result.breakdown.brand_concentration == 13
        # 스폰서 노출 4 / 전체 노출 24 → 0.167
        assert result.breakdown.sponsored_saturation == 10
        assert result.score == 30 + 13 + 10 + 15
        assert result.label == "high"

    @pytest.mark.parametrize(
        "score, label",
        [(0, "low"), (30, "low"), (31, "moderate"), (60, "moderate"), (80, "high"), (81, "extreme")],
    )
    def test_labels(self, score, label):
        assert cpi_label(score) == label


class TestCpiBehaviour:
    """순수성 / 판매자 보정"""

    def test_pure_function(self, page):
        listings = page()
        context = SellerContext(stage=SellerStage.NEW)
        assert compute_cpi(listings, context) == compute_cpi(listings, context)

    def test_seller_modifier_range(self, page):
        listings = page()
        new = compute_cpi(listings, SellerContext(stage=SellerStage.NEW))
        scaling = compute_cpi(listings, SellerContext(stage=SellerStage.SCALING))
        assert new.breakdown.seller_modifier == 10
        assert scaling.breakdown.seller_modifier == -10
        assert new.score - scaling.score == 20

    def test_rebase_matches_fresh_compute(self, page):
        listings = page()
        stored = compute_cpi(listings, SellerContext(stage=SellerStage.NEW))
        rebased = rebase_cpi(stored, SellerContext(stage=SellerStage.SCALING))
        assert rebased == compute_cpi(listings, SellerContext(stage=SellerStage.SCALING))

    def test_no_listings(self):
        result = compute_cpi([], SellerContext())
        assert result.score == 0
        assert result.explanation.startswith("No data")
        assert rebase_cpi(result, SellerContext(stage=SellerStage.SCALING)) is result

    def test_score_clamped(self, make_listing):
        listings = [
            make_listing(asin=f"B0000000{i:02d}", organic_rank=None, sponsored_positions=[i], brand="Acme")
            for i in range(1, 4)
        ]
        result = compute_cpi(listings, SellerContext(stage=SellerStage.NEW))
        assert 0 <= result.score <= 100
