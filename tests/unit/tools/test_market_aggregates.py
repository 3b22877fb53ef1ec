"""Unit tests for src/tools/calculators/market_aggregates.py"""

import itertools

import pytest

from src.domain.entities.listing import FieldValue, FulfillmentChannel
from src.tools.calculators.market_aggregates import (
    brand_dominance_pct,
    brand_moat,
    fulfillment_mix,
    largest_remainder_percentages,
    listing_stats,
    ppc_indicators,
    top_brands,
)


class TestLargestRemainder:
    """정수 백분율 (합계 100)"""

    def test_thirds(self):
        result = largest_remainder_percentages({"fba": 1, "fbm": 1, "amazon": 1, "unknown": 0})
        assert result == {"fba": 34, "fbm": 33, "amazon": 33, "unknown": 0}

    def test_always_sums_to_100(self):
        for counts in itertools.product(range(0, 8), repeat=4):
            if sum(counts) == 0:
                continue
            result = largest_remainder_percentages(dict(zip(("fba", "fbm", "amazon", "unknown"), counts)))
            assert sum(result.values()) == 100

    def test_empty(self):
        assert largest_remainder_percentages({"fba": 0}) == {"fba": 0}


class TestFulfillmentMix:
    def test_mix(self, make_listing):
        listings = [
            make_listing(asin="B000000001", fulfillment=FieldValue.secondary(FulfillmentChannel.FBA)),
            make_listing(asin="B000000002", fulfillment=FieldValue.secondary(FulfillmentChannel.FBA)),
            make_listing(asin="B000000003", fulfillment=FieldValue.inferred(FulfillmentChannel.FBM)),
            make_listing(asin="B000000004"),
            make_listing(asin="B000000005", fulfillment=FieldValue.secondary(FulfillmentChannel.AMAZON)),
            make_listing(asin="B000000006", fulfillment=FieldValue.inferred(FulfillmentChannel.UNKNOWN)),
        ]
        mix = fulfillment_mix(listings)

        assert mix.total == 100
        assert mix.counts == {"fba": 2, "fbm": 1, "amazon": 1, "unknown": 2}
        assert mix.source == "secondary_provider"

    def test_no_listings_is_all_unknown(self):
        mix = fulfillment_mix([])
        assert mix.unknown == 100
        assert mix.total == 100


class TestBrandAggregates:
    def test_dominance_and_top_brands(self, make_listing):
        listings = [make_listing(asin=f"B00000000{i}", brand="Acme") for i in range(3)]
        listings += [make_listing(asin="B000000005", brand="Zest"), make_listing(asin="B000000006")]

        assert brand_dominance_pct(listings) == 60.0
        assert top_brands(listings) == [
            {"brand": "Acme", "listing_count": 3, "share_pct": 60.0},
            {"brand": "Zest", "listing_count": 1, "share_pct": 20.0},
        ]

    def test_brand_moat_strong(self, make_listing):
        listings = [
            make_listing(asin="B000000001", brand="Acme", estimated_revenue=60_000.0),
            make_listing(asin="B000000002", brand="Zest", estimated_revenue=20_000.0),
            make_listing(asin="B000000003", brand="Nova", estimated_revenue=20_000.0),
        ]
        moat = brand_moat(listings)
        assert moat.moat_strength == "strong"
        assert moat.top_brand_revenue_share_pct == 60.0
        assert moat.brand_breakdown[0].brand == "Acme"

    def test_brand_moat_none_without_revenue(self, make_listing):
        assert brand_moat([make_listing()]).moat_strength == "none"

    def test_brand_moat_unknown_bucket(self, make_listing):
        moat = brand_moat([make_listing(estimated_revenue=100.0)])
        assert moat.brand_breakdown[0].brand == "Unknown"


class TestPpcAndStats:
    def test_ppc_high_intensity(self, make_listing):
        listings = [
            make_listing(
                asin=f"B00000000{i}",
                organic_rank=i + 1,
                brand="Acme",
                review_count=6000,
                sponsored_positions=[i + 1] if i < 3 else [],
            )
            for i in range(5)
        ]
        result = ppc_indicators(listings)
        # 스폰서 60% (3) + 리뷰 장벽 6000 (2) + 동일 가격 (1) + 브랜드 100% (1)
        assert result.ad_intensity_label == "High"
        assert result.sponsored_pct == 60.0
        assert result.review_barrier == 6000.0
        assert len(result.signals) <= 3

    def test_ppc_empty(self):
        assert ppc_indicators([]).signals == ["No listings available"]

    def test_listing_stats(self, make_listing):
        listings = [
            make_listing(asin="B000000001", price=10.0, bsr=100),
            make_listing(asin="B000000002", price=30.0, bsr=None, rating=None),
        ]
        stats = listing_stats(listings)
        assert stats["price_stats"].avg == 20.0
        assert stats["price_stats"].median == 20.0
        assert stats["bsr_stats"].count == 1
        assert stats["rating_stats"].count == 1

    @pytest.mark.parametrize("review_counts", [[], [None]])
    def test_stats_without_values(self, make_listing, review_counts):
        listings = [make_listing(review_count=r) for r in review_counts]
        assert listing_stats(listings)["review_stats"].count == 0
