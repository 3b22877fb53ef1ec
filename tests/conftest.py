import os
from pathlib import Path

import pytest
from dotenv import load_dotenv

from src.domain.entities.listing import (
    AsinSponsoredMeta,
    BrandResolution,
    BrandSource,
    BrandStatus,
    CanonicalListing,
    FieldConfidence,
    FieldValue,
    RawListing,
)


def pytest_configure(config):
    """테스트 시작 전 환경 설정 로드"""
    project_root = Path(__file__).parent.parent

    main_env_path = project_root / ".env"
    if main_env_path.exists():
        load_dotenv(main_env_path, override=False)
        print(f"\n[conftest] Loaded base environment from: {main_env_path}")

    env_file = os.environ.get("ENV_FILE", ".env.test")
    env_path = project_root / env_file

    if env_path.exists():
        load_dotenv(env_path, override=True)
        print(f"[conftest] Applied test overrides from: {env_path}")
    else:
        print(f"[conftest] No {env_file} found, using base environment only")


@pytest.fixture
def make_raw():
    """RawListing 팩토리"""

    def _make(asin: str = "B000000001", position: int = 1, **kwargs) -> RawListing:
        return RawListing(asin=asin, position=position, **kwargs)

    return _make


@pytest.fixture
def make_listing():
    """CanonicalListing 팩토리 (보조 프로바이더 BSR/가격 기본값)"""

    def _make(
        asin: str = "B000000001",
        organic_rank: int | None = 1,
        price: float | None = 25.0,
        bsr: int | None = 1000,
        brand: str | None = None,
        brand_status: BrandStatus = BrandStatus.CANONICAL,
        brand_source: BrandSource = BrandSource.PROVIDER_BRAND_FIELD,
        sponsored_positions: list[int] | None = None,
        review_count: int | None = 100,
        rating: float | None = 4.5,
        category: str | None = None,
        fulfillment: FieldValue | None = None,
        **kwargs,
    ) -> CanonicalListing:
        sponsored_positions = sponsored_positions or []
        positions = kwargs.pop("positions", None)
        if positions is None:
            positions = list(sponsored_positions)
            if organic_rank is not None:
                positions.append(organic_rank + 100)
        return CanonicalListing(
            asin=asin,
            organic_rank=organic_rank,
            positions=sorted(positions),
            sponsored_meta=AsinSponsoredMeta(
                appears_sponsored=bool(sponsored_positions),
                sponsored_positions=sorted(sponsored_positions),
            ),
            price=FieldValue.secondary(price) if price is not None else FieldValue.unavailable(),
            bsr=FieldValue.secondary(bsr) if bsr is not None else FieldValue.unavailable(),
            category=FieldValue.secondary(category) if category else FieldValue.unavailable(),
            brand=FieldValue.primary(brand) if brand else FieldValue.unavailable(),
            brand_resolution=(
                BrandResolution(
                    raw_brand=brand,
                    normalized_brand=brand,
                    brand_status=brand_status,
                    brand_source=brand_source,
                )
                if brand
                else BrandResolution()
            ),
            fulfillment=fulfillment or FieldValue.unavailable(),
            review_count=review_count,
            rating=rating,
            **kwargs,
        )

    return _make


@pytest.fixture
def search_payload():
    """검색 프로바이더 응답 (20행: 스폰서 5행 중 2행은 오가닉과 같은 ASIN)"""
    rows = []
    for i in range(1, 21):
        sponsored = i in (1, 2, 9, 15, 16)
        # 스폰서 1, 9 번 행은 오가닉 ASIN 의 중복 노출
        if i == 1:
            asin = "B0000000A3"
        elif i == 9:
            asin = "B0000000A5"
        else:
            asin = f"B0000000{chr(ord('A') + (i - 1) // 10)}{(i - 1) % 10}"
        rows.append(
            {
                "position": i,
                "asin": asin,
                "title": f"{('Acme', 'Zest', 'Nova', 'Kora')[i % 4]} Electric Kettle {i}",
                "price": {"value": 20.0 + i, "raw": f"${20 + i}.00"},
                "rating": 4.2,
                "ratings_total": 100 * i,
                "is_sponsored": sponsored,
                "is_prime": i % 2 == 0,
                "delivery": {"tagline": "Get it Tomorrow" if i % 2 == 0 else "Ships from Seller Co"},
            }
        )
    return {"search_results": rows, "search_information": {"total_results": 2000}}


@pytest.fixture
def secondary_high():
    return FieldConfidence.HIGH
