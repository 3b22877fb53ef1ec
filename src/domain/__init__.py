"""
Domain Layer
============
Clean Architecture의 Entities Layer (Enterprise Business Rules)

이 패키지는 프레임워크나 외부 의존성 없이 순수 도메인 모델만 포함합니다.

구조:
- entities/: 핵심 엔티티 (RawListing, CanonicalListing, MarketSnapshot 등)
- value_objects/: 값 객체 (태그드 필드 해석 결과)
- interfaces/: 의존성 역전을 위한 Protocol (프로바이더, 캐시)
- exceptions.py: 파이프라인 예외 분류

원칙:
- 외부 의존성 없음 (FastAPI, httpx 등 금지, pydantic 만 허용)
- 비즈니스 로직의 핵심만 포함
"""

from src.domain.entities.listing import (
    AsinSponsoredMeta,
    BrandResolution,
    CanonicalListing,
    FieldValue,
    RawListing,
)
from src.domain.entities.market import (
    CPIResult,
    MarketSnapshot,
    SearchVolumeEstimate,
    SellerContext,
)

__all__ = [
    "AsinSponsoredMeta",
    "BrandResolution",
    "CanonicalListing",
    "FieldValue",
    "RawListing",
    "CPIResult",
    "MarketSnapshot",
    "SearchVolumeEstimate",
    "SellerContext",
]
