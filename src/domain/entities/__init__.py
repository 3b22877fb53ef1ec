"""
Domain Entities
===============
핵심 비즈니스 엔티티 정의

이 패키지의 모든 엔티티는:
- Pydantic BaseModel 또는 dataclass 기반
- 외부 의존성 없음
- 불변성 권장 (CanonicalListing 만 파이프라인 내에서 변경)
"""

from src.domain.entities.listing import (
    AsinSponsoredMeta,
    BrandResolution,
    BrandSource,
    BrandStatus,
    CanonicalListing,
    FieldConfidence,
    FieldSource,
    FieldValue,
    FulfillmentChannel,
    RawListing,
)
from src.domain.entities.market import (
    BrandMoat,
    BrandShare,
    CalibrationResult,
    ConfidenceLabel,
    CPIBreakdown,
    CPIResult,
    DemandEstimate,
    FulfillmentMix,
    InvariantViolation,
    MarketSnapshot,
    PPCIndicators,
    SearchVolumeEstimate,
    SellerContext,
    SellerStage,
    StatSummary,
)

__all__ = [
    "AsinSponsoredMeta",
    "BrandResolution",
    "BrandSource",
    "BrandStatus",
    "CanonicalListing",
    "FieldConfidence",
    "FieldSource",
    "FieldValue",
    "FulfillmentChannel",
    "RawListing",
    "BrandMoat",
    "BrandShare",
    "CalibrationResult",
    "ConfidenceLabel",
    "CPIBreakdown",
    "CPIResult",
    "DemandEstimate",
    "FulfillmentMix",
    "InvariantViolation",
    "MarketSnapshot",
    "PPCIndicators",
    "SearchVolumeEstimate",
    "SellerContext",
    "SellerStage",
    "StatSummary",
]
