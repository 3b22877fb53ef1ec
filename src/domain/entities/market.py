"""
Market Domain Entities
======================
시장 스냅샷 관련 핵심 엔티티:
SellerContext, StatSummary, FulfillmentMix, CPIResult, SearchVolumeEstimate,
DemandEstimate, CalibrationResult, InvariantViolation, PPCIndicators, BrandMoat, MarketSnapshot

MarketSnapshot 은 저장 이후 불변이며, 하위 소비자(챗/UI)는 이를 그대로 사용하고
CPI/BSR 기반 필드를 재계산하지 않습니다.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class SellerStage(str, Enum):
    """판매자 단계"""

    NEW = "new"
    ESTABLISHED = "established"
    SCALING = "scaling"


class ConfidenceLabel(str, Enum):
    """추정치 신뢰도 라벨"""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SellerContext(BaseModel):
    """
    판매자 컨텍스트

    Attributes:
        stage: 판매자 단계 (new / established / scaling)
        experience_months: 판매 경력 (개월)
    """

    stage: SellerStage = Field(default=SellerStage.NEW, description="판매자 단계")
    experience_months: int = Field(default=0, ge=0, description="판매 경력 (개월)")

    model_config = {
        "frozen": True,
        "json_schema_extra": {"example": {"stage": "new", "experience_months": 3}},
    }


class StatSummary(BaseModel):
    """수치 집계 (가격/리뷰/평점/BSR)"""

    count: int = Field(default=0, description="값이 있는 리스팅 수")
    min: Optional[float] = Field(default=None)
    max: Optional[float] = Field(default=None)
    avg: Optional[float] = Field(default=None)
    median: Optional[float] = Field(default=None)
    sampling_method: str = Field(default="all_listings", description="표본 추출 방식")

    model_config = {"frozen": True}


class FulfillmentMix(BaseModel):
    """
    배송 주체 구성비

    fba + fbm + amazon + unknown 은 항상 정확히 100 입니다.
    """

    fba: int = Field(default=0, ge=0, le=100)
    fbm: int = Field(default=0, ge=0, le=100)
    amazon: int = Field(default=0, ge=0, le=100)
    unknown: int = Field(default=100, ge=0, le=100)
    counts: dict[str, int] = Field(default_factory=dict, description="채널별 리스팅 수")
    source: str = Field(default="none", description="주요 판정 출처")

    model_config = {"frozen": True}

    @property
    def total(self) -> int:
        return self.fba + self.fbm + self.amazon + self.unknown


class CPIBreakdown(BaseModel):
    """CPI 구성 요소 점수"""

    review_dominance: int = Field(default=0, ge=0, le=30)
    brand_concentration: int = Field(default=0, ge=0, le=25)
    sponsored_saturation: int = Field(default=0, ge=0, le=20)
    price_compression: int = Field(default=0, ge=0, le=15)
    seller_modifier: int = Field(default=0, ge=-10, le=10)

    model_config = {"frozen": True}


class CPIResult(BaseModel):
    """
    Competitive Pressure Index 결과

    스냅샷 내에서 한 번 계산되면 불변입니다.
    """

    score: int = Field(..., ge=0, le=100, description="0-100 경쟁 압력 점수")
    label: str = Field(..., description="low / moderate / high / extreme")
    breakdown: CPIBreakdown = Field(default_factory=CPIBreakdown)
    explanation: str = Field(default="", description="점수 설명")
    signals: dict[str, Optional[float]] = Field(default_factory=dict, description="원시 신호 비율")

    model_config = {"frozen": True}


class SearchVolumeEstimate(BaseModel):
    """검색량 추정 범위 (점 추정 금지)"""

    min: int = Field(..., ge=0)
    max: int = Field(..., ge=0)
    confidence: ConfidenceLabel = Field(default=ConfidenceLabel.LOW)
    display: str = Field(default="", description="표시용 범위 문자열 (예: 12k–22k)")
    category_bucket: Optional[str] = Field(default=None, description="추론된 카테고리 버킷")
    multipliers: dict[str, float] = Field(default_factory=dict)
    method: str = Field(default="listing_heuristic_v2")

    model_config = {"frozen": True}


class DemandEstimate(BaseModel):
    """BSR 기반 수요/매출 추정 (보정 전 점 추정)"""

    total_units: int = Field(default=0, ge=0)
    total_revenue: float = Field(default=0.0, ge=0)
    raw_units: float = Field(default=0.0, ge=0, description="가중/감쇠 전 합계")
    dampening_factor: float = Field(default=1.0, description="시장 단위 감쇠 계수 (단일)")
    data_confidence: ConfidenceLabel = Field(default=ConfidenceLabel.LOW)
    bsr_coverage_pct: float = Field(default=0.0, ge=0, le=100)
    estimated_listing_count: int = Field(default=0, description="BSR+가격 보유 리스팅 수")
    demand_level: str = Field(default="Very Low", description="High / Medium / Low / Very Low")

    model_config = {"frozen": True}


class CalibrationResult(BaseModel):
    """시장 보정 결과 (신뢰 구간으로 확장된 범위)"""

    competition_level: str = Field(default="medium")
    calibrated_units: int = Field(default=0, ge=0)
    calibrated_revenue: float = Field(default=0.0, ge=0)
    units_range: tuple[int, int] = Field(default=(0, 0))
    revenue_range: tuple[float, float] = Field(default=(0.0, 0.0))
    calibration_factor: float = Field(default=1.0)
    category_multiplier: float = Field(default=1.0)
    confidence: ConfidenceLabel = Field(default=ConfidenceLabel.LOW)
    confidence_score: int = Field(default=0, ge=0, le=100)
    confidence_reason: str = Field(default="")

    model_config = {"frozen": True}


class InvariantViolation(BaseModel):
    """
    불변식 위반 기록 (예외가 아닌 데이터)

    Attributes:
        code: sum_mismatch / asin_dominance / revenue_mismatch
        severity: warning / error
        message: 설명
        asin: 관련 ASIN
    """

    code: str
    severity: str = "warning"
    message: str = ""
    asin: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}


class PPCIndicators(BaseModel):
    """광고(PPC) 강도 지표"""

    sponsored_pct: float = Field(default=0.0)
    sponsored_count: int = Field(default=0)
    review_barrier: Optional[float] = Field(default=None, description="상위 10 오가닉 리뷰 수 중앙값")
    price_competition: Optional[float] = Field(default=None, description="(p90-p10)/평균가")
    dominance: float = Field(default=0.0, description="상위 브랜드 리스팅 점유율 (%)")
    ad_intensity_label: str = Field(default="Low")
    signals: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class BrandShare(BaseModel):
    """브랜드별 매출 비중"""

    brand: str
    asin_count: int = 0
    total_revenue: float = 0.0
    revenue_share_pct: float = 0.0

    model_config = {"frozen": True}


class BrandMoat(BaseModel):
    """브랜드 해자 분석"""

    moat_strength: str = Field(default="none", description="strong / moderate / weak / none")
    total_brands_count: int = 0
    top_brand_revenue_share_pct: float = 0.0
    top_3_brands_revenue_share_pct: float = 0.0
    brand_breakdown: list[BrandShare] = Field(default_factory=list)

    model_config = {"frozen": True}


class MarketSnapshot(BaseModel):
    """
    시장 스냅샷 (집계 결과)

    저장 이후 불변입니다. 하위 소비자는 필드명으로 읽기만 합니다.
    """

    keyword: str
    marketplace: str
    page: int = 1
    seller_context: SellerContext = Field(default_factory=SellerContext)
    schema_version: str
    generated_at: datetime

    total_listings: int = 0
    organic_count: int = 0
    sponsored_count: int = Field(default=0, description="스폰서로 노출된 고유 ASIN 수")
    sponsored_appearances: int = Field(default=0, description="스폰서 노출 행 수 (중복 제거 전)")

    price_stats: StatSummary = Field(default_factory=StatSummary)
    review_stats: StatSummary = Field(default_factory=StatSummary)
    rating_stats: StatSummary = Field(default_factory=StatSummary)
    bsr_stats: StatSummary = Field(default_factory=StatSummary)

    fulfillment_mix: FulfillmentMix = Field(default_factory=FulfillmentMix)
    brand_dominance_pct: float = Field(default=0.0, description="상위 브랜드 리스팅 점유율 (%)")
    top_brands: list[dict[str, Any]] = Field(default_factory=list)

    cpi: CPIResult
    search_volume: Optional[SearchVolumeEstimate] = None
    demand: DemandEstimate = Field(default_factory=DemandEstimate)
    calibration: Optional[CalibrationResult] = None
    ppc_indicators: PPCIndicators = Field(default_factory=PPCIndicators)
    brand_moat: BrandMoat = Field(default_factory=BrandMoat)

    overall_confidence: ConfidenceLabel = Field(default=ConfidenceLabel.LOW)
    warnings: list[str] = Field(default_factory=list)
    violations: list[InvariantViolation] = Field(default_factory=list)
    enrichment_coverage: dict[str, Any] = Field(default_factory=dict)
    listings: list[dict[str, Any]] = Field(default_factory=list, description="정규화 리스팅 직렬화")

    model_config = {"frozen": True}
