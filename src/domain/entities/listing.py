"""
Listing Domain Entities
=======================
검색 결과 리스팅 관련 핵심 엔티티:
RawListing, AsinSponsoredMeta, FieldValue, BrandResolution, CanonicalListing

흐름:
    RawListing (검색 결과 행 단위, 불변)
        → AsinSponsoredMeta (ASIN 단위 스폰서 노출 집계, 중복 제거 전 계산)
        → CanonicalListing (ASIN 단위, 필드별 출처/신뢰도 추적)
"""

from enum import Enum
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, Field

from src.domain.value_objects.parsed_field import Inferred, ParsedField, Unavailable, Value


class FieldSource(str, Enum):
    """필드 값 출처"""

    PRIMARY_PROVIDER = "primary_provider"
    SECONDARY_PROVIDER = "secondary_provider"
    INFERRED = "inferred"
    UNAVAILABLE = "unavailable"


class FieldConfidence(str, Enum):
    """필드 값 신뢰도"""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    UNKNOWN = "unknown"


class BrandStatus(str, Enum):
    """브랜드 판정 상태"""

    CANONICAL = "canonical"
    VARIANT = "variant"
    LOW_CONFIDENCE = "low_confidence"
    UNKNOWN = "unknown"


class BrandSource(str, Enum):
    """브랜드 출처 (워터폴 단계)"""

    OFFICIAL_FLAG = "official_flag"
    PROVIDER_BRAND_FIELD = "provider_brand_field"
    SELLER_NAME = "seller_name"
    INFERRED_FROM_TITLE = "inferred_from_title"
    SECONDARY_PROVIDER = "secondary_provider"
    NONE = "none"


class FulfillmentChannel(str, Enum):
    """배송 주체"""

    FBA = "FBA"
    FBM = "FBM"
    AMAZON = "AMAZON"  # Amazon 직매입 (Amazon Retail)
    UNKNOWN = "UNKNOWN"


# 출처 우선순위 (높을수록 권위 있음)
SOURCE_PRIORITY = {
    FieldSource.UNAVAILABLE: 0,
    FieldSource.INFERRED: 1,
    FieldSource.PRIMARY_PROVIDER: 2,
    FieldSource.SECONDARY_PROVIDER: 3,
}


class RawListing(BaseModel):
    """
    검색 결과 원본 행

    검색 결과 페이지의 행 하나당 하나씩 생성되며 중복 제거되지 않습니다.
    파싱 이후에는 변경할 수 없습니다.

    Attributes:
        asin: Amazon Standard Identification Number (유일한 필수 필드)
        position: 페이지 내 위치 (1부터 시작)
        title: 제품명
        price: 판매가 (USD)
        rating: 평점 (0-5)
        review_count: 리뷰 수
        is_sponsored: 프로바이더가 보고한 스폰서 여부
        raw_rank: 프로바이더가 보고한 원시 순위
    """

    asin: str = Field(..., min_length=1, description="ASIN")
    position: int = Field(..., ge=1, description="페이지 내 위치 (1-indexed)")
    title: Optional[str] = Field(default=None, description="제품명")
    price: Optional[float] = Field(default=None, ge=0, description="판매가")
    rating: Optional[float] = Field(default=None, ge=0, le=5, description="평점")
    review_count: Optional[int] = Field(default=None, ge=0, description="리뷰 수")
    is_sponsored: bool = Field(default=False, description="스폰서 여부 (행 단위)")
    raw_rank: Optional[int] = Field(default=None, description="원시 순위")

    # 리졸버용 힌트 (모두 선택)
    brand: Optional[str] = Field(default=None, description="프로바이더 구조화 브랜드 필드")
    is_official_brand: bool = Field(default=False, description="공식 브랜드 플래그")
    seller_name: Optional[str] = Field(default=None, description="판매자/스토어명")
    image_url: Optional[str] = Field(default=None, description="대표 이미지 URL")
    delivery_text: Optional[str] = Field(default=None, description="배송 안내 문구")
    is_prime: Optional[bool] = Field(default=None, description="Prime 적격 여부")
    fulfillment_hint: Optional[str] = Field(default=None, description="명시적 배송 주체 필드")

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "example": {
                "asin": "B08XYZ1234",
                "position": 3,
                "title": "Acme Electric Kettle 1.7L",
                "price": 29.99,
                "rating": 4.5,
                "review_count": 1250,
                "is_sponsored": True,
            }
        },
    }


class AsinSponsoredMeta(BaseModel):
    """
    ASIN 단위 스폰서 노출 집계

    중복 제거 전에 페이지 전체 행을 스캔하여 계산합니다.
    스폰서 여부는 개별 행이 아니라 ASIN 의 페이지 내 존재에 대한 속성입니다.
    """

    appears_sponsored: bool = Field(default=False, description="페이지 어딘가에서 스폰서로 노출")
    sponsored_positions: list[int] = Field(default_factory=list, description="스폰서 노출 위치")

    model_config = {"frozen": True}


class FieldValue(BaseModel):
    """
    출처/신뢰도가 붙은 필드 값

    Attributes:
        value: 실제 값 (unavailable 이면 None)
        source: 값 출처
        confidence: 값 신뢰도
    """

    value: Any = Field(default=None, description="필드 값")
    source: FieldSource = Field(default=FieldSource.UNAVAILABLE, description="출처")
    confidence: FieldConfidence = Field(default=FieldConfidence.UNKNOWN, description="신뢰도")

    model_config = {"frozen": True}

    @classmethod
    def unavailable(cls) -> "FieldValue":
        return cls()

    @classmethod
    def primary(cls, value: Any, confidence: FieldConfidence = FieldConfidence.MEDIUM) -> "FieldValue":
        if value is None:
            return cls()
        return cls(value=value, source=FieldSource.PRIMARY_PROVIDER, confidence=confidence)

    @classmethod
    def secondary(cls, value: Any, confidence: FieldConfidence = FieldConfidence.HIGH) -> "FieldValue":
        if value is None:
            return cls()
        return cls(value=value, source=FieldSource.SECONDARY_PROVIDER, confidence=confidence)

    @classmethod
    def inferred(cls, value: Any, confidence: FieldConfidence = FieldConfidence.LOW) -> "FieldValue":
        if value is None:
            return cls()
        return cls(value=value, source=FieldSource.INFERRED, confidence=confidence)

    @classmethod
    def from_parsed(
        cls,
        parsed: ParsedField,
        source: FieldSource,
        confidence: FieldConfidence,
        inferred_confidence: FieldConfidence = FieldConfidence.LOW,
    ) -> "FieldValue":
        """
        태그드 해석 결과를 FieldValue 로 변환

        Args:
            parsed: Value / Inferred / Unavailable
            source: Value 일 때 사용할 출처
            confidence: Value 일 때 사용할 신뢰도
            inferred_confidence: Inferred 일 때 사용할 신뢰도
        """
        match parsed:
            case Value(value=v):
                if v is None:
                    return cls()
                return cls(value=v, source=source, confidence=confidence)
            case Inferred(value=v):
                return cls.inferred(v, inferred_confidence)
            case Unavailable():
                return cls()
        raise TypeError(f"Unsupported parsed field: {type(parsed).__name__}")

    @property
    def is_available(self) -> bool:
        return self.value is not None and self.source != FieldSource.UNAVAILABLE

    @property
    def is_authoritative(self) -> bool:
        """보조 프로바이더 + high 신뢰도 (이후 덮어쓰기 금지)"""
        return (
            self.source == FieldSource.SECONDARY_PROVIDER
            and self.confidence == FieldConfidence.HIGH
        )


class BrandResolution(BaseModel):
    """
    브랜드 판정 결과

    raw_brand 는 한 번 설정되면 지워지지 않습니다.
    이후 빈도/매출 비중 규칙으로 brand_status 만 승격/강등됩니다.
    """

    raw_brand: Optional[str] = Field(default=None, description="원본 브랜드 문자열")
    normalized_brand: Optional[str] = Field(default=None, description="정규화된 브랜드명")
    brand_status: BrandStatus = Field(default=BrandStatus.UNKNOWN, description="판정 상태")
    brand_source: BrandSource = Field(default=BrandSource.NONE, description="출처")

    model_config = {"frozen": True}

    def with_status(self, status: BrandStatus) -> "BrandResolution":
        """상태만 변경한 사본 (raw_brand 유지)"""
        return self.model_copy(update={"brand_status": status})


class CanonicalListing(BaseModel):
    """
    ASIN 단위 정규화 리스팅

    변경 가능한 필드(title, brand, image, category, bsr, price, fulfillment)는
    모두 FieldValue 로 출처/신뢰도를 함께 보관합니다.
    """

    asin: str = Field(..., description="ASIN")
    organic_rank: Optional[int] = Field(default=None, description="오가닉 순위 (스폰서 전용이면 None)")
    positions: list[int] = Field(default_factory=list, description="페이지 내 전체 노출 위치")
    sponsored_meta: AsinSponsoredMeta = Field(default_factory=AsinSponsoredMeta)

    title: FieldValue = Field(default_factory=FieldValue)
    brand: FieldValue = Field(default_factory=FieldValue)
    image: FieldValue = Field(default_factory=FieldValue)
    category: FieldValue = Field(default_factory=FieldValue)
    bsr: FieldValue = Field(default_factory=FieldValue)
    price: FieldValue = Field(default_factory=FieldValue)
    fulfillment: FieldValue = Field(default_factory=FieldValue)

    rating: Optional[float] = Field(default=None, description="평점")
    review_count: Optional[int] = Field(default=None, description="리뷰 수")
    seller_name: Optional[str] = Field(default=None, description="판매자명")
    category_code: Optional[str] = Field(default=None, description="프로바이더 내부 분류 코드")
    delivery_text: Optional[str] = Field(default=None, description="배송 안내 문구")
    is_prime: Optional[bool] = Field(default=None, description="Prime 적격 여부")
    fulfillment_hint: Optional[str] = Field(default=None, description="명시적 배송 주체 필드")

    brand_resolution: BrandResolution = Field(default_factory=BrandResolution)

    # 추정기 출력
    estimated_units: Optional[int] = Field(default=None, description="월 추정 판매량")
    estimated_revenue: Optional[float] = Field(default=None, description="월 추정 매출")

    MUTABLE_FIELDS: ClassVar[tuple[str, ...]] = ("title", "brand", "image", "category", "bsr", "price", "fulfillment")

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "brand_resolution" and isinstance(value, BrandResolution):
            current = self.brand_resolution
            if current.raw_brand is not None and value.raw_brand is None:
                raise ValueError(f"raw_brand of {self.asin} cannot be cleared once set")
        super().__setattr__(name, value)

    @property
    def is_sponsored(self) -> bool:
        return self.sponsored_meta.appears_sponsored

    @property
    def brand_name(self) -> Optional[str]:
        return self.brand_resolution.normalized_brand or self.brand_resolution.raw_brand

    def apply_field(self, name: str, incoming: FieldValue) -> bool:
        """
        필드 병합 규칙 적용

        - 기존 값이 secondary_provider + high 이면 절대 덮어쓰지 않음
        - 값이 없는 필드나 inferred 필드는 자유롭게 덮어씀
        - 그 외에는 출처 우선순위가 같거나 높을 때만 덮어씀

        Returns:
            덮어썼으면 True
        """
        if name not in self.MUTABLE_FIELDS:
            raise ValueError(f"Not a reconcilable field: {name}")

        current: FieldValue = getattr(self, name)
        if current.is_authoritative:
            return False
        if not incoming.is_available:
            return False
        if not current.is_available or current.source == FieldSource.INFERRED:
            setattr(self, name, incoming)
            return True
        if SOURCE_PRIORITY[incoming.source] >= SOURCE_PRIORITY[current.source]:
            setattr(self, name, incoming)
            return True
        return False

    def mark_unavailable(self, name: str) -> None:
        """값이 없는 필드를 명시적으로 unavailable 로 표시 (권위 있는 값은 보존)"""
        current: FieldValue = getattr(self, name)
        if current.is_available:
            return
        setattr(self, name, FieldValue.unavailable())
