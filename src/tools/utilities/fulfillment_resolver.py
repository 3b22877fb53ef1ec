"""
Fulfillment Resolver
====================
배송 주체(FBA/FBM/AMAZON/UNKNOWN) 판정

우선순위:
1. 보조 프로바이더 가격 데이터 (권위, high) - 보강 단계에서 이미 반영됨
2. Prime 적격 + 배송 문구가 Amazon 배송을 확인 → high
3. 1차 프로바이더 배송 주체 필드 / 배송 문구 휴리스틱 → medium
4. 신호 없음 → UNKNOWN (FBM 으로 기본값 처리하지 않음)
"""

import logging
from collections.abc import Callable, Sequence

from src.domain.entities.listing import (
    CanonicalListing,
    FieldConfidence,
    FieldSource,
    FieldValue,
    FulfillmentChannel,
)
from src.shared.constants import PLATFORM_NAMES

logger = logging.getLogger(__name__)

FulfillmentStrategy = Callable[[CanonicalListing], FieldValue | None]

# "Get it Tue..." 같은 도착 예정 문구는 FBM 행에도 붙으므로 신호로 쓰지 않음
_FBA_CONFIRM_PHRASES = ("shipped by amazon", "fulfilled by amazon", "ships from amazon")
_FBA_PHRASES = (*_FBA_CONFIRM_PHRASES, "prime")
_FBA_HINTS = {"fba", "afn", "amazon", "fulfilled by amazon"}
_FBM_HINTS = {"fbm", "mfn", "merchant", "seller"}


def _delivery_text(listing: CanonicalListing) -> str:
    return (listing.delivery_text or "").lower()


def from_amazon_retail(listing: CanonicalListing) -> FieldValue | None:
    """판매자 또는 브랜드가 플랫폼 자체이면 직매입"""
    for name in (listing.seller_name, listing.brand_name):
        if name and name.strip().lower() in PLATFORM_NAMES:
            return FieldValue.inferred(FulfillmentChannel.AMAZON, FieldConfidence.HIGH)
    return None


def from_prime_confirmation(listing: CanonicalListing) -> FieldValue | None:
    """Prime 적격 + 배송 문구가 Amazon 배송을 명시하는 경우"""
    text = _delivery_text(listing)
    if listing.is_prime and text and any(phrase in text for phrase in _FBA_CONFIRM_PHRASES):
        return FieldValue.inferred(FulfillmentChannel.FBA, FieldConfidence.HIGH)
    return None


def from_explicit_hint(listing: CanonicalListing) -> FieldValue | None:
    """1차 프로바이더의 배송 주체 필드"""
    hint = (listing.fulfillment_hint or "").strip().lower()
    if not hint:
        return None
    if hint in _FBA_HINTS:
        return FieldValue.inferred(FulfillmentChannel.FBA, FieldConfidence.MEDIUM)
    if hint in _FBM_HINTS:
        return FieldValue.inferred(FulfillmentChannel.FBM, FieldConfidence.MEDIUM)
    return None


def from_delivery_text(listing: CanonicalListing) -> FieldValue | None:
    text = _delivery_text(listing)
    if not text:
        return None
    if any(phrase in text for phrase in _FBA_PHRASES):
        return FieldValue.inferred(FulfillmentChannel.FBA, FieldConfidence.MEDIUM)
    if "ships from" in text and "amazon" not in text:
        return FieldValue.inferred(FulfillmentChannel.FBM, FieldConfidence.MEDIUM)
    return None


FULFILLMENT_STRATEGIES: tuple[FulfillmentStrategy, ...] = (
    from_amazon_retail,
    from_prime_confirmation,
    from_explicit_hint,
    from_delivery_text,
)


class FulfillmentResolver:
    """배송 주체 판정기"""

    def __init__(self, strategies: Sequence[FulfillmentStrategy] = FULFILLMENT_STRATEGIES):
        self.strategies = tuple(strategies)

    def infer(self, listing: CanonicalListing) -> FieldValue:
        """1차 프로바이더 신호로 배송 주체 추론 (없으면 UNKNOWN)"""
        for strategy in self.strategies:
            result = strategy(listing)
            if result is not None:
                return result
        return FieldValue.inferred(FulfillmentChannel.UNKNOWN, FieldConfidence.UNKNOWN)

    def resolve(self, listing: CanonicalListing) -> FulfillmentChannel:
        """
        리스팅 배송 주체 확정

        보조 프로바이더 값이 있으면 유지하고, 없을 때만 휴리스틱 추론을 적용합니다.
        """
        current = listing.fulfillment
        if current.is_available and current.source == FieldSource.SECONDARY_PROVIDER:
            return FulfillmentChannel(current.value)

        inferred = self.infer(listing)
        if not current.is_available or current.source == FieldSource.INFERRED:
            listing.fulfillment = inferred
        return FulfillmentChannel(listing.fulfillment.value)

    def resolve_all(self, listings: Sequence[CanonicalListing]) -> dict[str, int]:
        """전체 리스팅 판정 후 채널별 개수 반환"""
        counts = {channel.value: 0 for channel in FulfillmentChannel}
        for listing in listings:
            counts[self.resolve(listing).value] += 1
        logger.debug(f"Fulfillment resolved: {counts}")
        return counts
