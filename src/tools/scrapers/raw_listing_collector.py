"""
Raw Listing Collector
=====================
검색 프로바이더를 1회 호출하여 결과 행을 RawListing 으로 파싱하고,
중복 제거 전에 ASIN 단위 스폰서 노출 집계(AsinSponsoredMeta)를 계산합니다.

규칙:
- ASIN 누락 행만 무효 (버림, 오류 아님)
- 나머지 필드는 모두 선택이며 값을 만들어내지 않음
- 결과 0건이면 빈 리스트 반환 (종료 여부는 호출자가 결정)

Usage:
    collector = RawListingCollector(SearchProviderClient(api_key))
    result = await collector.collect("electric kettle", "US", budget)
    for listing in result.listings:
        print(listing.asin, listing.position, listing.is_sponsored)
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from src.core.call_budget import ApiCallBudget
from src.domain.entities.listing import AsinSponsoredMeta, RawListing
from src.domain.interfaces.provider import SearchProviderProtocol
from src.domain.value_objects.parsed_field import (
    Inferred,
    ParsedField,
    Unavailable,
    Value,
    value_or_none,
)
from src.shared.constants import FIXED_PAGE

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"[-+]?\d[\d,]*(?:\.\d+)?")


@dataclass
class CollectionResult:
    """
    수집 결과

    Attributes:
        listings: 파싱된 행 (중복 제거 전, 위치 순)
        sponsored_meta: ASIN 별 스폰서 노출 집계
        raw_result_count: 프로바이더가 반환한 원본 행 수
        dropped_count: ASIN 누락으로 버린 행 수
        total_results: 프로바이더가 보고한 전체 검색 결과 수
    """

    listings: list[RawListing] = field(default_factory=list)
    sponsored_meta: dict[str, AsinSponsoredMeta] = field(default_factory=dict)
    raw_result_count: int = 0
    dropped_count: int = 0
    total_results: int | None = None

    @property
    def sponsored_appearances(self) -> int:
        """스폰서 노출 행 수 (중복 제거 전)"""
        return sum(len(meta.sponsored_positions) for meta in self.sponsored_meta.values())

    @property
    def is_empty(self) -> bool:
        return not self.listings


# =============================================================================
# 필드 파서 (행 dict → ParsedField)
# =============================================================================


def _to_number(raw: Any) -> float | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, str):
        match = _NUMBER_RE.search(raw)
        if match:
            try:
                return float(match.group().replace(",", ""))
            except ValueError:
                return None
    return None


def parse_asin(row: dict[str, Any]) -> ParsedField:
    raw = row.get("asin")
    if not isinstance(raw, str) or not raw.strip():
        return Unavailable("missing_asin")
    return Value(raw.strip().upper())


def parse_price(row: dict[str, Any]) -> ParsedField:
    """price.value → price.raw → 숫자/문자열 price → prices[0]"""
    price = row.get("price")
    candidates: list[Any] = []
    if isinstance(price, dict):
        candidates.extend([price.get("value"), price.get("raw")])
    else:
        candidates.append(price)
    prices = row.get("prices")
    if isinstance(prices, list) and prices and isinstance(prices[0], dict):
        candidates.extend([prices[0].get("value"), prices[0].get("raw")])

    for candidate in candidates:
        value = _to_number(candidate)
        if value is not None and value >= 0:
            return Value(round(value, 2))
    return Unavailable("no_price")


def parse_rating(row: dict[str, Any]) -> ParsedField:
    value = _to_number(row.get("rating"))
    if value is None or not 0 <= value <= 5:
        return Unavailable("no_rating")
    return Value(value)


def parse_review_count(row: dict[str, Any]) -> ParsedField:
    for key in ("ratings_total", "reviews_total", "review_count"):
        value = _to_number(row.get(key))
        if value is not None and value >= 0:
            return Value(int(value))
    reviews = row.get("reviews")
    if isinstance(reviews, dict):
        value = _to_number(reviews.get("count"))
        if value is not None and value >= 0:
            return Value(int(value))
    elif reviews is not None:
        value = _to_number(reviews)
        if value is not None and value >= 0:
            return Value(int(value))
    return Unavailable("no_reviews")


def parse_position(row: dict[str, Any], index: int) -> ParsedField:
    raw = row.get("position")
    if isinstance(raw, int) and not isinstance(raw, bool) and raw >= 1:
        return Value(raw)
    return Inferred(index + 1, "row_order")


def parse_delivery_text(row: dict[str, Any]) -> ParsedField:
    delivery = row.get("delivery")
    parts: list[str] = []
    if isinstance(delivery, str):
        parts.append(delivery)
    elif isinstance(delivery, dict):
        for key in ("tagline", "text", "message"):
            if isinstance(delivery.get(key), str):
                parts.append(delivery[key])
    for key in ("delivery_text", "shipping_text", "fulfillment_text"):
        if isinstance(row.get(key), str):
            parts.append(row[key])
    text = " ".join(p.strip() for p in parts if p.strip())
    return Value(text) if text else Unavailable("no_delivery_text")


def parse_text(row: dict[str, Any], *keys: str) -> ParsedField:
    for key in keys:
        raw = row.get(key)
        if isinstance(raw, str) and raw.strip():
            return Value(raw.strip())
        if isinstance(raw, dict) and isinstance(raw.get("name"), str) and raw["name"].strip():
            return Value(raw["name"].strip())
    return Unavailable("missing")


def _optional_bool(row: dict[str, Any], key: str) -> bool | None:
    raw = row.get(key)
    return raw if isinstance(raw, bool) else None


def _fulfillment_hint(row: dict[str, Any]) -> str | None:
    for key in ("fulfillment_type", "fulfillment", "fulfillment_channel"):
        raw = row.get(key)
        if isinstance(raw, str) and raw.strip():
            return raw.strip()
    for key in ("is_fba", "fba"):
        raw = row.get(key)
        if isinstance(raw, bool):
            return "FBA" if raw else "FBM"
    return None


def parse_row(row: dict[str, Any], index: int) -> RawListing | None:
    """
    검색 결과 행 하나를 RawListing 으로 변환

    Args:
        row: 프로바이더 행 dict
        index: 0부터 시작하는 행 순서

    Returns:
        RawListing (ASIN 누락 시 None)
    """
    asin = parse_asin(row)
    match asin:
        case Unavailable(reason=reason):
            logger.debug(f"Dropped search row {index + 1}: {reason}")
            return None
        case Value(value=asin_value):
            pass

    raw_rank = _to_number(row.get("rank"))
    brand = parse_text(row, "brand")
    try:
        return RawListing(
            asin=asin_value,
            position=value_or_none(parse_position(row, index)),
            title=value_or_none(parse_text(row, "title")),
            price=value_or_none(parse_price(row)),
            rating=value_or_none(parse_rating(row)),
            review_count=value_or_none(parse_review_count(row)),
            is_sponsored=bool(row.get("is_sponsored") or row.get("sponsored")),
            raw_rank=int(raw_rank) if raw_rank is not None and raw_rank >= 1 else None,
            brand=value_or_none(brand),
            is_official_brand=bool(row.get("is_official_brand") or row.get("brand_official")),
            seller_name=value_or_none(parse_text(row, "seller", "sold_by", "seller_name")),
            image_url=value_or_none(parse_text(row, "image")),
            delivery_text=value_or_none(parse_delivery_text(row)),
            is_prime=_optional_bool(row, "is_prime"),
            fulfillment_hint=_fulfillment_hint(row),
        )
    except ValidationError as e:
        logger.warning(f"Dropped search row {index + 1} ({asin_value}): {e.error_count()} invalid fields")
        return None


def build_sponsored_meta(listings: list[RawListing]) -> dict[str, AsinSponsoredMeta]:
    """
    ASIN 단위 스폰서 노출 집계 (중복 제거 전 전체 행 스캔)

    Returns:
        {asin: AsinSponsoredMeta}
    """
    positions: dict[str, list[int]] = {}
    for listing in listings:
        positions.setdefault(listing.asin, [])
        if listing.is_sponsored:
            positions[listing.asin].append(listing.position)

    return {
        asin: AsinSponsoredMeta(appears_sponsored=bool(sponsored), sponsored_positions=sorted(sponsored))
        for asin, sponsored in positions.items()
    }


class RawListingCollector:
    """검색 결과 수집기"""

    def __init__(self, search_client: SearchProviderProtocol):
        self.search_client = search_client

    async def collect(
        self,
        keyword: str,
        marketplace: str,
        budget: ApiCallBudget,
        page: int = FIXED_PAGE,
    ) -> CollectionResult:
        """
        검색 1회 호출 후 파싱

        Args:
            keyword: 검색 키워드
            marketplace: 마켓 코드
            budget: 요청 단위 호출 예산 (1회 차감)
            page: 항상 1

        Returns:
            CollectionResult
        """
        payload = await self.search_client.search(keyword, marketplace, budget, page=page)
        return self.parse_payload(payload)

    @staticmethod
    def parse_payload(payload: dict[str, Any]) -> CollectionResult:
        """프로바이더 응답 전체를 CollectionResult 로 변환"""
        rows = payload.get("search_results")
        if not isinstance(rows, list):
            rows = []

        listings: list[RawListing] = []
        dropped = 0
        for index, row in enumerate(rows):
            if not isinstance(row, dict):
                dropped += 1
                continue
            listing = parse_row(row, index)
            if listing is None:
                dropped += 1
                continue
            listings.append(listing)

        listings.sort(key=lambda l: l.position)

        total_results = None
        info = payload.get("search_information")
        if isinstance(info, dict):
            total = _to_number(info.get("total_results"))
            total_results = int(total) if total is not None else None

        result = CollectionResult(
            listings=listings,
            sponsored_meta=build_sponsored_meta(listings),
            raw_result_count=len(rows),
            dropped_count=dropped,
            total_results=total_results,
        )
        logger.info(
            f"Collected {len(listings)} listings from {len(rows)} rows "
            f"({dropped} dropped, {result.sponsored_appearances} sponsored appearances)"
        )
        return result
