"""
Secondary Catalog / Pricing Provider Client
===========================================
ASIN 목록 단위로 카탈로그(제목/브랜드/이미지/카테고리/BSR)와
가격(판매가/배송 주체)을 조회하는 보조 권위 프로바이더 클라이언트

## 응답 처리
- 배치 응답은 부분 성공 맵 + 실패 목록으로 변환
- 개별 항목 해석 실패는 해당 ASIN 만 실패 처리 (배치 전체 중단 없음)
- BSR 은 카테고리 범위 순위만 인정하며, 없으면 Unavailable
- 주요 카테고리 = 카테고리 경로 문자열이 가장 짧은 순위 항목
- marketplaceIds 는 호출마다 요청의 마켓 코드로 결정 (미지원 코드는 ValueError)

## 사용 예
```python
client = CatalogProviderClient(access_token=token)
batch = await client.get_catalog_items(["B0ABC12345", "B0XYZ98765"], budget, "UK")
for asin, item in batch.items.items():
    print(asin, item.bsr, item.category)
```

## 환경변수
- CATALOG_API_ACCESS_TOKEN: 액세스 토큰 (필수, 토큰 교환은 외부)
- CATALOG_API_BASE_URL: 엔드포인트
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from src.core.call_budget import ApiCallBudget
from src.domain.entities.listing import FulfillmentChannel
from src.domain.exceptions import MalformedResponseError, ProviderPermissionDeniedError
from src.domain.value_objects.parsed_field import (
    Inferred,
    ParsedField,
    Unavailable,
    Value,
    value_or_none,
)
from src.infrastructure.http_client import ProviderHttpClient, resolve_marketplace
from src.shared.constants import DEFAULT_PROVIDER_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

AMAZON_RETAIL_SELLER_IDS = frozenset({"ATVPDKIKX0DER", "A3P5ROKL5A1OLE"})

_FBA_CHANNELS = {"amazon", "afn", "fba"}
_FBM_CHANNELS = {"merchant", "mfn", "fbm"}


@dataclass
class CatalogItem:
    """카탈로그 조회 결과 (필드별 태그드 값)"""

    asin: str
    title: ParsedField = field(default_factory=Unavailable)
    brand: ParsedField = field(default_factory=Unavailable)
    image: ParsedField = field(default_factory=Unavailable)
    category: ParsedField = field(default_factory=Unavailable)
    bsr: ParsedField = field(default_factory=Unavailable)
    category_code: str | None = None

    def to_cache_record(self) -> dict[str, Any]:
        """ASIN 캐시 저장용 dict"""
        return {
            "asin": self.asin,
            "title": value_or_none(self.title),
            "brand": value_or_none(self.brand),
            "brand_inferred": isinstance(self.brand, Inferred),
            "image": value_or_none(self.image),
            "category": value_or_none(self.category),
            "bsr": value_or_none(self.bsr),
            "category_code": self.category_code,
        }

    @classmethod
    def from_cache_record(cls, record: dict[str, Any]) -> "CatalogItem":
        def _wrap(value: Any) -> ParsedField:
            return Value(value) if value is not None else Unavailable("not_cached")

        brand = record.get("brand")
        return cls(
            asin=record["asin"],
            title=_wrap(record.get("title")),
            brand=Inferred(brand, "manufacturer") if brand and record.get("brand_inferred") else _wrap(brand),
            image=_wrap(record.get("image")),
            category=_wrap(record.get("category")),
            bsr=_wrap(record.get("bsr")),
            category_code=record.get("category_code"),
        )


@dataclass
class PricingItem:
    """가격 조회 결과"""

    asin: str
    price: ParsedField = field(default_factory=Unavailable)
    fulfillment: ParsedField = field(default_factory=Unavailable)
    seller_id: str | None = None


@dataclass
class BatchResult:
    """
    배치 부분 성공 결과

    Attributes:
        items: {asin: CatalogItem | PricingItem}
        errors: 실패 항목 [{asin, code, message}]
    """

    items: dict[str, Any] = field(default_factory=dict)
    errors: list[dict[str, Any]] = field(default_factory=list)

    @property
    def failed_asins(self) -> list[str]:
        return [e["asin"] for e in self.errors if e.get("asin")]


# =============================================================================
# 카탈로그 항목 해석
# =============================================================================


def _first_value(attributes: dict[str, Any], key: str) -> Any:
    entries = attributes.get(key)
    if isinstance(entries, list) and entries and isinstance(entries[0], dict):
        return entries[0].get("value")
    return None


def _clean(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def extract_rank_entries(item: dict[str, Any]) -> list[tuple[str, int, str | None]]:
    """
    salesRanks 에서 (카테고리, 순위, 분류 코드) 목록 추출

    classificationRanks / displayGroupRanks / {rank, category} 형태를 모두 지원합니다.
    양의 정수 순위만 인정합니다.
    """
    entries: list[tuple[str, int, str | None]] = []
    sales_ranks = item.get("salesRanks") or item.get("ranks") or []
    if not isinstance(sales_ranks, list):
        return entries

    def _add(category: Any, rank: Any, code: Any = None) -> None:
        if isinstance(rank, bool) or not isinstance(rank, (int, float)) or rank < 1:
            return
        category_name = _clean(category)
        if category_name is None:
            return
        entries.append((category_name, int(rank), _clean(code)))

    for sales_rank in sales_ranks:
        if not isinstance(sales_rank, dict):
            continue
        for cr in sales_rank.get("classificationRanks") or []:
            if isinstance(cr, dict):
                _add(cr.get("title"), cr.get("rank"), cr.get("classificationId"))
        for dr in sales_rank.get("displayGroupRanks") or []:
            if isinstance(dr, dict):
                _add(dr.get("title"), dr.get("rank"), dr.get("websiteDisplayGroup"))
        if "rank" in sales_rank and "category" in sales_rank:
            _add(sales_rank.get("category"), sales_rank.get("rank"))
    return entries


def select_main_rank(entries: list[tuple[str, int, str | None]]) -> tuple[str, int, str | None] | None:
    """카테고리 경로 문자열이 가장 짧은 항목 (동률이면 더 좋은 순위)"""
    if not entries:
        return None
    return min(entries, key=lambda e: (len(e[0]), e[1]))


def parse_catalog_item(item: dict[str, Any]) -> CatalogItem:
    """
    카탈로그 항목 하나 해석

    Raises:
        MalformedResponseError: ASIN 이 없는 항목
    """
    asin = _clean(item.get("asin"))
    if asin is None:
        raise MalformedResponseError("Catalog item without asin", provider="catalog")

    attributes = item.get("attributes") if isinstance(item.get("attributes"), dict) else {}
    summaries = item.get("summaries") if isinstance(item.get("summaries"), list) else []
    summary = summaries[0] if summaries and isinstance(summaries[0], dict) else {}

    result = CatalogItem(asin=asin.upper())

    title = _clean(summary.get("itemName")) or _clean(_first_value(attributes, "item_name"))
    if title:
        result.title = Value(title)

    brand = _clean(_first_value(attributes, "brand")) or _clean(summary.get("brandName")) or _clean(item.get("brand"))
    manufacturer = _clean(_first_value(attributes, "manufacturer")) or _clean(summary.get("manufacturer"))
    if brand:
        result.brand = Value(brand)
    elif manufacturer:
        result.brand = Inferred(manufacturer, "manufacturer")

    images = item.get("images") if isinstance(item.get("images"), list) else []
    for image_set in images:
        inner = image_set.get("images") if isinstance(image_set, dict) else None
        if isinstance(inner, list) and inner and isinstance(inner[0], dict):
            link = _clean(inner[0].get("link")) or _clean(inner[0].get("url"))
            if link:
                result.image = Value(link)
                break

    main = select_main_rank(extract_rank_entries(item))
    if main is None:
        result.bsr = Unavailable("no_category_rank")
        display_group = _clean(summary.get("websiteDisplayGroup"))
        result.category_code = display_group
    else:
        category, rank, code = main
        result.bsr = Value(rank)
        result.category = Value(category)
        result.category_code = code or _clean(summary.get("websiteDisplayGroup"))

    return result


# =============================================================================
# 가격 항목 해석
# =============================================================================


def _amount(node: Any) -> float | None:
    if isinstance(node, dict):
        raw = node.get("Amount", node.get("amount"))
        if isinstance(raw, (int, float)) and not isinstance(raw, bool) and raw >= 0:
            return float(raw)
    return None


def classify_fulfillment_channel(offer: dict[str, Any]) -> ParsedField:
    """
    오퍼의 배송 주체 판정

    FulfillmentChannel: Amazon/AFN/FBA → FBA, Merchant/MFN/FBM → FBM
    IsFulfilledByAmazon: True → FBA, False → FBM
    """
    seller_id = offer.get("SellerId")
    if isinstance(seller_id, str) and seller_id in AMAZON_RETAIL_SELLER_IDS:
        return Value(FulfillmentChannel.AMAZON)

    channel = offer.get("FulfillmentChannel")
    if isinstance(channel, str):
        lowered = channel.strip().lower()
        if lowered in _FBA_CHANNELS:
            return Value(FulfillmentChannel.FBA)
        if lowered in _FBM_CHANNELS:
            return Value(FulfillmentChannel.FBM)

    fba_flag = offer.get("IsFulfilledByAmazon")
    if isinstance(fba_flag, bool):
        return Value(FulfillmentChannel.FBA if fba_flag else FulfillmentChannel.FBM)

    return Unavailable("no_fulfillment_channel")


def parse_pricing_payload(asin: str, payload: dict[str, Any]) -> PricingItem:
    """GetItemOffers payload 해석 (바이박스 우승 오퍼 우선)"""
    result = PricingItem(asin=asin)
    offers = payload.get("Offers") if isinstance(payload.get("Offers"), list) else []
    offers = [o for o in offers if isinstance(o, dict)]
    offer = next((o for o in offers if o.get("IsBuyBoxWinner")), offers[0] if offers else None)

    if offer is not None:
        price = _amount(offer.get("ListingPrice"))
        if price is not None:
            result.price = Value(round(price, 2))
        result.fulfillment = classify_fulfillment_channel(offer)
        seller_id = offer.get("SellerId")
        result.seller_id = seller_id if isinstance(seller_id, str) else None

    if isinstance(result.price, Unavailable):
        summary = payload.get("Summary") if isinstance(payload.get("Summary"), dict) else {}
        buy_box = summary.get("BuyBoxPrices")
        if isinstance(buy_box, list) and buy_box and isinstance(buy_box[0], dict):
            price = _amount(buy_box[0].get("ListingPrice")) or _amount(buy_box[0].get("LandedPrice"))
            if price is not None:
                result.price = Value(round(price, 2))

    return result


class CatalogProviderClient(ProviderHttpClient):
    """보조 카탈로그/가격 프로바이더 클라이언트"""

    DEFAULT_BASE_URL = "https://sellingpartnerapi-na.amazon.com"
    CATALOG_PATH = "/catalog/2022-04-01/items"
    PRICING_BATCH_PATH = "/batches/products/pricing/v0/itemOffers"
    INCLUDED_DATA = "attributes,summaries,salesRanks,images"

    def __init__(
        self,
        access_token: str,
        base_url: str | None = None,
        timeout: float = DEFAULT_PROVIDER_TIMEOUT_SECONDS,
        http_client: httpx.AsyncClient | None = None,
    ):
        super().__init__(
            provider="catalog",
            base_url=base_url or self.DEFAULT_BASE_URL,
            timeout=timeout,
            headers={"x-amz-access-token": access_token},
            http_client=http_client,
        )

    async def get_catalog_items(self, asins: list[str], budget: ApiCallBudget, marketplace: str) -> BatchResult:
        """
        카탈로그 일괄 조회 (1회 예산 차감)

        Args:
            asins: ASIN 목록 (배치 크기 이하)
            budget: 요청 단위 호출 예산
            marketplace: 마켓 코드 (US, UK, ...)

        Returns:
            BatchResult (items: {asin: CatalogItem})

        Raises:
            ValueError: 지원하지 않는 마켓 코드
        """
        marketplace_id = resolve_marketplace(marketplace)[1]
        params = {
            "identifiers": ",".join(asins),
            "identifiersType": "ASIN",
            "marketplaceIds": marketplace_id,
            "includedData": self.INCLUDED_DATA,
            "pageSize": len(asins),
        }
        payload = await self.request_json("GET", self.CATALOG_PATH, budget, "catalog", params=params)
        if not isinstance(payload, dict):
            raise MalformedResponseError("Catalog response is not an object", provider=self.provider)

        result = BatchResult()
        requested = set(asins)
        for raw_item in payload.get("items") or []:
            if not isinstance(raw_item, dict):
                continue
            try:
                item = parse_catalog_item(raw_item)
            except MalformedResponseError as e:
                result.errors.append({"asin": None, "code": "malformed_item", "message": str(e)})
                continue
            if item.asin in requested:
                result.items[item.asin] = item

        for error in payload.get("errors") or []:
            if isinstance(error, dict):
                result.errors.append(
                    {
                        "asin": error.get("asin"),
                        "code": error.get("code", "provider_error"),
                        "message": error.get("message", ""),
                    }
                )

        reported = {e["asin"] for e in result.errors if e.get("asin")}
        for asin in asins:
            if asin not in result.items and asin not in reported:
                result.errors.append({"asin": asin, "code": "not_returned", "message": "missing from response"})

        return result

    async def get_pricing(self, asins: list[str], budget: ApiCallBudget, marketplace: str) -> BatchResult:
        """
        가격 일괄 조회 (1회 예산 차감)

        Returns:
            BatchResult (items: {asin: PricingItem})

        Raises:
            ProviderPermissionDeniedError: 호출 또는 항목 단위 403
            ValueError: 지원하지 않는 마켓 코드
        """
        marketplace_id = resolve_marketplace(marketplace)[1]
        body = {
            "requests": [
                {
                    "uri": f"/products/pricing/v0/items/{asin}/offers",
                    "method": "GET",
                    "MarketplaceId": marketplace_id,
                    "ItemCondition": "New",
                    "CustomerType": "Consumer",
                }
                for asin in asins
            ]
        }
        payload = await self.request_json("POST", self.PRICING_BATCH_PATH, budget, "pricing", json_body=body)
        if not isinstance(payload, dict) or not isinstance(payload.get("responses"), list):
            raise MalformedResponseError("Pricing response without responses list", provider="pricing")

        result = BatchResult()
        for index, response in enumerate(payload["responses"]):
            if not isinstance(response, dict):
                continue
            status = response.get("status") if isinstance(response.get("status"), dict) else {}
            body_payload = (response.get("body") or {}).get("payload") if isinstance(response.get("body"), dict) else None
            asin = None
            if isinstance(body_payload, dict):
                asin = _clean(body_payload.get("ASIN"))
            if asin is None and index < len(asins):
                asin = asins[index]

            status_code = status.get("statusCode")
            if status_code == 403:
                raise ProviderPermissionDeniedError(
                    "Pricing item returned 403", provider="pricing", status_code=403
                )
            if status_code not in (None, 200) or not isinstance(body_payload, dict):
                result.errors.append({"asin": asin, "code": f"status_{status_code}", "message": "pricing item failed"})
                continue
            result.items[asin] = parse_pricing_payload(asin, body_payload)

        for asin in asins:
            if asin not in result.items and asin not in result.failed_asins:
                result.errors.append({"asin": asin, "code": "not_returned", "message": "missing from response"})
        return result
