"""
Category Normalizer
===================
보조 프로바이더 카테고리명을 수요 추정용 카테고리 키로 정규화합니다.

내부 분류 코드(예: "wireless_display_on_website")는 추정에 사용하지 않고
사람이 읽을 수 있는 카테고리명만 BSR 곡선 선택에 사용합니다.

규칙 (순서대로):
1. 휴대폰 액세서리 → electronics_cell_phone_accessories
2. 일반 전자제품 → electronics_general
3. BSR 곡선이 있는 카테고리명과 직접 일치
4. 폴백 값: 표시 그룹 코드(_display_on_website)는 거부, 패턴 매핑 후 그대로 사용
"""

import logging
import re
from dataclasses import dataclass

from src.shared.constants import BSR_CURVES

logger = logging.getLogger(__name__)

DISPLAY_GROUP_SUFFIX = "_display_on_website"

_CELL_PHONE_TERMS = ("cell phone", "cellphone", "mobile phone", "smartphone")
_ACCESSORY_TERMS = ("case", "bumper", "grip", "holder", "accessor", "protector")
_SPECIFIC_ELECTRONICS = _CELL_PHONE_TERMS + ("computer", "laptop", "tablet")

# (패턴, estimation_key, display_name) - 폴백 값 매핑
_FALLBACK_PATTERNS = [
    (re.compile(r"television|\btv\b"), "electronics_tv", "Electronics"),
    (re.compile(r"appliance"), "kitchen_appliance", "Kitchen & Dining"),
    (re.compile(r"kitchen|dining"), "kitchen_appliance", "Kitchen & Dining"),
    (re.compile(r"home|decor"), "home_decor", "Home & Kitchen"),
    (re.compile(r"beauty|personal care|skin care|cosmetic"), "beauty", "Beauty & Personal Care"),
    (re.compile(r"sport|outdoor"), "sports_outdoors", "Sports & Outdoors"),
    (re.compile(r"\btoy|game"), "toys_games", "Toys & Games"),
    (re.compile(r"tool"), "tools", "Tools & Home Improvement"),
    (re.compile(r"industrial"), "industrial", "Industrial & Scientific"),
]


@dataclass(frozen=True)
class NormalizedCategory:
    """
    정규화된 카테고리

    Attributes:
        estimation_key: 추정용 카테고리 키 (예: kitchen_appliance)
        display_name: 표시용 카테고리명 (예: Kitchen & Dining)
        reason: 정규화 근거
    """

    estimation_key: str
    display_name: str
    reason: str

    @property
    def curve_name(self) -> str:
        """BSR 곡선 이름 (없으면 default)"""
        return self.display_name if self.display_name in BSR_CURVES else "default"

    @property
    def calibration_bucket(self) -> str:
        """보정 카테고리 버킷 (electronics / home / beauty / health / default)"""
        key = self.estimation_key
        if key.startswith("electronics"):
            return "electronics"
        if key in ("kitchen_appliance", "home_decor", "tools") or "home" in key or "kitchen" in key:
            return "home"
        if key == "beauty" or "beauty" in key:
            return "beauty"
        if "health" in key:
            return "health"
        return "default"


UNKNOWN_CATEGORY = NormalizedCategory("unknown", "Unknown", "no_category_data_available")


def is_display_group_code(value: str) -> bool:
    return value.strip().lower().endswith(DISPLAY_GROUP_SUFFIX)


def normalize_category(
    category_name: str | None,
    fallback_category: str | None = None,
) -> NormalizedCategory:
    """
    카테고리 정규화

    Args:
        category_name: 보조 프로바이더의 주요 카테고리명 (BSR 카테고리)
        fallback_category: 분류 코드 / 상품 유형 등 폴백 값

    Returns:
        NormalizedCategory
    """
    if category_name and not is_display_group_code(category_name):
        name = category_name.strip()
        lowered = name.lower()

        if any(t in lowered for t in _CELL_PHONE_TERMS) and any(t in lowered for t in _ACCESSORY_TERMS):
            return NormalizedCategory(
                "electronics_cell_phone_accessories",
                "Cell Phones & Accessories",
                f'"{name}" matched cell phone accessories pattern',
            )

        if "electronic" in lowered and not any(t in lowered for t in _SPECIFIC_ELECTRONICS):
            return NormalizedCategory("electronics_general", "Electronics", f'"{name}" matched general electronics pattern')

        for curve_name in BSR_CURVES:
            if curve_name != "default" and curve_name.lower() == lowered:
                key = re.sub(r"[^a-z0-9]+", "_", lowered).strip("_")
                return NormalizedCategory(key, curve_name, f'"{name}" matched calibrated category')

        # 카테고리명이 있지만 알려진 곡선이 아니면 폴백과 같은 규칙 적용
        if not fallback_category:
            fallback_category = name

    if fallback_category:
        fallback = fallback_category.strip()
        lowered = fallback.lower()
        if is_display_group_code(lowered):
            logger.debug(f"Rejected display group code as category: {fallback}")
            return NormalizedCategory("unknown", "Unknown", f'reject_display_group_code: "{fallback}"')

        for pattern, key, display in _FALLBACK_PATTERNS:
            if pattern.search(lowered):
                return NormalizedCategory(key, display, f'"{fallback}" matched {key} pattern')

        return NormalizedCategory(lowered, fallback, f'"{fallback}" used as-is')

    return UNKNOWN_CATEGORY
