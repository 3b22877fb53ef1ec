"""
Parsed Field Value Objects
==========================
프로바이더 JSON 필드 해석 결과를 나타내는 태그드 값 객체.

느슨한 타입의 프로바이더 응답을 그대로 흘려보내지 않고,
필드 단위로 세 가지 상태 중 하나로 강제합니다.

- Value: 프로바이더가 직접 보고한 값
- Inferred: 휴리스틱으로 추론한 값 (추론 근거 포함)
- Unavailable: 값 없음 / 해석 불가 (사유 포함)

Usage:
    parsed = parse_price(row.get("price"))
    match parsed:
        case Value(value=v):
            ...
        case Inferred(value=v, reason=r):
            ...
        case Unavailable(reason=r):
            ...
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Value:
    """프로바이더가 보고한 값"""

    value: Any


@dataclass(frozen=True)
class Inferred:
    """휴리스틱 추론 값"""

    value: Any
    reason: str = ""


@dataclass(frozen=True)
class Unavailable:
    """값 없음"""

    reason: str = "missing"


ParsedField = Value | Inferred | Unavailable


def value_or_none(parsed: ParsedField) -> Any:
    """
    Value/Inferred 이면 값, Unavailable 이면 None

    Args:
        parsed: 해석 결과

    Returns:
        원시 값 또는 None
    """
    match parsed:
        case Value(value=v) | Inferred(value=v):
            return v
        case Unavailable():
            return None
    raise TypeError(f"Unsupported parsed field: {type(parsed).__name__}")
