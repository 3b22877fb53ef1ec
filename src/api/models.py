"""
API Pydantic Models
===================
라우트에서 사용하는 요청/응답 모델 정의
"""

from typing import Any

from pydantic import BaseModel, Field, model_validator

# ============= Cache Admin Models =============


class CacheInvalidateRequest(BaseModel):
    """캐시 무효화 요청 (keyword 또는 pattern 중 하나, 둘 다 없으면 전체)"""

    keyword: str | None = Field(default=None, max_length=200, description="무효화할 키워드 (전 마켓/페이지)")
    pattern: str | None = Field(default=None, max_length=200, description="키에 포함된 문자열")
    include_asin_cache: bool = Field(default=False, description="ASIN BSR 캐시도 함께 비우기")

    @model_validator(mode="after")
    def _exclusive(self) -> "CacheInvalidateRequest":
        if self.keyword and self.pattern:
            raise ValueError("keyword 와 pattern 은 동시에 지정할 수 없습니다")
        return self


class CacheInvalidateResponse(BaseModel):
    """캐시 무효화 결과"""

    removed: int
    asin_cache_removed: int = 0
    target: str


class CacheStatsResponse(BaseModel):
    """캐시 통계"""

    snapshot_cache: dict[str, Any]
    asin_cache: dict[str, Any]


# ============= Error Models =============


class ErrorResponse(BaseModel):
    """에러 응답"""

    error: str
    detail: str
    context: dict[str, Any] = Field(default_factory=dict)
