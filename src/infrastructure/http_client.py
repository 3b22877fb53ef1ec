"""
Provider HTTP Client
====================
외부 프로바이더 호출 공통 래퍼 (httpx.AsyncClient)

- 호출 직전 ApiCallBudget 확인 (예산 소진 시 네트워크 I/O 없이 BudgetExhaustedError)
- 호출별 타임아웃 (httpx.Timeout)
- httpx 예외 / 상태 코드를 도메인 예외로 변환

상태 코드 매핑:
- 401 / 403 → ProviderPermissionDeniedError
- 429 / 5xx / 네트워크 오류 / 타임아웃 → ProviderUnavailableError
- 그 외 4xx → ProviderError
- JSON 해석 실패 → MalformedResponseError
"""

import logging
from typing import Any

import httpx

from src.core.call_budget import ApiCallBudget
from src.domain.exceptions import (
    BudgetExhaustedError,
    MalformedResponseError,
    ProviderError,
    ProviderPermissionDeniedError,
    ProviderUnavailableError,
)
from src.shared.constants import DEFAULT_PROVIDER_TIMEOUT_SECONDS, MARKETPLACES

logger = logging.getLogger(__name__)


def resolve_marketplace(marketplace: str) -> tuple[str, str]:
    """
    마켓 코드 → (검색 도메인, 보조 프로바이더 marketplace id)

    Raises:
        ValueError: 지원하지 않는 마켓 코드
    """
    code = (marketplace or "").strip().upper()
    if code not in MARKETPLACES:
        raise ValueError(f"Unsupported marketplace: {marketplace!r}")
    return MARKETPLACES[code]


class ProviderHttpClient:
    """
    프로바이더 HTTP 클라이언트 기반 클래스

    Args:
        provider: 프로바이더 이름 (로그/예외용)
        base_url: 기본 URL
        timeout: 호출별 타임아웃 (초)
        headers: 기본 헤더
        http_client: 주입할 httpx.AsyncClient (테스트용 MockTransport 등)
    """

    def __init__(
        self,
        provider: str,
        base_url: str,
        timeout: float = DEFAULT_PROVIDER_TIMEOUT_SECONDS,
        headers: dict[str, str] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.provider = provider
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._headers = {"Accept": "application/json", **(headers or {})}
        self._client = http_client
        self._owns_client = http_client is None
        self._stats = {"requests": 0, "errors": 0, "budget_skips": 0}

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ProviderHttpClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def request_json(
        self,
        method: str,
        path: str,
        budget: ApiCallBudget | None,
        label: str,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        """
        예산 확인 후 JSON 요청

        Args:
            method: HTTP 메서드
            path: base_url 이후 경로 (빈 문자열 허용)
            budget: 요청 단위 호출 예산 (None 이면 확인 생략)
            label: 예산 라벨 (search / catalog / pricing)
            params: 쿼리 파라미터
            json_body: 요청 본문

        Returns:
            해석된 JSON

        Raises:
            BudgetExhaustedError: 예산 소진 (네트워크 호출 없음)
            ProviderPermissionDeniedError / ProviderUnavailableError / ProviderError /
            MalformedResponseError
        """
        if budget is not None and not budget.try_acquire(label):
            self._stats["budget_skips"] += 1
            raise BudgetExhaustedError(
                f"{self.provider} {label} call skipped: budget exhausted",
                count=budget.count,
                max_calls=budget.max_calls,
            )

        url = f"{self.base_url}{path}"
        self._stats["requests"] += 1
        try:
            response = await self._get_client().request(
                method,
                url,
                params=params,
                json=json_body,
                headers=self._headers,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            self._stats["errors"] += 1
            raise ProviderUnavailableError(
                f"{self.provider} timed out after {self.timeout}s", provider=self.provider, url=url
            ) from e
        except httpx.TransportError as e:
            self._stats["errors"] += 1
            raise ProviderUnavailableError(
                f"{self.provider} network error: {type(e).__name__}", provider=self.provider, url=url
            ) from e

        self._raise_for_status(response, url)

        try:
            return response.json()
        except ValueError as e:
            self._stats["errors"] += 1
            raise MalformedResponseError(
                f"{self.provider} returned non-JSON body",
                provider=self.provider,
                status_code=response.status_code,
                url=url,
            ) from e

    def _raise_for_status(self, response: httpx.Response, url: str) -> None:
        status = response.status_code
        if status < 400:
            return

        self._stats["errors"] += 1
        message = f"{self.provider} HTTP {status}"
        if status in (401, 403):
            raise ProviderPermissionDeniedError(message, provider=self.provider, status_code=status, url=url)
        if status == 429 or status >= 500:
            raise ProviderUnavailableError(message, provider=self.provider, status_code=status, url=url)
        raise ProviderError(message, provider=self.provider, status_code=status, url=url)

    def get_stats(self) -> dict[str, Any]:
        return {"provider": self.provider, **self._stats}
