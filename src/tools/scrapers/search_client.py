"""
Primary Search Provider Client
==============================
키워드 검색 결과(1페이지)를 반환하는 검색 프로바이더 API 클라이언트

## 기능
- 키워드당 1회 호출 (호출 예산 차감)
- ASIN 일괄 조회 기능 없음

## 사용 예
```python
client = SearchProviderClient(api_key=config.search_api_key)
payload = await client.search("electric kettle", "US", budget)
rows = payload.get("search_results", [])
```

## 환경변수
- SEARCH_API_KEY: 검색 프로바이더 API 키 (필수)
- SEARCH_API_BASE_URL: 엔드포인트 (기본값: https://api.rainforestapi.com/request)
"""

import logging
from typing import Any

import httpx

from src.core.call_budget import ApiCallBudget
from src.domain.exceptions import MalformedResponseError
from src.infrastructure.http_client import ProviderHttpClient, resolve_marketplace
from src.shared.constants import DEFAULT_PROVIDER_TIMEOUT_SECONDS, FIXED_PAGE

logger = logging.getLogger(__name__)


class SearchProviderClient(ProviderHttpClient):
    """검색 프로바이더 클라이언트"""

    DEFAULT_BASE_URL = "https://api.rainforestapi.com/request"

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout: float = DEFAULT_PROVIDER_TIMEOUT_SECONDS,
        http_client: httpx.AsyncClient | None = None,
    ):
        super().__init__(
            provider="search",
            base_url=base_url or self.DEFAULT_BASE_URL,
            timeout=timeout,
            http_client=http_client,
        )
        self._api_key = api_key

    async def search(
        self,
        keyword: str,
        marketplace: str,
        budget: ApiCallBudget,
        page: int = FIXED_PAGE,
    ) -> dict[str, Any]:
        """
        키워드 검색

        Args:
            keyword: 검색 키워드
            marketplace: 마켓 코드 (US, UK, ...)
            budget: 요청 단위 호출 예산
            page: 결과 페이지 (항상 1)

        Returns:
            프로바이더 원본 JSON (dict)

        Raises:
            BudgetExhaustedError, ProviderError 계열, MalformedResponseError
            ValueError: 지원하지 않는 마켓 코드
        """
        domain = resolve_marketplace(marketplace)[0]
        params = {
            "api_key": self._api_key,
            "type": "search",
            "amazon_domain": domain,
            "search_term": keyword,
            "page": page,
        }

        logger.info(f"Search request: '{keyword}' ({domain}, page={page})")
        payload = await self.request_json("GET", "", budget, "search", params=params)

        if not isinstance(payload, dict):
            raise MalformedResponseError(
                f"Search response is {type(payload).__name__}, expected object", provider=self.provider
            )

        rows = payload.get("search_results")
        logger.info(
            f"Search response: '{keyword}' → {len(rows) if isinstance(rows, list) else 0} rows"
        )
        return payload
