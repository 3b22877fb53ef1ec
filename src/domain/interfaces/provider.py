"""
Provider Protocols
==================
외부 데이터 프로바이더에 대한 추상 인터페이스

구현체:
- SearchProviderClient (src/tools/scrapers/search_client.py)
- CatalogProviderClient (src/tools/enrichment/catalog_client.py)

모든 호출은 요청 단위 ApiCallBudget 을 받아 호출 직전에 차감합니다.
마켓 코드도 호출마다 전달되며 클라이언트 생성 시점에 고정하지 않습니다.
"""

from typing import Any, Protocol, runtime_checkable

from src.core.call_budget import ApiCallBudget


@runtime_checkable
class SearchProviderProtocol(Protocol):
    """
    1차 검색 프로바이더

    키워드 단위 요청만 지원하며 ASIN 일괄 조회 기능은 없습니다.
    """

    async def search(
        self,
        keyword: str,
        marketplace: str,
        budget: ApiCallBudget,
        page: int = 1,
    ) -> dict[str, Any]:
        """
        키워드 검색 결과를 반환합니다.

        Returns:
            {"search_results": [행 dict, ...], ...}
        """
        ...

    async def close(self) -> None: ...


@runtime_checkable
class CatalogProviderProtocol(Protocol):
    """
    보조 권위 카탈로그/가격 프로바이더

    ASIN 목록 단위 배치 요청을 지원하며 부분 성공 맵과 실패 목록을 반환합니다.
    """

    async def get_catalog_items(self, asins: list[str], budget: ApiCallBudget, marketplace: str) -> Any:
        """카탈로그 일괄 조회 (BatchResult)"""
        ...

    async def get_pricing(self, asins: list[str], budget: ApiCallBudget, marketplace: str) -> Any:
        """가격 일괄 조회 (BatchResult)"""
        ...

    async def close(self) -> None: ...
