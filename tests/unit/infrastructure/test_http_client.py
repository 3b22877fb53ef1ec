"""
ProviderHttpClient 단위 테스트

httpx.MockTransport 로 네트워크 없이 상태 코드 매핑을 검증합니다.
"""

import httpx
import pytest

from src.core.call_budget import ApiCallBudget
from src.domain.exceptions import (
    BudgetExhaustedError,
    MalformedResponseError,
    ProviderError,
    ProviderPermissionDeniedError,
    ProviderUnavailableError,
)
from src.infrastructure.http_client import ProviderHttpClient


def make_client(handler) -> ProviderHttpClient:
    transport = httpx.MockTransport(handler)
    return ProviderHttpClient(
        provider="search",
        base_url="https://provider.test/",
        timeout=1.0,
        http_client=httpx.AsyncClient(transport=transport),
    )


class TestRequestJson:
    """정상 응답 / 예산"""

    @pytest.mark.asyncio
    async def test_returns_parsed_json_and_counts_budget(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        client = make_client(handler)
        budget = ApiCallBudget(max_calls=2)

        result = await client.request_json("GET", "/request", budget, "search", params={"q": "kettle"})

        assert result == {"ok": True}
        assert budget.count == 1
        assert seen[0].url.params["q"] == "kettle"
        assert str(seen[0].url).startswith("https://provider.test/request")

    @pytest.mark.asyncio
    async def test_exhausted_budget_makes_no_request(self):
        """예산 소진 시 네트워크 호출 없음"""
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(200, json={})

        client = make_client(handler)
        budget = ApiCallBudget(max_calls=7, count=7)

        with pytest.raises(BudgetExhaustedError):
            await client.request_json("GET", "", budget, "catalog")

        assert calls == 0
        assert budget.count == 7
        assert client.get_stats()["budget_skips"] == 1

    @pytest.mark.asyncio
    async def test_none_budget_skips_check(self):
        client = make_client(lambda request: httpx.Response(200, json=[1, 2]))
        assert await client.request_json("GET", "", None, "search") == [1, 2]


class TestStatusMapping:
    """상태 코드 → 도메인 예외"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status, expected",
        [
            (401, ProviderPermissionDeniedError),
            (403, ProviderPermissionDeniedError),
            (429, ProviderUnavailableError),
            (503, ProviderUnavailableError),
        ],
    )
    async def test_mapped_statuses(self, status, expected):
        client = make_client(lambda request: httpx.Response(status, json={}))
        with pytest.raises(expected) as exc_info:
            await client.request_json("GET", "", None, "search")
        assert exc_info.value.status_code == status
        assert exc_info.value.provider == "search"

    @pytest.mark.asyncio
    async def test_other_4xx_is_plain_provider_error(self):
        client = make_client(lambda request: httpx.Response(404, json={}))
        with pytest.raises(ProviderError) as exc_info:
            await client.request_json("GET", "", None, "search")
        assert type(exc_info.value) is ProviderError
        assert client.get_stats()["errors"] == 1

    @pytest.mark.asyncio
    async def test_non_json_body_is_malformed(self):
        client = make_client(lambda request: httpx.Response(200, text="<html>captcha</html>"))
        with pytest.raises(MalformedResponseError):
            await client.request_json("GET", "", None, "search")

    @pytest.mark.asyncio
    async def test_timeout_is_unavailable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        client = make_client(handler)
        with pytest.raises(ProviderUnavailableError, match="timed out"):
            await client.request_json("GET", "", None, "search")

    @pytest.mark.asyncio
    async def test_transport_error_is_unavailable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = make_client(handler)
        with pytest.raises(ProviderUnavailableError, match="network error"):
            await client.request_json("GET", "", None, "search")


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_injected_client_not_closed(self):
        """주입된 클라이언트는 소유하지 않으므로 닫지 않음"""
        injected = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json={})))
        async with ProviderHttpClient("catalog", "https://x.test", http_client=injected):
            pass
        assert injected.is_closed is False
        await injected.aclose()
