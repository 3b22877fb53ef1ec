"""
Cache Protocol
==============
스냅샷 캐시 저장소 인터페이스

구현체:
- SnapshotCache (src/core/cache.py)
"""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class SnapshotCacheProtocol(Protocol):
    """
    버전 태그 + TTL + stale-while-revalidate 를 지원하는 key/value 캐시

    Methods:
        make_key: 복합 키 생성
        get: 조회 (HIT / STALE / MISS)
        put / schedule_put: 저장 (실패는 로그만)
        run_once: 같은 키의 동시 계산 공유
        refresh_in_background: STALE 백그라운드 갱신
    """

    def make_key(
        self,
        marketplace: str,
        input_type: str,
        query: str,
        page: int = 1,
        schema_version: str | None = None,
    ) -> str: ...

    def get(self, key: str) -> Any: ...

    def put(self, key: str, payload: Any, ttl: Any = None) -> bool: ...

    def schedule_put(self, key: str, payload: Any, ttl: Any = None) -> None: ...

    async def run_once(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any: ...

    def refresh_in_background(self, key: str, factory: Callable[[], Awaitable[Any]]) -> bool: ...
