"""
ASIN BSR Cache
==============
보조 프로바이더 카탈로그 결과(BSR/카테고리/브랜드/제목/이미지)의 ASIN 단위 캐시 (48시간)

- 일괄 조회 / 일괄 저장
- 같은 ASIN 집합에 대한 동시 조회는 하나로 합침 (정렬된 ASIN 목록 기준)
- HIT 항목만 사용 (STALE 은 다시 조회)

Usage:
    asin_cache = AsinBsrCache(schema_version="v4")
    cached = await asin_cache.lookup(["B0ABC12345"], "US")
    asin_cache.store({"B0ABC12345": item.to_cache_record()}, "US")
"""

import asyncio
import logging
from datetime import timedelta
from typing import Any

from src.core.cache import CacheStatus, SnapshotCache
from src.shared.constants import ASIN_CACHE_TTL_HOURS

logger = logging.getLogger(__name__)


class AsinBsrCache:
    """ASIN 단위 카탈로그 캐시"""

    def __init__(
        self,
        schema_version: str = "v1",
        ttl: timedelta | None = None,
        cache: SnapshotCache | None = None,
    ):
        self._cache = cache or SnapshotCache(
            schema_version=schema_version,
            ttl=ttl or timedelta(hours=ASIN_CACHE_TTL_HOURS),
            max_size=50000,
            key_prefix="asin",
        )

    @property
    def store_backend(self) -> SnapshotCache:
        return self._cache

    def make_key(self, asin: str, marketplace: str) -> str:
        return f"asin:{marketplace.upper()}:{asin.upper()}:{self._cache.schema_version}"

    def get_many(self, asins: list[str], marketplace: str) -> dict[str, dict[str, Any]]:
        """
        일괄 조회 (HIT 만 반환)

        Returns:
            {asin: cache record}
        """
        keys = {self.make_key(asin, marketplace): asin for asin in asins}
        lookups = self._cache.get_many(list(keys))
        return {
            keys[key]: lookup.payload
            for key, lookup in lookups.items()
            if lookup.status is CacheStatus.HIT
        }

    async def lookup(self, asins: list[str], marketplace: str) -> dict[str, dict[str, Any]]:
        """
        일괄 조회 (동일 ASIN 집합 동시 조회 공유)

        Args:
            asins: 조회할 ASIN 목록
            marketplace: 마켓 코드

        Returns:
            {asin: cache record} (신선한 항목만)
        """
        if not asins:
            return {}
        dedup_key = f"asin_lookup:{marketplace.upper()}:{','.join(sorted(set(asins)))}"
        found = await self._cache.run_once(
            dedup_key, lambda: asyncio.to_thread(self.get_many, asins, marketplace)
        )
        logger.debug(f"ASIN cache lookup: {len(found)}/{len(asins)} fresh")
        return found

    def store(self, records: dict[str, dict[str, Any]], marketplace: str) -> None:
        """fire-and-forget 일괄 저장"""
        if not records:
            return
        items = {self.make_key(asin, marketplace): record for asin, record in records.items()}
        self._cache.schedule_put_many(items)

    def get_stats(self) -> dict[str, Any]:
        return self._cache.get_stats()
