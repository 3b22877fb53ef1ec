"""
SnapshotCache 단위 테스트
"""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from src.core.cache import CacheStatus, SnapshotCache


class FakeClock:
    """테스트용 시계"""

    def __init__(self):
        self.now = datetime(2026, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return SnapshotCache(schema_version="v4", ttl=timedelta(hours=24), clock=clock)


# =============================================================================
# 키 생성 테스트
# =============================================================================


class TestSnapshotCacheKeys:
    """복합 키 생성"""

    def test_normalize_query(self):
        """소문자 + 공백 정규화"""
        assert SnapshotCache.normalize_query("  Electric   KETTLE ") == "electric kettle"

    def test_make_key_components(self, cache):
        key = cache.make_key("us", "keyword", "Electric  Kettle", 1)
        assert key == "analyze:US:keyword:electric kettle:1:v4"

    def test_equivalent_queries_share_key(self, cache):
        """대소문자/공백만 다른 쿼리는 같은 키"""
        assert cache.make_key("US", "keyword", "Yoga Mat") == cache.make_key("US", "keyword", " yoga  mat")


# =============================================================================
# TTL / SWR 상태 테스트
# =============================================================================


class TestSnapshotCacheStatus:
    """HIT / STALE / MISS 분류"""

    def test_missing_key_is_miss(self, cache):
        lookup = cache.get("nope")
        assert lookup.status is CacheStatus.MISS
        assert lookup.payload is None

    def test_fresh_entry_is_hit(self, cache, clock):
        cache.put("k", {"a": 1})
        clock.advance(hours=23)
        lookup = cache.get("k")
        assert lookup.status is CacheStatus.HIT
        assert lookup.payload == {"a": 1}

    def test_between_ttl_and_double_ttl_is_stale(self, cache, clock):
        cache.put("k", {"a": 1})
        clock.advance(hours=30)
        lookup = cache.get("k")
        assert lookup.status is CacheStatus.STALE
        assert lookup.payload == {"a": 1}
        assert lookup.usable is True

    def test_after_double_ttl_is_miss_and_evicted(self, cache, clock):
        cache.put("k", {"a": 1})
        clock.advance(hours=48)
        assert cache.get("k").status is CacheStatus.MISS
        assert "k" not in cache

    def test_schema_version_change_always_misses(self, cache):
        """v3 로 쓴 항목은 v4 로 읽으면 항상 MISS"""
        cache.schema_version = "v3"
        cache.put("k", {"schema_version": "v3"})
        cache.schema_version = "v4"
        assert cache.get("k").status is CacheStatus.MISS
        assert len(cache) == 0

    def test_put_stores_copy(self, cache):
        """저장 이후 원본을 변경해도 캐시 값은 그대로"""
        payload = {"items": [1, 2]}
        cache.put("k", payload)
        payload["items"].append(3)
        assert cache.get("k").payload == {"items": [1, 2]}

    def test_write_failure_is_logged_not_raised(self, cache):
        """복사 불가 값 저장 실패는 False 반환"""

        class Unpicklable:
            def __deepcopy__(self, memo):
                raise TypeError("cannot copy")

        assert cache.put("k", Unpicklable()) is False
        assert cache.get_stats()["write_failures"] == 1

    def test_max_size_evicts_oldest(self, clock):
        cache = SnapshotCache(schema_version="v4", max_size=2, clock=clock)
        cache.put("a", 1)
        clock.advance(seconds=1)
        cache.put("b", 2)
        clock.advance(seconds=1)
        cache.put("c", 3)
        assert "a" not in cache
        assert "b" in cache and "c" in cache


# =============================================================================
# 무효화 테스트
# =============================================================================


class TestSnapshotCacheInvalidation:
    """무효화 / 정리"""

    def test_invalidate_query_all_marketplaces(self, cache):
        us = cache.make_key("US", "keyword", "yoga mat")
        uk = cache.make_key("UK", "keyword", "yoga mat")
        other = cache.make_key("US", "keyword", "kettle")
        for key in (us, uk, other):
            cache.put(key, {})
        assert cache.invalidate_query("Yoga Mat") == 2
        assert other in cache

    def test_invalidate_pattern_and_all(self, cache):
        cache.put("analyze:US:keyword:a:1:v4", {})
        cache.put("analyze:UK:keyword:b:1:v4", {})
        assert cache.invalidate(":UK:") == 1
        assert cache.invalidate() == 1
        assert len(cache) == 0

    def test_cleanup_expired(self, cache, clock):
        cache.put("old", 1)
        clock.advance(hours=49)
        cache.put("new", 2)
        assert cache.cleanup_expired() == 1
        assert "new" in cache


# =============================================================================
# 비동기 동작 테스트
# =============================================================================


class TestSnapshotCacheAsync:
    """run_once / schedule_put / refresh_in_background"""

    @pytest.mark.asyncio
    async def test_run_once_shares_concurrent_compute(self, cache):
        """동일 키 동시 요청은 계산 1회"""
        calls = 0
        release = asyncio.Event()

        async def compute():
            nonlocal calls
            calls += 1
            await release.wait()
            return {"value": 42}

        first = asyncio.create_task(cache.run_once("k", compute))
        second = asyncio.create_task(cache.run_once("k", compute))
        await asyncio.sleep(0)
        assert cache.is_inflight("k")
        release.set()

        assert await first == {"value": 42}
        assert await second == {"value": 42}
        assert calls == 1
        assert not cache.is_inflight("k")
        assert cache.get_stats()["shared_computes"] == 1

    @pytest.mark.asyncio
    async def test_run_once_propagates_errors_to_all_waiters(self, cache):
        async def compute():
            await asyncio.sleep(0)
            raise ValueError("boom")

        results = await asyncio.gather(
            cache.run_once("k", compute), cache.run_once("k", compute), return_exceptions=True
        )
        assert all(isinstance(r, ValueError) for r in results)
        assert not cache.is_inflight("k")

    @pytest.mark.asyncio
    async def test_schedule_put_does_not_block(self, cache):
        cache.schedule_put("k", {"a": 1})
        await cache.drain()
        assert cache.get("k").status is CacheStatus.HIT

    @pytest.mark.asyncio
    async def test_refresh_in_background_skips_when_inflight(self, cache):
        release = asyncio.Event()

        async def compute():
            await release.wait()
            cache.put("k", {"fresh": True})
            return {"fresh": True}

        assert cache.refresh_in_background("k", compute) is True
        await asyncio.sleep(0)
        assert cache.refresh_in_background("k", compute) is False
        release.set()
        await cache.drain()
        assert cache.get("k").payload == {"fresh": True}

    def test_schedule_put_without_loop_writes_immediately(self, cache):
        cache.schedule_put("k", {"a": 1})
        assert cache.get("k").status is CacheStatus.HIT
