"""
스냅샷 캐싱 모듈
================
키워드 시장 스냅샷의 버전 관리형 TTL 캐시 (stale-while-revalidate)

조회 상태:
- HIT: age < TTL
- STALE: TTL <= age < 2×TTL (이전 값을 즉시 반환하고 비동기 갱신)
- MISS: age >= 2×TTL, schema_version 불일치, 또는 항목 없음

만료/비호환 항목은 조회 시 지연 삭제합니다.
schema_version 이 바뀌면 이전 항목은 모두 무조건 MISS 가 됩니다.

Usage:
    cache = SnapshotCache(schema_version="v4")
    key = cache.make_key("US", "keyword", "Electric Kettle", page=1)

    lookup = cache.get(key)
    if lookup.status is CacheStatus.HIT:
        return lookup.payload

    # 동일 키 동시 요청은 하나의 계산을 공유 (stampede 방지)
    payload = await cache.run_once(key, compute)
    cache.schedule_put(key, payload)
"""

import asyncio
import copy
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from threading import Lock
from typing import Any

logger = logging.getLogger(__name__)


class CacheStatus(str, Enum):
    """캐시 조회 상태"""

    HIT = "HIT"
    STALE = "STALE"
    MISS = "MISS"


@dataclass
class CacheEntry:
    """캐시 항목"""

    key: str
    payload: Any
    cached_at: datetime
    expires_at: datetime
    schema_version: str

    @property
    def ttl(self) -> timedelta:
        return self.expires_at - self.cached_at


@dataclass(frozen=True)
class CacheLookup:
    """
    캐시 조회 결과

    Attributes:
        payload: 캐시된 값 (MISS 면 None)
        status: HIT / STALE / MISS
        age_seconds: 항목 나이 (MISS 면 None)
    """

    payload: Any
    status: CacheStatus
    age_seconds: float | None = None

    @property
    def usable(self) -> bool:
        return self.status in (CacheStatus.HIT, CacheStatus.STALE)


MISS = CacheLookup(payload=None, status=CacheStatus.MISS)


class SnapshotCache:
    """
    스냅샷 캐시 관리자

    Thread-safe한 인메모리 키/값 저장소 + asyncio in-flight 요청 공유.
    TTL 기반 HIT/STALE/MISS 분류와 schema_version 무효화를 지원합니다.
    """

    # =========================================================================
    # 기본 설정
    # =========================================================================

    DEFAULT_TTL = timedelta(hours=24)
    KEY_PREFIX = "analyze"

    def __init__(
        self,
        schema_version: str = "v1",
        ttl: timedelta | None = None,
        max_size: int = 5000,
        clock: Callable[[], datetime] | None = None,
        key_prefix: str | None = None,
    ):
        """
        Args:
            schema_version: 현재 페이로드 스키마 버전
            ttl: 기본 TTL (기본 24시간)
            max_size: 최대 항목 수
            clock: 현재 시각 함수 (테스트 주입용)
            key_prefix: 키 접두사 (기본 "analyze")
        """
        self.schema_version = schema_version
        self._ttl = ttl or self.DEFAULT_TTL
        self._max_size = max_size
        self._clock = clock or (lambda: datetime.now(UTC))
        self._prefix = key_prefix or self.KEY_PREFIX

        self._entries: dict[str, CacheEntry] = {}
        self._lock = Lock()

        # 동일 키 계산 공유 (asyncio 단일 스레드 내에서 check-and-insert)
        self._inflight: dict[str, asyncio.Future] = {}
        # fire-and-forget 작업 참조 유지
        self._background: set[asyncio.Task] = set()

        # 통계
        self._stats = {
            "hits": 0,
            "stale": 0,
            "misses": 0,
            "sets": 0,
            "write_failures": 0,
            "evictions": 0,
            "shared_computes": 0,
        }

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    # =========================================================================
    # 키 생성
    # =========================================================================

    @staticmethod
    def normalize_query(query: str) -> str:
        """소문자 변환 + 공백 정규화"""
        return " ".join(query.lower().strip().split())

    def make_key(
        self,
        marketplace: str,
        input_type: str,
        query: str,
        page: int = 1,
        schema_version: str | None = None,
    ) -> str:
        """
        복합 캐시 키 생성

        marketplace + input_type + 정규화 쿼리 + page + schema_version

        Returns:
            "analyze:US:keyword:electric kettle:1:v4" 형식의 키
        """
        version = schema_version or self.schema_version
        normalized = self.normalize_query(query)
        return f"{self._prefix}:{marketplace.upper()}:{input_type}:{normalized}:{page}:{version}"

    # =========================================================================
    # 조회
    # =========================================================================

    def get(self, key: str) -> CacheLookup:
        """
        캐시 조회

        Args:
            key: 캐시 키

        Returns:
            CacheLookup (payload, status, age_seconds)
        """
        with self._lock:
            return self._get_locked(key)

    def get_many(self, keys: list[str]) -> dict[str, CacheLookup]:
        """
        여러 키 일괄 조회

        Returns:
            {key: CacheLookup} (모든 키 포함, 없는 키는 MISS)
        """
        with self._lock:
            return {key: self._get_locked(key) for key in keys}

    def _get_locked(self, key: str) -> CacheLookup:
        entry = self._entries.get(key)
        if entry is None:
            self._stats["misses"] += 1
            return MISS

        if entry.schema_version != self.schema_version:
            del self._entries[key]
            self._stats["misses"] += 1
            logger.debug(
                f"Cache schema mismatch: {key[:60]} ({entry.schema_version} != {self.schema_version})"
            )
            return MISS

        age = self._clock() - entry.cached_at
        age_seconds = max(age.total_seconds(), 0.0)
        ttl = entry.ttl

        if age < ttl:
            self._stats["hits"] += 1
            logger.debug(f"Cache hit: {key[:60]} (age={age_seconds:.0f}s)")
            return CacheLookup(payload=entry.payload, status=CacheStatus.HIT, age_seconds=age_seconds)

        if age < ttl * 2:
            self._stats["stale"] += 1
            logger.debug(f"Cache stale: {key[:60]} (age={age_seconds:.0f}s)")
            return CacheLookup(payload=entry.payload, status=CacheStatus.STALE, age_seconds=age_seconds)

        del self._entries[key]
        self._stats["misses"] += 1
        logger.debug(f"Cache expired: {key[:60]}")
        return MISS

    # =========================================================================
    # 저장 (best-effort)
    # =========================================================================

    def put(self, key: str, payload: Any, ttl: timedelta | None = None) -> bool:
        """
        캐시 저장

        실패해도 예외를 올리지 않고 로그만 남깁니다.

        Args:
            key: 캐시 키
            payload: 저장할 값 (저장 시점 사본)
            ttl: 항목 TTL (기본값 사용 시 None)

        Returns:
            저장 성공 여부
        """
        try:
            stored = copy.deepcopy(payload)
            now = self._clock()
            entry = CacheEntry(
                key=key,
                payload=stored,
                cached_at=now,
                expires_at=now + (ttl or self._ttl),
                schema_version=self.schema_version,
            )
            with self._lock:
                if key not in self._entries and len(self._entries) >= self._max_size:
                    self._evict_oldest()
                self._entries[key] = entry
                self._stats["sets"] += 1
            logger.debug(f"Cache set: {key[:60]}")
            return True
        except Exception as e:
            self._stats["write_failures"] += 1
            logger.error(f"Cache write failed for {key[:60]}: {e}")
            return False

    def put_many(self, items: dict[str, Any], ttl: timedelta | None = None) -> int:
        """
        여러 항목 일괄 저장

        Returns:
            저장된 항목 수
        """
        return sum(1 for key, payload in items.items() if self.put(key, payload, ttl))

    def schedule_put(self, key: str, payload: Any, ttl: timedelta | None = None) -> None:
        """
        fire-and-forget 저장

        호출자의 응답 경로를 막지 않습니다. 실행 중인 이벤트 루프가 없으면 즉시 저장합니다.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.put(key, payload, ttl)
            return
        handle = loop.create_task(asyncio.to_thread(self.put, key, payload, ttl))
        self._track(handle, f"write {key[:60]}")

    def schedule_put_many(self, items: dict[str, Any], ttl: timedelta | None = None) -> None:
        """fire-and-forget 일괄 저장"""
        if not items:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.put_many(items, ttl)
            return
        handle = loop.create_task(asyncio.to_thread(self.put_many, items, ttl))
        self._track(handle, f"bulk write ({len(items)} keys)")

    def delete(self, key: str) -> bool:
        with self._lock:
            if key in self._entries:
                del self._entries[key]
                return True
            return False

    # =========================================================================
    # In-flight 공유 / SWR 갱신
    # =========================================================================

    async def run_once(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        """
        동일 키에 대한 동시 계산을 하나로 합침

        이미 진행 중인 계산이 있으면 그 결과를 기다리고, 없으면 새로 시작합니다.
        한 호출자가 취소되어도 공유 계산은 취소되지 않습니다.

        Args:
            key: 계산 키
            factory: 계산 코루틴 생성 함수

        Returns:
            계산 결과 (예외는 모든 대기자에게 전파)
        """
        existing = self._inflight.get(key)
        if existing is not None:
            self._stats["shared_computes"] += 1
            logger.debug(f"Joining in-flight compute: {key[:60]}")
            return await asyncio.shield(existing)

        task = asyncio.ensure_future(factory())
        self._inflight[key] = task

        def _release(done: asyncio.Future) -> None:
            if self._inflight.get(key) is done:
                del self._inflight[key]

        task.add_done_callback(_release)
        return await asyncio.shield(task)

    def is_inflight(self, key: str) -> bool:
        return key in self._inflight

    def refresh_in_background(self, key: str, factory: Callable[[], Awaitable[Any]]) -> bool:
        """
        STALE 항목 비동기 갱신 (대기하지 않음)

        이미 같은 키의 계산이 진행 중이면 새로 시작하지 않습니다.

        Returns:
            갱신 작업을 새로 시작했으면 True
        """
        if key in self._inflight:
            return False
        loop = asyncio.get_running_loop()
        handle = loop.create_task(self.run_once(key, factory))
        self._track(handle, f"refresh {key[:60]}")
        logger.info(f"Stale cache refresh started: {key[:60]}")
        return True

    async def drain(self) -> None:
        """진행 중인 백그라운드 작업 완료 대기 (종료/테스트용)"""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def _track(self, task: asyncio.Task, label: str) -> None:
        self._background.add(task)

        def _done(done: asyncio.Task) -> None:
            self._background.discard(done)
            if done.cancelled():
                return
            error = done.exception()
            if error is not None:
                logger.error(f"Background cache task failed ({label}): {error}")

        task.add_done_callback(_done)

    # =========================================================================
    # 무효화 / 정리
    # =========================================================================

    def invalidate(self, pattern: str | None = None) -> int:
        """
        캐시 무효화

        Args:
            pattern: 키에 포함된 문자열 (None이면 전체)

        Returns:
            삭제된 항목 수
        """
        with self._lock:
            if pattern is None:
                count = len(self._entries)
                self._entries.clear()
                logger.info(f"Cache cleared: {count} items")
                return count

            keys_to_delete = [k for k in self._entries if pattern in k]
            for key in keys_to_delete:
                del self._entries[key]

            logger.info(f"Cache invalidated: {len(keys_to_delete)} items (pattern={pattern})")
            return len(keys_to_delete)

    def invalidate_query(self, query: str, input_type: str = "keyword") -> int:
        """쿼리의 모든 마켓/페이지/버전 항목 무효화"""
        normalized = self.normalize_query(query)
        with self._lock:
            keys_to_delete = [
                k
                for k in self._entries
                if k.split(":")[2:4] == [input_type, normalized]
            ]
            for key in keys_to_delete:
                del self._entries[key]
        logger.info(f"Cache invalidated for query '{normalized}': {len(keys_to_delete)} items")
        return len(keys_to_delete)

    def cleanup_expired(self) -> int:
        """
        2×TTL 을 넘긴 항목과 스키마 불일치 항목 정리

        Returns:
            정리된 항목 수
        """
        with self._lock:
            now = self._clock()
            expired_keys = [
                key
                for key, entry in self._entries.items()
                if entry.schema_version != self.schema_version
                or now - entry.cached_at >= entry.ttl * 2
            ]
            for key in expired_keys:
                del self._entries[key]

        if expired_keys:
            logger.info(f"Cache cleanup: {len(expired_keys)} expired items removed")
        return len(expired_keys)

    def _evict_oldest(self) -> None:
        """가장 오래된 항목 제거"""
        if not self._entries:
            return
        oldest_key = min(self._entries, key=lambda k: self._entries[k].cached_at)
        del self._entries[oldest_key]
        self._stats["evictions"] += 1
        logger.debug(f"Cache evicted: {oldest_key[:60]}")

    # =========================================================================
    # 통계 및 상태
    # =========================================================================

    def get_stats(self) -> dict[str, Any]:
        """
        캐시 통계 조회

        Returns:
            통계 정보 dict
        """
        with self._lock:
            lookups = self._stats["hits"] + self._stats["stale"] + self._stats["misses"]
            hit_rate = self._stats["hits"] / lookups if lookups > 0 else 0
            return {
                "size": len(self._entries),
                "max_size": self._max_size,
                "schema_version": self.schema_version,
                "ttl_seconds": int(self._ttl.total_seconds()),
                "hit_rate": round(hit_rate, 4),
                "inflight": len(self._inflight),
                **self._stats,
            }

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
