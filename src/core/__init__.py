"""
Core 모듈
=========
집계 파이프라인의 공통 인프라 컴포넌트

모듈 구조:
- cache.py: 버전 관리형 스냅샷 캐시 (TTL + stale-while-revalidate + in-flight 공유)
- call_budget.py: 요청 단위 외부 호출 예산

주요 클래스:
- SnapshotCache: HIT/STALE/MISS 캐시
- ApiCallBudget: 호출 예산 카운터
"""

from .cache import CacheEntry, CacheLookup, CacheStatus, SnapshotCache
from .call_budget import ApiCallBudget

__all__ = [
    "ApiCallBudget",
    "CacheEntry",
    "CacheLookup",
    "CacheStatus",
    "SnapshotCache",
]
