"""
Cache Admin Routes
==================
캐시 관리 엔드포인트 (X-API-Key 필요)

- POST /api/admin/cache/invalidate: 키워드/패턴/전체 무효화
- GET  /api/admin/cache/stats: 스냅샷 + ASIN 캐시 통계
"""

import logging

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import limiter, verify_admin_key
from src.api.models import CacheInvalidateRequest, CacheInvalidateResponse, CacheStatsResponse
from src.infrastructure.container import Container

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin/cache",
    tags=["Admin"],
    dependencies=[Depends(verify_admin_key)],
)


@router.post("/invalidate", response_model=CacheInvalidateResponse)
@limiter.limit("10/minute")
async def invalidate_cache(request: Request, body: CacheInvalidateRequest):
    """스냅샷 캐시 무효화"""
    cache = Container.get_snapshot_cache()

    if body.keyword:
        removed = cache.invalidate_query(body.keyword)
        target = f"keyword:{cache.normalize_query(body.keyword)}"
    elif body.pattern:
        removed = cache.invalidate(body.pattern)
        target = f"pattern:{body.pattern}"
    else:
        removed = cache.invalidate()
        target = "all"

    asin_removed = 0
    if body.include_asin_cache:
        asin_removed = Container.get_asin_cache().store_backend.invalidate()

    logger.info(f"Admin cache invalidation ({target}): {removed} snapshots, {asin_removed} ASIN records")
    return CacheInvalidateResponse(removed=removed, asin_cache_removed=asin_removed, target=target)


@router.get("/stats", response_model=CacheStatsResponse)
@limiter.limit("30/minute")
async def cache_stats(request: Request):
    """캐시 통계 조회"""
    return CacheStatsResponse(
        snapshot_cache=Container.get_snapshot_cache().get_stats(),
        asin_cache=Container.get_asin_cache().get_stats(),
    )
