"""
Health Check Routes
===================
헬스체크 엔드포인트 (/,  /api/health)
"""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Request

from src.api.dependencies import limiter
from src.domain.exceptions import ConfigurationError
from src.infrastructure.container import Container

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/")
@limiter.limit("60/minute")
async def root(request: Request):
    """헬스 체크"""
    return {"status": "ok", "message": "Market Snapshot API"}


@router.get("/api/health")
@limiter.limit("60/minute")
async def health(request: Request):
    """
    상세 헬스 체크

    설정 로드 여부와 캐시 상태를 보고합니다. 외부 프로바이더는 호출하지 않습니다.
    """
    try:
        config = Container.get_config()
    except ConfigurationError as e:
        logger.error(f"Health check: configuration invalid: {e}")
        return {
            "status": "degraded",
            "timestamp": datetime.now(UTC).isoformat(),
            "config": {"valid": False},
        }

    cache_stats = Container.get_snapshot_cache().get_stats()
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "config": {"valid": True, "marketplace": config.marketplace, "pricing_enabled": config.pricing_enabled},
        "cache": {
            "size": cache_stats["size"],
            "schema_version": cache_stats["schema_version"],
            "hit_rate": cache_stats["hit_rate"],
        },
    }
