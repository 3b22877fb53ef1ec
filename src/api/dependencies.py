"""
API Dependencies
================
공통 의존성 모듈 (관리자 인증, 레이트리밋, 워크플로우/캐시 주입)

라우트 모듈들이 공유하는 의존성을 제공합니다.
"""

import hmac
import logging

from fastapi import HTTPException, Security
from fastapi.security import APIKeyHeader
from slowapi import Limiter
from slowapi.util import get_remote_address

from src.application.workflows.market_snapshot_workflow import MarketSnapshotWorkflow
from src.core.cache import SnapshotCache
from src.infrastructure.config.config_manager import AppConfig
from src.infrastructure.container import Container

logger = logging.getLogger(__name__)

# ============= Admin API Key 인증 =============

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_admin_key(api_key: str = Security(api_key_header)):
    """Admin API Key 검증 (캐시 관리 엔드포인트용)"""
    expected = Container.get_config().admin_api_key
    if not expected:
        raise HTTPException(
            status_code=503,
            detail="Server not configured for authenticated access",
        )
    if api_key is None:
        raise HTTPException(
            status_code=401,
            detail="API Key가 필요합니다. 헤더에 X-API-Key를 추가하세요.",
        )
    if not hmac.compare_digest(api_key.encode(), expected.encode()):
        logger.warning("Rejected admin request with invalid API key")
        raise HTTPException(
            status_code=403,
            detail="유효하지 않은 API Key입니다.",
        )
    return api_key


# ============= Rate Limiter =============

limiter = Limiter(key_func=get_remote_address)


# ============= Component 주입 =============


def get_app_config() -> AppConfig:
    """애플리케이션 설정 (Container 싱글톤)"""
    return Container.get_config()


def get_workflow() -> MarketSnapshotWorkflow:
    """집계 워크플로우 (Container 싱글톤)"""
    return Container.get_workflow()


def get_snapshot_cache() -> SnapshotCache:
    """스냅샷 캐시 (Container 싱글톤)"""
    return Container.get_snapshot_cache()
