"""
App Factory
===========
FastAPI 앱 생성 팩토리 (미들웨어, 라우터, 예외 핸들러 등록)
"""

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.middleware.trustedhost import TrustedHostMiddleware

from src.api.dependencies import limiter
from src.api.middleware import SecurityHeadersMiddleware
from src.domain.exceptions import ConfigurationError
from src.infrastructure.config.config_manager import AppConfig
from src.infrastructure.container import Container

logger = logging.getLogger(__name__)


@asynccontextmanager
async def default_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """종료 시 HTTP 클라이언트 정리 + 대기 중인 캐시 쓰기 완료"""
    logger.info("Market Snapshot API starting")
    yield
    await Container.shutdown()
    logger.info("Market Snapshot API stopped")


async def _configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error(f"Configuration error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=503,
        content={"detail": {"error": "not_configured", "config_key": exc.config_key}},
    )


def create_app(
    lifespan: Callable[..., Any] | None = default_lifespan,
    config: AppConfig | None = None,
) -> FastAPI:
    """
    FastAPI 앱 생성 및 설정

    Args:
        lifespan: Optional lifespan async context manager for startup/shutdown.
        config: 호스트/CORS/HSTS 설정 (기본값: Container 의 AppConfig)

    Returns:
        설정 완료된 FastAPI 인스턴스
    """
    kwargs: dict[str, Any] = {
        "title": "Market Snapshot API",
        "description": "키워드 단위 마켓플레이스 시장 스냅샷 (CPI, 수요/매출, 배송 구성, 검색량)",
        "version": "1.0.0",
    }
    config = config or Container.get_config()
    if lifespan is not None:
        kwargs["lifespan"] = lifespan

    app = FastAPI(**kwargs)

    # Rate Limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(ConfigurationError, _configuration_error_handler)

    # Trusted Host (anti-host-header injection)
    if config.allowed_hosts and "*" not in config.allowed_hosts:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=config.allowed_hosts)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-API-Key"],
    )

    # Security Headers
    app.add_middleware(SecurityHeadersMiddleware, hsts_enabled=config.hsts_enabled)

    _register_routers(app)
    return app


def _register_routers(app: FastAPI) -> None:
    """라우터 등록"""
    from src.api.routes.admin import router as admin_router
    from src.api.routes.health import router as health_router
    from src.api.routes.market import router as market_router

    app.include_router(health_router)
    app.include_router(market_router)
    app.include_router(admin_router)
