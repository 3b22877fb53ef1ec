"""
API Middleware Package
======================
FastAPI 미들웨어 모듈 (보안 헤더)
"""

from src.api.middleware.security_headers import SecurityHeadersMiddleware

__all__ = ["SecurityHeadersMiddleware"]
