"""
Infrastructure Layer
====================
Clean Architecture의 Frameworks & Drivers Layer

환경 설정, 컴포넌트 조립, 프로바이더 HTTP 통신을 담당합니다.
Domain의 Protocol 구현체(tools/)는 container.py 에서 조립됩니다.

구조:
- config/: AppConfig (.env 로드, 검증)
- container.py: DI Container (클라이언트, 캐시, 워크플로우 싱글톤)
- http_client.py: 프로바이더 HTTP 기반 클라이언트, 마켓 코드 해석
"""

from src.infrastructure.config.config_manager import AppConfig

__all__ = ["AppConfig"]
