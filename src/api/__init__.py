"""
API Package
===========
FastAPI 앱 및 라우터

구조:
- app_factory.py: create_app (미들웨어, 예외 핸들러, 라우터 등록)
- routes/market.py: 스냅샷 API (/api/market/snapshot)
- routes/admin.py: 캐시 관리 API (/api/admin/cache/*)
- routes/health.py: 헬스체크 (/, /api/health)
- dependencies.py: 공통 의존성 (관리자 인증, 레이트리밋, 워크플로우 주입)
"""
