"""
Application Layer
=================
Clean Architecture의 Use Case Layer (Application Business Rules)

구조:
- workflows/: 시장 스냅샷 집계 워크플로우 (캐시 → 수집 → 보강 → 추정 → 보정)
"""

from src.application.workflows.market_snapshot_workflow import MarketSnapshotWorkflow

__all__ = [
    "MarketSnapshotWorkflow",
]
