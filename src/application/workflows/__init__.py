"""
Application Workflows
=====================
Market snapshot aggregation workflow.
"""

from .market_snapshot_workflow import MarketSnapshotWorkflow

__all__ = [
    "MarketSnapshotWorkflow",
]
