"""Pure computation tools for the market snapshot"""

from .bsr_curves import estimate_monthly_units
from .competitive_pressure import compute_cpi
from .demand_estimator import DemandComputation, DemandEstimator
from .invariant_validator import validate_invariants
from .market_aggregates import brand_moat, fulfillment_mix, listing_stats, ppc_indicators
from .market_calibration import allocate_units, apply_allocation, calibrate_market_totals
from .search_volume import estimate_search_volume

__all__ = [
    "estimate_monthly_units",
    "DemandEstimator",
    "DemandComputation",
    "compute_cpi",
    "estimate_search_volume",
    "calibrate_market_totals",
    "allocate_units",
    "apply_allocation",
    "validate_invariants",
    "listing_stats",
    "fulfillment_mix",
    "brand_moat",
    "ppc_indicators",
]
