"""
Centralized Constants
=====================
All magic numbers used by the market snapshot pipeline, extracted to one place.
"""

# ==============================================================================
# CALL BUDGET & PROVIDERS
# ==============================================================================

DEFAULT_CALL_BUDGET = 7  # Max external calls per aggregation request
DEFAULT_PROVIDER_TIMEOUT_SECONDS = 10.0  # Per-call HTTP timeout
ENRICHMENT_BATCH_SIZE = 10  # ASINs per secondary-provider batch
ENRICHMENT_MAX_CONCURRENCY = 6  # Secondary batches in flight at once
FIXED_PAGE = 1  # Only page 1 of search results is analyzed
DEFAULT_MARKETPLACE = "US"

# Marketplace code -> (search domain, secondary marketplace id)
MARKETPLACES = {
    "US": ("amazon.com", "ATVPDKIKX0DER"),
    "CA": ("amazon.ca", "A2EUQ1WTGCTBG2"),
    "UK": ("amazon.co.uk", "A1F83G8C2ARO7P"),
    "DE": ("amazon.de", "A1PA6795UKMFR9"),
    "FR": ("amazon.fr", "A13V1IB3VIYZZH"),
    "IT": ("amazon.it", "APJ6JRA9NG5V4"),
    "ES": ("amazon.es", "A1RKKUPIHCS9HS"),
    "JP": ("amazon.co.jp", "A1VC38T7YXB528"),
}


# ==============================================================================
# CACHE
# ==============================================================================

SNAPSHOT_TTL_HOURS = 24
ASIN_CACHE_TTL_HOURS = 48
CACHE_SCHEMA_VERSION = "v4"
CACHE_INPUT_TYPE_KEYWORD = "keyword"


# ==============================================================================
# BSR -> MONTHLY UNITS CURVES
# ==============================================================================

# Piecewise linear segments: (max_bsr, intercept, slope, floor)
# units = intercept - bsr * slope, applied on the first segment with bsr <= max_bsr
_INF = float("inf")

BSR_CURVES = {
    "Home & Kitchen": [
        (100, 12000, 80, 0),
        (500, 5000, 8, 0),
        (2000, 1500, 0.6, 0),
        (10000, 800, 0.06, 0),
        (50000, 400, 0.006, 0),
        (100000, 150, 0.001, 0),
        (_INF, 50, 0.0001, 1),
    ],
    "Sports & Outdoors": [
        (100, 10000, 70, 0),
        (500, 4000, 6, 0),
        (2000, 1200, 0.5, 0),
        (10000, 600, 0.04, 0),
        (50000, 300, 0.004, 0),
        (100000, 120, 0.0008, 0),
        (_INF, 40, 0.00008, 1),
    ],
    "Beauty & Personal Care": [
        (100, 15000, 100, 0),
        (500, 6000, 10, 0),
        (2000, 2000, 0.8, 0),
        (10000, 1000, 0.08, 0),
        (50000, 500, 0.008, 0),
        (100000, 200, 0.0015, 0),
        (_INF, 60, 0.0001, 1),
    ],
    "Toys & Games": [
        (100, 18000, 120, 0),
        (500, 7000, 12, 0),
        (2000, 2500, 1.0, 0),
        (10000, 1200, 0.1, 0),
        (50000, 600, 0.01, 0),
        (100000, 250, 0.002, 0),
        (_INF, 80, 0.00015, 1),
    ],
    "Kitchen & Dining": [
        (100, 11000, 75, 0),
        (500, 4500, 7, 0),
        (2000, 1400, 0.55, 0),
        (10000, 750, 0.055, 0),
        (50000, 380, 0.0055, 0),
        (100000, 140, 0.0009, 0),
        (_INF, 45, 0.00009, 1),
    ],
    "default": [
        (100, 8000, 60, 0),
        (500, 3500, 5, 0),
        (2000, 1000, 0.4, 0),
        (10000, 500, 0.04, 0),
        (50000, 250, 0.004, 0),
        (100000, 100, 0.0007, 0),
        (_INF, 30, 0.00006, 1),
    ],
}


# ==============================================================================
# DEMAND ESTIMATION
# ==============================================================================

RANK_DECAY = 0.15  # weight = e^(-RANK_DECAY * (rank - 1))
SPONSORED_ONLY_WEIGHT = 0.5

# Exactly one market-level dampening factor, chosen by data confidence
DAMPENING_BY_CONFIDENCE = {"high": 0.95, "medium": 0.80, "low": 0.65}
LOW_BSR_COVERAGE_THRESHOLD = 0.5
LOW_BSR_COVERAGE_PENALTY = 0.85

# Demand level by average monthly units per estimated listing
DEMAND_LEVELS = [(8000, "High"), (2500, "Medium"), (800, "Low")]
DEMAND_LEVEL_FLOOR = "Very Low"


# ==============================================================================
# COMPETITIVE PRESSURE INDEX
# ==============================================================================

# (min ratio, points), evaluated top-down
CPI_REVIEW_DOMINANCE_BANDS = [(0.80, 30), (0.65, 24), (0.50, 18), (0.35, 12), (0.20, 6)]
CPI_BRAND_CONCENTRATION_BANDS = [(0.60, 25), (0.40, 19), (0.25, 13), (0.15, 7)]
CPI_SPONSORED_SATURATION_BANDS = [(0.50, 20), (0.30, 15), (0.15, 10), (0.05, 5)]
# (max spread ratio, points): tighter spread -> more pressure
CPI_PRICE_COMPRESSION_BANDS = [(0.15, 15), (0.30, 10), (0.50, 5)]
CPI_SELLER_MODIFIER = {"new": 10, "established": 0, "scaling": -10}
# (max score, label)
CPI_LABELS = [(30, "low"), (60, "moderate"), (80, "high")]
CPI_LABEL_CEILING = "extreme"


# ==============================================================================
# SEARCH VOLUME
# ==============================================================================

SEARCH_VOLUME_PER_LISTING = 1500
# (max avg reviews exclusive, multiplier); >= last bound uses the ceiling
SEARCH_VOLUME_REVIEW_BANDS = [(100, 0.7), (500, 1.0), (1500, 1.3)]
SEARCH_VOLUME_REVIEW_CEILING = 1.6
SEARCH_VOLUME_SPONSORED_THRESHOLD = 0.30
SEARCH_VOLUME_SPONSORED_BUMP = 1.15
SEARCH_VOLUME_RANGE = (0.7, 1.3)

# Two coarse keyword buckets
SEARCH_VOLUME_CATEGORY_BUCKETS = {
    "high_demand": {
        "multiplier": 1.3,
        "keywords": [
            "electronic", "tech", "computer", "phone", "tablet", "headphone", "speaker",
            "smartwatch", "charger", "cable", "beauty", "cosmetic", "skincare", "makeup",
            "hair", "perfume", "nail",
        ],
    },
    "standard": {
        "multiplier": 1.0,
        "keywords": [
            "home", "kitchen", "cookware", "furniture", "decor", "bedding", "fitness",
            "health", "supplement", "vitamin", "workout", "exercise", "gym", "toy", "pet",
            "garden", "tool", "outdoor",
        ],
    },
}


# ==============================================================================
# MARKET CALIBRATION & INVARIANTS
# ==============================================================================

MARKET_RANGES = {
    "low": {"units_min": 2000, "units_max": 6000, "revenue_min": 50000, "revenue_max": 150000},
    "medium": {"units_min": 6000, "units_max": 15000, "revenue_min": 150000, "revenue_max": 375000},
    "high": {"units_min": 15000, "units_max": 35000, "revenue_min": 375000, "revenue_max": 875000},
}
CALIBRATION_CATEGORY_MULTIPLIERS = {
    "electronics": 1.15,
    "home": 1.05,
    "beauty": 1.10,
    "health": 1.00,
    "default": 1.00,
}
CALIBRATION_FACTOR_BOUNDS = (0.8, 1.2)
# Range half-width by calibration confidence
CALIBRATION_RANGE_WIDTH = {"high": 0.15, "medium": 0.25, "low": 0.35}

INVARIANT_SUM_TOLERANCE = 0.01
INVARIANT_DOMINANCE_CAP = 0.35
INVARIANT_DOMINANCE_CAP_CANONICAL = 0.50
INVARIANT_REVENUE_TOLERANCE = 0.01
INVARIANT_REVENUE_ERROR = 0.05


# ==============================================================================
# BRAND RESOLUTION
# ==============================================================================

BRAND_MIN_FREQUENCY = 2
BRAND_MIN_REVENUE_SHARE = 0.03
BRAND_FALLBACK_UNITS_PER_LISTING = 50  # revenue proxy = price * 50 when no estimate
PLATFORM_NAMES = ("amazon",)

BRAND_TITLE_STOPWORDS = frozenset(
    {
        "electric", "stainless", "steel", "portable", "wireless", "cordless", "digital",
        "automatic", "premium", "professional", "pro", "new", "upgraded", "original",
        "small", "medium", "large", "xl", "xxl", "mini", "extra", "pack", "set", "piece",
        "black", "white", "red", "blue", "green", "grey", "gray", "silver", "gold", "pink",
        "the", "for", "with", "and", "of", "in", "by",
    }
)

BRAND_NORMALIZATION = {
    "amazon basics": "Amazon Basics",
    "amazonbasics": "Amazon Basics",
    "kitchenaid": "KitchenAid",
    "kitchen aid": "KitchenAid",
    "hamilton beach": "Hamilton Beach",
    "black+decker": "BLACK+DECKER",
    "black & decker": "BLACK+DECKER",
    "cuisinart": "Cuisinart",
    "oxo": "OXO",
}


# ==============================================================================
# PPC INDICATORS & BRAND MOAT
# ==============================================================================

PPC_TOP_ORGANIC_SAMPLE = 10
PPC_MAX_SIGNALS = 3
MOAT_STRONG = (35.0, 65.0)  # (top brand %, top-3 brands %)
MOAT_MODERATE = (25.0, 50.0)
MOAT_WEAK_TOP = 15.0
