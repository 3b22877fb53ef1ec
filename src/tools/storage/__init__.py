"""Per-ASIN cache storage"""

from .asin_bsr_cache import AsinBsrCache

__all__ = [
    "AsinBsrCache",
]
