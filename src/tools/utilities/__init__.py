"""Listing normalization utilities"""

from .brand_resolver import BrandResolver, extract_brand_from_title, normalize_brand
from .canonicalizer import ListingCanonicalizer
from .category_normalizer import NormalizedCategory, normalize_category
from .fulfillment_resolver import FulfillmentResolver

__all__ = [
    "BrandResolver",
    "ListingCanonicalizer",
    "FulfillmentResolver",
    "NormalizedCategory",
    "normalize_category",
    "normalize_brand",
    "extract_brand_from_title",
]
