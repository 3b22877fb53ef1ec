"""Search provider collection tools"""

from .raw_listing_collector import CollectionResult, RawListingCollector
from .search_client import SearchProviderClient

__all__ = [
    "SearchProviderClient",
    "RawListingCollector",
    "CollectionResult",
]
