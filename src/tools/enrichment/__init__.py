"""Secondary provider enrichment tools"""

from .catalog_client import BatchResult, CatalogItem, CatalogProviderClient, PricingItem
from .enrichment_orchestrator import EnrichmentOrchestrator, EnrichmentReport

__all__ = [
    "CatalogProviderClient",
    "CatalogItem",
    "PricingItem",
    "BatchResult",
    "EnrichmentOrchestrator",
    "EnrichmentReport",
]
