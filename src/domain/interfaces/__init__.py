"""
Domain Interfaces
=================
외부 프로바이더와 캐시에 대한 Protocol 정의
"""

from .cache import SnapshotCacheProtocol
from .provider import CatalogProviderProtocol, SearchProviderProtocol

__all__ = [
    "SearchProviderProtocol",
    "CatalogProviderProtocol",
    "SnapshotCacheProtocol",
]
