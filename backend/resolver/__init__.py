"""
Content resolution core for Streamhub.

This package loads provider modules, walks the catalog -> posts -> meta ->
episodes -> streams chain, classifies candidate streams, extracts direct
media links from hosting pages, and relays restricted media.
"""

from .classifier import classify, extraction_service_for, extraction_services
from .context import ProviderContext
from .loader import ProviderLoader, ProviderModule
from .manifest import ManifestRegistry
from .pipeline import FederatedSearchResult, ProviderSearchOutcome, ResolutionPipeline
from .relay import RelayResponse, StreamRelay

__all__ = [
    "FederatedSearchResult",
    "ManifestRegistry",
    "ProviderContext",
    "ProviderLoader",
    "ProviderModule",
    "ProviderSearchOutcome",
    "RelayResponse",
    "ResolutionPipeline",
    "StreamRelay",
    "classify",
    "extraction_service_for",
    "extraction_services",
]
