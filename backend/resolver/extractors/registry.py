"""Registry mapping extraction service keys to extractor instances."""
from __future__ import annotations

import logging
from typing import Dict, Iterable

import httpx

from ..errors import ExtractionFailed, UnknownExtractionService
from ..models import ExtractionResult
from .base import DEFAULT_EXTRACTOR_TIMEOUT, DEFAULT_USER_AGENT, Extractor
from .gdflix import GDFlixExtractor
from .gdrive import GDriveExtractor
from .hubcloud import HubCloudExtractor
from .nexdrive import NexDriveExtractor

logger = logging.getLogger(__name__)

BUILTIN_EXTRACTORS: tuple[type[Extractor], ...] = (
    GDriveExtractor,
    HubCloudExtractor,
    NexDriveExtractor,
    GDFlixExtractor,
)


class ExtractorRegistry:
    """Keyed collection of stateless extractors."""

    def __init__(self, extractors: Iterable[Extractor] = ()) -> None:
        self._extractors: Dict[str, Extractor] = {}
        for extractor in extractors:
            self.register(extractor)

    def register(self, extractor: Extractor) -> None:
        if extractor.service in self._extractors:
            raise ValueError(f"Extractor '{extractor.service}' already registered")
        self._extractors[extractor.service] = extractor

    def get(self, service: str) -> Extractor:
        try:
            return self._extractors[service]
        except KeyError:
            raise UnknownExtractionService(f"Unknown extraction service '{service}'") from None

    def services(self) -> frozenset[str]:
        return frozenset(self._extractors)

    async def resolve(self, service: str, page_url: str) -> ExtractionResult:
        extractor = self.get(service)
        try:
            return await extractor.extract(page_url)
        except ExtractionFailed as exc:
            logger.warning("Extraction via %s failed for %s: %s", service, page_url[:80], exc)
            raise

    def __contains__(self, service: object) -> bool:
        return service in self._extractors


def default_registry(
    client: httpx.AsyncClient,
    *,
    timeout: float = DEFAULT_EXTRACTOR_TIMEOUT,
    user_agent: str = DEFAULT_USER_AGENT,
) -> ExtractorRegistry:
    return ExtractorRegistry(
        extractor_cls(client, timeout=timeout, user_agent=user_agent) for extractor_cls in BUILTIN_EXTRACTORS
    )
