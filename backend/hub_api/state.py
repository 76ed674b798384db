"""Shared state container for the Streamhub API."""
from __future__ import annotations

from dataclasses import dataclass

import httpx

from ..resolver.context import ProviderContext
from ..resolver.extractors import ExtractorRegistry, default_registry
from ..resolver.loader import ProviderLoader
from ..resolver.manifest import ManifestRegistry
from ..resolver.pipeline import ResolutionPipeline
from ..resolver.relay import DEFAULT_RELAY_HEADERS, StreamRelay
from .settings import HubSettings


@dataclass(slots=True)
class AppState:
    """Encapsulates the long-lived resolver components shared across routers."""

    settings: HubSettings
    http: httpx.AsyncClient
    manifest: ManifestRegistry
    loader: ProviderLoader
    extractors: ExtractorRegistry
    context: ProviderContext
    pipeline: ResolutionPipeline
    relay: StreamRelay

    def __init__(self, settings: HubSettings, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.settings = settings
        headers = {"User-Agent": settings.user_agent}
        self.http = httpx.AsyncClient(
            headers=headers,
            timeout=settings.extractor_timeout,
            follow_redirects=True,
            transport=transport,
        )
        self.manifest = ManifestRegistry(
            self.http,
            manifest_url=settings.manifest_url,
            fallback_path=settings.manifest_fallback_path,
            timeout=settings.manifest_timeout,
        )
        self.loader = ProviderLoader(settings.providers_dir)
        self.extractors = default_registry(
            self.http, timeout=settings.extractor_timeout, user_agent=settings.user_agent
        )
        self.context = ProviderContext(
            http=self.http,
            extractors=self.extractors,
            base_urls_url=settings.base_urls_url,
            common_headers=headers,
            timeout=settings.manifest_timeout,
        )
        self.pipeline = ResolutionPipeline(self.context, timeout=settings.provider_timeout)
        self.relay = StreamRelay(
            self.extractors,
            connect_timeout=settings.relay_connect_timeout,
            chunk_size=settings.relay_chunk_size,
            default_headers={**DEFAULT_RELAY_HEADERS, "User-Agent": settings.user_agent},
            transport=transport,
        )

    async def aclose(self) -> None:
        """Release the shared HTTP connection pool."""

        await self.http.aclose()
