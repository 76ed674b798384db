"""
Resolution pipeline: catalog -> posts/search -> meta -> episodes -> streams.

Each operation calls one capability of a loaded provider, bounds it with a
timeout and the caller's cancellation signal, and normalises the result.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence, TypeVar

from . import normalize
from .classifier import classify
from .context import ProviderContext
from .errors import (
    CapabilityNotFound,
    OperationCancelled,
    ProviderOperationFailed,
    ProviderTimeout,
    UpstreamMalformed,
)
from .loader import ProviderLoader, ProviderModule
from .models import CatalogResult, Episode, Meta, Post, PostsPage, ProviderDescriptor, Stream

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER_TIMEOUT = 30.0

T = TypeVar("T")


@dataclass(frozen=True)
class ProviderSearchOutcome:
    provider: str
    display_name: str
    posts: tuple[Post, ...] = ()
    has_next_page: bool = False
    error: Optional[str] = None


@dataclass(frozen=True)
class FederatedSearchResult:
    query: str
    page: int
    results: tuple[ProviderSearchOutcome, ...] = field(default_factory=tuple)


class ResolutionPipeline:
    def __init__(
        self,
        context: ProviderContext,
        *,
        timeout: float = DEFAULT_PROVIDER_TIMEOUT,
        classifier: Callable[[Stream], Stream] = classify,
    ) -> None:
        self._context = context
        self._timeout = timeout
        self._classify = classifier

    async def get_catalog(self, provider: ProviderModule, *, signal: asyncio.Event | None = None) -> CatalogResult:
        if not provider.has("catalog"):
            raise CapabilityNotFound(f"Catalog not found for provider '{provider.provider_id}'")
        if signal is not None and signal.is_set():
            raise OperationCancelled(f"catalog for '{provider.provider_id}' cancelled")

        sections = self._degrade(
            provider, "catalog", lambda: normalize.catalog_sections(provider.attribute("catalog", "catalog")), ()
        )
        genres = self._degrade(
            provider, "genres", lambda: normalize.catalog_sections(provider.attribute("catalog", "genres")), ()
        )
        return CatalogResult(sections=sections, genres=genres)

    async def get_posts(
        self,
        provider: ProviderModule,
        filter: str,
        page: int = 1,
        *,
        signal: asyncio.Event | None = None,
    ) -> PostsPage:
        func = provider.function("posts", "get_posts")
        raw = await self._call(
            provider,
            "get_posts",
            func,
            signal,
            filter=filter,
            page=page,
            provider_value=provider.provider_id,
        )
        return self._degrade(provider, "posts", lambda: normalize.posts_page(raw, provider.provider_id), PostsPage())

    async def search(
        self,
        provider: ProviderModule,
        query: str,
        page: int = 1,
        *,
        signal: asyncio.Event | None = None,
    ) -> PostsPage:
        func = provider.function("posts", "get_search_posts")
        raw = await self._call(
            provider,
            "get_search_posts",
            func,
            signal,
            search_query=query,
            page=page,
            provider_value=provider.provider_id,
        )
        return self._degrade(provider, "search", lambda: normalize.posts_page(raw, provider.provider_id), PostsPage())

    async def get_meta(self, provider: ProviderModule, link: str, *, signal: asyncio.Event | None = None) -> Meta:
        func = provider.function("meta", "get_meta")
        raw = await self._call(provider, "get_meta", func, signal, link=link)
        return self._degrade(provider, "meta", lambda: normalize.meta(raw), Meta())

    async def get_episodes(
        self,
        provider: ProviderModule,
        episodes_link: str,
        *,
        signal: asyncio.Event | None = None,
    ) -> list[Episode]:
        func = provider.function("episodes", "get_episodes")
        raw = await self._call(provider, "get_episodes", func, signal, url=episodes_link)
        return self._degrade(provider, "episodes", lambda: normalize.episodes(raw), [])

    async def get_streams(
        self,
        provider: ProviderModule,
        link: str,
        content_type: str = "movie",
        *,
        signal: asyncio.Event | None = None,
    ) -> list[Stream]:
        func = provider.function("stream", "get_stream")
        logger.info("Calling get_stream for %s with link: %s", provider.provider_id, link[:80])
        raw = await self._call(provider, "get_stream", func, signal, link=link, type=content_type)
        streams = self._degrade(provider, "stream", lambda: normalize.streams(raw), [])
        if not streams:
            logger.warning("No streams returned for %s. Link: %s", provider.provider_id, link[:80])
        return [self._classify(stream) for stream in streams]

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _degrade(self, provider: ProviderModule, operation: str, build: Callable[[], T], empty: T) -> T:
        try:
            return build()
        except UpstreamMalformed as exc:
            logger.warning("Provider %s returned malformed %s: %s", provider.provider_id, operation, exc)
            return empty

    async def _call(
        self,
        provider: ProviderModule,
        operation: str,
        func: Callable[..., Any],
        signal: asyncio.Event | None,
        **kwargs: Any,
    ) -> Any:
        if signal is None:
            signal = asyncio.Event()
        if signal.is_set():
            raise OperationCancelled(f"{operation} for '{provider.provider_id}' cancelled")

        task = asyncio.ensure_future(
            _invoke(func, signal=signal, provider_context=self._context, **kwargs)
        )
        waiter = asyncio.ensure_future(signal.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter},
                timeout=self._timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task in done:
            try:
                return task.result()
            except Exception as exc:
                logger.error("Provider %s failed in %s: %s", provider.provider_id, operation, exc)
                raise ProviderOperationFailed(
                    f"Provider '{provider.provider_id}' failed in {operation}",
                    details=str(exc),
                ) from exc

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        if signal.is_set():
            raise OperationCancelled(f"{operation} for '{provider.provider_id}' cancelled")
        raise ProviderTimeout(
            f"Provider '{provider.provider_id}' timed out in {operation}",
            details={"timeout": self._timeout},
        )

    async def federated_search(
        self,
        loader: ProviderLoader,
        providers: Sequence[ProviderDescriptor],
        query: str,
        page: int = 1,
        *,
        signal: asyncio.Event | None = None,
    ) -> FederatedSearchResult:
        """Search every provider concurrently, recording failures per provider."""

        async def search_one(descriptor: ProviderDescriptor) -> ProviderSearchOutcome:
            try:
                provider = loader.load(descriptor.id)
                result = await self.search(provider, query, page, signal=signal)
            except Exception as exc:
                logger.warning("Search failed for provider %s: %s", descriptor.id, exc)
                return ProviderSearchOutcome(
                    provider=descriptor.id,
                    display_name=descriptor.display_name,
                    error=str(exc) or type(exc).__name__,
                )
            return ProviderSearchOutcome(
                provider=descriptor.id,
                display_name=descriptor.display_name,
                posts=result.posts,
                has_next_page=result.has_next_page,
            )

        outcomes = await asyncio.gather(*(search_one(descriptor) for descriptor in providers))
        return FederatedSearchResult(query=query, page=page, results=tuple(outcomes))


async def _invoke(func: Callable[..., Any], **kwargs: Any) -> Any:
    if inspect.iscoroutinefunction(func):
        return await func(**kwargs)
    result = await asyncio.to_thread(func, **kwargs)
    if inspect.isawaitable(result):
        return await result
    return result
