"""
Provider manifest registry.

The remote manifest is the source of truth; a JSON array written by the
provider build step is used as a local fallback.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

import httpx

from .errors import ManifestUnavailable
from .models import ManifestSnapshot, ProviderDescriptor

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST_TIMEOUT = 10.0


class ManifestFetchError(Exception):
    """Internal signal that one manifest source could not be read."""


def parse_manifest(data: Any) -> tuple[ProviderDescriptor, ...]:
    if not isinstance(data, list):
        raise ManifestFetchError("Manifest body must be a JSON array")
    providers: list[ProviderDescriptor] = []
    for raw in data:
        descriptor = ProviderDescriptor.from_manifest_entry(raw) if isinstance(raw, dict) else None
        if descriptor is None:
            logger.warning("Skipping malformed manifest entry: %r", raw)
            continue
        providers.append(descriptor)
    return tuple(providers)


class ManifestRegistry:
    """Fetches and caches the provider manifest.

    The cached value is an immutable :class:`ManifestSnapshot` that is only
    ever replaced by reference, so readers never observe a partial update.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        manifest_url: str,
        fallback_path: Path | str | None = None,
        timeout: float = DEFAULT_MANIFEST_TIMEOUT,
    ) -> None:
        self._client = client
        self._manifest_url = manifest_url
        self._fallback_path = Path(fallback_path) if fallback_path else None
        self._timeout = timeout
        self._snapshot: Optional[ManifestSnapshot] = None

    def current(self) -> Optional[ManifestSnapshot]:
        """Return the last snapshot without performing any I/O."""

        return self._snapshot

    async def get_manifest(self, *, enabled_only: bool = True) -> list[ProviderDescriptor]:
        """Refresh the manifest and return its providers."""

        snapshot = await self.refresh()
        return snapshot.enabled() if enabled_only else list(snapshot.providers)

    async def refresh(self) -> ManifestSnapshot:
        errors: list[str] = []

        try:
            providers = await self._fetch_remote()
        except ManifestFetchError as exc:
            logger.warning("Remote manifest unavailable: %s", exc)
            errors.append(f"remote: {exc}")
        else:
            return self._replace(providers, "remote")

        try:
            providers = self._read_fallback()
        except ManifestFetchError as exc:
            logger.warning("Local manifest fallback unavailable: %s", exc)
            errors.append(f"fallback: {exc}")
        else:
            return self._replace(providers, "fallback")

        raise ManifestUnavailable("Provider manifest unavailable", details=errors)

    def _replace(self, providers: Iterable[ProviderDescriptor], source: str) -> ManifestSnapshot:
        snapshot = ManifestSnapshot(
            providers=tuple(providers),
            fetched_at=datetime.now(timezone.utc),
            source=source,  # type: ignore[arg-type]
        )
        self._snapshot = snapshot
        logger.info("Loaded %d providers from %s manifest", len(snapshot.providers), source)
        return snapshot

    async def _fetch_remote(self) -> tuple[ProviderDescriptor, ...]:
        if not self._manifest_url:
            raise ManifestFetchError("No manifest URL configured")
        try:
            response = await self._client.get(self._manifest_url, timeout=self._timeout)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ManifestFetchError(f"HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise ManifestFetchError(f"{type(exc).__name__}: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise ManifestFetchError("Manifest returned invalid JSON") from exc
        return parse_manifest(payload)

    def _read_fallback(self) -> tuple[ProviderDescriptor, ...]:
        path = self._fallback_path
        if path is None or not path.exists():
            raise ManifestFetchError(f"No fallback manifest at {path}")
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ManifestFetchError(f"Unreadable fallback manifest: {exc}") from exc
        return parse_manifest(payload)
