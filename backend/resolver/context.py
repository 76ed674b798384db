"""
Shared dependencies handed to provider functions as ``provider_context``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict

import httpx
from bs4 import BeautifulSoup

from .extractors import ExtractorRegistry
from .extractors.base import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)


def parse_html(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup, "html.parser")


@dataclass
class ProviderContext:
    http: httpx.AsyncClient
    extractors: ExtractorRegistry
    base_urls_url: str = ""
    common_headers: Dict[str, str] = field(default_factory=lambda: {"User-Agent": DEFAULT_USER_AGENT})
    timeout: float = 10.0

    parse_html = staticmethod(parse_html)

    async def get_base_url(self, provider_value: str) -> str:
        """Return the provider's current site URL from the remote base URL map.

        Provider sites hop domains frequently; the map is ``{"<provider>": {"url": ...}}``.
        An empty string means the provider has no entry or the map is unreachable.
        """

        if not self.base_urls_url:
            return ""
        try:
            response = await self.http.get(self.base_urls_url, headers=self.common_headers, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Base URL lookup for %s failed: %s", provider_value, exc)
            return ""

        entry = data.get(provider_value) if isinstance(data, dict) else None
        url = entry.get("url") if isinstance(entry, dict) else None
        return url if isinstance(url, str) else ""
