"""
Base class shared by the hosting-page extractors.

An extractor fetches one hosting page and runs an ordered tuple of parsing
strategies over it. Strategies are pure functions of the parsed page; the
first one returning a URL wins. Every failure surfaces as
:class:`ExtractionFailed` so callers never need to tell a network error
from an unrecognised page.
"""
from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from ..errors import ExtractionFailed
from ..models import ExtractionResult

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_EXTRACTOR_TIMEOUT = 20.0

MEDIA_EXTENSIONS = (".mkv", ".mp4", ".m3u8", ".webm", ".avi", ".mov")
MEDIA_HOST_HINTS = ("pixeldrain", ".r2.dev", "fsl", "workers.dev", "googleusercontent")


@dataclass(frozen=True)
class Page:
    url: str
    status_code: int
    text: str
    soup: BeautifulSoup
    content_type: str = ""
    location: Optional[str] = None


Strategy = Callable[[Page], Optional[str]]


class Extractor(ABC):
    """Turns one kind of hosting page into a direct media URL."""

    service: str = "base"

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        timeout: float = DEFAULT_EXTRACTOR_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._client = client
        self._timeout = timeout
        self.headers = {
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }

    async def extract(self, page_url: str) -> ExtractionResult:
        try:
            direct_url = await self._extract(page_url)
        except ExtractionFailed:
            raise
        except httpx.HTTPError as exc:
            raise ExtractionFailed(f"{self.service}: failed to fetch {page_url}", details=str(exc)) from exc
        except (ValueError, LookupError, AttributeError, TypeError) as exc:
            raise ExtractionFailed(f"{self.service}: failed to parse {page_url}", details=str(exc)) from exc

        if not direct_url:
            raise ExtractionFailed(f"{self.service}: no media link found on {page_url}")
        logger.info("[%s] extracted %s", self.service, direct_url[:80])
        return ExtractionResult(direct_url=direct_url, service=self.service)

    @abstractmethod
    async def _extract(self, page_url: str) -> Optional[str]:
        """Return the direct URL, or ``None`` when the page holds no media."""

    async def fetch_page(
        self,
        url: str,
        *,
        follow_redirects: bool = True,
        referer: str | None = None,
        html_only: bool = False,
    ) -> Page:
        """Fetch and parse ``url``.

        With ``html_only`` a response that is not ``text/html`` is closed
        without reading its body, so a direct media download never gets
        buffered.
        """

        headers = dict(self.headers)
        if referer:
            headers["Referer"] = referer
        request = self._client.build_request("GET", url, headers=headers, timeout=self._timeout)
        response = await self._client.send(request, stream=True, follow_redirects=follow_redirects)
        try:
            if response.status_code >= 400:
                raise ExtractionFailed(f"{self.service}: {url} responded with HTTP {response.status_code}")
            content_type = response.headers.get("content-type", "")
            if html_only and "text/html" not in content_type:
                text = ""
            else:
                await response.aread()
                text = response.text
        finally:
            await response.aclose()

        location = response.headers.get("location")
        return Page(
            url=str(response.url),
            status_code=response.status_code,
            text=text,
            soup=BeautifulSoup(text, "html.parser"),
            content_type=content_type,
            location=urljoin(str(response.url), location) if location else None,
        )

    def run_strategies(self, page: Page, strategies: Sequence[Strategy]) -> Optional[str]:
        for strategy in strategies:
            url = strategy(page)
            if url:
                logger.debug("[%s] strategy %s matched", self.service, strategy.__name__)
                return urljoin(page.url, url)
        return None


def is_media_url(url: str) -> bool:
    lowered = url.lower()
    path = lowered.split("?", 1)[0]
    return path.endswith(MEDIA_EXTENSIONS) or any(hint in lowered for hint in MEDIA_HOST_HINTS)


def find_anchor(
    soup: BeautifulSoup,
    *,
    texts: Iterable[str] = (),
    predicate: Callable[[str], bool] | None = None,
) -> Optional[str]:
    """Return the first anchor href whose label contains one of ``texts`` or satisfies ``predicate``."""

    labels = tuple(text.lower() for text in texts)
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href or href.startswith(("#", "javascript:")):
            continue
        label = anchor.get_text(" ", strip=True).lower()
        if labels and any(text in label for text in labels):
            return href
        if predicate is not None and predicate(href):
            return href
    return None


def media_anchor(page: Page) -> Optional[str]:
    return find_anchor(page.soup, predicate=is_media_url)


def search_scripts(page: Page, pattern: re.Pattern[str]) -> Optional[str]:
    match = pattern.search(page.text)
    return match.group(1) if match else None
