"""HubCloud download-relay page extractor."""
from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urljoin

from .base import Extractor, Page, find_anchor, is_media_url, media_anchor, search_scripts

_SCRIPT_URL_RE = re.compile(r"""var\s+url\s*=\s*['"](https?://[^'"]+)['"]""")
_SERVER_LABELS = ("fsl server", "download [fsl", "download file", "pixeldrain", "10gbps", "server : 1")


def _server_button(page: Page) -> Optional[str]:
    href = find_anchor(page.soup, texts=_SERVER_LABELS)
    if href and is_media_url(href):
        return href
    return None


def _script_variable(page: Page) -> Optional[str]:
    return search_scripts(page, _SCRIPT_URL_RE)


def _download_button(page: Page) -> Optional[str]:
    button = page.soup.find("a", id="download", href=True)
    return button["href"] if button else None


class HubCloudExtractor(Extractor):
    """Resolves hubcloud pages.

    The landing page either links straight to a media server or carries a
    ``#download`` button (or inline ``var url``) pointing at an intermediate
    page that lists the servers. The intermediate page is followed once.
    """

    service = "hubcloud"
    media_strategies = (_server_button, media_anchor)

    async def _extract(self, page_url: str) -> Optional[str]:
        page = await self.fetch_page(page_url)

        direct = self.run_strategies(page, self.media_strategies)
        if direct:
            return direct

        intermediate = _download_button(page) or _script_variable(page)
        if not intermediate:
            return None

        intermediate_url = urljoin(page.url, intermediate)
        if is_media_url(intermediate_url):
            return intermediate_url
        next_page = await self.fetch_page(intermediate_url, referer=page.url)
        return self.run_strategies(next_page, (_script_variable,) + self.media_strategies)
