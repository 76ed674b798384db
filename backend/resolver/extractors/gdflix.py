"""GDFlix file page extractor."""
from __future__ import annotations

from typing import Optional

from .base import Extractor, Page, find_anchor, media_anchor

_INSTANT_LABELS = ("instant dl", "instant download")
_CLOUD_LABELS = ("cloud download", "fast cloud", "direct dl")


def _instant_download(page: Page) -> Optional[str]:
    return find_anchor(page.soup, texts=_INSTANT_LABELS)


def _cloud_download(page: Page) -> Optional[str]:
    return find_anchor(page.soup, texts=_CLOUD_LABELS)


class GDFlixExtractor(Extractor):
    service = "gdflix"
    strategies = (_instant_download, _cloud_download, media_anchor)

    async def _extract(self, page_url: str) -> Optional[str]:
        page = await self.fetch_page(page_url)
        return self.run_strategies(page, self.strategies)
