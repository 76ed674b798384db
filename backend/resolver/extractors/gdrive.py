"""Google Drive file page extractor."""
from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlencode

from ..errors import ExtractionFailed
from .base import Extractor, Page, find_anchor

_FILE_ID_RE = re.compile(r"/file/d/([\w-]+)")
_DOWNLOAD_URL = "https://drive.usercontent.google.com/download"


def file_id_from_url(url: str) -> Optional[str]:
    match = _FILE_ID_RE.search(url)
    return match.group(1) if match else None


def _redirect_location(page: Page) -> Optional[str]:
    if 300 <= page.status_code < 400 and page.location:
        return page.location
    return None


def _confirmation_form(page: Page) -> Optional[str]:
    form = page.soup.find("form", id="download-form") or page.soup.find("form", action=re.compile("download"))
    if form is None or not form.get("action"):
        return None
    params = {
        field["name"]: field.get("value", "")
        for field in form.find_all("input", attrs={"type": "hidden"})
        if field.get("name")
    }
    query = urlencode(params)
    return f"{form['action']}?{query}" if query else form["action"]


def _confirm_anchor(page: Page) -> Optional[str]:
    return find_anchor(page.soup, predicate=lambda href: "confirm=" in href)


class GDriveExtractor(Extractor):
    service = "gdrive"
    strategies = (_redirect_location, _confirmation_form, _confirm_anchor)

    async def _extract(self, page_url: str) -> Optional[str]:
        file_id = file_id_from_url(page_url)
        if not file_id:
            raise ExtractionFailed(f"gdrive: no file id in {page_url}")

        download_url = f"{_DOWNLOAD_URL}?{urlencode({'id': file_id, 'export': 'download'})}"
        page = await self.fetch_page(download_url, follow_redirects=False, html_only=True)
        if page.status_code == 200 and "text/html" not in page.content_type:
            # Small files are served straight away without a confirmation page.
            return download_url
        return self.run_strategies(page, self.strategies)
