"""NexDrive / SuperVideo player page extractor."""
from __future__ import annotations

import re
from typing import Optional

from .base import Extractor, Page, media_anchor, search_scripts

_FILE_RE = re.compile(r"""file\s*:\s*["'](https?://[^"']+)["']""")
_PACKED_RE = re.compile(
    r"}\s*\(\s*'(?P<payload>.*?)'\s*,\s*(?P<radix>\d+)\s*,\s*(?P<count>\d+)\s*,\s*'(?P<words>.*?)'\.split\('\|'\)",
    re.DOTALL,
)
_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"


def _to_int(token: str, radix: int) -> int:
    value = 0
    for char in token:
        digit = _ALPHABET.find(char)
        if digit < 0 or digit >= radix:
            raise ValueError(f"invalid digit {char!r} for radix {radix}")
        value = value * radix + digit
    return value


def unpack(script: str) -> Optional[str]:
    """Reverse Dean Edwards' p,a,c,k,e,d packer; ``None`` when nothing is packed."""

    match = _PACKED_RE.search(script)
    if not match:
        return None
    payload = match.group("payload").replace("\\'", "'")
    radix = int(match.group("radix"))
    words = match.group("words").split("|")
    if radix > len(_ALPHABET):
        raise ValueError(f"unsupported radix {radix}")

    def substitute(word_match: re.Match[str]) -> str:
        token = word_match.group(0)
        try:
            index = _to_int(token, radix)
        except ValueError:
            return token
        if index < len(words) and words[index]:
            return words[index]
        return token

    return re.sub(r"\b\w+\b", substitute, payload)


def _source_tag(page: Page) -> Optional[str]:
    source = page.soup.find("source", src=True)
    return source["src"] if source else None


def _player_setup(page: Page) -> Optional[str]:
    return search_scripts(page, _FILE_RE)


def _packed_player_setup(page: Page) -> Optional[str]:
    unpacked = unpack(page.text)
    if not unpacked:
        return None
    match = _FILE_RE.search(unpacked)
    return match.group(1) if match else None


class NexDriveExtractor(Extractor):
    service = "nexdrive"
    strategies = (_source_tag, _player_setup, _packed_player_setup, media_anchor)

    async def _extract(self, page_url: str) -> Optional[str]:
        page = await self.fetch_page(page_url)
        return self.run_strategies(page, self.strategies)
