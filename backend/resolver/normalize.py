"""
Normalisation of untrusted provider output into the resolver data model.

Provider modules are scrapers of unreliable sites. Anything that does not
match the expected shape raises :class:`UpstreamMalformed` at the top level,
and individual malformed items inside lists are dropped.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from .errors import UpstreamMalformed
from .models import (
    CatalogSection,
    Episode,
    LinkListEntry,
    Meta,
    Post,
    PostsPage,
    Stream,
    Subtitle,
)

logger = logging.getLogger(__name__)

_SEGMENTED_TYPES = {"m3u8", "hls", "segmented", "dash", "mpd"}
_TV_TYPES = {"tv", "series", "show", "tvshow"}


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    if isinstance(value, (str, int, float)):
        return str(value).strip()
    return default


def _optional_text(value: Any) -> Optional[str]:
    text = _text(value)
    return text or None


def _flag(value: Any) -> bool:
    """Only real booleans and the strings ``"true"``/``"false"`` count."""

    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def _items(raw: Iterable[Any], build, label: str) -> list:
    items = []
    for entry in raw:
        item = build(entry) if isinstance(entry, dict) else None
        if item is None:
            logger.debug("Dropping malformed %s: %r", label, entry)
            continue
        items.append(item)
    return items


def _strings(raw: Any) -> tuple[str, ...]:
    if isinstance(raw, str):
        raw = raw.split(",")
    if not isinstance(raw, list):
        return ()
    return tuple(text for text in (_text(item) for item in raw) if text)


def _post(raw: dict[str, Any], provider_id: str) -> Optional[Post]:
    title = _text(raw.get("title"))
    link = _text(raw.get("link"))
    if not title or not link:
        return None
    return Post(
        title=title,
        link=link,
        image=_text(raw.get("image")),
        provider=_text(raw.get("provider")) or provider_id,
    )


def posts_page(raw: Any, provider_id: str) -> PostsPage:
    """Accept a bare list of posts or ``{posts, hasNextPage}``."""

    if isinstance(raw, list):
        entries, has_next = raw, False
    elif isinstance(raw, dict):
        entries = raw.get("posts")
        if not isinstance(entries, list):
            entries = []
        has_next = _flag(raw.get("hasNextPage", raw.get("has_next_page")))
    else:
        raise UpstreamMalformed(f"Expected posts list or object, got {type(raw).__name__}")

    posts = _items(entries, lambda entry: _post(entry, provider_id), "post")
    return PostsPage(posts=tuple(posts), has_next_page=has_next)


def _section(raw: dict[str, Any]) -> Optional[CatalogSection]:
    title = _text(raw.get("title"))
    if not title:
        return None
    return CatalogSection(title=title, filter=_text(raw.get("filter")))


def catalog_sections(raw: Any) -> tuple[CatalogSection, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, (list, tuple)):
        raise UpstreamMalformed(f"Expected catalog list, got {type(raw).__name__}")
    return tuple(_items(raw, _section, "catalog section"))


def _episode(raw: dict[str, Any]) -> Optional[Episode]:
    link = _text(raw.get("link"))
    if not link:
        return None
    return Episode(
        title=_text(raw.get("title")) or link,
        link=link,
        type=_optional_text(raw.get("type")),
    )


def episodes(raw: Any) -> list[Episode]:
    if not isinstance(raw, list):
        raise UpstreamMalformed(f"Expected episode list, got {type(raw).__name__}")
    return _items(raw, _episode, "episode")


def _link_entry(raw: dict[str, Any]) -> Optional[LinkListEntry]:
    direct = raw.get("directLinks", raw.get("direct_links"))
    direct_links = tuple(_items(direct, _episode, "direct link")) if isinstance(direct, list) else ()
    episodes_link = _optional_text(raw.get("episodesLink", raw.get("episodes_link")))
    if not direct_links and not episodes_link:
        return None
    return LinkListEntry(
        title=_text(raw.get("title")),
        quality=_optional_text(raw.get("quality")),
        episodes_link=episodes_link,
        direct_links=direct_links,
    )


def meta(raw: Any) -> Meta:
    if not isinstance(raw, dict):
        raise UpstreamMalformed(f"Expected meta object, got {type(raw).__name__}")

    link_list = raw.get("linkList", raw.get("link_list"))
    content_type = _text(raw.get("type")).lower()
    return Meta(
        title=_text(raw.get("title")),
        image=_text(raw.get("image")),
        type="tv" if content_type in _TV_TYPES else "movie",
        synopsis=_text(raw.get("synopsis")),
        tags=_strings(raw.get("tags")),
        cast=_strings(raw.get("cast")),
        rating=_optional_text(raw.get("rating")),
        imdb_id=_optional_text(raw.get("imdbId", raw.get("imdb_id"))),
        link_list=tuple(_items(link_list, _link_entry, "link entry")) if isinstance(link_list, list) else (),
    )


def _subtitle(raw: dict[str, Any]) -> Optional[Subtitle]:
    uri = _text(raw.get("uri") or raw.get("url"))
    if not uri:
        return None
    return Subtitle(
        title=_text(raw.get("title")),
        uri=uri,
        language=_text(raw.get("language")),
        type=_text(raw.get("type")),
    )


def _headers(raw: Any) -> Optional[dict[str, str]]:
    if not isinstance(raw, dict) or not raw:
        return None
    return {str(key): _text(value) for key, value in raw.items() if value is not None}


def _stream(raw: dict[str, Any]) -> Optional[Stream]:
    link = _text(raw.get("link"))
    if not link:
        return None
    declared = _text(raw.get("type")).lower()
    segmented = declared in _SEGMENTED_TYPES or ".m3u8" in link.lower().split("?", 1)[0]
    subtitles = raw.get("subtitles")
    return Stream(
        server=_text(raw.get("server")) or "Unknown",
        link=link,
        type="segmented" if segmented else "progressive",
        quality=_optional_text(raw.get("quality")),
        headers=_headers(raw.get("headers")),
        subtitles=tuple(_items(subtitles, _subtitle, "subtitle")) if isinstance(subtitles, list) else (),
    )


def streams(raw: Any) -> list[Stream]:
    if not isinstance(raw, list):
        raise UpstreamMalformed(f"Expected stream list, got {type(raw).__name__}")
    return _items(raw, _stream, "stream")
