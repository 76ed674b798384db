"""
Value objects produced by the resolution pipeline.

Every object here is created fresh per request and never mutated after
construction; use :func:`dataclasses.replace` to derive a changed copy.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Literal, Mapping, Optional, Tuple

ContentType = Literal["movie", "tv"]
StreamType = Literal["progressive", "segmented"]


@dataclass(frozen=True)
class ProviderDescriptor:
    id: str
    display_name: str
    kind: str = ""
    version: str = ""
    enabled: bool = True

    @classmethod
    def from_manifest_entry(cls, raw: Mapping[str, Any]) -> Optional["ProviderDescriptor"]:
        """Build a descriptor from either canonical or build-output manifest keys."""

        provider_id = raw.get("id") or raw.get("value")
        if not isinstance(provider_id, str) or not provider_id.strip():
            return None
        provider_id = provider_id.strip()
        display_name = raw.get("displayName") or raw.get("display_name") or provider_id
        kind = raw.get("kind") or raw.get("type") or ""
        version = raw.get("version") or ""
        if "enabled" in raw:
            enabled = bool(raw.get("enabled"))
        else:
            enabled = not bool(raw.get("disabled", False))
        return cls(
            id=provider_id,
            display_name=str(display_name),
            kind=str(kind),
            version=str(version),
            enabled=enabled,
        )


@dataclass(frozen=True)
class ManifestSnapshot:
    providers: Tuple[ProviderDescriptor, ...]
    fetched_at: datetime
    source: Literal["remote", "fallback"]

    def enabled(self) -> list[ProviderDescriptor]:
        return [provider for provider in self.providers if provider.enabled]


@dataclass(frozen=True)
class CatalogSection:
    title: str
    filter: str


@dataclass(frozen=True)
class CatalogResult:
    sections: Tuple[CatalogSection, ...] = ()
    genres: Tuple[CatalogSection, ...] = ()


@dataclass(frozen=True)
class Post:
    title: str
    link: str
    image: str = ""
    provider: str = ""


@dataclass(frozen=True)
class PostsPage:
    posts: Tuple[Post, ...] = ()
    has_next_page: bool = False


@dataclass(frozen=True)
class Episode:
    title: str
    link: str
    type: Optional[str] = None


@dataclass(frozen=True)
class LinkListEntry:
    title: str
    quality: Optional[str] = None
    episodes_link: Optional[str] = None
    direct_links: Tuple[Episode, ...] = ()


@dataclass(frozen=True)
class Meta:
    title: str = ""
    image: str = ""
    type: ContentType = "movie"
    synopsis: str = ""
    tags: Tuple[str, ...] = ()
    cast: Tuple[str, ...] = ()
    rating: Optional[str] = None
    imdb_id: Optional[str] = None
    link_list: Tuple[LinkListEntry, ...] = ()


@dataclass(frozen=True)
class Subtitle:
    title: str
    uri: str
    language: str = ""
    type: str = ""


@dataclass(frozen=True)
class Stream:
    """A terminal resolvable link.

    ``requires_extraction`` is only ever set by the classifier; when it is
    ``False`` the ``link`` is directly fetchable.
    """

    server: str
    link: str
    type: StreamType = "progressive"
    quality: Optional[str] = None
    headers: Optional[Dict[str, str]] = None
    subtitles: Tuple[Subtitle, ...] = ()
    requires_extraction: bool = False
    extraction_service: Optional[str] = None


@dataclass(frozen=True)
class ExtractionResult:
    direct_url: str
    service: str
    headers: Dict[str, str] = field(default_factory=dict)
