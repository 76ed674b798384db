"""Pydantic models exposed by the Streamhub API.

Field names are snake_case in Python and camelCase on the wire.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorModel(ApiModel):
    """Body of every non-2xx response."""

    error: str
    details: Any = None


class ProviderDescriptorModel(ApiModel):
    id: str
    display_name: str
    kind: str = ""
    version: str = ""
    enabled: bool = True


class CatalogSectionModel(ApiModel):
    title: str
    filter: str


class CatalogModel(ApiModel):
    catalog: list[CatalogSectionModel] = Field(default_factory=list)
    genres: list[CatalogSectionModel] = Field(default_factory=list)


class PostModel(ApiModel):
    title: str
    link: str
    image: str = ""
    provider: str = ""


class PostsPageModel(ApiModel):
    posts: list[PostModel] = Field(default_factory=list)
    has_next_page: bool = False


class EpisodeModel(ApiModel):
    title: str
    link: str
    type: str | None = None


class LinkListEntryModel(ApiModel):
    title: str
    quality: str | None = None
    episodes_link: str | None = None
    direct_links: list[EpisodeModel] = Field(default_factory=list)


class MetaModel(ApiModel):
    title: str = ""
    image: str = ""
    type: Literal["movie", "tv"] = "movie"
    synopsis: str = ""
    tags: list[str] = Field(default_factory=list)
    cast: list[str] = Field(default_factory=list)
    rating: str | None = None
    imdb_id: str | None = None
    link_list: list[LinkListEntryModel] = Field(default_factory=list)


class SubtitleModel(ApiModel):
    title: str
    uri: str
    language: str = ""
    type: str = ""


class StreamModel(ApiModel):
    server: str
    link: str
    type: Literal["progressive", "segmented"] = "progressive"
    quality: str | None = None
    headers: dict[str, str] | None = None
    subtitles: list[SubtitleModel] = Field(default_factory=list)
    requires_extraction: bool = Field(
        default=False, description="Whether the link must be passed through /api/proxy/stream first."
    )
    extraction_service: str | None = None


class StreamUrlModel(ApiModel):
    stream_url: str


class ProviderSearchResultModel(ApiModel):
    provider: str
    display_name: str
    posts: list[PostModel] = Field(default_factory=list)
    has_next_page: bool = False
    error: str | None = Field(default=None, description="Set when this provider failed; other results are unaffected.")


class FederatedSearchModel(ApiModel):
    query: str
    page: int
    results: list[ProviderSearchResultModel] = Field(default_factory=list)


class ManifestStatusModel(ApiModel):
    source: Literal["remote", "fallback"]
    fetched_at: datetime
    providers: int


class HealthStatus(ApiModel):
    """Service health payload."""

    status: Literal["ok"] = Field(default="ok")
    version: str = Field(default="0.1.0", description="Semantic version of the API service.")
    manifest: ManifestStatusModel | None = Field(
        default=None, description="Last loaded manifest snapshot, if any request has loaded one."
    )


class StatusModel(ApiModel):
    status: Literal["running"] = "running"
    providers: int
    provider_list: list[str] = Field(default_factory=list)
    manifest_fetched_at: datetime | None = None
