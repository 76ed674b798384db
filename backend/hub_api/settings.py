"""Runtime configuration for the Streamhub API."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..resolver.extractors.base import DEFAULT_USER_AGENT


class HubSettings(BaseSettings):
    """Environment-aware settings for the Streamhub API service."""

    manifest_url: str = Field(
        "https://himanshu8443.github.io/providers/manifest.json",
        description="Remote provider manifest (JSON array of provider descriptors).",
    )
    manifest_fallback_path: str | None = Field(
        "./manifest.json", description="Local manifest used when the remote one cannot be fetched."
    )
    manifest_timeout: float = Field(default=10.0, description="Seconds allowed for the remote manifest fetch.")
    providers_dir: str = Field(
        "./dist", description="Directory holding one sub-directory of compiled modules per provider."
    )
    provider_timeout: float = Field(default=30.0, description="Seconds allowed for one provider operation.")
    base_urls_url: str = Field(
        "https://himanshu8443.github.io/providers/modflix.json",
        description="Remote map of provider id to current site URL, exposed to providers.",
    )
    extractor_timeout: float = Field(default=20.0, description="Seconds allowed for each extractor request.")
    relay_connect_timeout: float = Field(
        default=15.0, description="Seconds allowed to connect to a relayed origin. Reads are unbounded."
    )
    relay_chunk_size: int = Field(default=64 * 1024, description="Bytes per relayed chunk.")
    user_agent: str = Field(DEFAULT_USER_AGENT, description="Browser User-Agent sent to upstream sites.")
    host: str = Field("0.0.0.0", description="Interface the development server binds to.")
    port: int = Field(default=3001, description="Port the development server listens on.")
    log_level: str = Field("INFO", description="Root logging level.")

    model_config = SettingsConfigDict(
        env_prefix="STREAMHUB_",
        env_file=".env",
        env_file_encoding="utf-8",
    )
