"""Per-provider resolution chain endpoints.

Each request loads the provider fresh from disk, so rebuilt provider modules
take effect without restarting the service.
"""
from __future__ import annotations

import asyncio
from dataclasses import asdict

from fastapi import APIRouter, Depends, Query

from ...resolver.loader import ProviderModule
from ...resolver.pipeline import ResolutionPipeline
from ..dependencies import get_cancel_signal, get_pipeline, get_provider
from ..schemas import CatalogModel, EpisodeModel, MetaModel, PostsPageModel, StreamModel

router = APIRouter(prefix="/api/{provider}", tags=["content"])


@router.get("/catalog", response_model=CatalogModel)
async def get_catalog(
    provider: ProviderModule = Depends(get_provider),
    pipeline: ResolutionPipeline = Depends(get_pipeline),
    signal: asyncio.Event = Depends(get_cancel_signal),
) -> CatalogModel:
    result = await pipeline.get_catalog(provider, signal=signal)
    return CatalogModel.model_validate(
        {
            "catalog": [asdict(section) for section in result.sections],
            "genres": [asdict(section) for section in result.genres],
        }
    )


@router.get("/posts", response_model=PostsPageModel)
async def get_posts(
    filter: str = Query("", description="Catalog filter taken from a catalog section."),
    page: int = Query(1, ge=1),
    provider: ProviderModule = Depends(get_provider),
    pipeline: ResolutionPipeline = Depends(get_pipeline),
    signal: asyncio.Event = Depends(get_cancel_signal),
) -> PostsPageModel:
    """List one page of posts for a catalog filter."""

    result = await pipeline.get_posts(provider, filter, page, signal=signal)
    return PostsPageModel.model_validate(asdict(result))


@router.get("/search", response_model=PostsPageModel)
async def search_posts(
    query: str = Query(""),
    page: int = Query(1, ge=1),
    provider: ProviderModule = Depends(get_provider),
    pipeline: ResolutionPipeline = Depends(get_pipeline),
    signal: asyncio.Event = Depends(get_cancel_signal),
) -> PostsPageModel:
    result = await pipeline.search(provider, query, page, signal=signal)
    return PostsPageModel.model_validate(asdict(result))


@router.get("/meta", response_model=MetaModel)
async def get_meta(
    link: str = Query(..., min_length=1, description="Post link returned by posts or search."),
    provider: ProviderModule = Depends(get_provider),
    pipeline: ResolutionPipeline = Depends(get_pipeline),
    signal: asyncio.Event = Depends(get_cancel_signal),
) -> MetaModel:
    result = await pipeline.get_meta(provider, link, signal=signal)
    return MetaModel.model_validate(asdict(result))


@router.get("/episodes", response_model=list[EpisodeModel])
async def get_episodes(
    url: str = Query(..., min_length=1, description="episodesLink taken from a meta link entry."),
    provider: ProviderModule = Depends(get_provider),
    pipeline: ResolutionPipeline = Depends(get_pipeline),
    signal: asyncio.Event = Depends(get_cancel_signal),
) -> list[EpisodeModel]:
    episodes = await pipeline.get_episodes(provider, url, signal=signal)
    return [EpisodeModel.model_validate(asdict(episode)) for episode in episodes]


@router.get("/stream", response_model=list[StreamModel])
async def get_stream(
    link: str = Query(..., min_length=1),
    type: str = Query("movie", description="Content type passed through to the provider."),
    provider: ProviderModule = Depends(get_provider),
    pipeline: ResolutionPipeline = Depends(get_pipeline),
    signal: asyncio.Event = Depends(get_cancel_signal),
) -> list[StreamModel]:
    """Return candidate streams, each flagged with whether it needs extraction."""

    streams = await pipeline.get_streams(provider, link, type, signal=signal)
    return [StreamModel.model_validate(asdict(stream)) for stream in streams]
