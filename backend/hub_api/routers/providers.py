"""Manifest listing and federated search endpoints."""
from __future__ import annotations

import asyncio
from dataclasses import asdict

from fastapi import APIRouter, Depends, Query

from ...resolver.errors import ProviderNotFound
from ...resolver.loader import ProviderLoader
from ...resolver.manifest import ManifestRegistry
from ...resolver.pipeline import ResolutionPipeline
from ..dependencies import get_cancel_signal, get_loader, get_manifest, get_pipeline
from ..schemas import FederatedSearchModel, ProviderDescriptorModel

router = APIRouter(prefix="/api", tags=["providers"])


@router.get("/providers", response_model=list[ProviderDescriptorModel])
async def list_providers(manifest: ManifestRegistry = Depends(get_manifest)) -> list[ProviderDescriptorModel]:
    """Return the enabled providers from the manifest."""

    providers = await manifest.get_manifest()
    return [ProviderDescriptorModel.model_validate(asdict(provider)) for provider in providers]


@router.get("/search", response_model=FederatedSearchModel)
async def federated_search(
    query: str = Query(..., min_length=1, description="Search text sent to every provider."),
    page: int = Query(1, ge=1),
    provider: list[str] | None = Query(None, description="Restrict the search to these provider ids."),
    manifest: ManifestRegistry = Depends(get_manifest),
    loader: ProviderLoader = Depends(get_loader),
    pipeline: ResolutionPipeline = Depends(get_pipeline),
    signal: asyncio.Event = Depends(get_cancel_signal),
) -> FederatedSearchModel:
    """Search every enabled provider; one provider failing never fails the request."""

    providers = await manifest.get_manifest()
    if provider:
        wanted = set(provider)
        providers = [descriptor for descriptor in providers if descriptor.id in wanted]
        if not providers:
            raise ProviderNotFound("None of the requested providers are enabled", details=sorted(wanted))

    result = await pipeline.federated_search(loader, providers, query, page, signal=signal)
    return FederatedSearchModel.model_validate(asdict(result))
