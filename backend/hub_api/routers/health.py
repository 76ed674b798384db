"""Health endpoints."""
from fastapi import APIRouter, Depends

from ...resolver.loader import ProviderLoader
from ...resolver.manifest import ManifestRegistry
from ..dependencies import get_loader, get_manifest
from ..schemas import HealthStatus, ManifestStatusModel, StatusModel

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthStatus)
def get_health(manifest: ManifestRegistry = Depends(get_manifest)) -> HealthStatus:
    """Return service heartbeat information."""

    snapshot = manifest.current()
    if snapshot is None:
        return HealthStatus()
    return HealthStatus(
        manifest=ManifestStatusModel(
            source=snapshot.source,
            fetched_at=snapshot.fetched_at,
            providers=len(snapshot.providers),
        )
    )


@router.get("/status", response_model=StatusModel)
def get_status(
    loader: ProviderLoader = Depends(get_loader),
    manifest: ManifestRegistry = Depends(get_manifest),
) -> StatusModel:
    """Report the provider directories found on disk."""

    available = loader.available_providers()
    snapshot = manifest.current()
    return StatusModel(
        providers=len(available),
        provider_list=available,
        manifest_fetched_at=snapshot.fetched_at if snapshot else None,
    )


@router.get("/providers", response_model=list[str])
def list_provider_directories(loader: ProviderLoader = Depends(get_loader)) -> list[str]:
    return loader.available_providers()
