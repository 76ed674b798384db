"""FastAPI dependencies for the Streamhub API."""
from __future__ import annotations

import asyncio
from typing import AsyncIterator

from fastapi import Depends, Request

from ..resolver.loader import ProviderLoader, ProviderModule
from ..resolver.manifest import ManifestRegistry
from ..resolver.pipeline import ResolutionPipeline
from ..resolver.relay import StreamRelay
from .state import AppState

DISCONNECT_POLL_INTERVAL = 0.5


def get_app_state(request: Request) -> AppState:
    """Resolve the shared application state from the FastAPI request."""
    return request.app.state.app_state


def get_manifest(app_state: AppState = Depends(get_app_state)) -> ManifestRegistry:
    return app_state.manifest


def get_loader(app_state: AppState = Depends(get_app_state)) -> ProviderLoader:
    return app_state.loader


def get_pipeline(app_state: AppState = Depends(get_app_state)) -> ResolutionPipeline:
    return app_state.pipeline


def get_relay(app_state: AppState = Depends(get_app_state)) -> StreamRelay:
    return app_state.relay


def get_provider(provider: str, loader: ProviderLoader = Depends(get_loader)) -> ProviderModule:
    """Load the provider named in the path, fresh from disk."""

    return loader.load(provider)


async def get_cancel_signal(request: Request) -> AsyncIterator[asyncio.Event]:
    """Yield an event that is set once the client disconnects."""

    signal = asyncio.Event()

    async def watch() -> None:
        while not signal.is_set():
            if await request.is_disconnected():
                signal.set()
                return
            await asyncio.sleep(DISCONNECT_POLL_INTERVAL)

    watcher = asyncio.create_task(watch())
    try:
        yield signal
    finally:
        watcher.cancel()
