"""Extraction and header-injecting video relay endpoints."""
from __future__ import annotations

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from ...resolver.errors import ExtractionFailed
from ...resolver.relay import StreamRelay
from ..dependencies import get_relay
from ..schemas import StreamUrlModel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/proxy", tags=["proxy"])


def parse_header_param(raw: Optional[str]) -> dict[str, str]:
    """Decode the ``headers`` query parameter, ignoring anything that is not a JSON object."""

    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError as exc:
        logger.warning("Failed to parse custom headers: %s", exc)
        return {}
    if not isinstance(parsed, dict):
        logger.warning("Ignoring custom headers that are not a JSON object")
        return {}
    return {str(key): str(value) for key, value in parsed.items() if value is not None}


@router.get("/stream", response_model=StreamUrlModel)
async def proxy_stream(
    url: str = Query(..., min_length=1, description="Hosting page or direct media URL."),
    relay: StreamRelay = Depends(get_relay),
) -> StreamUrlModel:
    """Extract a playable URL from a hosting page."""

    logger.info("Proxying stream from: %s", url[:80])
    try:
        stream_url = await relay.resolve_for_playback(url)
    except ExtractionFailed as exc:
        raise ExtractionFailed("Could not extract stream URL", details=exc.message) from exc
    return StreamUrlModel(stream_url=stream_url)


@router.get("/video")
async def proxy_video(
    url: str = Query(..., min_length=1, description="Media URL to relay."),
    headers: Optional[str] = Query(None, description="JSON object of request headers for the origin."),
    range_header: Optional[str] = Header(None, alias="Range"),
    relay: StreamRelay = Depends(get_relay),
) -> StreamingResponse:
    """Relay media bytes from an origin that requires specific request headers."""

    upstream = await relay.open(url, parse_header_param(headers), range_header=range_header)
    return StreamingResponse(
        upstream.body(),
        status_code=upstream.status_code,
        headers=upstream.headers,
        media_type=upstream.headers.get("content-type"),
        background=BackgroundTask(upstream.aclose),
    )
