"""
Stream relay.

Resolves hosting pages on demand and re-streams restricted media through
the service with caller-supplied request headers, chunk by chunk.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, Mapping, Optional

import httpx

from .classifier import classify
from .errors import InvalidRelayRequest, RelayUpstreamError
from .extractors import ExtractorRegistry
from .extractors.base import DEFAULT_USER_AGENT
from .models import Stream

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 15.0
DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_RELAY_HEADERS = {
    "User-Agent": DEFAULT_USER_AGENT,
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.9",
}
FORWARDED_HEADERS = (
    "content-type",
    "content-length",
    "content-range",
    "accept-ranges",
    "content-encoding",
    "last-modified",
    "etag",
)


@dataclass
class RelayResponse:
    """An open upstream response whose body has not been read yet."""

    status_code: int
    headers: Dict[str, str]
    _response: httpx.Response = field(repr=False)
    _client: httpx.AsyncClient = field(repr=False)
    chunk_size: int = DEFAULT_CHUNK_SIZE
    _closed: bool = field(default=False, repr=False)

    async def body(self) -> AsyncIterator[bytes]:
        """Yield upstream bytes as they arrive.

        Headers are already committed when this runs, so an upstream failure
        ends the iterator instead of raising.
        """

        sent = 0
        try:
            async for chunk in self._response.aiter_raw(self.chunk_size):
                if chunk:
                    sent += len(chunk)
                    yield chunk
        except httpx.HTTPError as exc:
            logger.warning("Upstream error after %d bytes: %s", sent, exc)
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._response.aclose()
        await self._client.aclose()


class StreamRelay:
    def __init__(
        self,
        extractors: ExtractorRegistry,
        *,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        default_headers: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._extractors = extractors
        self._connect_timeout = connect_timeout
        self._chunk_size = chunk_size
        self._default_headers = dict(default_headers or DEFAULT_RELAY_HEADERS)
        self._transport = transport

    async def resolve_for_playback(self, page_url: str) -> str:
        """Return a directly playable URL for ``page_url``, extracting when needed."""

        stream = classify(Stream(server="", link=page_url))
        if not stream.requires_extraction or stream.extraction_service is None:
            return page_url
        result = await self._extractors.resolve(stream.extraction_service, page_url)
        return result.direct_url

    def build_headers(self, headers: Mapping[str, str] | None = None, range_header: str | None = None) -> Dict[str, str]:
        merged = dict(self._default_headers)
        lowered = {key.lower(): key for key in merged}
        for key, value in (headers or {}).items():
            existing = lowered.get(key.lower())
            if existing is not None:
                merged.pop(existing)
            merged[key] = str(value)
            lowered[key.lower()] = key
        if range_header and "range" not in lowered:
            merged["Range"] = range_header
        return merged

    async def open(
        self,
        media_url: str,
        headers: Mapping[str, str] | None = None,
        *,
        range_header: Optional[str] = None,
    ) -> RelayResponse:
        """Connect to ``media_url`` and return the response before reading its body."""

        request_headers = self.build_headers(headers, range_header)
        timeout = httpx.Timeout(connect=self._connect_timeout, read=None, write=self._connect_timeout, pool=self._connect_timeout)
        client = httpx.AsyncClient(timeout=timeout, follow_redirects=True, transport=self._transport)
        logger.info("Relaying %s with headers %s", media_url[:80], sorted(request_headers))

        try:
            request = client.build_request("GET", media_url, headers=request_headers)
        except (httpx.InvalidURL, ValueError) as exc:
            await client.aclose()
            logger.warning("Relay rejected %s: %s", media_url[:80], exc)
            raise InvalidRelayRequest("Invalid media URL or headers", details=str(exc)) from exc

        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as exc:
            await client.aclose()
            logger.error("Relay could not reach %s: %s", media_url[:80], exc)
            raise RelayUpstreamError(f"Failed to reach upstream: {exc}") from exc
        except BaseException:
            await client.aclose()
            raise

        if response.status_code >= 400:
            status = response.status_code
            await response.aclose()
            await client.aclose()
            raise RelayUpstreamError(f"Upstream responded with HTTP {status}", upstream_status=status)

        return RelayResponse(
            status_code=response.status_code,
            headers=_response_headers(response.headers),
            _response=response,
            _client=client,
            chunk_size=self._chunk_size,
        )


def _response_headers(upstream: httpx.Headers) -> Dict[str, str]:
    headers = {name: upstream[name] for name in FORWARDED_HEADERS if name in upstream}
    headers.setdefault("content-type", "video/mp4")
    headers.setdefault("accept-ranges", "bytes")
    return headers
