"""Tests for the header-injecting stream relay."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import AsyncIterator, Optional

import httpx
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.resolver.errors import ExtractionFailed, InvalidRelayRequest, RelayUpstreamError  # noqa: E402
from backend.resolver.extractors import Extractor, ExtractorRegistry  # noqa: E402
from backend.resolver.relay import DEFAULT_RELAY_HEADERS, StreamRelay  # noqa: E402
from conftest import Upstream, media_response  # noqa: E402

MEDIA = bytes(range(256)) * 40


class FixedExtractor(Extractor):
    service = "gdrive"

    async def _extract(self, page_url: str) -> Optional[str]:
        return "https://media.test/extracted.mp4"


class EmptyExtractor(Extractor):
    service = "hubcloud"

    async def _extract(self, page_url: str) -> Optional[str]:
        return None


class BrokenStream(httpx.AsyncByteStream):
    async def __aiter__(self) -> AsyncIterator[bytes]:
        yield b"first-chunk"
        raise httpx.ReadError("connection reset")


def _relay(upstream: Upstream, extractors: ExtractorRegistry | None = None) -> StreamRelay:
    return StreamRelay(extractors or ExtractorRegistry(), chunk_size=1024, transport=upstream.transport())


async def _collect(body: AsyncIterator[bytes]) -> bytes:
    return b"".join([chunk async for chunk in body])


@pytest.mark.asyncio
async def test_caller_headers_override_defaults(upstream: Upstream) -> None:
    upstream.route("media.test", lambda request: media_response(200, MEDIA, {"content-type": "video/x-matroska"}))
    relay = _relay(upstream)

    response = await relay.open("https://media.test/movie.mkv", {"Referer": "x", "user-agent": "Custom/1.0"})
    body = await _collect(response.body())

    sent = upstream.requests[0]
    assert sent.headers["Referer"] == "x"
    assert sent.headers["User-Agent"] == "Custom/1.0"
    assert sent.headers["Accept-Language"] == DEFAULT_RELAY_HEADERS["Accept-Language"]
    assert len(body) == int(response.headers["content-length"]) == len(MEDIA)
    assert response.headers["content-type"] == "video/x-matroska"


@pytest.mark.asyncio
async def test_default_headers_when_none_given(upstream: Upstream) -> None:
    upstream.route("media.test", lambda request: media_response(200, b"abc"))
    relay = _relay(upstream)

    response = await relay.open("https://media.test/movie.mp4")
    await response.aclose()

    assert upstream.requests[0].headers["User-Agent"] == DEFAULT_RELAY_HEADERS["User-Agent"]
    assert response.headers["content-type"] == "video/mp4"
    assert response.headers["accept-ranges"] == "bytes"


@pytest.mark.asyncio
async def test_range_requests_are_forwarded(upstream: Upstream) -> None:
    def partial(request: httpx.Request) -> httpx.Response:
        return media_response(
            206,
            MEDIA[:100],
            {"content-range": f"bytes 0-99/{len(MEDIA)}", "accept-ranges": "bytes"},
        )

    upstream.route("media.test", partial)
    relay = _relay(upstream)

    response = await relay.open("https://media.test/movie.mp4", range_header="bytes=0-99")
    body = await _collect(response.body())

    assert upstream.requests[0].headers["Range"] == "bytes=0-99"
    assert response.status_code == 206
    assert response.headers["content-range"] == f"bytes 0-99/{len(MEDIA)}"
    assert body == MEDIA[:100]


@pytest.mark.asyncio
async def test_upstream_error_status_raises(upstream: Upstream) -> None:
    upstream.route("media.test", lambda request: httpx.Response(403, text="forbidden"))
    relay = _relay(upstream)

    with pytest.raises(RelayUpstreamError) as excinfo:
        await relay.open("https://media.test/movie.mp4")

    assert excinfo.value.upstream_status == 403


@pytest.mark.asyncio
async def test_unreachable_upstream_raises(upstream: Upstream) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    upstream.route("media.test", refuse)
    relay = _relay(upstream)

    with pytest.raises(RelayUpstreamError) as excinfo:
        await relay.open("https://media.test/movie.mp4")

    assert excinfo.value.upstream_status is None
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_mid_stream_failure_ends_body(upstream: Upstream) -> None:
    upstream.route("media.test", lambda request: httpx.Response(200, stream=BrokenStream()))
    relay = _relay(upstream)

    response = await relay.open("https://media.test/movie.mp4")
    body = await _collect(response.body())

    assert body == b"first-chunk"
    await response.aclose()


@pytest.mark.asyncio
async def test_playable_url_is_returned_unchanged(upstream: Upstream) -> None:
    relay = _relay(upstream)

    assert await relay.resolve_for_playback("https://cdn.example.com/video.mp4") == "https://cdn.example.com/video.mp4"
    assert upstream.requests == []


@pytest.mark.asyncio
async def test_hosting_page_goes_through_extractor(upstream: Upstream) -> None:
    client = httpx.AsyncClient(transport=upstream.transport())
    relay = _relay(upstream, ExtractorRegistry([FixedExtractor(client), EmptyExtractor(client)]))

    assert await relay.resolve_for_playback("https://drive.google.com/file/d/XYZ/view") == "https://media.test/extracted.mp4"
    with pytest.raises(ExtractionFailed):
        await relay.resolve_for_playback("https://hubcloud.cc/xyz")


@pytest.mark.asyncio
async def test_disconnect_mid_stream_closes_upstream(upstream: Upstream) -> None:
    served: list[int] = []

    class CountingStream(httpx.AsyncByteStream):
        async def __aiter__(self) -> AsyncIterator[bytes]:
            for start in range(0, len(MEDIA), 2048):
                served.append(start)
                yield MEDIA[start : start + 2048]

    upstream.route("media.test", lambda request: httpx.Response(200, stream=CountingStream()))
    relay = _relay(upstream)

    response = await relay.open("https://media.test/movie.mp4")
    body = response.body()
    first = await body.__anext__()
    await body.aclose()

    assert first == MEDIA[:1024]
    assert response._response.is_closed
    assert response._client.is_closed
    assert len(served) < len(range(0, len(MEDIA), 2048))


@pytest.mark.asyncio
async def test_unencodable_header_is_rejected(upstream: Upstream) -> None:
    relay = _relay(upstream)

    with pytest.raises(InvalidRelayRequest) as excinfo:
        await relay.open("https://media.test/movie.mp4", {"Referer": "https://sé.test/"})

    assert excinfo.value.status_code == 400
    assert upstream.requests == []
