"""Shared fixtures: provider modules written to disk and a routed mock network."""
from __future__ import annotations

import json
import sys
import textwrap
from pathlib import Path
from typing import Callable

import httpx
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


ALPHA_SOURCES = {
    "catalog": """
        catalog = [
            {"title": "Latest", "filter": "/latest"},
            {"title": "Trending", "filter": "/trending"},
        ]
        genres = [{"title": "Action", "filter": "/genre/action"}]
    """,
    "posts": """
        async def get_posts(*, filter, page, provider_value, signal, provider_context):
            return [
                {"title": f"{filter} page {page} #{index}", "link": f"https://alpha.test/{page}/{index}", "image": ""}
                for index in range(3)
            ]


        async def get_search_posts(*, search_query, page, provider_value, signal, provider_context):
            return {
                "posts": [{"title": search_query, "link": "https://alpha.test/search/1", "provider": provider_value}],
                "hasNextPage": True,
            }
    """,
    "meta": """
        def get_meta(*, link, signal, provider_context):
            return {
                "title": "Alpha Show",
                "type": "series",
                "synopsis": "A show.",
                "tags": ["Drama", "Action"],
                "imdbId": "tt0000001",
                "linkList": [
                    {"title": "Season 1", "quality": "1080p", "episodesLink": "https://alpha.test/s1"},
                    {"title": "Movie", "directLinks": [{"title": "Play", "link": link}]},
                    {"title": "Nothing to play"},
                ],
            }
    """,
    "episodes": """
        async def get_episodes(*, url, signal, provider_context):
            return [
                {"title": "Episode 1", "link": url + "/e1"},
                {"title": "Episode 2", "link": url + "/e2"},
                {"title": "missing link"},
            ]
    """,
    "stream": """
        async def get_stream(*, link, type, signal, provider_context):
            return [
                {"server": "GDrive", "link": "https://drive.google.com/file/d/XYZ/view", "type": "mkv"},
                {"server": "CDN", "link": "https://cdn.example.com/video.mp4", "quality": "720"},
                {"server": "HLS", "link": "https://cdn.example.com/master.m3u8", "headers": {"Referer": "https://alpha.test/"}},
            ]
    """,
}

BROKEN_SOURCES = {
    "posts": """
        async def get_posts(*, filter, page, provider_value, signal, provider_context):
            raise RuntimeError("site layout changed")


        async def get_search_posts(*, search_query, page, provider_value, signal, provider_context):
            raise RuntimeError("site layout changed")
    """,
}

# No catalog module; posts are plain functions run in a worker thread.
BETA_SOURCES = {
    "posts": """
        def get_posts(*, filter, page, provider_value, signal, provider_context):
            return {"posts": [{"title": "Beta", "link": "https://beta.test/1"}], "hasNextPage": False}


        def get_search_posts(*, search_query, page, provider_value, signal, provider_context):
            return [{"title": "Beta " + search_query, "link": "https://beta.test/s"}]
    """,
}

MANIFEST = [
    {"id": "alpha", "displayName": "Alpha", "kind": "movies", "version": "1.0.0"},
    {"value": "beta", "display_name": "Beta", "type": "series", "version": "0.2.0"},
    {"id": "broken", "displayName": "Broken", "version": "0.1.0"},
    {"id": "retired", "displayName": "Retired", "disabled": True},
]

ProviderWriter = Callable[..., Path]


def write_sources(directory: Path, sources: dict[str, str]) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    for capability, source in sources.items():
        (directory / f"{capability}.py").write_text(textwrap.dedent(source).lstrip(), encoding="utf-8")
    return directory


@pytest.fixture()
def providers_dir(tmp_path: Path) -> Path:
    path = tmp_path / "dist"
    path.mkdir()
    return path


@pytest.fixture()
def write_provider(providers_dir: Path) -> ProviderWriter:
    """Return a helper that writes ``{capability: source}`` for one provider."""

    def _write(provider_id: str, sources: dict[str, str]) -> Path:
        return write_sources(providers_dir / provider_id, sources)

    return _write


@pytest.fixture()
def sample_providers(write_provider: ProviderWriter, providers_dir: Path) -> Path:
    write_provider("alpha", ALPHA_SOURCES)
    write_provider("beta", BETA_SOURCES)
    write_provider("broken", BROKEN_SOURCES)
    return providers_dir


@pytest.fixture()
def manifest_file(tmp_path: Path) -> Path:
    path = tmp_path / "manifest.json"
    path.write_text(json.dumps(MANIFEST[:3]), encoding="utf-8")
    return path


class ChunkedStream(httpx.AsyncByteStream):
    """Body delivered in chunks, the way a real transport streams it."""

    def __init__(self, data: bytes, chunk_size: int = 4096) -> None:
        self._data = data
        self._chunk_size = chunk_size

    async def __aiter__(self):
        for start in range(0, len(self._data), self._chunk_size):
            yield self._data[start : start + self._chunk_size]


def media_response(status_code: int, data: bytes, headers: dict[str, str] | None = None) -> httpx.Response:
    return httpx.Response(
        status_code,
        headers={"content-length": str(len(data)), **(headers or {})},
        stream=ChunkedStream(data),
    )


class Upstream:
    """Routes mock requests by host and records what was sent."""

    def __init__(self) -> None:
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def route(self, host: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[host] = handler

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(request.url.host)
        if handler is None:
            return httpx.Response(404, text="no route")
        return handler(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def sent_to(self, host: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.host == host]


@pytest.fixture()
def upstream() -> Upstream:
    return Upstream()
