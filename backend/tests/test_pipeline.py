"""Tests for the resolution pipeline."""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import httpx
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.resolver.context import ProviderContext  # noqa: E402
from backend.resolver.errors import (  # noqa: E402
    CapabilityNotFound,
    OperationCancelled,
    ProviderOperationFailed,
    ProviderTimeout,
)
from backend.resolver.extractors import ExtractorRegistry  # noqa: E402
from backend.resolver.loader import ProviderLoader  # noqa: E402
from backend.resolver.models import PostsPage, ProviderDescriptor  # noqa: E402
from backend.resolver.normalize import posts_page  # noqa: E402
from backend.resolver.pipeline import ResolutionPipeline  # noqa: E402

SLOW_SOURCES = {
    "posts": """
        import asyncio


        async def get_posts(*, filter, page, provider_value, signal, provider_context):
            await asyncio.sleep(10)
            return []


        async def get_search_posts(*, search_query, page, provider_value, signal, provider_context):
            await asyncio.sleep(10)
            return []
    """,
}

MALFORMED_SOURCES = {
    "posts": """
        def get_posts(*, filter, page, provider_value, signal, provider_context):
            return "<html>blocked</html>"


        def get_search_posts(*, search_query, page, provider_value, signal, provider_context):
            return {"posts": "nope"}
    """,
    "meta": """
        def get_meta(*, link, signal, provider_context):
            return None
    """,
    "stream": """
        def get_stream(*, link, type, signal, provider_context):
            return {"link": link}
    """,
}


@pytest.fixture()
def pipeline() -> ResolutionPipeline:
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
    return ResolutionPipeline(ProviderContext(http=client, extractors=ExtractorRegistry()), timeout=2.0)


@pytest.fixture()
def loader(sample_providers: Path) -> ProviderLoader:
    return ProviderLoader(sample_providers)


@pytest.mark.asyncio
async def test_bare_array_posts_are_normalised(pipeline: ResolutionPipeline, loader: ProviderLoader) -> None:
    result = await pipeline.get_posts(loader.load("alpha"), "/latest", 2)

    assert len(result.posts) == 3
    assert result.has_next_page is False
    assert result.posts[0].title == "/latest page 2 #0"
    assert {post.provider for post in result.posts} == {"alpha"}


@pytest.mark.asyncio
async def test_get_posts_is_idempotent(pipeline: ResolutionPipeline, loader: ProviderLoader) -> None:
    first = await pipeline.get_posts(loader.load("alpha"), "/latest", 1)
    second = await pipeline.get_posts(loader.load("alpha"), "/latest", 1)

    assert first == second


@pytest.mark.asyncio
async def test_sync_provider_functions_are_supported(pipeline: ResolutionPipeline, loader: ProviderLoader) -> None:
    posts = await pipeline.get_posts(loader.load("beta"), "", 1)
    search = await pipeline.search(loader.load("beta"), "query", 1)

    assert [post.title for post in posts.posts] == ["Beta"]
    assert [post.title for post in search.posts] == ["Beta query"]


@pytest.mark.asyncio
async def test_search_keeps_has_next_page(pipeline: ResolutionPipeline, loader: ProviderLoader) -> None:
    result = await pipeline.search(loader.load("alpha"), "matrix", 1)

    assert result.has_next_page is True
    assert result.posts[0].title == "matrix"


@pytest.mark.asyncio
async def test_catalog_and_genres(pipeline: ResolutionPipeline, loader: ProviderLoader) -> None:
    result = await pipeline.get_catalog(loader.load("alpha"))

    assert [section.filter for section in result.sections] == ["/latest", "/trending"]
    assert [genre.title for genre in result.genres] == ["Action"]


@pytest.mark.asyncio
async def test_catalog_missing_raises(pipeline: ResolutionPipeline, loader: ProviderLoader) -> None:
    with pytest.raises(CapabilityNotFound):
        await pipeline.get_catalog(loader.load("beta"))


@pytest.mark.asyncio
async def test_meta_is_normalised(pipeline: ResolutionPipeline, loader: ProviderLoader) -> None:
    meta = await pipeline.get_meta(loader.load("alpha"), "https://alpha.test/show")

    assert meta.type == "tv"
    assert meta.imdb_id == "tt0000001"
    assert meta.tags == ("Drama", "Action")
    assert [entry.title for entry in meta.link_list] == ["Season 1", "Movie"]
    assert meta.link_list[0].episodes_link == "https://alpha.test/s1"
    assert meta.link_list[1].direct_links[0].link == "https://alpha.test/show"


@pytest.mark.asyncio
async def test_episodes_drop_entries_without_links(pipeline: ResolutionPipeline, loader: ProviderLoader) -> None:
    episodes = await pipeline.get_episodes(loader.load("alpha"), "https://alpha.test/s1")

    assert [episode.link for episode in episodes] == ["https://alpha.test/s1/e1", "https://alpha.test/s1/e2"]


@pytest.mark.asyncio
async def test_streams_are_classified(pipeline: ResolutionPipeline, loader: ProviderLoader) -> None:
    streams = await pipeline.get_streams(loader.load("alpha"), "https://alpha.test/e1", "movie")

    by_server = {stream.server: stream for stream in streams}
    assert by_server["GDrive"].requires_extraction is True
    assert by_server["GDrive"].extraction_service == "gdrive"
    assert by_server["CDN"].requires_extraction is False
    assert by_server["HLS"].type == "segmented"
    assert by_server["HLS"].headers == {"Referer": "https://alpha.test/"}


@pytest.mark.asyncio
async def test_malformed_shapes_degrade_to_empty(
    pipeline: ResolutionPipeline, write_provider, providers_dir: Path
) -> None:
    write_provider("malformed", MALFORMED_SOURCES)
    provider = ProviderLoader(providers_dir).load("malformed")

    assert await pipeline.get_posts(provider, "", 1) == PostsPage()
    assert await pipeline.search(provider, "x", 1) == PostsPage()
    assert (await pipeline.get_meta(provider, "https://x.test")).link_list == ()
    assert await pipeline.get_streams(provider, "https://x.test") == []


@pytest.mark.asyncio
async def test_provider_exception_becomes_operation_failed(
    pipeline: ResolutionPipeline, loader: ProviderLoader
) -> None:
    with pytest.raises(ProviderOperationFailed) as excinfo:
        await pipeline.get_posts(loader.load("broken"), "", 1)

    assert "site layout changed" in excinfo.value.details
    assert isinstance(excinfo.value.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_slow_provider_times_out(write_provider, providers_dir: Path) -> None:
    write_provider("slow", SLOW_SOURCES)
    client = httpx.AsyncClient()
    pipeline = ResolutionPipeline(ProviderContext(http=client, extractors=ExtractorRegistry()), timeout=0.05)

    with pytest.raises(ProviderTimeout):
        await pipeline.get_posts(ProviderLoader(providers_dir).load("slow"), "", 1)


@pytest.mark.asyncio
async def test_signal_cancels_in_flight_call(
    pipeline: ResolutionPipeline, write_provider, providers_dir: Path
) -> None:
    write_provider("slow", SLOW_SOURCES)
    signal = asyncio.Event()
    asyncio.get_running_loop().call_later(0.05, signal.set)

    with pytest.raises(OperationCancelled):
        await pipeline.get_posts(ProviderLoader(providers_dir).load("slow"), "", 1, signal=signal)


@pytest.mark.asyncio
async def test_already_cancelled_signal_skips_provider(
    pipeline: ResolutionPipeline, loader: ProviderLoader
) -> None:
    signal = asyncio.Event()
    signal.set()

    with pytest.raises(OperationCancelled):
        await pipeline.get_posts(loader.load("broken"), "", 1, signal=signal)


@pytest.mark.asyncio
async def test_federated_search_keeps_partial_results(
    pipeline: ResolutionPipeline, loader: ProviderLoader
) -> None:
    providers = [
        ProviderDescriptor(id="alpha", display_name="Alpha"),
        ProviderDescriptor(id="broken", display_name="Broken"),
        ProviderDescriptor(id="ghost", display_name="Ghost"),
    ]

    result = await pipeline.federated_search(loader, providers, "matrix", 1)

    alpha, broken, ghost = result.results
    assert result.query == "matrix"
    assert [post.title for post in alpha.posts] == ["matrix"]
    assert alpha.error is None
    assert broken.posts == ()
    assert "broken" in broken.error
    assert ghost.error == "Unknown provider 'ghost'"


@pytest.mark.asyncio
async def test_provider_context_base_url_lookup() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"alpha": {"url": "https://alpha.new"}, "beta": {"name": "Beta"}})

    context = ProviderContext(
        http=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        extractors=ExtractorRegistry(),
        base_urls_url="https://providers.test/modflix.json",
    )

    assert await context.get_base_url("alpha") == "https://alpha.new"
    assert await context.get_base_url("beta") == ""
    assert context.parse_html("<a href='/x'>X</a>").a["href"] == "/x"


@pytest.mark.asyncio
async def test_provider_context_base_url_unreachable() -> None:
    context = ProviderContext(
        http=httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(500))),
        extractors=ExtractorRegistry(),
        base_urls_url="https://providers.test/modflix.json",
    )

    assert await context.get_base_url("alpha") == ""


@pytest.mark.parametrize(
    ("value", "expected"),
    [(True, True), ("true", True), (" True ", True), ("false", False), ("yes", False), (1, False), (None, False)],
)
def test_has_next_page_accepts_only_boolean_values(value, expected: bool) -> None:
    page = posts_page({"posts": [], "hasNextPage": value}, "alpha")

    assert page.has_next_page is expected
