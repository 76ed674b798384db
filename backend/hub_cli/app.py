"""Command line interface for the Streamhub API."""
from __future__ import annotations

import json
from typing import Any, List, Optional

import httpx
import typer

from .client import create_client


DEFAULT_API_BASE = "http://localhost:3001"

app = typer.Typer(help="Browse providers and resolve streams through the Streamhub API.")


def _api_base_option() -> typer.Option:
    return typer.Option(
        DEFAULT_API_BASE,
        "--api-base",
        help="Base URL for the Streamhub API service.",
        show_default=True,
        envvar="STREAMHUB_API_BASE",
    )


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


def _get(api_base: str, path: str, params: dict[str, Any] | None = None) -> None:
    """GET ``path`` and print the JSON body, exiting 1 with the error object on failure."""

    with create_client(api_base) as client:
        try:
            response = client.get(path, params=params)
        except httpx.HTTPError as exc:
            typer.echo(f"Request failed: {exc}", err=True)
            raise typer.Exit(code=1) from exc
        if response.status_code >= 400:
            try:
                error = response.json()
            except ValueError:
                error = {"error": response.text or f"HTTP {response.status_code}"}
            typer.echo(json.dumps(error, indent=2, ensure_ascii=False), err=True)
            raise typer.Exit(code=1)
        _echo_json(response.json())


@app.command()
def health(api_base: str = _api_base_option()) -> None:
    """Call the /health endpoint and pretty-print the response."""

    _get(api_base, "/health")


@app.command()
def status(api_base: str = _api_base_option()) -> None:
    """List the provider modules installed on the server."""

    _get(api_base, "/status")


@app.command()
def providers(api_base: str = _api_base_option()) -> None:
    """List enabled providers from the manifest."""

    _get(api_base, "/api/providers")


@app.command()
def catalog(
    provider: str = typer.Argument(..., help="Provider identifier."),
    api_base: str = _api_base_option(),
) -> None:
    """Show a provider's catalog sections and genres."""

    _get(api_base, f"/api/{provider}/catalog")


@app.command()
def posts(
    provider: str = typer.Argument(..., help="Provider identifier."),
    filter: str = typer.Option("", "--filter", help="Catalog filter from the catalog command."),
    page: int = typer.Option(1, min=1, help="Page number starting at 1."),
    api_base: str = _api_base_option(),
) -> None:
    """List posts for a catalog filter."""

    _get(api_base, f"/api/{provider}/posts", {"filter": filter, "page": page})


@app.command()
def search(
    query: str = typer.Argument(..., help="Search text."),
    provider: Optional[List[str]] = typer.Option(
        None,
        "--provider",
        "-p",
        help="Search only this provider. Repeat to federate over several.",
    ),
    page: int = typer.Option(1, min=1, help="Page number starting at 1."),
    api_base: str = _api_base_option(),
) -> None:
    """Search one provider, or every enabled provider when none is given."""

    if provider and len(provider) == 1:
        _get(api_base, f"/api/{provider[0]}/search", {"query": query, "page": page})
        return

    params: dict[str, Any] = {"query": query, "page": page}
    if provider:
        params["provider"] = provider
    _get(api_base, "/api/search", params)


@app.command()
def meta(
    provider: str = typer.Argument(..., help="Provider identifier."),
    link: str = typer.Argument(..., help="Post link."),
    api_base: str = _api_base_option(),
) -> None:
    """Show metadata and link entries for a post."""

    _get(api_base, f"/api/{provider}/meta", {"link": link})


@app.command()
def episodes(
    provider: str = typer.Argument(..., help="Provider identifier."),
    url: str = typer.Argument(..., help="episodesLink from a meta link entry."),
    api_base: str = _api_base_option(),
) -> None:
    """List episodes behind an episodes link."""

    _get(api_base, f"/api/{provider}/episodes", {"url": url})


@app.command()
def streams(
    provider: str = typer.Argument(..., help="Provider identifier."),
    link: str = typer.Argument(..., help="Direct link or episode link."),
    content_type: str = typer.Option("movie", "--type", help="Content type passed to the provider."),
    api_base: str = _api_base_option(),
) -> None:
    """List candidate streams, flagged with whether they need extraction."""

    _get(api_base, f"/api/{provider}/stream", {"link": link, "type": content_type})


@app.command()
def resolve(
    url: str = typer.Argument(..., help="Hosting page or media URL."),
    api_base: str = _api_base_option(),
) -> None:
    """Extract a playable URL from a hosting page."""

    _get(api_base, "/api/proxy/stream", {"url": url})
