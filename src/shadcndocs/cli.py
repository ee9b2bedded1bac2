"""Command-line interface for fetching documentation and managing the cache."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Annotated, TypeVar

import typer

from shadcndocs.config import Settings
from shadcndocs.discovery import discover_bits_ui_components, discover_components, discover_docs
from shadcndocs.errors import ShadcnDocsError
from shadcndocs.logging_config import configure_logging
from shadcndocs.models.fetch import FetchOptions, FetchResult
from shadcndocs.orchestrator import DocFetcher
from shadcndocs.runtime import open_app_state
from shadcndocs.state import AppState

app = typer.Typer(add_completion=False, help="shadcn-svelte documentation fetcher")
fetch_app = typer.Typer(help="Fetch documentation content")
cache_app = typer.Typer(help="Inspect and maintain the local cache")
list_app = typer.Typer(help="List available identifiers")
app.add_typer(fetch_app, name="fetch")
app.add_typer(cache_app, name="cache")
app.add_typer(list_app, name="list")

T = TypeVar("T")

NoCache = Annotated[bool, typer.Option("--no-cache", help="Bypass the cache")]
AsJson = Annotated[bool, typer.Option("--json", help="Print the full result as JSON")]


def _run(action: Callable[[AppState], Awaitable[T]]) -> T:
    settings = Settings()
    configure_logging(settings.logging)

    async def main() -> T:
        async with open_app_state(settings, start_sweeper=False) as state:
            return await action(state)

    try:
        return asyncio.run(main())
    except ShadcnDocsError as exc:
        typer.echo(f"Error [{exc.code}]: {exc.message}", err=True)
        raise typer.Exit(code=2) from exc


def _fetch(
    call: Callable[[DocFetcher, FetchOptions], Awaitable[FetchResult]],
    no_cache: bool,
    as_json: bool,
) -> None:
    options = FetchOptions(use_cache=not no_cache)

    async def action(state: AppState) -> FetchResult:
        assert state.doc_fetcher is not None
        return await call(state.doc_fetcher, options)

    result = _run(action)
    if as_json:
        typer.echo(result.model_dump_json(indent=2, exclude={"raw_html"}))
    elif result.success:
        for note in result.notes:
            typer.echo(f"> {note}\n")
        typer.echo(result.content)
    if not result.success:
        if not as_json:
            typer.echo(f"Error: {result.error}", err=True)
        raise typer.Exit(code=1)


@fetch_app.command("component")
def fetch_component(name: str, no_cache: NoCache = False, as_json: AsJson = False) -> None:
    """Component documentation, e.g. ``button``."""
    _fetch(lambda f, o: f.fetch_component(name, o), no_cache, as_json)


@fetch_app.command("doc")
def fetch_doc(path: str, no_cache: NoCache = False, as_json: AsJson = False) -> None:
    """Any documentation path, e.g. ``/docs/theming``."""
    _fetch(lambda f, o: f.fetch_doc(path, o), no_cache, as_json)


@fetch_app.command("find")
def find_doc(name: str, no_cache: NoCache = False, as_json: AsJson = False) -> None:
    """Documentation section by name, searching the usual locations."""
    _fetch(lambda f, o: f.find_doc(name, o), no_cache, as_json)


@fetch_app.command("install")
def fetch_install(
    framework: Annotated[str | None, typer.Argument()] = None,
    no_cache: NoCache = False,
    as_json: AsJson = False,
) -> None:
    """Installation guide, optionally for one framework."""
    _fetch(lambda f, o: f.fetch_install_guide(framework, o), no_cache, as_json)


@fetch_app.command("url")
def fetch_url(url: str, no_cache: NoCache = False, as_json: AsJson = False) -> None:
    _fetch(lambda f, o: f.fetch_by_canonical_url(url, o), no_cache, as_json)


@fetch_app.command("bits-ui")
def fetch_bits_ui(name: str, no_cache: NoCache = False, as_json: AsJson = False) -> None:
    """Bits UI primitive documentation (llms.txt)."""
    _fetch(lambda f, o: f.fetch_bits_ui_component(name, o), no_cache, as_json)


@fetch_app.command("block")
def fetch_block(
    name: str,
    package_manager: Annotated[str | None, typer.Option("--pm")] = None,
    no_cache: NoCache = False,
    as_json: AsJson = False,
) -> None:
    """Block source files from the registry API."""
    _fetch(lambda f, o: f.fetch_block_code(name, package_manager, o), no_cache, as_json)


@cache_app.command("clear")
def cache_clear() -> None:
    async def action(state: AppState) -> int:
        assert state.cache is not None
        return await state.cache.clear()

    typer.echo(f"Removed {_run(action)} cached entries")


@cache_app.command("sweep")
def cache_sweep() -> None:
    async def action(state: AppState) -> int:
        assert state.cache is not None
        return await state.cache.sweep()

    typer.echo(f"Removed {_run(action)} expired entries")


@cache_app.command("stats")
def cache_stats() -> None:
    async def action(state: AppState) -> dict:
        assert state.cache is not None
        return await state.cache.stats()

    typer.echo(json.dumps(_run(action), indent=2))


@list_app.command("components")
def list_components() -> None:
    async def action(state: AppState) -> list[str]:
        assert state.doc_fetcher is not None
        return [c.name for c in await discover_components(state.doc_fetcher)]

    for name in _run(action):
        typer.echo(name)


@list_app.command("bits-ui")
def list_bits_ui() -> None:
    async def action(state: AppState) -> list[str]:
        assert state.http is not None
        return [c.name for c in await discover_bits_ui_components(state.http)]

    for name in _run(action):
        typer.echo(name)


@list_app.command("docs")
def list_docs() -> None:
    typer.echo(discover_docs().model_dump_json(indent=2))
