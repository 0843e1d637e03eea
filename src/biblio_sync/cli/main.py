"""CLI application using Typer for the bibliography client."""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, List, NoReturn, Optional, Sequence
import typer
from rich.console import Console
from rich.table import Table

from ..client import AccessTokenStore, ApiClient, BibliographyApi, BiblioError
from ..config.settings import Settings, settings
from ..core.models import BibliographyDraft, BibliographyRecord, FilterCriteria
from ..sync import ListProjector, RemoteCollection
from ..utils.logging import get_logger, set_log_level

app = typer.Typer(
    name="biblio",
    help="Browse, search and edit a remote bibliography collection",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(None, "--base-url", help="API base URL (default: BIBLIO_API_BASE_URL)"),
    token: Optional[str] = typer.Option(None, "--token", help="Bearer token (default: BIBLIO_ACCESS_TOKEN)"),
    page_size: Optional[int] = typer.Option(None, "--page-size", help="Records per page"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log requests and list updates"),
) -> None:
    """Shared connection options."""
    if verbose:
        set_log_level("DEBUG", fmt="text")
    overrides = {}
    if base_url:
        overrides["api_base_url"] = base_url
    if page_size:
        overrides["page_size"] = page_size
    config = Settings(**{**settings.model_dump(), **overrides}) if overrides else settings
    ctx.obj = {
        "settings": config,
        "tokens": AccessTokenStore(token or config.access_token),
    }


@asynccontextmanager
async def _open_projector(ctx: typer.Context) -> AsyncIterator[ListProjector]:
    config: Settings = ctx.obj["settings"]
    async with ApiClient(config, ctx.obj["tokens"]) as api:
        collection = RemoteCollection(BibliographyApi(api), config=config)
        projector = ListProjector(collection, debounce_seconds=0, config=config)
        try:
            yield projector
        finally:
            projector.close()


def _build_criteria(
    year: Optional[int],
    year_from: Optional[int],
    year_to: Optional[int],
    authors: Optional[List[str]],
    journals: Optional[List[str]],
    keywords: Optional[List[str]],
    date_from: Optional[datetime],
    date_to: Optional[datetime],
) -> FilterCriteria:
    return FilterCriteria(
        year=year,
        year_from=year_from,
        year_to=year_to,
        authors=authors or (),
        journals=journals or (),
        keywords=keywords or (),
        date_from=date_from,
        date_to=date_to,
    )


def _render_records(records: Sequence[BibliographyRecord], title: str) -> None:
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Title", style="bold")
    table.add_column("Author")
    table.add_column("Year", justify="right")
    table.add_column("Publication")
    for record in records:
        table.add_row(record.id or "-", record.title, record.author, record.year_display, record.publication or "")
    console.print(table)


def _render_record(record: BibliographyRecord) -> None:
    table = Table(show_header=False, title=record.title)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for name, value in record.model_dump(exclude_none=True).items():
        table.add_row(name, str(value))
    console.print(table)


def _fail(message: str) -> NoReturn:
    console.print(f"[red]Error: {message}[/red]")
    raise typer.Exit(1)


FILTER_OPTIONS = dict(
    year=typer.Option(None, "--year", help="Exact publication year"),
    year_from=typer.Option(None, "--year-from", help="Earliest publication year"),
    year_to=typer.Option(None, "--year-to", help="Latest publication year"),
    authors=typer.Option(None, "--author", "-a", help="Author substring (repeatable, OR-ed)"),
    journals=typer.Option(None, "--journal", "-j", help="Exact journal name (repeatable, OR-ed)"),
    keywords=typer.Option(None, "--keyword", "-k", help="Keyword substring (repeatable, OR-ed)"),
    date_from=typer.Option(None, "--date-from", help="Created on or after (YYYY-MM-DD)"),
    date_to=typer.Option(None, "--date-to", help="Created on or before (YYYY-MM-DD)"),
)


@app.command("list")
def list_records(
    ctx: typer.Context,
    all_pages: bool = typer.Option(False, "--all", help="Keep loading pages until the last one"),
    year: Optional[int] = FILTER_OPTIONS["year"],
    year_from: Optional[int] = FILTER_OPTIONS["year_from"],
    year_to: Optional[int] = FILTER_OPTIONS["year_to"],
    authors: Optional[List[str]] = FILTER_OPTIONS["authors"],
    journals: Optional[List[str]] = FILTER_OPTIONS["journals"],
    keywords: Optional[List[str]] = FILTER_OPTIONS["keywords"],
    date_from: Optional[datetime] = FILTER_OPTIONS["date_from"],
    date_to: Optional[datetime] = FILTER_OPTIONS["date_to"],
) -> None:
    """List the collection, optionally narrowed by local filters."""
    criteria = _build_criteria(year, year_from, year_to, authors, journals, keywords, date_from, date_to)

    async def _run() -> None:
        async with _open_projector(ctx) as projector:
            await projector.submit("", criteria)
            while all_pages and projector.has_next_page and not projector.error:
                await projector.load_next()
                logger.debug(f"Loaded page {projector.collection.current_page} of {projector.collection.total_pages}")
            if projector.error:
                _fail(projector.error)
            _render_records(projector.visible_records, "Bibliographies")
            console.print(
                f"Showing {projector.result_count} of {projector.total_count} "
                f"(page {projector.collection.current_page}/{projector.collection.total_pages})"
            )
            if projector.has_active_filters:
                console.print(f"[cyan]Filters: {projector.filter_summary}[/cyan]")
            if projector.can_load_more:
                console.print("[dim]More pages available; use --all to load them[/dim]")

    asyncio.run(_run())


@app.command()
def search(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Free-text query"),
    year: Optional[int] = FILTER_OPTIONS["year"],
    year_from: Optional[int] = FILTER_OPTIONS["year_from"],
    year_to: Optional[int] = FILTER_OPTIONS["year_to"],
    authors: Optional[List[str]] = FILTER_OPTIONS["authors"],
    journals: Optional[List[str]] = FILTER_OPTIONS["journals"],
    keywords: Optional[List[str]] = FILTER_OPTIONS["keywords"],
    date_from: Optional[datetime] = FILTER_OPTIONS["date_from"],
    date_to: Optional[datetime] = FILTER_OPTIONS["date_to"],
) -> None:
    """Search the collection on the server; filters are sent along."""
    if not query.strip():
        _fail("Query must not be empty; use 'biblio list' instead")
    criteria = _build_criteria(year, year_from, year_to, authors, journals, keywords, date_from, date_to)

    async def _run() -> None:
        async with _open_projector(ctx) as projector:
            await projector.submit(query, criteria)
            if projector.error:
                _fail(projector.error)
            _render_records(projector.visible_records, f"Results for '{query.strip()}'")
            console.print(f"{projector.total_count} matching record(s)")

    asyncio.run(_run())


@app.command()
def show(ctx: typer.Context, record_id: str = typer.Argument(..., help="Bibliography id")) -> None:
    """Show every field of one record."""

    async def _run() -> None:
        async with _open_projector(ctx) as projector:
            try:
                record = await projector.collection.get(record_id)
            except BiblioError as e:
                _fail(e.message)
            _render_record(record)

    asyncio.run(_run())


@app.command()
def add(
    ctx: typer.Context,
    title: str = typer.Option(..., "--title", help="Title"),
    author: str = typer.Option(..., "--author", help="Author string"),
    year: str = typer.Option("", "--year", help="Publication year"),
    publication: str = typer.Option("", "--publication", help="Journal or venue"),
    keywords: str = typer.Option("", "--keywords", help="Comma-separated keywords"),
    source: str = typer.Option("", "--source", help="Source"),
    isbn: str = typer.Option("", "--isbn", help="ISBN"),
    issn: str = typer.Option("", "--issn", help="ISSN"),
    url: str = typer.Option("", "--url", help="URL"),
) -> None:
    """Create a record."""
    draft = BibliographyDraft(
        title=title,
        author=author,
        year=year,
        publication=publication,
        keywords=keywords,
        source=source,
        isbn=isbn,
        issn=issn,
        url=url,
    )
    if not draft.is_valid:
        _fail("Title and author are required")

    async def _run() -> None:
        async with _open_projector(ctx) as projector:
            try:
                created = await projector.create(draft)
            except BiblioError as e:
                _fail(e.message)
            console.print(f"[green]Created[/green] {created.id}: {created.title}")

    asyncio.run(_run())


@app.command()
def edit(
    ctx: typer.Context,
    record_id: str = typer.Argument(..., help="Bibliography id"),
    title: Optional[str] = typer.Option(None, "--title"),
    author: Optional[str] = typer.Option(None, "--author"),
    year: Optional[str] = typer.Option(None, "--year"),
    publication: Optional[str] = typer.Option(None, "--publication"),
    keywords: Optional[str] = typer.Option(None, "--keywords"),
    source: Optional[str] = typer.Option(None, "--source"),
    url: Optional[str] = typer.Option(None, "--url"),
) -> None:
    """Change fields of a record (full replace on the server)."""
    changes = {
        name: value
        for name, value in dict(
            title=title, author=author, year=year, publication=publication,
            keywords=keywords, source=source, url=url,
        ).items()
        if value is not None
    }
    if not changes:
        _fail("Nothing to change")

    async def _run() -> None:
        async with _open_projector(ctx) as projector:
            try:
                current = await projector.collection.get(record_id)
                draft = BibliographyDraft.from_record(current).model_copy(update=changes)
                if not draft.is_valid:
                    _fail("Title and author are required")
                updated = await projector.update(draft.apply_to(current))
            except BiblioError as e:
                _fail(e.message)
            console.print(f"[green]Updated[/green] {updated.id}: {updated.title}")

    asyncio.run(_run())


@app.command()
def delete(
    ctx: typer.Context,
    record_id: str = typer.Argument(..., help="Bibliography id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a record."""
    if not yes:
        typer.confirm(f"Delete bibliography {record_id}?", abort=True)

    async def _run() -> None:
        async with _open_projector(ctx) as projector:
            try:
                await projector.delete(record_id)
            except BiblioError as e:
                _fail(e.message)
            console.print(f"[green]Deleted[/green] {record_id}")

    asyncio.run(_run())


if __name__ == "__main__":
    app()
