"""Command line entry point for WebIndex."""

import logging
from pathlib import Path
from typing import List, Optional

import typer
from sqlalchemy.exc import SQLAlchemyError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from config import create_store, load_settings
from indexer import queries
from observability.logging import setup_logging

from .document_indexer import DocumentIndexer
from .errors import IndexingError
from .models import IndexStatus
from .transport import HttpTransport

logger = logging.getLogger(__name__)

console = Console()
app = typer.Typer(help="WebIndex CLI - TF-IDF keyword index for web documents")

STATUS_STYLES = {
    IndexStatus.INDEXED: "bold green",
    IndexStatus.UNCHANGED: "dim",
    IndexStatus.SKIPPED: "yellow",
    IndexStatus.FAILED: "bold red",
}


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", help="Settings YAML file"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override log level"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit JSON log lines"),
):
    """Load settings and configure logging for every command."""
    try:
        settings = load_settings(str(config) if config else None)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"❌ Invalid configuration: {escape(str(e))}", style="bold red")
        raise typer.Exit(2)

    if log_level:
        settings.logging.level = log_level.upper()
    setup_logging(
        level=settings.logging.level,
        log_file=settings.logging.log_file,
        use_json=json_logs or settings.logging.use_json,
    )
    ctx.obj = settings


def _read_url_file(path: Path) -> List[str]:
    lines = path.read_text(encoding="utf-8").splitlines()
    return [line.strip() for line in lines if line.strip() and not line.startswith("#")]


def _open_store(database):
    try:
        return create_store(database)
    except (SQLAlchemyError, IndexingError) as e:
        console.print(f"❌ Could not open database: {escape(str(e))}", style="bold red")
        raise typer.Exit(2)


@app.command("init-db")
def init_db(ctx: typer.Context):
    """Create the index tables"""
    settings = ctx.obj
    store = _open_store(settings.database)
    try:
        store.create_schema()
    except SQLAlchemyError as e:
        console.print(f"❌ Could not create tables: {escape(str(e))}", style="bold red")
        raise typer.Exit(2)
    finally:
        store.close()
    console.print("✅ Index tables ready", style="bold green")


@app.command()
def index(
    ctx: typer.Context,
    urls: Optional[List[str]] = typer.Argument(None, help="URLs to index"),
    url_file: Optional[Path] = typer.Option(None, "--file", help="File with one URL per line"),
    stop_on_error: bool = typer.Option(False, "--stop-on-error", help="Stop at the first failure"),
):
    """Index URLs one after another"""
    settings = ctx.obj
    targets = list(urls or [])
    if url_file:
        targets.extend(_read_url_file(url_file))
    if not targets:
        console.print("❌ No URLs given", style="bold red")
        raise typer.Exit(2)

    store = _open_store(settings.database)
    transport = HttpTransport(
        user_agent=settings.crawl.user_agent,
        request_timeout=settings.crawl.request_timeout,
    )
    try:
        indexer = DocumentIndexer.from_settings(settings, store, transport)
        results = indexer.index_urls(targets, stop_on_error=stop_on_error)
    finally:
        transport.close()
        store.close()

    table = Table(show_header=True, header_style="bold blue")
    table.add_column("URL", style="bold")
    table.add_column("Status")
    table.add_column("Action", style="dim")
    table.add_column("Time", justify="right", width=8)
    table.add_column("Error")

    for result in results:
        table.add_row(
            result.url,
            f"[{STATUS_STYLES[result.status]}]{result.status.value}[/]",
            result.action.value if result.action else "-",
            f"{result.duration:.2f}s",
            str(result.error) if result.error else "",
        )
    console.print(table)

    if any(result.status == IndexStatus.FAILED for result in results):
        raise typer.Exit(1)


@app.command()
def stats(ctx: typer.Context):
    """Show corpus size and term counts"""
    store = _open_store(ctx.obj.database)
    try:
        corpus = queries.corpus_stats(store)
    finally:
        store.close()

    console.print(f"📊 Documents: [bold]{corpus['documents']}[/bold]")
    console.print(f"📊 Distinct terms: [bold]{corpus['terms']}[/bold]")
    console.print(f"📊 TF-IDF rows: [bold]{corpus['scores']}[/bold]")


@app.command()
def top(
    ctx: typer.Context,
    term: str = typer.Argument(..., help="Term to look up"),
    limit: int = typer.Option(10, "--limit", help="Number of results"),
):
    """List documents with the highest TF-IDF score for a term"""
    store = _open_store(ctx.obj.database)
    try:
        results = queries.top_documents_for_term(store, term, limit)
    finally:
        store.close()

    if not results:
        console.print(f"No documents contain '{term}'")
        return

    table = Table(show_header=True, header_style="bold blue")
    table.add_column("#", style="dim", width=3)
    table.add_column("Title", style="bold")
    table.add_column("URL")
    table.add_column("TF-IDF", justify="right", width=10)

    for i, result in enumerate(results, 1):
        table.add_row(str(i), result["title"] or "-", result["url"], f"{result['score']:.4f}")
    console.print(table)


if __name__ == "__main__":
    app()
