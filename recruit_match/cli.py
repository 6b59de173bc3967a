"""
recruit-match Command Line Interface

Provides CLI commands for building corpus embeddings, running semantic
search and cross-matching entity lists, and maintaining the vector cache.
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from recruit_match.utils.constants import EntityKind, MatchScoreLevel, ResultStatus

app = typer.Typer(
    name="recruit-match",
    help="Semantic matching engine for recruiting data",
    add_completion=False,
)
console = Console()

LEVEL_COLORS = {
    MatchScoreLevel.EXCELLENT: "green",
    MatchScoreLevel.GOOD: "blue",
    MatchScoreLevel.FAIR: "yellow",
    MatchScoreLevel.POOR: "red",
}


@app.callback()
def main():
    """Initialize logging before any command runs."""
    from recruit_match.utils.logger import setup_logging

    setup_logging()


def _get_service():
    from recruit_match.core.matching import get_matching_service

    return get_matching_service()


async def _load_entries(kind: EntityKind, file: Optional[Path], from_mongo: bool, limit: Optional[int]):
    """Load corpus entries of ``kind`` from a JSON file or MongoDB."""
    from recruit_match.data.sources import JsonFileCorpusSource, MongoCorpusSource

    if from_mongo:
        from recruit_match.data.database import get_database_manager

        if not await get_database_manager().check_connection():
            console.print("[red]Error: Cannot reach MongoDB[/red]")
            raise typer.Exit(1)
        source = MongoCorpusSource(kind)
    elif file is not None:
        if not file.exists():
            console.print(f"[red]Error: File not found: {file}[/red]")
            raise typer.Exit(1)
        source = JsonFileCorpusSource(kind, file)
    else:
        console.print("[red]Error: Provide --file or --mongo.[/red]")
        raise typer.Exit(1)

    return await source.load(limit)


def _score_cell(score: float) -> str:
    level = MatchScoreLevel.from_score(score)
    color = LEVEL_COLORS[level]
    return f"[{color}]{score:.1%}[/{color}]"


def _print_status(results) -> bool:
    """Print the non-OK states and the coverage line. Returns True if rows should follow."""
    for coverage in results.coverage:
        style = "yellow" if coverage.is_partial else "dim"
        console.print(
            f"[{style}]  {coverage.source}: {coverage.embedded}/{coverage.total} entries embedded[/{style}]"
        )

    if results.status == ResultStatus.UNAVAILABLE:
        console.print(f"[red]Match engine unavailable: {results.message}[/red]")
        return False
    if results.status == ResultStatus.EMPTY:
        console.print(f"[yellow]No results. {results.message}[/yellow]")
        return False
    if results.is_partial:
        console.print("[yellow]Results cover only part of the corpus.[/yellow]")
    return True


@app.command()
def version():
    """Show application version."""
    from recruit_match import __version__, __app_name__

    console.print(f"[bold blue]{__app_name__}[/bold blue] version [green]{__version__}[/green]")


@app.command()
def info():
    """Show configuration."""
    from recruit_match.utils.config import get_settings

    settings = get_settings()

    table = Table(title="recruit-match Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Environment", settings.environment)
    table.add_row("Debug Mode", str(settings.debug))
    table.add_row("Embedding Model", settings.ml.embedding_model)
    table.add_row("Embedding Dimension", str(settings.ml.embedding_dimension))
    table.add_row("ML Device", settings.ml.device)
    table.add_row("Vector Cache", str(settings.vector_cache.persist_directory))
    table.add_row("Build Concurrency", str(settings.matching.build_concurrency))
    table.add_row("Default Top-K", str(settings.matching.default_top_k))
    table.add_row("Database", f"{settings.database.host}:{settings.database.port}/{settings.database.name}")
    table.add_row("Log Level", settings.logging.level)

    console.print(table)


@app.command()
def warmup():
    """Load the embedding model so later commands start faster."""
    from rich.progress import Progress, SpinnerColumn, TextColumn

    from recruit_match.core.exceptions import ModelUnavailableError

    service = _get_service()
    console.print(f"  Embedding Model: [cyan]{service.provider.model_name}[/cyan]")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Loading embedding model...", total=None)
        try:
            asyncio.run(service.provider.init())
            progress.update(task, description="[green]✓[/green] Embedding model loaded")
        except ModelUnavailableError as e:
            progress.update(task, description=f"[red]✗[/red] {e}")
            raise typer.Exit(1)


@app.command()
def build(
    kind: EntityKind = typer.Argument(..., help="Entity kind: candidates, jobs or clients"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="JSON file with entity records"),
    from_mongo: bool = typer.Option(False, "--mongo", help="Read entities from MongoDB"),
    source: Optional[str] = typer.Option(None, "--source", "-s", help="Cache source label (defaults to kind)"),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Maximum number of records"),
):
    """Embed an entity list into the vector cache."""
    service = _get_service()
    label = source or kind.value

    async def run():
        entries = await _load_entries(kind, file, from_mongo, limit)
        console.print(f"Building [cyan]{label}[/cyan] from {len(entries)} entries...")
        await service.ensure_built(label, entries)
        return entries

    entries = asyncio.run(run())
    state = service.build_state(label)
    cached = service.cache.size(label)
    color = "green" if cached >= len(entries) else "yellow"
    console.print(f"[{color}]{label}: {state.value}, {cached} vector(s) cached[/{color}]")


@app.command()
def search(
    query: str = typer.Argument(..., help="Describe the candidate or job"),
    kind: Optional[EntityKind] = typer.Option(None, "--kind", "-k", help="Entity kind of --file/--mongo (omit for the demo corpus)"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="JSON file with entity records"),
    from_mongo: bool = typer.Option(False, "--mongo", help="Read entities from MongoDB"),
    top_n: int = typer.Option(10, "--top", "-n", help="Number of results"),
):
    """Semantic search over the demo corpus or an entity list."""
    from recruit_match.utils.constants import SOURCE_DEMO

    service = _get_service()

    async def run():
        if kind is None:
            return await service.semantic_search(query, SOURCE_DEMO, k=top_n)
        entries = await _load_entries(kind, file, from_mongo, None)
        await service.ensure_built(kind.value, entries)
        return await service.search(query, kind.value, top_n)

    results = asyncio.run(run())

    console.print(f"\n[bold]Results for:[/bold] {query}")
    if not _print_status(results):
        raise typer.Exit(0)

    table = Table()
    table.add_column("Rank", style="dim", width=4)
    table.add_column("ID", style="cyan")
    table.add_column("Text")
    table.add_column("Score", justify="right")
    for i, result in enumerate(results, 1):
        table.add_row(str(i), result.id, result.text[:80], _score_cell(result.score))
    console.print(table)


@app.command()
def match(
    left_kind: EntityKind = typer.Argument(..., help="Left entity kind"),
    left_file: Path = typer.Argument(..., help="JSON file with left entity records"),
    right_kind: EntityKind = typer.Argument(..., help="Right entity kind"),
    right_file: Path = typer.Argument(..., help="JSON file with right entity records"),
    top_n: int = typer.Option(50, "--top", "-n", help="Number of pairs to show"),
):
    """Rank the best pairs across two entity lists (e.g. candidates x jobs)."""
    service = _get_service()
    left_label = left_kind.value
    right_label = right_kind.value if right_kind != left_kind else f"{right_kind.value}.right"

    async def run():
        left, right = await asyncio.gather(
            _load_entries(left_kind, left_file, False, None),
            _load_entries(right_kind, right_file, False, None),
        )
        await asyncio.gather(
            service.ensure_built(left_label, left),
            service.ensure_built(right_label, right),
        )
        return await service.match_across(left_label, right_label, top_n)

    results = asyncio.run(run())

    console.print(f"\n[bold]{left_label} x {right_label}[/bold]")
    if not _print_status(results):
        raise typer.Exit(0)

    table = Table(title=f"Top {len(results)} Pairs")
    table.add_column("Rank", style="dim", width=4)
    table.add_column(left_kind.value.capitalize(), style="cyan")
    table.add_column(right_kind.value.capitalize(), style="cyan")
    table.add_column("Affinity", justify="right")
    for i, pair in enumerate(results, 1):
        table.add_row(str(i), pair.left_id, pair.right_id, _score_cell(pair.score))
    console.print(table)


@app.command()
def cache_status():
    """Show cached sources and their sizes."""
    service = _get_service()
    sources = service.cache.sources()

    if not sources:
        console.print("[yellow]Vector cache is empty.[/yellow]")
        raise typer.Exit(0)

    table = Table(title="Vector Cache")
    table.add_column("Source", style="cyan")
    table.add_column("Vectors", justify="right")
    table.add_column("File", style="dim")
    for name in sources:
        table.add_row(name, str(service.cache.size(name)), str(service.cache.path_for(name)))
    console.print(table)


@app.command()
def clear_cache(
    source: str = typer.Argument(..., help="Source label to clear"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete every cached vector of a source."""
    if not yes and not typer.confirm(f"Clear cached vectors for '{source}'?"):
        raise typer.Exit(0)

    _get_service().clear_cache(source)
    console.print(f"[green]Cleared vector cache for '{source}'.[/green]")


if __name__ == "__main__":
    app()
