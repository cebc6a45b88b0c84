"""
Internship Matcher Command Line Interface

Provides CLI commands for embedding profiles and job posts, backfilling
embeddings, inspecting matches and running the HTTP service.
"""

import asyncio
import math
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from src.core.exceptions import MatchingError
from src.utils.constants import EntityKind

app = typer.Typer(
    name="intern-match",
    help="Semantic job-intern matching CLI",
    add_completion=False,
)
console = Console()


def _orchestrator():
    from src.core.matching import get_match_orchestrator
    from src.utils.logger import setup_logging

    setup_logging()
    return get_match_orchestrator()


@app.command()
def version():
    """Show application version."""
    from src import __version__, __app_name__

    console.print(f"[bold blue]{__app_name__}[/bold blue] version [green]{__version__}[/green]")


@app.command()
def info():
    """Show system information and configuration."""
    from src.utils.config import get_settings

    settings = get_settings()

    table = Table(title="Internship Matcher Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Environment", settings.environment)
    table.add_row("Debug Mode", str(settings.debug))
    table.add_row("Database Host", settings.database.host)
    table.add_row("Database Name", settings.database.name)
    table.add_row("Vector Store", settings.vector_store.provider)
    table.add_row("Embedding Model", settings.ml.embedding_model)
    table.add_row("Embedding Dimension", str(settings.ml.embedding_dimension))
    table.add_row("ML Device", settings.ml.device)
    table.add_row("Default Top K", str(settings.matching.top_k))
    table.add_row("Log Level", settings.logging.level)

    console.print(table)


@app.command()
def init_db():
    """Create the indexes the hydration lookups rely on."""
    from src.data.database import get_database_manager

    console.print("[yellow]Initializing database...[/yellow]")

    db_manager = get_database_manager()
    console.print("  Checking database connection...")
    if not db_manager.check_sync_connection():
        console.print("[red]Error: Could not connect to MongoDB.[/red]")
        console.print("[dim]Make sure MongoDB is running and connection settings are correct.[/dim]")
        raise typer.Exit(1)

    console.print("  [green]✓[/green] Connected to MongoDB")
    console.print("  Creating indexes...")
    asyncio.run(db_manager.ensure_indexes())
    db_manager.close_all()
    console.print("  [green]✓[/green] Indexes created")
    console.print("\n[green]Database initialized successfully![/green]")


@app.command()
def embed(
    kind: EntityKind = typer.Argument(..., help="Entity kind: intern or job"),
    entity_id: str = typer.Argument(..., help="Profile or job post ID"),
):
    """Embed (or re-embed) a single profile or job post."""
    orchestrator = _orchestrator()

    async def _run():
        try:
            return await orchestrator.on_entity_changed(kind, entity_id)
        finally:
            orchestrator.embedding_store.save()

    try:
        outcome = asyncio.run(_run())
    except MatchingError as e:
        console.print(f"[red]✗ {kind.value} {entity_id}: {e}[/red]")
        raise typer.Exit(1)

    console.print(
        f"[green]✓[/green] {kind.value} [cyan]{entity_id}[/cyan] {outcome.status.value} "
        f"({outcome.dimension} dims)"
    )


@app.command()
def backfill(
    kind: EntityKind = typer.Argument(EntityKind.JOB, help="Entity kind: intern or job"),
    delay: Optional[float] = typer.Option(None, "--delay", "-d", help="Seconds to pause between entities"),
):
    """Embed every profile or job post in the entity store."""
    orchestrator = _orchestrator()

    async def _run():
        try:
            return await orchestrator.backfill(kind, delay=delay)
        finally:
            orchestrator.embedding_store.save()

    console.print(f"[yellow]Backfilling {kind.value} embeddings...[/yellow]")
    outcomes = asyncio.run(_run())

    for outcome in outcomes:
        if outcome.ok:
            console.print(f"  [green]✓[/green] {outcome.entity_id}")
        else:
            console.print(f"  [red]✗[/red] {outcome.entity_id}: {outcome.error}")

    failed = [o for o in outcomes if not o.ok]
    console.print()
    console.print("[bold]Backfill Summary:[/bold]")
    console.print(f"  [green]✓ Embedded:[/green] {len(outcomes) - len(failed)}")
    console.print(f"  [red]✗ Errors:[/red] {len(failed)}")
    if failed:
        raise typer.Exit(1)


@app.command()
def matches(
    intern_id: str = typer.Argument(..., help="Intern ID to recommend jobs for"),
    top_n: Optional[int] = typer.Option(None, "--top", "-n", help="Number of matches to show"),
    threshold: Optional[float] = typer.Option(None, "--threshold", "-t", help="Minimum similarity"),
):
    """Show the job posts recommended to an intern."""
    orchestrator = _orchestrator()
    kwargs = {} if threshold is None else {"min_similarity": threshold}

    try:
        results = asyncio.run(orchestrator.get_matches_for_intern(intern_id, k=top_n, **kwargs))
    except MatchingError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if not results:
        console.print("[yellow]No matching jobs yet.[/yellow]")
        return

    table = Table(title=f"Job matches for {intern_id}")
    table.add_column("Rank", style="dim", justify="right")
    table.add_column("Similarity", style="green", justify="right")
    table.add_column("Title", style="cyan")
    table.add_column("Company")
    table.add_column("Applied", justify="center")

    for rank, match in enumerate(results, 1):
        table.add_row(
            str(rank),
            f"{match.similarity:.3f}",
            match.title,
            match.company,
            "✓" if match.has_applied else "",
        )
    console.print(table)


@app.command()
def candidates(
    job_id: str = typer.Argument(..., help="Job post ID to rank interns for"),
    top_n: Optional[int] = typer.Option(None, "--top", "-n", help="Number of candidates to show"),
):
    """Show the interns that best fit a job post."""
    orchestrator = _orchestrator()

    try:
        results = asyncio.run(orchestrator.get_candidates_for_job(job_id, k=top_n))
    except MatchingError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if not results:
        console.print("[yellow]No embedded interns yet.[/yellow]")
        return

    table = Table(title=f"Candidates for {job_id}")
    table.add_column("Rank", style="dim", justify="right")
    table.add_column("Similarity", style="green", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Skills")

    for rank, candidate in enumerate(results, 1):
        table.add_row(
            str(rank),
            f"{candidate.similarity:.3f}",
            candidate.full_name or candidate.id,
            ", ".join(candidate.skills[:6]),
        )
    console.print(table)


@app.command()
def test_embedding(
    text: str = typer.Argument("Hello world! This is a test embedding.", help="Text to embed"),
):
    """Load the model and embed a sample text."""
    from src.ml.embeddings import get_embedding_model
    from src.utils.logger import setup_logging

    setup_logging()
    model = get_embedding_model()
    console.print(f"  Embedding Model: [cyan]{model.model_name}[/cyan]")

    try:
        vector = asyncio.run(model.embed(text))
    except MatchingError as e:
        console.print(f"[red]✗ Embedding failed: {e}[/red]")
        raise typer.Exit(1)

    norm = math.sqrt(sum(v * v for v in vector))
    console.print(f"  [green]✓[/green] Embedding length: [cyan]{len(vector)}[/cyan]")
    console.print(f"  L2 norm: [cyan]{norm:.6f}[/cyan]")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port"),
):
    """Run the HTTP service."""
    import uvicorn

    from src.api import create_app
    from src.utils.config import get_settings

    settings = get_settings()
    uvicorn.run(
        create_app(),
        host=host or settings.api.host,
        port=port or settings.api.port,
        log_level=settings.logging.level.lower(),
    )


if __name__ == "__main__":
    app()
