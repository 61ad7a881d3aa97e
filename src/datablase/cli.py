"""Command-line interface for datablase."""

import asyncio
import logging
from typing import Optional

import typer
from rich.console import Console
from rich.json import JSON
from rich.table import Table

from .database.config import DatabaseConfig
from .ingestion.config import load_ingest_config
from .pipeline.daemon import configure_logging, run_daemon

app = typer.Typer(
    name="datablase",
    help="Datablase - feed ingestion and temporal-merge engine",
    add_completion=False,
)
console = Console()


@app.command()
def ingest(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to ingest config YAML"),
    memory: bool = typer.Option(False, "--memory", help="Use the in-memory store (nothing persisted)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Run the stream worker and pollers until interrupted."""
    configure_logging(logging.DEBUG if verbose else logging.INFO)

    try:
        ingest_config = load_ingest_config(config)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]✗ Invalid configuration: {e}[/red]")
        raise typer.Exit(code=1)

    console.print("[bold green]Starting ingestion[/bold green]")
    console.print(f"  Stream: [cyan]{ingest_config.endpoints.stream_url}[/cyan]")
    console.print(f"  Store: [cyan]{'memory' if memory else ingest_config.storage}[/cyan]")

    try:
        asyncio.run(run_daemon(ingest_config, memory=memory))
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/yellow]")


@app.command()
def reindex():
    """Rebuild every game aggregate from the game update log."""
    from .storage.postgres import create_postgres_store

    configure_logging()

    async def _rebuild() -> int:
        store = await create_postgres_store(DatabaseConfig.from_env())
        try:
            return await store.rebuild_games()
        finally:
            await store.close()

    try:
        count = asyncio.run(_rebuild())
    except Exception as e:
        console.print(f"[red]✗ Reindex failed: {e}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[green]✓ Reindexed {count} games[/green]")


@app.command("init-db")
def init_db():
    """Create the update tables, derived tables and their indexes."""
    from .database.session import create_schema, dispose_engines

    db_config = DatabaseConfig.from_env()
    console.print(f"Connecting: [cyan]{db_config!r}[/cyan]")

    try:
        names = create_schema(db_config)
    except Exception as e:
        console.print(f"[red]✗ Schema creation failed: {e}[/red]")
        raise typer.Exit(code=1)
    finally:
        dispose_engines()

    table = Table(title="Tables")
    table.add_column("Name", style="cyan")
    for name in names:
        table.add_row(name)
    console.print(table)
    console.print("[green]✓ Schema ready[/green]")


@app.command("show-config")
def show_config(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to ingest config YAML"),
):
    """Print the resolved ingest configuration."""
    try:
        ingest_config = load_ingest_config(config)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]✗ Invalid configuration: {e}[/red]")
        raise typer.Exit(code=1)

    console.print(JSON(ingest_config.model_dump_json()))
    console.print(f"Database: [cyan]{DatabaseConfig.from_env()!r}[/cyan]")


def main():
    app()


if __name__ == "__main__":
    main()
