"""ragkit index CLI commands.

Commands:
  ragkit index list                          — show all indexes with dimension and size
  ragkit index create <name> --dimension N   — create an empty index
  ragkit index describe <name>               — dimension and record count
  ragkit index delete <name>                 — delete an index and its records
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import asdict
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from ragkit.cli.errors import err_no_db, err_rag, exit_with
from ragkit.config import load_config
from ragkit.db.connection import Database
from ragkit.db.store import VectorStore
from ragkit.errors import RagError

console = Console()

index_app = typer.Typer(
    name="index",
    help="Manage vector indexes (list, create, describe, delete).",
    add_completion=False,
)

_DbOption = Annotated[Path | None, typer.Option("--db", help="Path to the vector store.")]


@index_app.command("list")
def index_list_cmd(db: _DbOption = None) -> None:
    """List all indexes."""
    conn = _open_existing(db)
    try:
        store = VectorStore(conn)
        stats = [store.describe_index(name) for name in store.list_indexes()]
    finally:
        conn.close()

    if not stats:
        console.print("[yellow]No indexes yet.[/]\n  Run:  ragkit ingest FILE... --index NAME")
        return

    table = Table(title="Indexes", show_header=True, header_style="bold")
    table.add_column("Name", style="bold")
    table.add_column("Dimension", justify="right")
    table.add_column("Records", justify="right")
    for s in stats:
        table.add_row(s.name, str(s.dimension), f"{s.count:,}")
    console.print(table)


@index_app.command("create")
def index_create_cmd(
    name: Annotated[str, typer.Argument(help="Index name.")],
    dimension: Annotated[int, typer.Option("--dimension", "-d", help="Vector dimension.")],
    db: _DbOption = None,
) -> None:
    """Create an empty index (no-op when it exists with the same dimension)."""
    conn = Database(_db_path(db)).connect()
    try:
        VectorStore(conn).create_index(name, dimension)
    except RagError as exc:
        exit_with(console, err_rag(exc))
    finally:
        conn.close()
    console.print(f"[green]✓[/] Index '{name}' ready (dimension {dimension})")


@index_app.command("describe")
def index_describe_cmd(
    name: Annotated[str, typer.Argument(help="Index name.")],
    db: _DbOption = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print as JSON.")] = False,
) -> None:
    """Show dimension and record count of an index."""
    conn = _open_existing(db)
    try:
        stats = VectorStore(conn).describe_index(name)
    except RagError as exc:
        exit_with(console, err_rag(exc))
    finally:
        conn.close()

    if as_json:
        typer.echo(json.dumps(asdict(stats)))
        return
    console.print(
        f"Index:      [bold]{stats.name}[/]\n"
        f"Dimension:  {stats.dimension}\n"
        f"Records:    {stats.count:,}"
    )


@index_app.command("delete")
def index_delete_cmd(
    name: Annotated[str, typer.Argument(help="Index name.")],
    db: _DbOption = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt.")] = False,
) -> None:
    """Delete an index and all of its records."""
    if not yes and not typer.confirm(f"Delete index '{name}' and all its records?", default=False):
        console.print("[dim]Aborted.[/]")
        raise typer.Exit(0)

    conn = _open_existing(db)
    try:
        VectorStore(conn).delete_index(name)
    finally:
        conn.close()
    console.print(f"[green]✓[/] Index '{name}' deleted")


def _db_path(db: Path | None) -> Path:
    if db is not None:
        return db
    try:
        return Path(load_config().store.path)
    except RagError as exc:
        exit_with(console, err_rag(exc))


def _open_existing(db: Path | None) -> sqlite3.Connection:
    path = _db_path(db)
    if not path.exists():
        exit_with(console, err_no_db(str(path)))
    return Database(path).connect()
