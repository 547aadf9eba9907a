"""ragkit ingest — chunk, embed and upsert files into a named index.

Per-file strategy comes from the file format unless --strategy is given:
  .md / .markdown        → markdown
  .json                  → json
  .ts .tsx .js .mjs .py  → recursive (language separators), annotated as code
  anything else          → recursive
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.progress import SpinnerColumn, Progress, TextColumn
from rich.table import Table

from ragkit.cli.errors import err_bad_pair, err_no_api_key, err_rag, exit_with
from ragkit.config import load_config
from ragkit.db.connection import Database
from ragkit.db.store import VectorStore
from ragkit.errors import RagError
from ragkit.ingest.loader import load_document
from ragkit.ingest.pipeline import ingest_documents
from ragkit.rag.llm_client import Embedder, provider_of, validate_api_key

console = Console()


def ingest_cmd(
    files: Annotated[list[Path], typer.Argument(help="Files to ingest.")],
    index: Annotated[
        str | None, typer.Option("--index", "-i", help="Target index (default: retrieval.index).")
    ] = None,
    db: Annotated[
        Path | None, typer.Option("--db", help="Path to the vector store (created if missing).")
    ] = None,
    rebuild: Annotated[
        bool, typer.Option("--rebuild", help="Delete and recreate the index first.")
    ] = False,
    doc_type: Annotated[
        str | None, typer.Option("--type", help="Override the 'type' metadata of every file.")
    ] = None,
    section: Annotated[
        str | None, typer.Option("--section", help="Set the 'section' metadata of every file.")
    ] = None,
    meta: Annotated[
        list[str] | None, typer.Option("--meta", help="Extra metadata KEY=VALUE (repeatable).")
    ] = None,
    strategy: Annotated[
        str | None,
        typer.Option("--strategy", "-s", help="Chunking strategy for every file (default: by format)."),
    ] = None,
) -> None:
    """Ingest FILES into the vector store."""
    metadata = dict(_parse_meta(m) for m in meta or [])
    if doc_type:
        metadata["type"] = doc_type
    if section:
        metadata["section"] = section

    try:
        cfg = load_config()
        index_name = index or cfg.retrieval.index
        db_path = db or Path(cfg.store.path)
        config = cfg.chunkers.build(strategy) if strategy else None
        documents = [load_document(f, metadata) for f in files]
    except RagError as exc:
        exit_with(console, err_rag(exc))

    try:
        validate_api_key(cfg.embedding.model)
    except EnvironmentError:
        exit_with(console, err_no_api_key(provider_of(cfg.embedding.model)))

    embedder = Embedder(cfg.embedding.model, batch_size=cfg.embedding.batch_size)
    conn = _open_db(db_path)
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            console=console,
        ) as prog:
            prog.add_task(f"Ingesting {len(documents)} file(s) into '{index_name}'…", total=None)
            report = ingest_documents(
                documents,
                VectorStore(conn),
                embedder,
                index_name,
                config=config,
                chunkers=cfg.chunkers,
                rebuild=rebuild,
            )
    except RagError as exc:
        exit_with(console, err_rag(exc))
    finally:
        conn.close()

    if not report.chunks:
        console.print("[yellow]✗ No chunks produced (empty sources) — index unchanged.[/]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Format")
    table.add_column("Chunks", justify="right")
    for fmt, count in sorted(report.by_format.items()):
        table.add_row(fmt, str(count))
    console.print(table)
    console.print(
        f"[green]✓[/] {report.documents} file(s) → {report.chunks} chunks in '{index_name}'"
    )


def _parse_meta(raw: str) -> tuple[str, str]:
    key, sep, value = raw.partition("=")
    if not sep or not key.strip():
        exit_with(console, err_bad_pair("--meta", raw))
    return key.strip(), value


def _open_db(db_path: Path) -> sqlite3.Connection:
    """Open (or create) the vector store database and run migrations."""
    return Database(db_path).connect()
