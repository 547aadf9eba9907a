"""ragkit chunk — split one file and print the chunks (no embedding, no store).

Strategy defaults by file format:
  .md / .markdown  → markdown
  .json            → json
  anything else    → recursive (language separators for .ts/.js/.py)
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.table import Table

from ragkit.cli.errors import err_bad_pair, err_rag, exit_with
from ragkit.config import load_config
from ragkit.errors import RagError
from ragkit.ingest.base import count_tokens
from ragkit.ingest.chunker import chunk
from ragkit.ingest.loader import load_document
from ragkit.models import Chunk

console = Console()

_PREVIEW_CHARS = 60


def chunk_cmd(
    file: Annotated[Path, typer.Argument(help="File to chunk.")],
    strategy: Annotated[
        str | None,
        typer.Option(
            "--strategy", "-s", help="character | recursive | markdown | json (default: by format)."
        ),
    ] = None,
    size: Annotated[int | None, typer.Option("--size", help="Chunk size (character/recursive).")] = None,
    overlap: Annotated[int | None, typer.Option("--overlap", help="Overlap between chunks.")] = None,
    min_size: Annotated[
        int | None, typer.Option("--min-size", help="Merge threshold (recursive/markdown/json).")
    ] = None,
    max_size: Annotated[
        int | None, typer.Option("--max-size", help="Maximum chunk size (markdown/json).")
    ] = None,
    header: Annotated[
        list[str] | None,
        typer.Option("--header", help='Markdown header marker, e.g. "#=Header 1" (repeatable).'),
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print chunks as JSON.")] = False,
) -> None:
    """Split FILE into chunks and print them."""
    headers = [_parse_header(h) for h in header] if header else None

    try:
        cfg = load_config()
        document = load_document(file)
        name = strategy or cfg.chunkers.strategy_for(document.metadata["format"])
        config = cfg.chunkers.build(
            name,
            size=size,
            overlap=overlap,
            min_size=min_size,
            max_size=max_size,
            headers=headers,
        )
        chunks = chunk(document, config)
    except RagError as exc:
        exit_with(console, err_rag(exc))

    if as_json:
        typer.echo(json.dumps([_chunk_dict(c) for c in chunks], indent=2, ensure_ascii=False))
        return

    if not chunks:
        console.print("[yellow]No chunks produced (empty file).[/]")
        return

    table = Table(title=f"{file.name} · {name}", show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Chars", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Location")
    table.add_column("Preview", overflow="ellipsis", no_wrap=True)
    for c in chunks:
        table.add_row(
            str(c.chunk_index),
            str(len(c.text)),
            str(count_tokens(c.text)),
            _location(c),
            c.text[:_PREVIEW_CHARS].replace("\n", " "),
        )
    console.print(table)
    console.print(f"\n  {len(chunks)} chunks")


def _parse_header(raw: str) -> list[str]:
    marker, sep, name = raw.partition("=")
    if not sep or not marker.strip() or not name.strip():
        exit_with(console, err_bad_pair("--header", raw))
    return [marker.strip(), name.strip()]


def _location(c: Chunk) -> str:
    for key in ("headingPath", "jsonPath", "startIndex"):
        if key in c.metadata:
            return str(c.metadata[key])
    return ""


def _chunk_dict(c: Chunk) -> dict[str, Any]:
    return {"text": c.text, "metadata": dict(c.metadata)}
