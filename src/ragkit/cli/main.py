"""ragkit CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from ragkit.cli.ask import ask_cmd
from ragkit.cli.chunk import chunk_cmd
from ragkit.cli.index import index_app
from ragkit.cli.ingest import ingest_cmd
from ragkit.cli.search import search_cmd
from ragkit.log import configure_logging


def _installed_version() -> str:
    try:
        return importlib.metadata.version("ragkit")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"ragkit {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="ragkit",
    help=(
        "ragkit — chunk, embed, store and retrieve documents.\n\n"
        "  ragkit ingest  Chunk + embed files into a named index.\n"
        "  ragkit search  Filtered similarity search (optionally reranked)."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging."),
    ] = False,
) -> None:
    """ragkit — retrieval-augmented generation toolkit."""
    configure_logging(verbose)


app.command("chunk")(chunk_cmd)
app.command("ingest")(ingest_cmd)
app.command("search")(search_cmd)
app.command("ask")(ask_cmd)
app.add_typer(index_app, name="index")


@app.command("version")
def version_cmd() -> None:
    """Show the installed ragkit version."""
    typer.echo(f"ragkit {_installed_version()}")


if __name__ == "__main__":
    app()
