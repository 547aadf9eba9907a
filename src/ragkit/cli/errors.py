"""ragkit rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from ragkit.cli.errors import err_no_api_key, exit_with
    console.print(err_no_api_key("openai"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from typing import NoReturn

import typer
from rich.console import Console

from ragkit.errors import RagError
from ragkit.rag.llm_client import _PROVIDER_ENV


def err_no_api_key(provider: str) -> str:
    """No API key for *provider*.

    Example:
        No API key for 'openai'. Set:  export OPENAI_API_KEY=sk-...
    """
    env_var = _PROVIDER_ENV.get(provider.lower()) or f"{provider.upper()}_API_KEY"
    return (
        f"[red]Error:[/] No API key for '{provider}'.\n"
        f"  Set:  export {env_var}=sk-..."
    )


def err_no_db(db_path: str = ".ragkit.db") -> str:
    """No vector store database at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  ragkit ingest FILE...  or  ragkit index create NAME --dimension N"
    )


def err_bad_json_option(option: str, detail: str) -> str:
    """A JSON-valued option could not be parsed."""
    return (
        f"[red]Error:[/] {option} is not valid JSON: {detail}\n"
        f"""  Example:  {option} '{{"section": "error-handling"}}'"""
    )


def err_bad_pair(option: str, value: str) -> str:
    """A KEY=VALUE option is malformed."""
    return (
        f"[red]Error:[/] {option} expects KEY=VALUE, got '{value}'.\n"
        f"  Example:  {option} section=error-handling"
    )


_HINTS: dict[str, str] = {
    "configuration": "Check the command options and ragkit.yaml.",
    "parse": "Fix the input file or pick another --strategy.",
    "invalid_filter": (
        "Supported operators: $eq $ne $gt $gte $lt $lte $in $nin $exists $and $or $not."
    ),
    "dimension_mismatch": (
        "Use the same embedding model as the index, or re-ingest with --rebuild."
    ),
    "missing_resource": "Run:  ragkit index list  to see existing indexes.",
    "external_service": "Check network access, the model name and the provider API key.",
}


def err_rag(exc: RagError) -> str:
    """Render a RagError with its kind and a fix hint."""
    hint = _HINTS.get(exc.kind, "")
    message = f"[red]Error ({exc.kind}):[/] {exc.message}"
    return f"{message}\n  {hint}" if hint else message


def exit_with(console: Console, message: str, code: int = 1) -> NoReturn:
    """Print *message* and exit with *code*."""
    console.print(message)
    raise typer.Exit(code)
