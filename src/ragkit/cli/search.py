"""ragkit search — filtered similarity search with optional LLM reranking."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.table import Table

from ragkit.cli.errors import err_bad_json_option, err_no_api_key, err_no_db, err_rag, exit_with
from ragkit.config import RagkitConfig, load_config
from ragkit.db.connection import Database
from ragkit.db.store import VectorStore
from ragkit.errors import RagError
from ragkit.models import QueryResult, RerankResult
from ragkit.rag.llm_client import Embedder, provider_of, validate_api_key
from ragkit.rag.reranker import LLMReranker
from ragkit.rag.retriever import RetrieverConfig, code_retriever_config, search

console = Console()

_PREVIEW_CHARS = 80


def search_cmd(
    query: Annotated[str, typer.Argument(help="Search query.")],
    index: Annotated[str | None, typer.Option("--index", "-i", help="Index to search.")] = None,
    db: Annotated[Path | None, typer.Option("--db", help="Path to the vector store.")] = None,
    filter_json: Annotated[
        str | None,
        typer.Option("--filter", "-f", help='Metadata filter as JSON, e.g. {"section": "auth"}.'),
    ] = None,
    top_k: Annotated[int | None, typer.Option("--top-k", "-k", help="Candidates to retrieve.")] = None,
    kind: Annotated[
        str | None,
        typer.Option("--kind", help="Bias toward code: function | method | class (code index)."),
    ] = None,
    rerank: Annotated[bool, typer.Option("--rerank", help="Rerank candidates with an LLM.")] = False,
    rerank_top_k: Annotated[
        int | None, typer.Option("--rerank-top-k", help="Results kept after reranking.")
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print results as JSON.")] = False,
) -> None:
    """Search an index for QUERY."""
    filter = _parse_filter(filter_json)

    try:
        cfg = load_config()
        k = top_k or cfg.retrieval.top_k
        if kind:
            config = code_retriever_config(kind, index or cfg.retrieval.code_index, top_k=k)
        else:
            config = RetrieverConfig(index_name=index or cfg.retrieval.index, top_k=k)
        reranker = LLMReranker(cfg.rerank.model, cfg.rerank.weights) if rerank else None
    except RagError as exc:
        exit_with(console, err_rag(exc))

    _require_keys(cfg, rerank)
    db_path = db or Path(cfg.store.path)
    if not db_path.exists():
        exit_with(console, err_no_db(str(db_path)))

    conn = Database(db_path).connect()
    try:
        results = search(
            query,
            VectorStore(conn),
            Embedder(cfg.embedding.model, batch_size=cfg.embedding.batch_size),
            config,
            filter=filter,
            reranker=reranker,
            rerank_top_k=rerank_top_k or cfg.rerank.top_k,
        )
    except RagError as exc:
        exit_with(console, err_rag(exc))
    finally:
        conn.close()

    if as_json:
        typer.echo(json.dumps([r.to_dict() for r in results], indent=2, ensure_ascii=False))
        return
    _print_results(results, config.index_name)


def _parse_filter(raw: str | None) -> dict[str, Any] | None:
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        exit_with(console, err_bad_json_option("--filter", str(exc)))
    if not isinstance(parsed, dict):
        exit_with(console, err_bad_json_option("--filter", "expected a JSON object"))
    return parsed


def _require_keys(cfg: RagkitConfig, rerank: bool) -> None:
    models = [cfg.embedding.model] + ([cfg.rerank.model] if rerank else [])
    for model in models:
        try:
            validate_api_key(model)
        except EnvironmentError:
            exit_with(console, err_no_api_key(provider_of(model)))


def _print_results(results: list[QueryResult] | list[RerankResult], index_name: str) -> None:
    if not results:
        console.print(f"[yellow]No matches in '{index_name}'.[/]")
        return

    table = Table(title=f"Results from '{index_name}'", show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Source")
    table.add_column("Section")
    table.add_column("Preview", overflow="ellipsis", no_wrap=True)
    for rank, r in enumerate(results, start=1):
        hit = r.result if isinstance(r, RerankResult) else r
        table.add_row(
            str(rank),
            f"{r.score:.3f}",
            str(hit.metadata.get("source", "")),
            str(hit.metadata.get("section", "")),
            hit.text[:_PREVIEW_CHARS].replace("\n", " "),
        )
    console.print(table)
