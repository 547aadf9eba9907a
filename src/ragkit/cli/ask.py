"""ragkit ask — answer a question with the tool-calling retrieval agent."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.progress import Progress, SpinnerColumn, TextColumn

from ragkit.cli.errors import err_no_api_key, err_no_db, err_rag, exit_with
from ragkit.config import load_config
from ragkit.db.connection import Database
from ragkit.db.store import VectorStore
from ragkit.errors import RagError
from ragkit.rag.agent import run_agent
from ragkit.rag.llm_client import Embedder, provider_of, validate_api_key
from ragkit.rag.reranker import LLMReranker
from ragkit.rag.tools import ToolContext

console = Console()


def ask_cmd(
    prompt: Annotated[str, typer.Argument(help="Question to answer.")],
    db: Annotated[Path | None, typer.Option("--db", help="Path to the vector store.")] = None,
    index: Annotated[
        str | None, typer.Option("--index", "-i", help="Documentation index (default: retrieval.index).")
    ] = None,
    code_index: Annotated[
        str | None, typer.Option("--code-index", help="Code index (default: retrieval.code_index).")
    ] = None,
    model: Annotated[str | None, typer.Option("--model", help="Agent chat model.")] = None,
    rerank: Annotated[
        bool, typer.Option("--rerank", help="Rerank query_vector results with an LLM.")
    ] = False,
    max_steps: Annotated[
        int | None, typer.Option("--max-steps", help="Maximum tool-calling rounds.")
    ] = None,
) -> None:
    """Answer PROMPT using the retrieval tools."""
    try:
        cfg = load_config()
        reranker = LLMReranker(cfg.rerank.model, cfg.rerank.weights) if rerank else None
    except RagError as exc:
        exit_with(console, err_rag(exc))

    agent_model = model or cfg.agent.model
    for m in [cfg.embedding.model, agent_model] + ([cfg.rerank.model] if rerank else []):
        try:
            validate_api_key(m)
        except EnvironmentError:
            exit_with(console, err_no_api_key(provider_of(m)))

    db_path = db or Path(cfg.store.path)
    if not db_path.exists():
        exit_with(console, err_no_db(str(db_path)))

    conn = Database(db_path).connect()
    ctx = ToolContext(
        store=VectorStore(conn),
        embedder=Embedder(cfg.embedding.model, batch_size=cfg.embedding.batch_size),
        index_name=index or cfg.retrieval.index,
        code_index_name=code_index or cfg.retrieval.code_index,
        reranker=reranker,
        top_k=cfg.retrieval.top_k,
        rerank_top_k=cfg.rerank.top_k,
    )
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            console=console,
        ) as prog:
            prog.add_task("Thinking…", total=None)
            answer = run_agent(
                prompt, ctx, model=agent_model, max_steps=max_steps or cfg.agent.max_steps
            )
    except RagError as exc:
        exit_with(console, err_rag(exc))
    finally:
        conn.close()

    console.print(Markdown(answer))
