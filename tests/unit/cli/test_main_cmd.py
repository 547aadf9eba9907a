"""Tests for ragkit ask, version and the error message helpers."""

from __future__ import annotations

from unittest.mock import patch

from typer.testing import CliRunner

from ragkit.cli.errors import err_bad_pair, err_no_api_key, err_rag
from ragkit.cli.main import app
from ragkit.db.connection import Database
from ragkit.errors import FilterError, IndexNotFoundError, RagError

runner = CliRunner()


# ------------------------------------------------------------------
# version
# ------------------------------------------------------------------


def test_version_command():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert result.output.startswith("ragkit ")


def test_version_flag():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "ragkit" in result.output


# ------------------------------------------------------------------
# ask
# ------------------------------------------------------------------


def test_ask_prints_agent_answer(db_path):
    Database(db_path).connect().close()
    with patch("ragkit.cli.ask.run_agent", return_value="Use **JWT** tokens.") as mock_run:
        result = runner.invoke(app, ["ask", "How do I log in?", "--db", str(db_path)])

    assert result.exit_code == 0, result.output
    assert "JWT" in result.output
    prompt, ctx = mock_run.call_args.args
    assert prompt == "How do I log in?"
    assert (ctx.index_name, ctx.code_index_name) == ("workshop", "bonus")
    assert ctx.reranker is None
    assert mock_run.call_args.kwargs["max_steps"] == 5


def test_ask_with_rerank_and_overrides(db_path):
    Database(db_path).connect().close()
    with patch("ragkit.cli.ask.run_agent", return_value="ok") as mock_run:
        result = runner.invoke(
            app,
            ["ask", "q", "--db", str(db_path), "--rerank", "--index", "docs",
             "--model", "openai/gpt-4o-mini", "--max-steps", "2"],
        )

    assert result.exit_code == 0, result.output
    _, ctx = mock_run.call_args.args
    assert ctx.index_name == "docs"
    assert ctx.reranker is not None
    assert mock_run.call_args.kwargs == {"model": "openai/gpt-4o-mini", "max_steps": 2}


def test_ask_agent_error_exits(db_path):
    Database(db_path).connect().close()
    with patch("ragkit.cli.ask.run_agent", side_effect=IndexNotFoundError("workshop")):
        result = runner.invoke(app, ["ask", "q", "--db", str(db_path)])
    assert result.exit_code == 1
    assert "missing_resource" in result.output


def test_ask_missing_api_key(db_path, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    result = runner.invoke(app, ["ask", "q", "--db", str(db_path)])
    assert result.exit_code == 1
    assert "OPENAI_API_KEY" in result.output


# ------------------------------------------------------------------
# error helpers
# ------------------------------------------------------------------


def test_err_no_api_key_names_env_var():
    assert "ANTHROPIC_API_KEY" in err_no_api_key("anthropic")
    assert "ACME_API_KEY" in err_no_api_key("acme")


def test_err_rag_includes_kind_and_hint():
    message = err_rag(FilterError("Unknown filter operator '$xor'"))
    assert "invalid_filter" in message
    assert "$and" in message


def test_err_rag_without_hint():
    assert err_rag(RagError("boom")) == "[red]Error (error):[/] boom"


def test_err_bad_pair():
    assert "section=error-handling" in err_bad_pair("--meta", "oops")
