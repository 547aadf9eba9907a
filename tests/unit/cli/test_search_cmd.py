"""Tests for ragkit search."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from ragkit.cli.main import app
from ragkit.db.connection import Database
from ragkit.db.store import VectorStore

runner = CliRunner()


@pytest.fixture
def seeded_db(db_path, fake_embedder):
    with Database(db_path) as conn:
        store = VectorStore(conn)
        store.create_index("workshop", 3)
        store.upsert(
            "workshop",
            [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]],
            [
                {"text": "Use JWT tokens.", "section": "authentication", "source": "auth.md"},
                {"text": "Rotate logs daily.", "section": "logging", "source": "log.md"},
            ],
        )
    fake_embedder.table["auth"] = [1.0, 0.0, 0.0]
    with patch("ragkit.cli.search.Embedder", return_value=fake_embedder):
        yield db_path


def test_search_json_output(seeded_db):
    result = runner.invoke(app, ["search", "auth", "--db", str(seeded_db), "--json"])

    assert result.exit_code == 0, result.output
    hits = json.loads(result.stdout)
    assert hits[0]["metadata"]["text"] == "Use JWT tokens."
    assert hits[0]["score"] >= hits[1]["score"]


def test_search_with_filter(seeded_db):
    result = runner.invoke(
        app,
        ["search", "auth", "--db", str(seeded_db), "--filter", '{"section": "logging"}', "--json"],
    )

    assert result.exit_code == 0, result.output
    assert [h["metadata"]["source"] for h in json.loads(result.stdout)] == ["log.md"]


def test_search_table_output(seeded_db):
    result = runner.invoke(app, ["search", "auth", "--db", str(seeded_db), "--top-k", "1"])

    assert result.exit_code == 0, result.output
    assert "auth.md" in result.output
    assert "log.md" not in result.output


def test_search_with_rerank(seeded_db):
    response = MagicMock()
    response.choices[0].message.content = "9"
    with patch("ragkit.rag.llm_client.litellm.completion", return_value=response):
        result = runner.invoke(
            app,
            ["search", "auth", "--db", str(seeded_db), "--rerank", "--rerank-top-k", "1", "--json"],
        )

    assert result.exit_code == 0, result.output
    [hit] = json.loads(result.stdout)
    assert set(hit["details"]) == {"semantic", "vector", "position"}
    assert "vectorScore" in hit


def test_search_invalid_filter_json(seeded_db):
    result = runner.invoke(app, ["search", "auth", "--db", str(seeded_db), "--filter", "{oops"])
    assert result.exit_code == 1
    assert "not valid JSON" in result.output


def test_search_invalid_filter_operator(seeded_db):
    result = runner.invoke(
        app, ["search", "auth", "--db", str(seeded_db), "--filter", '{"$xor": []}']
    )
    assert result.exit_code == 1
    assert "invalid_filter" in result.output


def test_search_missing_index(seeded_db):
    result = runner.invoke(app, ["search", "auth", "--db", str(seeded_db), "--index", "nope"])
    assert result.exit_code == 1
    assert "missing_resource" in result.output


def test_search_missing_db(db_path):
    result = runner.invoke(app, ["search", "auth", "--db", str(db_path)])
    assert result.exit_code == 1
    assert "No database found" in result.output


def test_search_unknown_kind(seeded_db):
    result = runner.invoke(app, ["search", "auth", "--db", str(seeded_db), "--kind", "variable"])
    assert result.exit_code == 1
    assert "configuration" in result.output
