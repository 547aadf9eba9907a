"""Tests for ragkit index list / create / describe / delete."""

from __future__ import annotations

import json

from typer.testing import CliRunner

from ragkit.cli.main import app
from ragkit.db.connection import Database
from ragkit.db.store import VectorStore

runner = CliRunner()


def test_index_create_then_describe(db_path):
    result = runner.invoke(app, ["index", "create", "docs", "--dimension", "8", "--db", str(db_path)])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["index", "describe", "docs", "--db", str(db_path), "--json"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {"name": "docs", "dimension": 8, "count": 0}


def test_index_create_dimension_conflict(db_path):
    runner.invoke(app, ["index", "create", "docs", "-d", "8", "--db", str(db_path)])
    result = runner.invoke(app, ["index", "create", "docs", "-d", "4", "--db", str(db_path)])
    assert result.exit_code == 1
    assert "dimension_mismatch" in result.output


def test_index_list(db_path):
    with Database(db_path) as conn:
        store = VectorStore(conn)
        store.create_index("alpha", 2)
        store.create_index("beta", 3)
        store.upsert("beta", [[1.0, 0.0, 0.0]], [{"text": "x"}])

    result = runner.invoke(app, ["index", "list", "--db", str(db_path)])

    assert result.exit_code == 0, result.output
    assert "alpha" in result.output
    assert "beta" in result.output


def test_index_list_empty(db_path):
    Database(db_path).connect().close()
    result = runner.invoke(app, ["index", "list", "--db", str(db_path)])
    assert result.exit_code == 0
    assert "No indexes yet" in result.output


def test_index_describe_missing(db_path):
    Database(db_path).connect().close()
    result = runner.invoke(app, ["index", "describe", "nope", "--db", str(db_path)])
    assert result.exit_code == 1
    assert "missing_resource" in result.output


def test_index_delete_with_yes(db_path):
    runner.invoke(app, ["index", "create", "docs", "-d", "2", "--db", str(db_path)])

    result = runner.invoke(app, ["index", "delete", "docs", "--db", str(db_path), "--yes"])

    assert result.exit_code == 0, result.output
    with Database(db_path) as conn:
        assert VectorStore(conn).list_indexes() == []


def test_index_delete_aborted_on_no(db_path):
    runner.invoke(app, ["index", "create", "docs", "-d", "2", "--db", str(db_path)])

    result = runner.invoke(app, ["index", "delete", "docs", "--db", str(db_path)], input="n\n")

    assert result.exit_code == 0
    with Database(db_path) as conn:
        assert VectorStore(conn).list_indexes() == ["docs"]


def test_index_list_missing_db(db_path):
    result = runner.invoke(app, ["index", "list", "--db", str(db_path)])
    assert result.exit_code == 1
    assert "No database found" in result.output
