"""Tests for VectorStore — index lifecycle, upsert and filtered query."""

from __future__ import annotations

import pytest

from ragkit.db.store import IndexStats
from ragkit.errors import ConfigurationError, DimensionMismatchError, IndexNotFoundError


def _seed(store, name: str = "workshop") -> list[str]:
    store.create_index(name, 3)
    return store.upsert(
        name,
        [[1.0, 0.0, 0.0], [0.9, 0.1, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]],
        [
            {"text": "auth flow", "section": "authentication", "format": "markdown"},
            {"text": "auth code", "section": "authentication", "format": "typescript"},
            {"text": "log levels", "section": "logging", "format": "markdown"},
            {"text": "db config", "section": "configuration", "format": "json"},
        ],
    )


# ------------------------------------------------------------------
# Index lifecycle
# ------------------------------------------------------------------


def test_create_and_describe(store):
    store.create_index("workshop", 3)
    assert store.describe_index("workshop") == IndexStats("workshop", 3, 0)
    assert store.list_indexes() == ["workshop"]


def test_create_same_dimension_is_noop(store):
    store.create_index("workshop", 3)
    store.create_index("workshop", 3)
    assert store.list_indexes() == ["workshop"]


def test_create_different_dimension_raises(store):
    store.create_index("workshop", 3)
    with pytest.raises(DimensionMismatchError) as info:
        store.create_index("workshop", 4)
    assert (info.value.expected, info.value.actual) == (3, 4)


@pytest.mark.parametrize("name,dimension", [("", 3), ("  ", 3), ("x", 0), ("x", -2), ("x", True)])
def test_create_invalid_arguments(store, name, dimension):
    with pytest.raises(ConfigurationError):
        store.create_index(name, dimension)


def test_delete_index_is_idempotent(store):
    _seed(store)
    store.delete_index("workshop")
    store.delete_index("workshop")
    assert store.list_indexes() == []


def test_delete_removes_records(store, tmp_db):
    _seed(store)
    store.delete_index("workshop")
    assert tmp_db.execute("SELECT COUNT(*) FROM records").fetchone()[0] == 0


def test_recreate_index_empties_and_changes_dimension(store):
    _seed(store)
    store.recreate_index("workshop", 5)
    assert store.describe_index("workshop") == IndexStats("workshop", 5, 0)


def test_describe_missing_index_raises(store):
    with pytest.raises(IndexNotFoundError) as info:
        store.describe_index("nope")
    assert info.value.kind == "missing_resource"


def test_indexes_are_isolated(store):
    _seed(store, "a")
    store.create_index("b", 3)
    assert store.describe_index("a").count == 4
    assert store.query("b", [1.0, 0.0, 0.0]) == []


# ------------------------------------------------------------------
# Upsert
# ------------------------------------------------------------------


def test_upsert_returns_ids_in_order(store):
    store.create_index("workshop", 2)
    ids = store.upsert("workshop", [[1, 0], [0, 1]], [{}, {}], ids=["a", "b"])
    assert ids == ["a", "b"]


def test_upsert_same_id_replaces(store):
    store.create_index("workshop", 2)
    store.upsert("workshop", [[1, 0]], [{"text": "old"}], ids=["a"])
    store.upsert("workshop", [[1, 0]], [{"text": "new"}], ids=["a"])
    [hit] = store.query("workshop", [1, 0])
    assert hit.metadata == {"text": "new"}
    assert store.describe_index("workshop").count == 1


def test_upsert_wrong_dimension_writes_nothing(store):
    store.create_index("workshop", 3)
    with pytest.raises(DimensionMismatchError):
        store.upsert("workshop", [[1, 0, 0], [1, 0]], [{}, {}])
    assert store.describe_index("workshop").count == 0


def test_upsert_length_mismatch(store):
    store.create_index("workshop", 2)
    with pytest.raises(ConfigurationError):
        store.upsert("workshop", [[1, 0]], [{}, {}])


def test_upsert_missing_index(store):
    with pytest.raises(IndexNotFoundError):
        store.upsert("nope", [[1.0]], [{}])


# ------------------------------------------------------------------
# Query
# ------------------------------------------------------------------


def test_query_orders_by_similarity(store):
    _seed(store)
    results = store.query("workshop", [1.0, 0.0, 0.0], top_k=4)
    assert [r.text for r in results][:2] == ["auth flow", "auth code"]
    scores = [r.score for r in results]
    assert scores == sorted(scores, reverse=True)
    assert results[0].score == pytest.approx(1.0)


def test_query_top_k_limits(store):
    _seed(store)
    assert len(store.query("workshop", [1.0, 0.0, 0.0], top_k=2)) == 2


def test_query_filter_restricts_before_ranking(store):
    _seed(store)
    results = store.query(
        "workshop", [1.0, 0.0, 0.0], top_k=1, filter={"section": "logging"}
    )
    assert [r.text for r in results] == ["log levels"]


def test_query_compound_filter(store):
    _seed(store)
    results = store.query(
        "workshop",
        [0.0, 0.0, 1.0],
        top_k=10,
        filter={"$or": [{"format": "json"}, {"section": "authentication", "format": "typescript"}]},
    )
    assert [r.text for r in results] == ["db config", "auth code"]


def test_query_filter_without_matches_is_empty(store):
    _seed(store)
    assert store.query("workshop", [1.0, 0.0, 0.0], filter={"section": "billing"}) == []


def test_query_wrong_dimension_raises(store):
    _seed(store)
    with pytest.raises(DimensionMismatchError):
        store.query("workshop", [1.0, 0.0])


def test_query_missing_index_raises(store):
    with pytest.raises(IndexNotFoundError):
        store.query("nope", [1.0, 0.0, 0.0])


@pytest.mark.parametrize("top_k", [0, -1])
def test_query_invalid_top_k(store, top_k):
    _seed(store)
    with pytest.raises(ConfigurationError):
        store.query("workshop", [1.0, 0.0, 0.0], top_k=top_k)
