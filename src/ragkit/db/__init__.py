"""ragkit vector store layer."""

from ragkit.db.connection import Database
from ragkit.db.filters import compile_filter, matches, validate_filter
from ragkit.db.migrations import MIGRATIONS, run_migrations
from ragkit.db.schema import initialize
from ragkit.db.store import IndexStats, VectorStore

__all__ = [
    "Database",
    "IndexStats",
    "MIGRATIONS",
    "VectorStore",
    "compile_filter",
    "initialize",
    "matches",
    "run_migrations",
    "validate_filter",
]
