"""Fixtures shared by CLI command tests."""

from __future__ import annotations

import pytest


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Run every command in tmp_path with no global config and a fake API key."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("ragkit.config._GLOBAL_CONFIG_PATH", tmp_path / "no-global.yaml")
    for var in ("RAGKIT_EMBEDDING_MODEL", "RAGKIT_RERANK_MODEL", "RAGKIT_DB"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")


@pytest.fixture
def db_path(tmp_path):
    """Path to a not-yet-created .ragkit.db in tmp_path."""
    return tmp_path / ".ragkit.db"
