"""ragkit configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (RAGKIT_EMBEDDING_MODEL, RAGKIT_RERANK_MODEL, RAGKIT_DB)
  3. Per-project ragkit.yaml
  4. Global ~/.ragkit/config.yaml  (model defaults only — no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import copy
import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import yaml

from ragkit.errors import ConfigurationError
from ragkit.ingest.base import ChunkerConfig, config_from_dict

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".ragkit"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "ragkit.yaml"

# Matches: api_key, apikey, api-key, api_secret, _token (suffix), standalone token,
# standalone secret, _secret (suffix), password, passwd, credential(s).
# Does NOT match legitimate config keys like top_k, max_size, batch_size.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

# Known top-level sections; unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["store", "embedding", "retrieval", "rerank", "agent", "chunkers"]
)

# Format → default strategy name.
_FORMAT_STRATEGY: dict[str, str] = {
    "markdown": "markdown",
    "json": "json",
    "typescript": "recursive",
    "javascript": "recursive",
    "python": "recursive",
    "text": "recursive",
}


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class StoreCfg:
    """Vector store location (ragkit.yaml: store:)."""

    path: str = ".ragkit.db"


@dataclass
class EmbeddingCfg:
    """Embedding model configuration (ragkit.yaml: embedding:)."""

    model: str = "openai/text-embedding-3-small"
    batch_size: int = 96


@dataclass
class RetrievalCfg:
    """Retrieval configuration (ragkit.yaml: retrieval:).

    Attributes:
        index: Default index for documentation searches.
        code_index: Default index for code searches (find_code tools).
        top_k: Candidates returned by the vector query.
    """

    index: str = "workshop"
    code_index: str = "bonus"
    top_k: int = 10


@dataclass
class RerankCfg:
    """LLM reranker configuration (ragkit.yaml: rerank:)."""

    model: str = "openai/gpt-4o"
    top_k: int = 5
    weights: dict[str, float] = field(
        default_factory=lambda: {"semantic": 0.4, "vector": 0.4, "position": 0.2}
    )


@dataclass
class AgentCfg:
    """Tool-calling agent configuration (ragkit.yaml: agent:)."""

    model: str = "openai/gpt-4o"
    max_steps: int = 5


def _default_chunkers() -> dict[str, dict[str, Any]]:
    return {
        "character": {"size": 1000, "overlap": 0},
        "recursive": {"size": 1500, "overlap": 0},
        "markdown": {
            "headers": [["#", "Header 1"], ["##", "Header 2"], ["###", "Header 3"]],
            "max_size": 1500,
            "min_size": 0,
            "overlap": 0,
        },
        "json": {"max_size": 1000, "min_size": 200},
    }


@dataclass
class ChunkersCfg:
    """Per-strategy chunker parameters (ragkit.yaml: chunkers:).

    Overlap defaults to 0 everywhere; set it explicitly per strategy.
    """

    params: dict[str, dict[str, Any]] = field(default_factory=_default_chunkers)

    def build(self, strategy: str, **overrides: Any) -> ChunkerConfig:
        """Return a validated config for *strategy*, applying non-None *overrides*."""
        if strategy not in self.params:
            raise ConfigurationError(
                f"Unknown chunking strategy {strategy!r}. "
                f"Choose one of: {', '.join(sorted(self.params))}"
            )
        raw = dict(self.params[strategy])
        raw.update({k: v for k, v in overrides.items() if v is not None})
        return config_from_dict({"strategy": strategy, **raw})

    @staticmethod
    def strategy_for(fmt: str | None) -> str:
        """Default strategy name for a document ``format``."""
        return _FORMAT_STRATEGY.get(str(fmt or "text"), "recursive")

    def for_format(self, fmt: str | None) -> ChunkerConfig:
        """Default config for a document ``format`` (markdown, json, typescript, ...)."""
        return self.build(self.strategy_for(fmt))


@dataclass
class RagkitConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    store: StoreCfg = field(default_factory=StoreCfg)
    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    retrieval: RetrievalCfg = field(default_factory=RetrievalCfg)
    rerank: RerankCfg = field(default_factory=RerankCfg)
    agent: AgentCfg = field(default_factory=AgentCfg)
    chunkers: ChunkersCfg = field(default_factory=ChunkersCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigurationError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigurationError(
                        f"Config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Config '{path}' is not valid YAML: {exc}", cause=exc) from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config '{path}' must be a mapping at the top level.")
    return data


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _section(data: dict[str, Any], name: str, label: str | None = None) -> dict[str, Any]:
    """Return section *name* of *data* as a mapping (``{}`` when empty)."""
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(
            f"Config section '{label or name}' must be a mapping, got {type(value).__name__}."
        )
    return value


def _coerce(convert: Callable[[Any], Any], value: Any, key: str) -> Any:
    try:
        return convert(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(
            f"Config key '{key}' has an invalid value {value!r}.", cause=exc
        ) from exc


def _cfg_from_dict(data: dict[str, Any]) -> RagkitConfig:
    """Build a *RagkitConfig* from a merged raw YAML dict."""
    cfg = RagkitConfig()

    if "store" in data:
        s = _section(data, "store")
        cfg.store = StoreCfg(path=str(s.get("path", cfg.store.path)))

    if "embedding" in data:
        e = _section(data, "embedding")
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            batch_size=_coerce(
                int, e.get("batch_size", cfg.embedding.batch_size), "embedding.batch_size"
            ),
        )

    if "retrieval" in data:
        r = _section(data, "retrieval")
        cfg.retrieval = RetrievalCfg(
            index=str(r.get("index", cfg.retrieval.index)),
            code_index=str(r.get("code_index", cfg.retrieval.code_index)),
            top_k=_coerce(int, r.get("top_k", cfg.retrieval.top_k), "retrieval.top_k"),
        )

    if "rerank" in data:
        rr = _section(data, "rerank")
        weights = dict(cfg.rerank.weights)
        weights.update(
            {
                k: _coerce(float, v, f"rerank.weights.{k}")
                for k, v in _section(rr, "weights", "rerank.weights").items()
            }
        )
        cfg.rerank = RerankCfg(
            model=str(rr.get("model", cfg.rerank.model)),
            top_k=_coerce(int, rr.get("top_k", cfg.rerank.top_k), "rerank.top_k"),
            weights=weights,
        )

    if "agent" in data:
        a = _section(data, "agent")
        cfg.agent = AgentCfg(
            model=str(a.get("model", cfg.agent.model)),
            max_steps=_coerce(int, a.get("max_steps", cfg.agent.max_steps), "agent.max_steps"),
        )

    if "chunkers" in data:
        params = _default_chunkers()
        chunkers = _section(data, "chunkers")
        for name in chunkers:
            if name not in params:
                raise ConfigurationError(f"Unknown chunker section 'chunkers.{name}'.")
            params[name].update(_section(chunkers, name, f"chunkers.{name}"))
        cfg.chunkers = ChunkersCfg(params=params)

    # Fail fast on invalid chunker parameters.
    for name in cfg.chunkers.params:
        cfg.chunkers.build(name)

    return cfg


def _apply_env_overrides(cfg: RagkitConfig) -> RagkitConfig:
    """Apply RAGKIT_* environment variable overrides."""
    if model := os.environ.get("RAGKIT_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if model := os.environ.get("RAGKIT_RERANK_MODEL"):
        cfg.rerank.model = model
    if db := os.environ.get("RAGKIT_DB"):
        cfg.store.path = db
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> RagkitConfig:
    """Load and return a merged *RagkitConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *ragkit.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigurationError: If global config contains API-key-like fields, a
            file is not valid YAML, or chunker parameters are invalid.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        raw_global = _read_yaml(global_path)
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = _read_yaml(project_cfg_path)
        _check_no_api_keys(raw_project, project_cfg_path)
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(copy.deepcopy(merged))
    return _apply_env_overrides(cfg)
