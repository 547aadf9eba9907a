"""JSON chunker — structural grouping between min_size and max_size.

Each child of a container (object key or array element) is a *unit*,
serialised together with the path leading to it from the root, so every
chunk is valid JSON whose nesting mirrors its position in the source
(array indices become string keys). Deep-merging all chunks rebuilds the
original tree.

- Siblings are grouped while the group is smaller than ``min_size`` and the
  merged serialisation stays within ``max_size``.
- A unit larger than ``max_size`` is split recursively by its own children.
- A leaf larger than ``max_size`` cannot be split and is emitted whole.

Malformed input raises ``ChunkParseError``; there is no plain-text fallback.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from ragkit.errors import ChunkParseError
from ragkit.ingest.base import JsonConfig
from ragkit.models import Document

logger = logging.getLogger(__name__)

_Path = list[Any]


def split_json(
    document: Document, config: JsonConfig
) -> list[tuple[str, dict[str, Any]]]:
    try:
        data = json.loads(document.text)
    except json.JSONDecodeError as exc:
        raise ChunkParseError(
            f"Invalid JSON in {document.metadata.get('source', 'document')!r}: "
            f"{exc.msg} (line {exc.lineno}, column {exc.colno})",
            cause=exc,
        ) from exc

    if not isinstance(data, (dict, list)) or not data:
        return [(_dumps(data), {"jsonPath": "$"})]

    return [
        (_dumps(fragment), {"jsonPath": _path_str(path)})
        for path, fragment in _split(data, [], config)
    ]


def _split(value: dict | list, path: _Path, config: JsonConfig) -> list[tuple[_Path, dict]]:
    """Group the children of *value* (located at *path*) into fragments."""
    groups: list[tuple[_Path, dict]] = []
    current: dict | None = None
    current_size = 0

    items = value.items() if isinstance(value, dict) else enumerate(value)
    for key, child in items:
        unit = _nest(path + [key], child)
        size = len(_dumps(unit))

        if size > config.max_size and isinstance(child, (dict, list)) and child:
            if current is not None:
                groups.append((path, current))
                current = None
            groups.extend(_split(child, path + [key], config))
            continue

        if size > config.max_size:
            logger.debug("JSON leaf at %s exceeds max_size (%d > %d)",
                         _path_str(path + [key]), size, config.max_size)

        if current is None:
            current, current_size = unit, size
            continue

        merged = _merge(current, unit)
        merged_size = len(_dumps(merged))
        if current_size >= config.min_size or merged_size > config.max_size:
            groups.append((path, current))
            current, current_size = unit, size
        else:
            current, current_size = merged, merged_size

    if current is not None:
        groups.append((path, current))
    return groups


def _nest(path: _Path, value: Any) -> dict:
    for key in reversed(path):
        value = {str(key): value}
    return value


def _merge(base: dict, other: dict) -> dict:
    result = dict(base)
    for k, v in other.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _merge(result[k], v)
        else:
            result[k] = v
    return result


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


def _path_str(path: _Path) -> str:
    return "$" + "".join(f".{k}" for k in path)
