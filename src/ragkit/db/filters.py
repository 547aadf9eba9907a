"""Metadata filters — equality maps and compound boolean expressions.

A filter is a mapping. Field keys are matched against chunk metadata and are
passed through verbatim (no schema); ``$``-prefixed keys are operators:

    {"section": "authentication"}                        equality, implicit AND
    {"fileType": ["ts", "js"]}                           bare list = $in
    {"$and": [{"section": "logging"}, {"format": "markdown"}]}
    {"$or": [...]}, {"$not": {...}}
    {"score": {"$gte": 3, "$lt": 10}}                    $eq $ne $gt $gte $lt $lte
    {"tag": {"$in": [...]}}, {"tag": {"$nin": [...]}}, {"tag": {"$exists": true}}

An empty filter (``None`` or ``{}``) matches every record.

``compile_filter`` renders a filter as a SQL predicate over the store's JSON
``metadata`` column; ``matches`` evaluates the same semantics in-process.
"""

from __future__ import annotations

import operator
from typing import Any, Callable, Mapping

from ragkit.errors import FilterError

Filter = Mapping[str, Any]

FIELD_OPERATORS = frozenset({"$eq", "$ne", "$gt", "$gte", "$lt", "$lte", "$in", "$nin", "$exists"})
LOGICAL_OPERATORS = frozenset({"$and", "$or", "$not"})

_SQL_COMPARE = {"$gt": ">", "$gte": ">=", "$lt": "<", "$lte": "<="}
_PY_COMPARE: dict[str, Callable[[Any, Any], bool]] = {
    "$gt": operator.gt,
    "$gte": operator.ge,
    "$lt": operator.lt,
    "$lte": operator.le,
}
_SCALARS = (str, int, float, bool, type(None))
_NUMBER_KINDS = ("integer", "real", "true", "false")
_TEXT_KINDS = ("text",)
_MISSING = object()


def is_empty(filter: Filter | None) -> bool:
    return not filter


def validate_filter(filter: Filter | None) -> None:
    """Raise FilterError if *filter* is malformed. Field names are not checked."""
    if filter is None:
        return
    _walk(filter)


# ------------------------------------------------------------------
# SQL compilation
# ------------------------------------------------------------------


def compile_filter(filter: Filter | None, column: str = "metadata") -> tuple[str, list[Any]]:
    """Return ``(sql_predicate, params)`` for *filter* over JSON *column*.

    Raises:
        FilterError: Unknown operator or malformed operand.
    """
    if is_empty(filter):
        return "1", []
    validate_filter(filter)
    params: list[Any] = []
    sql = _compile_node(filter, column, params)
    return sql, params


def _compile_node(node: Filter, column: str, params: list[Any]) -> str:
    clauses: list[str] = []
    for key, value in node.items():
        if key in ("$and", "$or"):
            joiner = " AND " if key == "$and" else " OR "
            clauses.append(
                "(" + joiner.join(_compile_node(sub, column, params) for sub in value) + ")"
            )
        elif key == "$not":
            # json_extract yields NULL for a missing field; NOT NULL would drop the row.
            clauses.append(f"NOT COALESCE({_compile_node(value, column, params)}, 0)")
        else:
            clauses.append(_compile_field(key, value, column, params))
    return "(" + " AND ".join(clauses) + ")" if clauses else "1"


def _compile_field(key: str, value: Any, column: str, params: list[Any]) -> str:
    clauses = [
        _compile_op(op, operand, column, _json_path(key), params)
        for op, operand in _field_ops(value)
    ]
    return " AND ".join(clauses) if len(clauses) == 1 else "(" + " AND ".join(clauses) + ")"


def _compile_op(op: str, operand: Any, column: str, path: str, params: list[Any]) -> str:
    expr = f"json_extract({column}, ?)"
    if op == "$exists":
        params.append(path)
        return f"json_type({column}, ?) IS {'NOT ' if operand else ''}NULL"
    if op == "$eq":
        params.append(path)
        if operand is None:
            return f"{expr} IS NULL"
        params.append(operand)
        return f"{expr} = ?"
    if op == "$ne":
        if operand is None:
            params.append(path)
            return f"{expr} IS NOT NULL"
        params.extend([path, path, operand])
        return f"({expr} IS NULL OR {expr} != ?)"
    if op in _SQL_COMPARE:
        # SQLite orders all TEXT above all numbers; only compare like with like.
        kinds = _TEXT_KINDS if isinstance(operand, str) else _NUMBER_KINDS
        params.append(path)
        params.extend(kinds)
        params.extend([path, operand])
        placeholders = ", ".join("?" * len(kinds))
        return f"(json_type({column}, ?) IN ({placeholders}) AND {expr} {_SQL_COMPARE[op]} ?)"
    if op == "$in":
        if not operand:
            return "0"
        params.append(path)
        params.extend(operand)
        return f"{expr} IN ({', '.join('?' * len(operand))})"
    # $nin
    if not operand:
        return "1"
    params.extend([path, path])
    params.extend(operand)
    return f"({expr} IS NULL OR {expr} NOT IN ({', '.join('?' * len(operand))}))"


def _json_path(key: str) -> str:
    return '$."' + key.replace('"', '\\"') + '"'


# ------------------------------------------------------------------
# In-process evaluation
# ------------------------------------------------------------------


def matches(filter: Filter | None, metadata: Mapping[str, Any]) -> bool:
    """Evaluate *filter* against a metadata mapping (same semantics as SQL)."""
    if is_empty(filter):
        return True
    validate_filter(filter)
    return _match_node(filter, metadata)


def _match_node(node: Filter, metadata: Mapping[str, Any]) -> bool:
    for key, value in node.items():
        if key == "$and":
            ok = all(_match_node(sub, metadata) for sub in value)
        elif key == "$or":
            ok = any(_match_node(sub, metadata) for sub in value)
        elif key == "$not":
            ok = not _match_node(value, metadata)
        else:
            actual = metadata.get(key, _MISSING)
            ok = all(_match_op(op, operand, actual) for op, operand in _field_ops(value))
        if not ok:
            return False
    return True


def _match_op(op: str, operand: Any, actual: Any) -> bool:
    present = actual is not _MISSING and actual is not None
    if op == "$exists":
        return (actual is not _MISSING) == bool(operand)
    if op == "$eq":
        return not present if operand is None else present and actual == operand
    if op == "$ne":
        return present if operand is None else not (present and actual == operand)
    if op in _PY_COMPARE:
        if not present:
            return False
        try:
            return _PY_COMPARE[op](actual, operand)
        except TypeError:
            return False
    if op == "$in":
        return present and actual in operand
    # $nin
    return not (present and actual in operand)


# ------------------------------------------------------------------
# Shared structure checks
# ------------------------------------------------------------------


def _field_ops(value: Any) -> list[tuple[str, Any]]:
    """Normalise a field's value to ``[(operator, operand), ...]``."""
    if isinstance(value, Mapping):
        return list(value.items())
    if isinstance(value, (list, tuple)):
        return [("$in", list(value))]
    return [("$eq", value)]


def _walk(node: Any) -> None:
    if not isinstance(node, Mapping):
        raise FilterError(f"Filter must be a mapping, got {type(node).__name__}")
    for key, value in node.items():
        if not isinstance(key, str):
            raise FilterError(f"Filter keys must be strings, got {key!r}")
        if key in ("$and", "$or"):
            if not isinstance(value, (list, tuple)) or not value:
                raise FilterError(f"'{key}' expects a non-empty list of filters")
            for sub in value:
                _walk(sub)
        elif key == "$not":
            _walk(value)
        elif key.startswith("$"):
            raise FilterError(f"Unknown filter operator '{key}'")
        else:
            _check_field(key, value)


def _check_field(key: str, value: Any) -> None:
    if isinstance(value, Mapping):
        if not value:
            raise FilterError(f"Empty operator mapping for field '{key}'")
        for op, operand in value.items():
            if op not in FIELD_OPERATORS:
                raise FilterError(f"Unknown operator '{op}' for field '{key}'")
            if op in ("$in", "$nin"):
                if not isinstance(operand, (list, tuple)) or not all(
                    isinstance(v, _SCALARS) for v in operand
                ):
                    raise FilterError(f"'{op}' on '{key}' expects a list of scalars")
            elif op == "$exists":
                if not isinstance(operand, bool):
                    raise FilterError(f"'$exists' on '{key}' expects true/false")
            elif not isinstance(operand, _SCALARS):
                raise FilterError(f"'{op}' on '{key}' expects a scalar operand")
            elif op in _SQL_COMPARE and operand is None:
                raise FilterError(f"'{op}' on '{key}' cannot compare against null")
    elif isinstance(value, (list, tuple)):
        if not all(isinstance(v, _SCALARS) for v in value):
            raise FilterError(f"List filter on '{key}' must contain scalars only")
    elif not isinstance(value, _SCALARS):
        raise FilterError(f"Unsupported filter value for '{key}': {value!r}")
