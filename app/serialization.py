"""
Rich-value serialization envelope.

Values that plain JSON would lose (date-times, decimals, big integers, sets,
non-finite floats) travel as ``{"json": ..., "meta": {"values": ...}}`` in the
superjson wire format, so browser clients using superjson read them back
unchanged.

``meta["values"]`` is either a single annotation for the root value or a
mapping of dotted paths to annotation trees. A tree is ``[type]`` for a leaf or
``[type, {path: tree}]`` when the transformed value has annotated children.
"""

import math
from datetime import datetime, date, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

MAX_SAFE_INTEGER = 2 ** 53 - 1

DECIMAL_TYPE = ["custom", "Decimal"]


class SerializationError(ValueError):
    """Raised when a payload cannot be reconstructed from its metadata"""


def escape_key(key: str) -> str:
    return key.replace("\\", "\\\\").replace(".", "\\.")


def parse_path(path: str) -> List[str]:
    """Split a dotted path, honouring escaped dots and backslashes"""
    segments = []
    current = []
    chars = iter(path)
    for char in chars:
        if char == "\\":
            escaped = next(chars, None)
            if escaped is None:
                raise SerializationError(f"dangling escape in path {path!r}")
            current.append(escaped)
        elif char == ".":
            segments.append("".join(current))
            current = []
        else:
            current.append(char)
    segments.append("".join(current))
    return segments


def _format_datetime(value: datetime) -> str:
    # Naive values are UTC; the wire form matches JavaScript's toISOString()
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _parse_datetime(value: Any) -> datetime:
    if not isinstance(value, str):
        raise SerializationError(f"expected an ISO date string, got {value!r}")
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        return datetime.fromisoformat(text)
    except ValueError as e:
        raise SerializationError(f"invalid date {value!r}") from e


def _nest(children: Dict[str, Any], key: str, tree: Any):
    """Attach a child's annotation tree under ``key``, flattening plain containers"""
    if tree is None:
        return
    if isinstance(tree, dict):
        for path, sub_tree in tree.items():
            children[f"{key}.{path}"] = sub_tree
    else:
        children[key] = tree


def _walk(value: Any) -> Tuple[Any, Any]:
    """Return the JSON-safe form of ``value`` and its annotation tree (or None)"""
    if value is None or isinstance(value, (bool, str)):
        return value, None

    if isinstance(value, int):
        if abs(value) > MAX_SAFE_INTEGER:
            return str(value), ["bigint"]
        return value, None

    if isinstance(value, float):
        if math.isnan(value):
            return "NaN", ["number"]
        if math.isinf(value):
            return ("Infinity" if value > 0 else "-Infinity"), ["number"]
        return value, None

    if isinstance(value, datetime):
        return _format_datetime(value), ["Date"]

    if isinstance(value, Decimal):
        return str(value), [DECIMAL_TYPE]

    if isinstance(value, dict):
        result = {}
        children: Dict[str, Any] = {}
        for key, item in value.items():
            result[key], tree = _walk(item)
            _nest(children, escape_key(str(key)), tree)
        return result, (children or None)

    if isinstance(value, (list, tuple)):
        result = []
        children = {}
        for index, item in enumerate(value):
            json_item, tree = _walk(item)
            result.append(json_item)
            _nest(children, str(index), tree)
        return result, (children or None)

    if isinstance(value, (set, frozenset)):
        items, children = _walk(list(value))
        return items, (["set", children] if children else ["set"])

    if isinstance(value, UUID):
        return str(value), None

    if isinstance(value, date):
        return value.isoformat(), None

    if isinstance(value, Enum):
        return _walk(value.value)

    return value, None


def serialize(value: Any) -> Tuple[Any, Optional[Dict[str, Any]]]:
    """Serialize ``value`` into ``(json, meta)``; ``meta`` is None when nothing needs restoring"""
    json_value, tree = _walk(value)
    if tree is None:
        return json_value, None
    return json_value, {"values": tree}


def _untransform(value: Any, annotation: Any) -> Any:
    if annotation == "Date":
        return _parse_datetime(value)
    if annotation == DECIMAL_TYPE:
        try:
            return Decimal(str(value))
        except InvalidOperation as e:
            raise SerializationError(f"invalid decimal {value!r}") from e
    if annotation == "bigint":
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"invalid bigint {value!r}") from e
    if annotation == "number":
        if value not in ("NaN", "Infinity", "-Infinity"):
            raise SerializationError(f"invalid special number {value!r}")
        return float(value)
    if annotation == "set":
        if not isinstance(value, list):
            raise SerializationError("set annotation on a non-array value")
        try:
            return set(value)
        except TypeError as e:
            raise SerializationError("set contains unhashable values") from e
    if annotation == "undefined":
        return None
    raise SerializationError(f"unsupported type annotation {annotation!r}")


def _apply_tree(value: Any, tree: Any) -> Any:
    if isinstance(tree, dict):
        for path, sub_tree in tree.items():
            value = _apply_at(value, parse_path(path), sub_tree)
        return value
    if not isinstance(tree, list) or not tree or len(tree) > 2:
        raise SerializationError(f"malformed annotation {tree!r}")
    if len(tree) == 2:
        value = _apply_tree(value, tree[1])
    return _untransform(value, tree[0])


def _apply_at(container: Any, segments: List[str], tree: Any) -> Any:
    if not segments:
        return _apply_tree(container, tree)

    head, rest = segments[0], segments[1:]
    if isinstance(container, list):
        try:
            index = int(head)
            container[index] = _apply_at(container[index], rest, tree)
        except (ValueError, IndexError) as e:
            raise SerializationError(f"path segment {head!r} does not address an array item") from e
    elif isinstance(container, dict):
        if head not in container:
            raise SerializationError(f"path segment {head!r} not found")
        container[head] = _apply_at(container[head], rest, tree)
    else:
        raise SerializationError(f"path segment {head!r} addresses a scalar")
    return container


def deserialize(json_value: Any, meta: Optional[Dict[str, Any]]) -> Any:
    """Rebuild rich values from ``json_value`` using serialization ``meta``"""
    if not meta:
        return json_value
    if not isinstance(meta, dict):
        raise SerializationError("serialization metadata must be an object")
    values = meta.get("values")
    if values is None:
        return json_value
    return _apply_tree(json_value, values)
