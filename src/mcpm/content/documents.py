from __future__ import annotations

from datetime import date
from typing import Any, Union

from mcpm.errors import MissingStructureError, ParseError

# A parsed document is a closed recursive tree: scalars, lists, and
# insertion-ordered dicts keyed by scalars. Nothing else survives normalization.
Scalar = Union[None, bool, int, float, str, date]
Node = Union[Scalar, list[Any], dict[Any, Any]]
DocumentPath = tuple[Any, ...]


def is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (bool, int, float, str, date))


def node_kind(value: Any) -> str:
    # bool before int: bool is an int subclass.
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "string"
    if isinstance(value, date):
        return "timestamp"
    if isinstance(value, list):
        return "sequence"
    if isinstance(value, dict):
        return "mapping"
    raise ValueError(f"unsupported document node type: {type(value).__name__}")


def format_path(path: DocumentPath) -> str:
    rendered = ""
    for part in path:
        if isinstance(part, int) and not isinstance(part, bool):
            rendered += f"[{part}]"
        elif rendered:
            rendered += f".{part}"
        else:
            rendered = str(part)
    return rendered or "<root>"


def normalize_node(value: Any, *, path: DocumentPath = ()) -> Node:
    """Rebuild ``value`` as a fresh document tree.

    Containers are always copied, so aliases shared by the YAML loader never
    leak into the result and callers may mutate it freely.
    """
    if is_scalar(value):
        return value
    if isinstance(value, list):
        return [normalize_node(item, path=(*path, index)) for index, item in enumerate(value)]
    if isinstance(value, dict):
        normalized: dict[Any, Any] = {}
        for key, nested_value in value.items():
            if not is_scalar(key):
                raise ParseError(f"{format_path(path)} keys must be scalars")
            normalized[key] = normalize_node(nested_value, path=(*path, key))
        return normalized
    raise ParseError(f"{format_path(path)} contains unsupported value of type {type(value).__name__}")


def normalize_document(value: Any, *, source: str | None = None) -> dict[Any, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ParseError("top-level YAML node must be a mapping", source=source)
    try:
        return normalize_node(value)  # type: ignore[return-value]
    except ParseError as exc:
        raise ParseError(str(exc), source=source) from exc


def ensure_mapping(parent: dict[Any, Any], key: Any, *, field_name: str) -> dict[Any, Any]:
    """Return ``parent[key]`` as a mapping, creating an empty one when absent or null."""
    current = parent.get(key)
    if current is None:
        current = {}
        parent[key] = current
    if not isinstance(current, dict):
        raise MissingStructureError(f"{field_name} must be a mapping, found {node_kind(current)}")
    return current


def ensure_sequence(parent: dict[Any, Any], key: Any, *, field_name: str) -> list[Any]:
    current = parent.get(key)
    if current is None:
        current = []
        parent[key] = current
    if not isinstance(current, list):
        raise MissingStructureError(f"{field_name} must be a list, found {node_kind(current)}")
    return current


def replace_tokens(node: Any, replacements: dict[str, str]) -> Any:
    """Copy of ``node`` with every token substituted inside string keys and values."""
    if isinstance(node, str):
        for token, value in replacements.items():
            node = node.replace(token, value)
        return node
    if isinstance(node, list):
        return [replace_tokens(item, replacements) for item in node]
    if isinstance(node, dict):
        return {replace_tokens(key, replacements): replace_tokens(value, replacements) for key, value in node.items()}
    return node
