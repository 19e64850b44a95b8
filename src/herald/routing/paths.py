"""Recipient path expressions.

A path is a dot-separated list of segments evaluated against an operation
result tree made of mappings, sequences and scalars. A segment written as
``name[]`` descends into the sequence at ``name`` and applies the rest of the
path to every element, flattening the results in element order.

Resolution never raises for missing data: an absent or null node anywhere
along the path yields an empty list.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any, Union

from herald.common.constants import ARRAY_MARKER, ENVELOPE_KEYS, PATH_SEPARATOR

# Result trees: None | bool | int | float | str | Sequence[Value] | Mapping[str, Value]
Value = Union[None, bool, int, float, str, Sequence[Any], Mapping[str, Any]]

_ARRAY_SEGMENT = re.compile(r"^(?P<name>.+)\[\]$")


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _child(node: Value, key: str) -> Value:
    if isinstance(node, Mapping):
        return node.get(key)
    return None


def _clean(value: Any) -> str:
    return str(value).strip()


def _terminal_ids(value: Value) -> list[str]:
    """Normalize the value a path ends on into a list of identifiers."""
    if value is None:
        return []
    if _is_sequence(value):
        ids = (_clean(item) for item in value if item is not None)
        return [item for item in ids if item]
    text = _clean(value)
    return [text] if text else []


def split_path(path: str) -> list[str]:
    """Split a path into its non-empty segments."""
    return [segment for segment in path.split(PATH_SEPARATOR) if segment]


def _resolve_segments(node: Value, segments: list[str]) -> list[str]:
    current = node
    for index, segment in enumerate(segments):
        if current is None:
            return []
        match = _ARRAY_SEGMENT.match(segment)
        if match is None:
            current = _child(current, segment)
            continue

        collection = _child(current, match.group("name"))
        if collection is None:
            return []
        if not _is_sequence(collection):
            # A single value under an array marker acts as a one-element list
            collection = [collection]

        remaining = segments[index + 1:]
        if not remaining:
            return _terminal_ids(collection)

        ids: list[str] = []
        for element in collection:
            ids.extend(_resolve_segments(element, remaining))
        return ids

    return _terminal_ids(current)


def resolve_path(tree: Value, path: str) -> list[str]:
    """Return the ordered recipient ids that ``path`` denotes in ``tree``.

    Duplicates are preserved, nulls and blank strings are dropped and every
    id is stringified and trimmed.
    """
    if not path:
        return []
    return _resolve_segments(tree, split_path(path))


def has_array_marker(path: str) -> bool:
    return ARRAY_MARKER in path


def normalize_path(path: str, envelope_keys: Sequence[str] = ENVELOPE_KEYS) -> str:
    """Rewrite an authored path into its canonical form.

    A bare single key becomes an implicit collection (``"ids"`` becomes
    ``"ids[]"``). A dotted path whose first segment is an envelope wrapper
    key gets the array marker on that segment (``"data.customerId"`` becomes
    ``"data[].customerId"``). Anything else is kept as authored. The rewrite
    is idempotent.
    """
    path = path.strip()
    if not has_array_marker(path) and PATH_SEPARATOR not in path:
        return f"{path}{ARRAY_MARKER}"

    head, separator, rest = path.partition(PATH_SEPARATOR)
    if separator and head in envelope_keys:
        return f"{head}{ARRAY_MARKER}{PATH_SEPARATOR}{rest}"
    return path


def strip_envelope(path: str, envelope_keys: Sequence[str] = ENVELOPE_KEYS) -> str | None:
    """Return ``path`` without a leading envelope segment, or None if it has none."""
    head, separator, rest = path.partition(PATH_SEPARATOR)
    if not separator or not rest:
        return None
    if head in envelope_keys or head.removesuffix(ARRAY_MARKER) in envelope_keys:
        return rest
    return None


__all__ = [
    "Value",
    "resolve_path",
    "normalize_path",
    "strip_envelope",
    "split_path",
    "has_array_marker",
]
