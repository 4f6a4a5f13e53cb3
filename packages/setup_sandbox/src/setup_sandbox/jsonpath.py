from __future__ import annotations

import copy
import re
from collections.abc import Mapping
from typing import Any, Union

from setup_sandbox.errors import ConflictError, ValidationError

Segment = Union[str, int]
JsonValue = Any

_PART_RE = re.compile(r"^(?P<key>[^\[\]]+)?(?P<indexes>(?:\[\d+\])*)$")
_INDEX_RE = re.compile(r"\[(\d+)\]")


def parse_json_path(expression: object) -> tuple[Segment, ...]:
    """
    Parse ``a.b[2].c`` into ``("a", "b", 2, "c")``.

    Keys are strings, array indexes are non-negative ints, and the first segment must be a key.
    """
    if not isinstance(expression, str) or not expression.strip():
        raise ValidationError("JSON path must be a non-empty string", operation="json_path")

    segments: list[Segment] = []
    for part in expression.split("."):
        match = _PART_RE.match(part)
        if not part or match is None or (match.group("key") is None and not match.group("indexes")):
            raise ValidationError(
                f'Invalid JSON path segment "{part}" in "{expression}"',
                operation="json_path",
            )
        key = match.group("key")
        if key is not None:
            segments.append(key)
        segments.extend(int(idx) for idx in _INDEX_RE.findall(match.group("indexes")))

    if not segments or not isinstance(segments[0], str):
        raise ValidationError(
            f'JSON path must start with an object property: "{expression}"',
            operation="json_path",
        )
    return tuple(segments)


def format_json_path(segments: tuple[Segment, ...]) -> str:
    out = ""
    for seg in segments:
        if isinstance(seg, int):
            out += f"[{seg}]"
        else:
            out += f".{seg}" if out else seg
    return out


def json_equal(a: JsonValue, b: JsonValue) -> bool:
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a is b
    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(json_equal(a[k], b[k]) for k in a)
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(json_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, (dict, list)) or isinstance(b, (dict, list)):
        return False
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return a == b
    return type(a) is type(b) and a == b


def clone_json(value: JsonValue) -> JsonValue:
    return copy.deepcopy(value)


def deep_merge(target: JsonValue, source: JsonValue) -> JsonValue:
    """Merge mappings recursively; any non-mapping value in ``source`` replaces the target value."""
    if not isinstance(source, Mapping):
        return clone_json(source)
    output: dict[str, Any] = dict(target) if isinstance(target, dict) else {}
    for key, value in source.items():
        existing = output.get(key)
        if isinstance(value, Mapping) and isinstance(existing, dict):
            output[key] = deep_merge(existing, value)
        else:
            output[key] = clone_json(value)
    return output


def _shape_error(*, expected: str, found: JsonValue, segments: tuple[Segment, ...], depth: int) -> ConflictError:
    where = format_json_path(segments[:depth]) or "<root>"
    return ConflictError(
        f"JSON path expected {expected} at {where} but found {_kind(found)}",
        operation="json_path",
        code="json_shape_mismatch",
        details={"path": format_json_path(segments), "at": where},
    )


def _kind(value: JsonValue) -> str:
    if isinstance(value, dict):
        return "an object"
    if isinstance(value, list):
        return "an array"
    if value is None:
        return "null"
    return "a scalar"


def _ensure_size(array: list[Any], index: int) -> None:
    # Holes are kept as null so the array stays sparse-compatible when serialized.
    if len(array) <= index:
        array.extend([None] * (index + 1 - len(array)))


def _check_container(current: JsonValue, seg: Segment, segments: tuple[Segment, ...], depth: int) -> None:
    if isinstance(seg, int) and not isinstance(current, list):
        raise _shape_error(expected="an array", found=current, segments=segments, depth=depth)
    if isinstance(seg, str) and not isinstance(current, dict):
        raise _shape_error(expected="an object", found=current, segments=segments, depth=depth)


def resolve_parent(
    document: JsonValue,
    segments: tuple[Segment, ...],
    *,
    create_missing: bool,
) -> JsonValue | None:
    """
    Walk to the container that holds the last segment.

    With ``create_missing`` set, missing, null and scalar intermediates are replaced by an object or
    array (chosen by whether the following segment is an index). Without it a missing or null
    intermediate returns ``None``. A container of the wrong kind is always an error.
    """
    current = document
    for depth, seg in enumerate(segments[:-1]):
        _check_container(current, seg, segments, depth)
        next_seg = segments[depth + 1]
        if isinstance(seg, int):
            if seg >= len(current):
                if not create_missing:
                    return None
                _ensure_size(current, seg)
            child = current[seg]
        else:
            child = current.get(seg)

        if not isinstance(child, (dict, list)):
            if not create_missing:
                if child is None:
                    return None
                expected = "an array" if isinstance(next_seg, int) else "an object"
                raise _shape_error(expected=expected, found=child, segments=segments, depth=depth + 1)
            child = [] if isinstance(next_seg, int) else {}
            current[seg] = child
        current = child

    _check_container(current, segments[-1], segments, len(segments) - 1)
    return current


def get_at_path(document: JsonValue, segments: tuple[Segment, ...], default: JsonValue = None) -> JsonValue:
    current = document
    for seg in segments:
        if isinstance(seg, int):
            if not isinstance(current, list) or seg >= len(current):
                return default
            current = current[seg]
        else:
            if not isinstance(current, dict) or seg not in current:
                return default
            current = current[seg]
    return current


def set_at_path(document: JsonValue, segments: tuple[Segment, ...], value: JsonValue) -> None:
    parent = resolve_parent(document, segments, create_missing=True)
    key = segments[-1]
    if isinstance(key, int):
        _ensure_size(parent, key)
    parent[key] = clone_json(value)


def remove_at_path(document: JsonValue, segments: tuple[Segment, ...]) -> bool:
    parent = resolve_parent(document, segments, create_missing=False)
    if parent is None:
        return False
    key = segments[-1]
    if isinstance(key, int):
        if key >= len(parent):
            return False
        parent[key] = None
        return True
    if key not in parent:
        return False
    del parent[key]
    return True


def _target_array(document: JsonValue, segments: tuple[Segment, ...]) -> list[Any]:
    parent = resolve_parent(document, segments, create_missing=True)
    key = segments[-1]
    if isinstance(key, int):
        _ensure_size(parent, key)
    existing = parent[key] if isinstance(key, int) else parent.get(key)
    if existing is None:
        existing = []
        parent[key] = existing
    if not isinstance(existing, list):
        raise _shape_error(expected="an array", found=existing, segments=segments, depth=len(segments))
    return existing


def add_to_array_at_path(
    document: JsonValue,
    segments: tuple[Segment, ...],
    value: JsonValue,
    *,
    unique: bool = False,
) -> None:
    array = _target_array(document, segments)
    items = value if isinstance(value, list) else [value]
    for item in items:
        if unique and any(json_equal(existing, item) for existing in array):
            continue
        array.append(clone_json(item))


def merge_array_at_path(
    document: JsonValue,
    segments: tuple[Segment, ...],
    items: JsonValue,
    *,
    merge_key: str | None = None,
    unique: bool = False,
) -> None:
    if not isinstance(items, list):
        raise ValidationError("JSON mergeArray requires an array of items", operation="json.merge_array")
    array = _target_array(document, segments)

    if merge_key:
        for item in items:
            if isinstance(item, dict) and merge_key in item:
                match_index = next(
                    (
                        idx
                        for idx, existing in enumerate(array)
                        if isinstance(existing, dict)
                        and merge_key in existing
                        and json_equal(existing[merge_key], item[merge_key])
                    ),
                    None,
                )
                if match_index is not None:
                    array[match_index] = {**array[match_index], **clone_json(item)}
                    continue
            array.append(clone_json(item))
        return

    for item in items:
        if unique and any(json_equal(existing, item) for existing in array):
            continue
        array.append(clone_json(item))


__all__ = [
    "JsonValue",
    "Segment",
    "add_to_array_at_path",
    "clone_json",
    "deep_merge",
    "format_json_path",
    "get_at_path",
    "json_equal",
    "merge_array_at_path",
    "parse_json_path",
    "remove_at_path",
    "resolve_parent",
    "set_at_path",
]
