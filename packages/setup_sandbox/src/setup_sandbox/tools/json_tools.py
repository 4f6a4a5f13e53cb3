from __future__ import annotations

import inspect
import json
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from setup_sandbox.boundary import BoundaryResolver, Sealed
from setup_sandbox.errors import ConflictError, NotFoundError, ValidationError, sanitize_error_message
from setup_sandbox.jsonpath import (
    JsonValue,
    add_to_array_at_path,
    clone_json,
    deep_merge,
    merge_array_at_path,
    parse_json_path,
    remove_at_path,
    set_at_path,
)
from setup_sandbox.pathing import atomic_write_text
from setup_sandbox.tools._common import read_existing_text, translate_os_errors


def dumps_json(data: JsonValue, *, operation: str = "json.write") -> str:
    try:
        return json.dumps(data, indent=2, ensure_ascii=False, allow_nan=False) + "\n"
    except (TypeError, ValueError) as e:
        raise ValidationError(
            f"{operation}: value is not JSON-serializable ({sanitize_error_message(e)})",
            operation=operation,
            code="invalid_json",
        ) from e


class JsonApi(Sealed):
    __slots__ = ("_resolver",)

    def __init__(self, resolver: BoundaryResolver) -> None:
        self._resolver = resolver

    def _load(self, absolute: Path, *, operation: str, relative: str, allow_create: bool) -> JsonValue:
        if not absolute.exists() and allow_create:
            return {}
        if not absolute.exists():
            raise NotFoundError(f"{operation}: JSON file {relative} was not found", operation=operation)
        content = read_existing_text(absolute, operation=operation, relative=relative)
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise ValidationError(
                f"{operation}: {relative} contains invalid JSON ({e.msg} at line {e.lineno})",
                operation=operation,
                code="invalid_json",
            ) from e

    def _store(self, absolute: Path, data: JsonValue, *, operation: str, relative: str) -> None:
        text = dumps_json(data, operation=operation)
        with translate_os_errors(operation, relative):
            atomic_write_text(absolute, text)

    def _edit(
        self,
        file: str,
        operation: str,
        mutate: Callable[[JsonValue], None],
        *,
        allow_create: bool = True,
    ) -> None:
        absolute = self._resolver.resolve(file, operation)
        document = self._load(absolute, operation=operation, relative=file, allow_create=allow_create)
        mutate(document)
        self._store(absolute, document, operation=operation, relative=file)

    def read(self, file: str) -> JsonValue:
        absolute = self._resolver.resolve(file, "json.read")
        return self._load(absolute, operation="json.read", relative=file, allow_create=False)

    def write(self, file: str, data: JsonValue) -> None:
        absolute = self._resolver.resolve(file, "json.write")
        self._store(absolute, data, operation="json.write", relative=file)

    def merge(self, file: str, patch: Mapping[str, Any]) -> None:
        if not isinstance(patch, Mapping):
            raise ValidationError("json.merge requires an object to merge", operation="json.merge")
        absolute = self._resolver.resolve(file, "json.merge")
        current = self._load(absolute, operation="json.merge", relative=file, allow_create=True)
        if not isinstance(current, dict):
            raise ConflictError(
                f"json.merge: {file} does not contain a JSON object at the top level",
                operation="json.merge",
                code="json_shape_mismatch",
            )
        self._store(absolute, deep_merge(current, patch), operation="json.merge", relative=file)

    def update(self, file: str, updater: Callable[[JsonValue], JsonValue | None]) -> None:
        """Hand ``updater`` a deep copy of the document; its return value, if not None, replaces it."""
        if not callable(updater):
            raise ValidationError("json.update requires a callable updater", operation="json.update")
        absolute = self._resolver.resolve(file, "json.update")
        current = self._load(absolute, operation="json.update", relative=file, allow_create=False)
        draft = clone_json(current)
        result = updater(draft)
        if inspect.isawaitable(result):
            if inspect.iscoroutine(result):
                result.close()
            raise ValidationError("json.update updater must not be async", operation="json.update")
        self._store(absolute, draft if result is None else result, operation="json.update", relative=file)

    def set(self, file: str, path: str, value: JsonValue) -> None:
        segments = parse_json_path(path)
        self._edit(file, "json.set", lambda doc: set_at_path(doc, segments, value))

    def remove(self, file: str, path: str) -> None:
        segments = parse_json_path(path)
        self._edit(file, "json.remove", lambda doc: remove_at_path(doc, segments), allow_create=False)

    def add_to_array(self, file: str, path: str, value: JsonValue, *, unique: bool = False) -> None:
        segments = parse_json_path(path)
        self._edit(
            file,
            "json.add_to_array",
            lambda doc: add_to_array_at_path(doc, segments, value, unique=unique),
        )

    def merge_array(
        self,
        file: str,
        path: str,
        items: list[JsonValue],
        key_or_options: str | Mapping[str, Any] | None = None,
        *,
        merge_key: str | None = None,
        unique: bool = False,
    ) -> None:
        if isinstance(key_or_options, str):
            merge_key = merge_key or key_or_options
        elif isinstance(key_or_options, Mapping):
            merge_key = merge_key or key_or_options.get("merge_key") or key_or_options.get("mergeKey")
            unique = unique or bool(key_or_options.get("unique", False))
        elif key_or_options is not None:
            raise ValidationError(
                "json.merge_array options must be a merge key or a mapping", operation="json.merge_array"
            )
        segments = parse_json_path(path)
        self._edit(
            file,
            "json.merge_array",
            lambda doc: merge_array_at_path(doc, segments, items, merge_key=merge_key, unique=unique),
        )


__all__ = ["JsonApi", "dumps_json"]
