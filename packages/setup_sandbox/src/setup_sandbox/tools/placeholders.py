from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from setup_sandbox.boundary import BoundaryResolver, Sealed
from setup_sandbox.errors import ValidationError
from setup_sandbox.pathing import DEFAULT_SELECTOR, atomic_write_text, find_matching_files, read_text
from setup_sandbox.placeholders import apply_replacements, stringify_value
from setup_sandbox.tools._common import read_existing_text, translate_os_errors

logger = logging.getLogger(__name__)


def validate_replacements(replacements: object, operation: str) -> dict[str, str]:
    if not isinstance(replacements, Mapping):
        raise ValidationError(f"{operation} replacements must be an object map", operation=operation)
    out: dict[str, str] = {}
    for token, value in replacements.items():
        if not isinstance(token, str) or not token.strip():
            raise ValidationError(f"{operation} replacement tokens must be non-empty strings", operation=operation)
        if not isinstance(value, str):
            raise ValidationError(f'{operation} replacement for "{token}" must be a string', operation=operation)
        out[token] = value
    return out


class PlaceholdersApi(Sealed):
    __slots__ = ("_resolver", "_project_name", "_inputs", "_placeholder_format")

    def __init__(
        self,
        resolver: BoundaryResolver,
        *,
        project_name: str,
        inputs: Mapping[str, Any],
        placeholder_format: str,
    ) -> None:
        self._resolver = resolver
        self._project_name = project_name
        self._inputs = inputs
        self._placeholder_format = placeholder_format

    def _input_replacements(self, extra: Mapping[str, Any] | None, operation: str) -> dict[str, str]:
        if extra is not None and not isinstance(extra, Mapping):
            raise ValidationError(f"{operation} extras must be provided as an object", operation=operation)
        out = {token: stringify_value(value) for token, value in self._inputs.items() if value is not None}
        if "PACKAGE_NAME" not in out and self._project_name:
            out["PACKAGE_NAME"] = self._project_name
        for token, value in (extra or {}).items():
            if value is None:
                continue
            if not isinstance(token, str) or not token.strip():
                raise ValidationError(f"{operation} extras must use string tokens", operation=operation)
            out[token] = stringify_value(value)
        return out

    def _replace_across(self, replacements: dict[str, str], selector: str | Sequence[str] | None) -> int:
        changed = 0
        for match in find_matching_files(self._resolver.root, selector):
            # Walked entries come from the root, but they still go through the resolver.
            absolute = self._resolver.resolve(match.relative, "placeholders")
            try:
                original = read_text(absolute)
            except UnicodeDecodeError:
                logger.debug("placeholders: skipping non-text file %s", match.relative)
                continue
            updated = apply_replacements(original, replacements, self._placeholder_format)
            if updated != original:
                with translate_os_errors("placeholders", match.relative):
                    atomic_write_text(absolute, updated)
                changed += 1
        return changed

    def replace_all(self, replacements: Mapping[str, str], selector: str | Sequence[str] = DEFAULT_SELECTOR) -> int:
        return self._replace_across(validate_replacements(replacements, "placeholders.replace_all"), selector)

    def replace_in_file(self, file: str, replacements: Mapping[str, str]) -> bool:
        clean = validate_replacements(replacements, "placeholders.replace_in_file")
        absolute = self._resolver.resolve(file, "placeholders.replace_in_file")
        original = read_existing_text(absolute, operation="placeholders.replace_in_file", relative=file)
        updated = apply_replacements(original, clean, self._placeholder_format)
        if updated == original:
            return False
        with translate_os_errors("placeholders.replace_in_file", file):
            atomic_write_text(absolute, updated)
        return True

    def apply_inputs(
        self,
        selector: str | Sequence[str] = DEFAULT_SELECTOR,
        extra: Mapping[str, Any] | None = None,
    ) -> int:
        replacements = self._input_replacements(extra, "placeholders.apply_inputs")
        if not replacements:
            return 0
        return self._replace_across(replacements, selector)

    def apply_to_string(self, text: str, extra: Mapping[str, Any] | None = None) -> str:
        if not isinstance(text, str):
            raise ValidationError("placeholders.apply_to_string requires a string", operation="placeholders")
        replacements = self._input_replacements(extra, "placeholders.apply_to_string")
        return apply_replacements(text, replacements, self._placeholder_format)


__all__ = ["PlaceholdersApi", "validate_replacements"]
