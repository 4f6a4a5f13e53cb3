from __future__ import annotations

from typing import Any

from jsonschema import Draft202012Validator

_STRING_LIST: dict[str, Any] = {"type": "array", "items": {"type": "string"}}

_SETUP_SCHEMA: dict[str, Any] = {
    "type": ["object", "null"],
    "additionalProperties": False,
    "properties": {
        "authoringMode": {"type": "string"},
        "authorAssetsDir": {"type": "string"},
        "placeholderFormat": {"type": "string"},
        "dimensions": {"type": "object", "additionalProperties": {"type": "object"}},
        "supportedOptions": _STRING_LIST,
        "policy": {"enum": ["strict", "warn"]},
    },
}

# Only the parts of a template manifest the setup sandbox reads; other keys are left alone.
TEMPLATE_MANIFEST_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "setup": _SETUP_SCHEMA,
        "dimensions": {"type": "object", "additionalProperties": {"type": "object"}},
        "supportedOptions": _STRING_LIST,
        "placeholderFormat": {"type": "string"},
        "constants": {"type": ["object", "null"]},
    },
}


def validate_manifest(manifest: Any, schema: dict[str, Any] | None = None) -> list[str]:
    validator = Draft202012Validator(schema or TEMPLATE_MANIFEST_SCHEMA)
    errors = sorted(validator.iter_errors(manifest), key=lambda e: str(e.path))
    formatted: list[str] = []
    for error in errors:
        path = "$"
        for part in error.path:
            path += f"[{part!r}]" if isinstance(part, int) else f".{part}"
        formatted.append(f"{path}: {error.message}")
    return formatted


__all__ = ["TEMPLATE_MANIFEST_SCHEMA", "validate_manifest"]
