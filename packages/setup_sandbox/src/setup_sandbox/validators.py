from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from setup_sandbox.context import AUTHORING_MODES, DEFAULT_AUTHOR_ASSETS_DIR, DEFAULT_AUTHORING_MODE
from setup_sandbox.errors import ValidationError

MAX_PROJECT_NAME_LENGTH = 100
MAX_AUTHOR_ASSETS_DIR_LENGTH = 80
MAX_OPTION_TOKEN_LENGTH = 200

_PROJECT_NAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")
_AUTHOR_ASSETS_DIR_RE = re.compile(r"^[A-Za-z0-9._-]+$")
_OPTION_TOKEN_RE = re.compile(r"^[a-zA-Z0-9_-]+(?:=[a-zA-Z0-9_-]+(?:\+[a-zA-Z0-9_-]+)*)?$")
_INPUT_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

RESERVED_PROJECT_NAMES: frozenset[str] = frozenset(
    {
        "node_modules",
        "package.json",
        "package-lock.json",
        "yarn.lock",
        "con",
        "prn",
        "aux",
        "nul",
        *(f"com{i}" for i in range(1, 10)),
        *(f"lpt{i}" for i in range(1, 10)),
    }
)


def _invalid(message: str, field: str) -> ValidationError:
    return ValidationError(message, operation="validate", details={"field": field})


def validate_project_name(value: object) -> str:
    if not isinstance(value, str) or not value:
        raise _invalid("Project directory name must be a non-empty string", "projectName")
    if "\0" in value:
        raise _invalid("Project directory name contains null bytes", "projectName")
    trimmed = value.strip()
    if ".." in trimmed or "/" in trimmed or "\\" in trimmed:
        raise _invalid("Project directory name contains path separators or traversal attempts", "projectName")
    if trimmed.startswith("."):
        raise _invalid("Project directory name cannot start with a dot", "projectName")
    if trimmed.lower() in RESERVED_PROJECT_NAMES:
        raise _invalid("Project directory name is reserved and cannot be used", "projectName")
    if not _PROJECT_NAME_RE.match(trimmed):
        raise _invalid(
            "Project directory name contains invalid characters "
            "(use only letters, numbers, hyphens, and underscores)",
            "projectName",
        )
    if len(trimmed) > MAX_PROJECT_NAME_LENGTH:
        raise _invalid(
            f"Project directory name is too long (maximum {MAX_PROJECT_NAME_LENGTH} characters)", "projectName"
        )
    return trimmed


def validate_authoring_mode(value: object) -> str:
    if value is None:
        return DEFAULT_AUTHORING_MODE
    if not isinstance(value, str):
        raise _invalid("setup.authoringMode must be a string", "authoringMode")
    normalized = value.strip().lower()
    if not normalized:
        return DEFAULT_AUTHORING_MODE
    if normalized not in AUTHORING_MODES:
        raise _invalid(f"setup.authoringMode must be one of: {', '.join(AUTHORING_MODES)}", "authoringMode")
    return normalized


def validate_author_assets_dir(value: object) -> str:
    if value is None:
        return DEFAULT_AUTHOR_ASSETS_DIR
    if not isinstance(value, str):
        raise _invalid("setup.authorAssetsDir must be a string", "authorAssetsDir")
    trimmed = value.strip()
    if not trimmed:
        return DEFAULT_AUTHOR_ASSETS_DIR
    if len(trimmed) > MAX_AUTHOR_ASSETS_DIR_LENGTH:
        raise _invalid(
            f"setup.authorAssetsDir must be {MAX_AUTHOR_ASSETS_DIR_LENGTH} characters or fewer", "authorAssetsDir"
        )
    if "/" in trimmed or "\\" in trimmed:
        raise _invalid("setup.authorAssetsDir cannot contain path separators", "authorAssetsDir")
    if trimmed in (".", ".."):
        raise _invalid("setup.authorAssetsDir must name a directory inside the project", "authorAssetsDir")
    if not _AUTHOR_ASSETS_DIR_RE.match(trimmed):
        raise _invalid(
            'setup.authorAssetsDir may contain only letters, numbers, ".", "-", and "_"', "authorAssetsDir"
        )
    return trimmed


def validate_option_tokens(value: object) -> list[str]:
    """Accept a comma-separated string or a list of tokens; returns the trimmed, non-empty tokens."""
    if value is None:
        return []
    if isinstance(value, str):
        if "\0" in value:
            raise _invalid("Options parameter contains null bytes", "options")
        tokens = [t.strip() for t in value.split(",")]
    elif isinstance(value, Sequence):
        tokens = []
        for item in value:
            if not isinstance(item, str):
                raise _invalid("Options parameter must contain only strings", "options")
            if "\0" in item:
                raise _invalid("Options parameter contains null bytes", "options")
            tokens.append(item.strip())
    else:
        raise _invalid("Options parameter must be a string", "options")

    out: list[str] = []
    for token in tokens:
        if not token:
            continue
        if len(token) > MAX_OPTION_TOKEN_LENGTH:
            raise _invalid(
                f'Option token too long: "{token[:40]}...". Maximum {MAX_OPTION_TOKEN_LENGTH} characters allowed',
                "options",
            )
        if not _OPTION_TOKEN_RE.match(token):
            raise _invalid(
                f'Invalid option name: "{token}". Option names must contain only letters, numbers, '
                "hyphens, and underscores",
                "options",
            )
        out.append(token)
    return out


def validate_inputs(value: object) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise _invalid("Inputs must be a mapping of placeholder name to value", "inputs")
    out: dict[str, Any] = {}
    for name, item in value.items():
        if not isinstance(name, str) or not _INPUT_NAME_RE.match(name):
            raise _invalid(f'Input name "{name}" must be an identifier', "inputs")
        if item is not None and not isinstance(item, (str, int, float, bool)):
            raise _invalid(f'Input "{name}" must be a string, number, or boolean', "inputs")
        if isinstance(item, str) and "\0" in item:
            raise _invalid(f'Input "{name}" contains null bytes', "inputs")
        out[name] = item
    return out


__all__ = [
    "MAX_AUTHOR_ASSETS_DIR_LENGTH",
    "MAX_OPTION_TOKEN_LENGTH",
    "MAX_PROJECT_NAME_LENGTH",
    "RESERVED_PROJECT_NAMES",
    "validate_author_assets_dir",
    "validate_authoring_mode",
    "validate_inputs",
    "validate_option_tokens",
    "validate_project_name",
]
