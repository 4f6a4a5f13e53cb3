from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

from setup_sandbox.errors import ValidationError

AUTHORING_WYSIWYG = "wysiwyg"
AUTHORING_COMPOSABLE = "composable"
AUTHORING_MODES: tuple[str, ...] = (AUTHORING_WYSIWYG, AUTHORING_COMPOSABLE)

DEFAULT_AUTHORING_MODE = AUTHORING_WYSIWYG
DEFAULT_AUTHOR_ASSETS_DIR = "__scaffold__"


def deep_freeze(value: Any) -> Any:
    """Return a read-only view: mappings become ``MappingProxyType`` and lists/tuples become tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: deep_freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(deep_freeze(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(deep_freeze(v) for v in value)
    return value


def thaw(value: Any) -> Any:
    """Mutable deep copy of a frozen structure (mappings to dicts, tuples to lists)."""
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [thaw(v) for v in value]
    if isinstance(value, frozenset):
        return sorted(thaw(v) for v in value)
    return value


@dataclass(frozen=True)
class OptionsSnapshot:
    raw: tuple[str, ...] = ()
    by_dimension: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True)
class SetupContext:
    project_name: str
    # Plain strings: setup scripts receive this record and must not get filesystem handles.
    project_dir: str
    cwd: str
    authoring_mode: str
    author_assets_dir: str
    inputs: Mapping[str, Any]
    constants: Mapping[str, Any]
    options: OptionsSnapshot


def create_context(
    *,
    project_name: str,
    project_dir: Path | str,
    cwd: Path | str | None = None,
    authoring_mode: str = DEFAULT_AUTHORING_MODE,
    author_assets_dir: str = DEFAULT_AUTHOR_ASSETS_DIR,
    inputs: Mapping[str, Any] | None = None,
    constants: Mapping[str, Any] | None = None,
    options_raw: list[str] | tuple[str, ...] | None = None,
    options_by_dimension: Mapping[str, Any] | None = None,
) -> SetupContext:
    if not isinstance(project_name, str) or not project_name:
        raise ValidationError(
            "projectName is required and must be a non-empty string",
            operation="context",
            details={"field": "projectName"},
        )
    if not project_dir or (isinstance(project_dir, str) and not project_dir.strip()):
        raise ValidationError(
            "projectDir is required and must be a non-empty path",
            operation="context",
            details={"field": "projectDir"},
        )
    if authoring_mode not in AUTHORING_MODES:
        raise ValidationError(
            f"authoring must be 'wysiwyg' or 'composable', got: {authoring_mode}",
            operation="context",
            details={"field": "authoring"},
        )

    return SetupContext(
        project_name=project_name,
        project_dir=str(Path(project_dir).resolve(strict=False)),
        cwd=str(cwd) if cwd is not None else str(Path.cwd()),
        authoring_mode=authoring_mode,
        author_assets_dir=author_assets_dir,
        inputs=deep_freeze(dict(inputs or {})),
        constants=deep_freeze(dict(constants or {})),
        options=OptionsSnapshot(
            raw=tuple(str(t) for t in (options_raw or ())),
            by_dimension=deep_freeze(dict(options_by_dimension or {})),
        ),
    )


__all__ = [
    "AUTHORING_COMPOSABLE",
    "AUTHORING_MODES",
    "AUTHORING_WYSIWYG",
    "DEFAULT_AUTHORING_MODE",
    "DEFAULT_AUTHOR_ASSETS_DIR",
    "OptionsSnapshot",
    "SetupContext",
    "create_context",
    "deep_freeze",
    "thaw",
]
