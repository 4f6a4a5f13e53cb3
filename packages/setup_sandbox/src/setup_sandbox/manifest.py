from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from setup_sandbox.context import DEFAULT_AUTHOR_ASSETS_DIR, DEFAULT_AUTHORING_MODE, deep_freeze
from setup_sandbox.dimensions import (
    DEFAULT_MULTI_DIMENSION,
    DimensionDefinition,
    validate_dimensions,
)
from setup_sandbox.errors import ValidationError, sanitize_error_message
from setup_sandbox.placeholders import DEFAULT_PLACEHOLDER_FORMAT, normalize_format
from setup_sandbox.schema import validate_manifest
from setup_sandbox.validators import validate_author_assets_dir, validate_authoring_mode

MANIFEST_FILENAMES: tuple[str, ...] = ("template.json", "template.yaml", "template.yml")


@dataclass(frozen=True)
class TemplateSetup:
    authoring_mode: str = DEFAULT_AUTHORING_MODE
    author_assets_dir: str = DEFAULT_AUTHOR_ASSETS_DIR
    placeholder_format: str = DEFAULT_PLACEHOLDER_FORMAT
    dimensions: Mapping[str, DimensionDefinition] = field(default_factory=lambda: MappingProxyType({}))
    constants: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    source_path: Path | None = None


def find_manifest(template_dir: Path) -> Path | None:
    for name in MANIFEST_FILENAMES:
        candidate = template_dir / name
        if candidate.is_file():
            return candidate
    return None


def _load_manifest_mapping(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ValidationError(
            f"Failed to read {path.name}: {sanitize_error_message(e)}",
            operation="manifest",
            code="manifest_unreadable",
        ) from e
    except yaml.YAMLError as e:
        raise ValidationError(
            f"{path.name} contains invalid data: {sanitize_error_message(e)}",
            operation="manifest",
            code="manifest_invalid",
        ) from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValidationError(
            f"Expected a mapping in {path.name}, got {type(raw).__name__}.",
            operation="manifest",
            code="manifest_invalid",
        )
    return raw


def _ensure_valid_shape(data: Mapping[str, Any], *, path: Path) -> None:
    errors = validate_manifest(dict(data))
    if not errors:
        return
    raise ValidationError(
        f"{path.name} failed validation:\n" + "\n".join(f"  - {e}" for e in errors),
        operation="manifest",
        code="manifest_invalid",
        details={"errors": errors},
    )


def parse_template_setup(data: Mapping[str, Any], *, path: Path) -> TemplateSetup:
    _ensure_valid_shape(data, path=path)
    setup = data.get("setup") or {}

    raw_dimensions = setup.get("dimensions", data.get("dimensions"))
    supported = setup.get("supportedOptions", data.get("supportedOptions"))
    if not raw_dimensions and supported:
        raw_dimensions = {
            DEFAULT_MULTI_DIMENSION: {
                "type": "multi",
                "values": list(supported),
                "policy": setup.get("policy", "strict"),
            }
        }

    return TemplateSetup(
        authoring_mode=validate_authoring_mode(setup.get("authoringMode")),
        author_assets_dir=validate_author_assets_dir(setup.get("authorAssetsDir")),
        placeholder_format=normalize_format(setup.get("placeholderFormat", data.get("placeholderFormat"))),
        dimensions=MappingProxyType(validate_dimensions(raw_dimensions)),
        constants=deep_freeze(dict(data.get("constants") or {})),
        source_path=path,
    )


def load_template_setup(template_dir: Path) -> TemplateSetup:
    """Load setup metadata from the template's manifest; a template without one gets the defaults."""
    path = find_manifest(template_dir)
    if path is None:
        return TemplateSetup()
    return parse_template_setup(_load_manifest_mapping(path), path=path)


__all__ = [
    "MANIFEST_FILENAMES",
    "TemplateSetup",
    "find_manifest",
    "load_template_setup",
    "parse_template_setup",
]
