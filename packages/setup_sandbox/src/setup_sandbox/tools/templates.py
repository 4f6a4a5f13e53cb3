from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from setup_sandbox.boundary import BoundaryResolver, Sealed, ValidatedPath
from setup_sandbox.errors import ConflictError, NotFoundError, ValidationError
from setup_sandbox.pathing import atomic_write_text, copy_entry
from setup_sandbox.placeholders import apply_replacements, stringify_value
from setup_sandbox.tools._common import read_existing_text, require_non_empty, translate_os_errors


def _render_data(data: Mapping[str, Any] | None, operation: str) -> dict[str, str]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValidationError(f"{operation} data must be a mapping", operation=operation)
    return {str(k): stringify_value(v) for k, v in data.items() if v is not None}


class TemplatesApi(Sealed):
    """Renders author assets that live in ``<project>/<author_assets_dir>/``."""

    __slots__ = ("_resolver", "_assets_dir", "_placeholder_format")

    def __init__(self, resolver: BoundaryResolver, *, assets_dir: str, placeholder_format: str) -> None:
        self._resolver = resolver
        self._assets_dir = assets_dir
        self._placeholder_format = placeholder_format

    def _asset(self, source: str, operation: str) -> ValidatedPath:
        require_non_empty(source, f"{operation} source")
        return self._resolver.resolve(f"{self._assets_dir}/{source}", f"{operation} source")

    def render_string(self, template: str, data: Mapping[str, Any] | None = None) -> str:
        if not isinstance(template, str):
            raise ValidationError("templates.render_string requires a string template", operation="templates.render_string")
        return apply_replacements(
            template, _render_data(data, "templates.render_string"), self._placeholder_format
        )

    def render_file(self, source: str, target: str, data: Mapping[str, Any] | None = None) -> None:
        asset = self._asset(source, "templates.render_file")
        destination = self._resolver.resolve(target, "templates.render_file target")
        content = read_existing_text(asset, operation="templates.render_file", relative=source)
        rendered = apply_replacements(
            content, _render_data(data, "templates.render_file"), self._placeholder_format
        )
        with translate_os_errors("templates.render_file", target):
            atomic_write_text(destination, rendered)

    def copy(self, source: str, target: str, *, overwrite: bool = False) -> None:
        asset = self._asset(source, "templates.copy")
        destination = self._resolver.resolve(target, "templates.copy target")
        if not asset.exists():
            raise NotFoundError(f"templates.copy: asset {source} was not found", operation="templates.copy")
        if destination.exists() and not overwrite:
            raise ConflictError(f"templates.copy: target {target} already exists", operation="templates.copy")
        with translate_os_errors("templates.copy", source):
            copy_entry(asset, destination, overwrite=overwrite)


__all__ = ["TemplatesApi"]
