from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from setup_sandbox.audit import SecurityAuditLogger
from setup_sandbox.boundary import canonical_root
from setup_sandbox.context import SetupContext, create_context
from setup_sandbox.dimensions import normalize_options, validate_selection
from setup_sandbox.errors import SetupError, ValidationError
from setup_sandbox.manifest import TemplateSetup
from setup_sandbox.tools import SetupTools, create_tools
from setup_sandbox.tools.logger import LogSink
from setup_sandbox.validators import validate_inputs, validate_option_tokens, validate_project_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SetupSession:
    context: SetupContext
    tools: SetupTools
    warnings: tuple[str, ...]
    audit: SecurityAuditLogger


def _collect(errors: list[str], fn: Callable[[Any], Any], value: Any) -> Any:
    try:
        return fn(value)
    except ValidationError as e:
        errors.append(e.message)
        return None


class SecurityGate:
    """
    Single entry point that turns raw scaffold inputs into a ready setup session.

    All raw inputs are validated up front and every problem is reported together. The project
    root is canonicalized once, options are normalized against the template's dimensions, and
    the resulting context and tools are frozen before anything is handed to a setup script.
    """

    def __init__(self, *, audit: SecurityAuditLogger | None = None) -> None:
        self._audit = audit or SecurityAuditLogger()

    @property
    def audit(self) -> SecurityAuditLogger:
        return self._audit

    def open(
        self,
        *,
        project_dir: Path | str,
        project_name: str | None = None,
        template: TemplateSetup | None = None,
        options: str | Sequence[str] | None = None,
        options_by_dimension: Mapping[str, Any] | None = None,
        inputs: Mapping[str, Any] | None = None,
        cwd: Path | str | None = None,
        sink: LogSink | None = None,
    ) -> SetupSession:
        template = template or TemplateSetup()
        errors: list[str] = []

        root: Path | None = _collect(errors, self._project_root, project_dir)
        name_source = project_name if project_name is not None else (root.name if root is not None else None)
        name = _collect(errors, validate_project_name, name_source)
        tokens = _collect(errors, validate_option_tokens, options)
        clean_inputs = _collect(errors, validate_inputs, inputs)

        if errors:
            self._audit.log_validation({"ok": False, "error_count": len(errors)})
            raise ValidationError(
                "Input validation failed:\n" + "\n".join(f"  - {e}" for e in errors),
                operation="gate",
                code="input_validation_failed",
                details={"errors": list(errors)},
            )

        try:
            normalized = normalize_options(tokens, template.dimensions, by_dimension=options_by_dimension)
            validate_selection(normalized.by_dimension, template.dimensions)
        except SetupError as e:
            self._audit.log_validation({"ok": False, "project": name, "stage": "options", "code": e.code})
            raise

        for warning in normalized.warnings:
            logger.warning("%s", warning)

        context = create_context(
            project_name=name,
            project_dir=root,
            cwd=cwd,
            authoring_mode=template.authoring_mode,
            author_assets_dir=template.author_assets_dir,
            inputs=clean_inputs,
            constants=template.constants,
            options_raw=tokens,
            options_by_dimension=normalized.by_dimension,
        )
        tools = create_tools(
            context,
            dimensions=template.dimensions,
            placeholder_format=template.placeholder_format,
            sink=sink,
            audit=self._audit,
        )
        self._audit.log_validation(
            {
                "ok": True,
                "project": name,
                "unknown_options": list(normalized.unknown),
                "warnings": len(normalized.warnings),
            }
        )
        return SetupSession(context=context, tools=tools, warnings=normalized.warnings, audit=self._audit)

    @staticmethod
    def _project_root(project_dir: Path | str) -> Path:
        root = canonical_root(project_dir)
        if not root.is_dir():
            raise ValidationError(
                "Project directory must exist and be a directory",
                operation="gate",
                details={"field": "projectDir"},
            )
        return root


__all__ = ["SecurityGate", "SetupSession"]
