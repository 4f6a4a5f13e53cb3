from __future__ import annotations

import ast
import builtins
import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from setup_sandbox.audit import SecurityAuditLogger
from setup_sandbox.errors import SetupError, ValidationError, sanitize_error_message
from setup_sandbox.gate import SetupSession

logger = logging.getLogger(__name__)

SETUP_SCRIPT_NAME = "_setup.py"
SETUP_FUNCTION_NAME = "setup"

FORBIDDEN_CALLS: frozenset[str] = frozenset(
    {
        "eval",
        "exec",
        "compile",
        "open",
        "__import__",
        "globals",
        "locals",
        "vars",
        "getattr",
        "setattr",
        "delattr",
        "breakpoint",
        "input",
    }
)

# Attributes that reach interpreter internals without a dunder name.
FORBIDDEN_ATTRIBUTES: frozenset[str] = frozenset(
    {
        "format",
        "format_map",
        "mro",
        "gi_frame",
        "gi_code",
        "cr_frame",
        "cr_code",
        "ag_frame",
        "ag_code",
        "f_back",
        "f_builtins",
        "f_globals",
        "f_locals",
        "tb_frame",
        "tb_next",
    }
)

SAFE_BUILTIN_NAMES: tuple[str, ...] = (
    "abs",
    "all",
    "any",
    "bool",
    "callable",
    "chr",
    "dict",
    "divmod",
    "enumerate",
    "filter",
    "float",
    "frozenset",
    "int",
    "isinstance",
    "iter",
    "len",
    "list",
    "map",
    "max",
    "min",
    "next",
    "ord",
    "range",
    "repr",
    "reversed",
    "round",
    "set",
    "slice",
    "sorted",
    "str",
    "sum",
    "tuple",
    "zip",
    "Exception",
    "KeyError",
    "LookupError",
    "RuntimeError",
    "TypeError",
    "ValueError",
)


@dataclass(frozen=True)
class SetupOutcome:
    ok: bool
    error: dict[str, Any] | None = None


@dataclass(frozen=True)
class ScriptViolation:
    line: int
    reason: str


class _ScriptChecker(ast.NodeVisitor):
    def __init__(self) -> None:
        self.violations: list[ScriptViolation] = []

    def _flag(self, node: ast.AST, reason: str) -> None:
        self.violations.append(ScriptViolation(line=getattr(node, "lineno", 0), reason=reason))

    def visit_Import(self, node: ast.Import) -> None:
        self._flag(node, "import statements are not allowed")

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        self._flag(node, "import statements are not allowed")

    def visit_Attribute(self, node: ast.Attribute) -> None:
        # Covers dunders as well as the private state of the context and tools.
        if node.attr.startswith("_"):
            self._flag(node, f'access to "{node.attr}" is not allowed')
        elif node.attr in FORBIDDEN_ATTRIBUTES:
            self._flag(node, f'access to "{node.attr}" is not allowed')
        self.generic_visit(node)

    def visit_Name(self, node: ast.Name) -> None:
        if node.id in FORBIDDEN_CALLS or (node.id.startswith("__") and node.id.endswith("__")):
            self._flag(node, f'use of "{node.id}" is not allowed')

    def visit_Global(self, node: ast.Global) -> None:
        self._flag(node, "global statements are not allowed")


def find_script_violations(source: str, *, filename: str = SETUP_SCRIPT_NAME) -> list[ScriptViolation]:
    try:
        tree = ast.parse(source, filename=filename)
    except SyntaxError as e:
        raise ValidationError(
            f"{filename} has a syntax error on line {e.lineno}: {e.msg}",
            operation="setup_script",
            code="syntax_error",
        ) from e
    checker = _ScriptChecker()
    checker.visit(tree)
    return checker.violations


def safe_builtins() -> dict[str, Any]:
    return {name: getattr(builtins, name) for name in SAFE_BUILTIN_NAMES}


def load_setup_function(
    source: str,
    *,
    filename: str = SETUP_SCRIPT_NAME,
    audit: SecurityAuditLogger | None = None,
) -> Callable[..., Any]:
    violations = find_script_violations(source, filename=filename)
    if violations:
        if audit is not None:
            for v in violations:
                audit.log_sandbox_violation({"script": filename, "line": v.line, "reason": v.reason})
        first = violations[0]
        raise ValidationError(
            f"{filename} line {first.line}: {first.reason}",
            operation="setup_script",
            code="sandbox_violation",
            details={"violations": [f"line {v.line}: {v.reason}" for v in violations]},
        )

    namespace: dict[str, Any] = {"__builtins__": safe_builtins(), "__name__": "setup_script"}
    exec(compile(source, filename, "exec"), namespace)  # noqa: S102

    fn = namespace.get(SETUP_FUNCTION_NAME)
    if not callable(fn):
        raise ValidationError(
            f"{filename} must define a {SETUP_FUNCTION_NAME}(ctx, tools) function",
            operation="setup_script",
            code="missing_setup_function",
        )
    return fn


def _as_setup_error(exc: Exception) -> SetupError:
    if isinstance(exc, SetupError):
        return exc
    return SetupError(
        f"{type(exc).__name__}: {sanitize_error_message(exc)}",
        operation="setup_script",
        code="setup_script_failed",
    )


def run_setup_script(script_path: Path, session: SetupSession) -> SetupOutcome:
    """
    Load an author setup script and call its ``setup(ctx, tools)`` exactly once.

    Failures are reported in the outcome instead of raised so the surrounding scaffold step can
    continue. Files the script already wrote are left in place.
    """
    filename = script_path.name
    try:
        source = script_path.read_text(encoding="utf-8")
    except OSError as e:
        err = ValidationError(
            f"Failed to read {filename}: {sanitize_error_message(e)}",
            operation="setup_script",
            code="script_unreadable",
        )
        return SetupOutcome(ok=False, error=err.to_dict())

    try:
        fn = load_setup_function(source, filename=filename, audit=session.audit)
        result = fn(session.context, session.tools)
        if inspect.isawaitable(result):
            if inspect.iscoroutine(result):
                result.close()
            raise ValidationError(
                f"{filename}: async setup functions are not supported",
                operation="setup_script",
                code="async_setup",
            )
    except Exception as e:  # noqa: BLE001
        err = _as_setup_error(e)
        logger.warning("Setup script %s failed: %s", filename, err.message)
        session.audit.log_security_event(
            {"script": filename, "ok": False, "kind": err.kind, "code": err.code}
        )
        return SetupOutcome(ok=False, error=err.to_dict())

    session.audit.log_security_event({"script": filename, "ok": True})
    return SetupOutcome(ok=True)


__all__ = [
    "FORBIDDEN_CALLS",
    "SETUP_SCRIPT_NAME",
    "ScriptViolation",
    "SetupOutcome",
    "find_script_violations",
    "load_setup_function",
    "run_setup_script",
    "safe_builtins",
]
