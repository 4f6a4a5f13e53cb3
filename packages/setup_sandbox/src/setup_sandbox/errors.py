from __future__ import annotations

import re
from typing import Any

MAX_SANITIZED_MESSAGE_CHARS = 500

_SANITIZE_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"/Users/[^/\s]+"), "/Users/[user]"),
    (re.compile(r"/home/[^/\s]+"), "/home/[user]"),
    (re.compile(r"\\Users\\[^\\\s]+"), r"\\Users\\[user]"),
    (re.compile(r"(?<![\w.])/[^\s'\"]+"), "[path]"),
    (re.compile(r"\b[A-Za-z]:\\[^\s'\"]+"), "[path]"),
    (re.compile(r"\b\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}\b"), "[ip]"),
    (re.compile(r":\d{2,5}\b"), ":[port]"),
    (re.compile(r"\b[A-Fa-f0-9]{32,}\b"), "[token]"),
    (re.compile(r"\b[A-Za-z0-9+/]{20,}={0,2}"), "[token]"),
    (re.compile(r"\$[A-Z_]+"), "$[VAR]"),
    (re.compile(r"(token|key|secret|password)[:\s=]+\S+", re.IGNORECASE), r"\1 [token]"),
)


def sanitize_error_message(error: object) -> str:
    """
    Scrub host-identifying details from foreign error text.

    Used on messages produced outside the sandbox (``OSError``, JSON and YAML parser errors)
    before they are embedded in a :class:`SetupError`. Messages composed by the sandbox itself
    only carry caller-supplied relative paths and labels and are not passed through here.
    """
    if isinstance(error, OSError) and error.strerror:
        message = error.strerror
    else:
        message = str(error)
    for pattern, replacement in _SANITIZE_RULES:
        message = pattern.sub(replacement, message)
    if len(message) > MAX_SANITIZED_MESSAGE_CHARS:
        message = message[: MAX_SANITIZED_MESSAGE_CHARS - 3] + "..."
    return message


class SetupError(Exception):
    kind = "setup"
    default_code = "setup_failed"

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation.strip() if isinstance(operation, str) and operation.strip() else None
        self.code = code.strip() if isinstance(code, str) and code.strip() else self.default_code
        self.details = dict(details) if isinstance(details, dict) else {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "code": self.code,
            "operation": self.operation,
            "message": self.message,
        }


class BoundaryError(SetupError):
    kind = "boundary"
    default_code = "path_outside_project"

    @property
    def requested_path(self) -> str | None:
        value = self.details.get("requested")
        return value if isinstance(value, str) else None

    @property
    def label(self) -> str | None:
        value = self.details.get("label")
        return value if isinstance(value, str) else None


class ValidationError(SetupError):
    kind = "validation"
    default_code = "invalid_input"

    @property
    def field(self) -> str | None:
        value = self.details.get("field")
        return value if isinstance(value, str) else None


class NotFoundError(SetupError):
    kind = "not_found"
    default_code = "not_found"


class ConflictError(SetupError):
    kind = "conflict"
    default_code = "target_exists"


__all__ = [
    "BoundaryError",
    "ConflictError",
    "NotFoundError",
    "SetupError",
    "ValidationError",
    "sanitize_error_message",
]
