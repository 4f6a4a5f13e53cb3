from __future__ import annotations

import errno
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from setup_sandbox.errors import ConflictError, NotFoundError, SetupError, ValidationError, sanitize_error_message
from setup_sandbox.pathing import read_text


@contextmanager
def translate_os_errors(operation: str, relative: str) -> Iterator[None]:
    """Re-raise filesystem errors as sandbox errors that name only the caller's relative path."""
    try:
        yield
    except SetupError:
        raise
    except FileNotFoundError as e:
        raise NotFoundError(f"{operation}: {relative} was not found", operation=operation) from e
    except (FileExistsError, IsADirectoryError, NotADirectoryError) as e:
        raise ConflictError(
            f"{operation}: {relative} conflicts with an existing entry ({sanitize_error_message(e)})",
            operation=operation,
        ) from e
    except UnicodeDecodeError as e:
        raise ValidationError(
            f"{operation}: {relative} is not valid UTF-8 text", operation=operation, code="not_text"
        ) from e
    except OSError as e:
        code = errno.errorcode.get(e.errno or 0, "io_error").lower()
        raise ValidationError(
            f"{operation}: failed on {relative} ({sanitize_error_message(e)})",
            operation=operation,
            code=code,
        ) from e


def read_existing_text(absolute: Path, *, operation: str, relative: str) -> str:
    if not absolute.exists():
        raise NotFoundError(f"{operation}: {relative} was not found", operation=operation)
    if not absolute.is_file():
        raise ValidationError(f"{operation}: {relative} is not a file", operation=operation, code="not_a_file")
    with translate_os_errors(operation, relative):
        return read_text(absolute)


def normalize_text_input(value: object, label: str) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        for idx, item in enumerate(value):
            if not isinstance(item, str):
                raise ValidationError(f"{label}[{idx}] must be a string", operation=label)
        return "\n".join(value)
    raise ValidationError(f"{label} must be a string or a list of strings", operation=label)


def ensure_trailing_newline(text: str) -> str:
    return text if text.endswith("\n") else text + "\n"


def ensure_leading_newline(text: str) -> str:
    return text if text.startswith("\n") else "\n" + text


def require_non_empty(value: object, label: str) -> str:
    if not isinstance(value, str) or not value:
        raise ValidationError(f"{label} must be a non-empty string", operation=label)
    return value
