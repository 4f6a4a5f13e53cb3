from __future__ import annotations

from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import NewType

from setup_sandbox.audit import SecurityAuditLogger
from setup_sandbox.errors import BoundaryError, ValidationError

ValidatedPath = NewType("ValidatedPath", Path)


def canonical_root(root: Path | str) -> Path:
    if not isinstance(root, (str, Path)):
        raise ValidationError(
            "Project root must be a path",
            operation="project_root",
            details={"field": "projectDir"},
        )
    if isinstance(root, str):
        if not root.strip():
            raise ValidationError(
                "Project root must be a non-empty path",
                operation="project_root",
                details={"field": "projectDir"},
            )
        root = Path(root)
    if not root.is_absolute():
        raise ValidationError(
            "Project root must be an absolute path",
            operation="project_root",
            details={"field": "projectDir"},
        )
    return root.resolve(strict=False)


def _is_absolute_input(raw: str) -> bool:
    if raw.startswith(("/", "\\")):
        return True
    return PurePosixPath(raw).is_absolute() or PureWindowsPath(raw).is_absolute() or bool(
        PureWindowsPath(raw).drive
    )


def _contains(root: Path, target: Path) -> bool:
    return target.is_relative_to(root)


def _has_parent_segment(raw: str) -> bool:
    return any(part == ".." for part in raw.replace("\\", "/").split("/"))


def _violation(
    *,
    audit: SecurityAuditLogger | None,
    relative: object,
    label: str,
    violation_type: str,
    message: str,
) -> BoundaryError:
    requested = relative if isinstance(relative, str) else repr(relative)
    if audit is not None:
        audit.log_boundary_violation(
            {"operation": label, "violation_type": violation_type, "attempted_path": requested}
        )
    return BoundaryError(
        f"{label} {message}",
        operation=label,
        code=violation_type,
        details={"requested": requested, "label": label},
    )


def resolve_project_path(
    root: Path,
    relative: object,
    label: str = "path",
    *,
    audit: SecurityAuditLogger | None = None,
) -> ValidatedPath:
    """
    Resolve ``relative`` against the canonical project ``root``.

    The containment check runs on the canonicalized result (``..`` collapsed and existing
    symlinks followed), so a path that only looks relative cannot escape through a link.
    Inputs that are absolute, contain a ``..`` segment or a null byte are rejected before
    resolution.
    """
    if not isinstance(relative, str) or not relative.strip():
        raise _violation(
            audit=audit,
            relative=relative,
            label=label,
            violation_type="empty",
            message="must be a non-empty string",
        )
    if "\0" in relative:
        raise _violation(
            audit=audit,
            relative=relative,
            label=label,
            violation_type="null_byte",
            message="contains a null byte",
        )
    if _is_absolute_input(relative):
        raise _violation(
            audit=audit,
            relative=relative,
            label=label,
            violation_type="absolute_path",
            message="must be relative to the project directory",
        )
    if _has_parent_segment(relative):
        raise _violation(
            audit=audit,
            relative=relative,
            label=label,
            violation_type="path_traversal",
            message="must stay within the project directory",
        )

    target = (root / relative).resolve(strict=False)
    if not _contains(root, target):
        raise _violation(
            audit=audit,
            relative=relative,
            label=label,
            violation_type="path_traversal",
            message="must stay within the project directory",
        )
    return ValidatedPath(target)


class Sealed:
    """Slotted base whose attributes are bound once, in ``__init__``, and can never be rebound or deleted."""

    __slots__ = ()

    def __setattr__(self, name: str, value: object) -> None:
        try:
            object.__getattribute__(self, name)
        except AttributeError:
            object.__setattr__(self, name, value)
            return
        raise AttributeError(f"{type(self).__name__}.{name} is read-only")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__}.{name} is read-only")


class BoundaryResolver(Sealed):
    """Binds one canonical project root; stateless beyond that and safe to share."""

    __slots__ = ("_root", "_audit")

    def __init__(self, root: Path | str, *, audit: SecurityAuditLogger | None = None) -> None:
        self._root = canonical_root(root)
        self._audit = audit

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, relative: object, label: str = "path") -> ValidatedPath:
        return resolve_project_path(self._root, relative, label, audit=self._audit)

    def resolve_entry(self, relative: object, label: str = "path") -> ValidatedPath:
        """
        Like ``resolve``, but when the final component is a symlink return the link itself.

        Containment is still checked on the fully resolved target. Removing or renaming the
        returned entry then acts on the link rather than on whatever it points to.
        """
        target = self.resolve(relative, label)
        lexical = self._root / str(relative)
        parent = lexical.parent.resolve(strict=False)
        entry = parent / lexical.name
        if _contains(self._root, parent) and entry != self._root and entry.is_symlink():
            return ValidatedPath(entry)
        return target

    def resolve_many(self, paths: list[str] | tuple[str, ...], label: str = "path") -> list[ValidatedPath]:
        return [self.resolve(p, label) for p in paths]

    def is_within(self, relative: object) -> bool:
        try:
            resolve_project_path(self._root, relative, "boundary_check")
        except BoundaryError:
            return False
        return True

    def relative_of(self, validated: Path) -> str:
        if validated == self._root:
            return "."
        return validated.relative_to(self._root).as_posix()


__all__ = [
    "BoundaryResolver",
    "Sealed",
    "ValidatedPath",
    "canonical_root",
    "resolve_project_path",
]
