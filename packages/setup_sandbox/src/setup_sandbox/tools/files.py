from __future__ import annotations

import errno
import logging
import os
from collections.abc import Sequence
from pathlib import Path

from setup_sandbox.boundary import BoundaryResolver, Sealed
from setup_sandbox.errors import ConflictError, NotFoundError, ValidationError
from setup_sandbox.pathing import (
    atomic_write_text,
    copy_entry,
    ensure_parent_dir,
    is_housekeeping_entry,
    remove_entry,
)
from setup_sandbox.tools._common import normalize_text_input, read_existing_text, translate_os_errors

logger = logging.getLogger(__name__)


def _prune_housekeeping(directory: Path) -> None:
    for entry in list(directory.iterdir()):
        if is_housekeeping_entry(entry.name):
            remove_entry(entry)
        elif entry.is_dir() and not entry.is_symlink():
            _prune_housekeeping(entry)


class FilesApi(Sealed):
    """Project-scoped file operations. Every path is resolved inside the project root first."""

    __slots__ = ("_resolver",)

    def __init__(self, resolver: BoundaryResolver) -> None:
        self._resolver = resolver

    def _not_root(self, absolute: Path, *, operation: str, relative: str) -> None:
        if absolute == self._resolver.root:
            raise ValidationError(
                f"{operation}: {relative} refers to the project root", operation=operation, code="project_root"
            )

    def read(self, path: str) -> str:
        absolute = self._resolver.resolve(path, "files.read")
        return read_existing_text(absolute, operation="files.read", relative=path)

    def write(self, path: str, content: str | Sequence[str], *, overwrite: bool = True) -> None:
        absolute = self._resolver.resolve(path, "files.write")
        self._not_root(absolute, operation="files.write", relative=path)
        text = normalize_text_input(content, "files.write content")
        if not overwrite and absolute.exists():
            raise ConflictError(f"files.write: {path} already exists", operation="files.write")
        with translate_os_errors("files.write", path):
            atomic_write_text(absolute, text)
        logger.debug("files.write %s (%d chars)", path, len(text))

    def exists(self, path: str) -> bool:
        absolute = self._resolver.resolve(path, "files.exists")
        return absolute.exists()

    def ensure_dirs(self, paths: str | Sequence[str]) -> None:
        targets = [paths] if isinstance(paths, str) else list(paths)
        for rel in targets:
            absolute = self._resolver.resolve(rel, "files.ensure_dirs")
            with translate_os_errors("files.ensure_dirs", rel):
                absolute.mkdir(parents=True, exist_ok=True, mode=0o755)

    def _copy(self, src: str, dest: str, *, overwrite: bool, operation: str, require_dir: bool = False) -> None:
        source = self._resolver.resolve(src, f"{operation} source")
        target = self._resolver.resolve(dest, f"{operation} target")
        self._not_root(target, operation=operation, relative=dest)
        if not source.exists():
            raise NotFoundError(f"{operation}: source {src} was not found", operation=operation)
        if require_dir and not source.is_dir():
            raise ValidationError(f"{operation}: source {src} is not a directory", operation=operation)
        if source.is_dir() and (target == source or source in target.parents):
            raise ValidationError(f"{operation}: cannot copy {src} into itself", operation=operation)
        if target.exists():
            if not overwrite:
                raise ConflictError(f"{operation}: target {dest} already exists", operation=operation)
            if source.is_dir() != target.is_dir():
                raise ConflictError(
                    f"{operation}: target {dest} exists with a different type", operation=operation
                )
        with translate_os_errors(operation, src):
            copy_entry(source, target, overwrite=overwrite)

    def copy(self, src: str, dest: str, *, overwrite: bool = False) -> None:
        self._copy(src, dest, overwrite=overwrite, operation="files.copy")

    def copy_template_dir(self, src: str, dest: str, *, overwrite: bool = False) -> None:
        self._copy(src, dest, overwrite=overwrite, operation="files.copy_template_dir", require_dir=True)

    def move(self, src: str, dest: str, *, overwrite: bool = False) -> None:
        source = self._resolver.resolve_entry(src, "files.move source")
        target = self._resolver.resolve_entry(dest, "files.move target")
        self._not_root(source, operation="files.move", relative=src)
        self._not_root(target, operation="files.move", relative=dest)
        if not source.exists() and not source.is_symlink():
            raise NotFoundError(f"files.move: source {src} was not found", operation="files.move")
        if source.is_dir() and source in target.parents:
            raise ValidationError(f"files.move: cannot move {src} into itself", operation="files.move")
        if target.exists() or target.is_symlink():
            if not overwrite:
                raise ConflictError(f"files.move: target {dest} already exists", operation="files.move")
            with translate_os_errors("files.move", dest):
                remove_entry(target)

        with translate_os_errors("files.move", src):
            ensure_parent_dir(target)
            try:
                os.replace(source, target)
            except OSError as e:
                if e.errno != errno.EXDEV:
                    raise
                logger.debug("files.move %s: cross-device rename, copying instead", src)
                copy_entry(source, target, overwrite=True)
                remove_entry(source)
            if target.is_dir() and not target.is_symlink():
                _prune_housekeeping(target)

    def remove(self, path: str) -> None:
        absolute = self._resolver.resolve_entry(path, "files.remove")
        self._not_root(absolute, operation="files.remove", relative=path)
        if not absolute.exists() and not absolute.is_symlink():
            return
        with translate_os_errors("files.remove", path):
            remove_entry(absolute)


__all__ = ["FilesApi"]
