from __future__ import annotations

import os
import re
import shutil
import tempfile
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path

UTF8 = "utf-8"
DEFAULT_SELECTOR = "**/*"

HOUSEKEEPING_ENTRIES: frozenset[str] = frozenset(
    {
        ".template-undo.json",
        ".git",
        "node_modules",
        ".DS_Store",
        "__pycache__",
        "_setup.py",
        "_setup.mjs",
    }
)


def is_housekeeping_entry(name: str) -> bool:
    return name in HOUSEKEEPING_ENTRIES


@dataclass(frozen=True)
class WalkedFile:
    absolute: Path
    relative: str


def iter_project_files(root: Path, directory: Path | None = None) -> Iterator[WalkedFile]:
    """Yield regular files under ``directory`` (default ``root``), skipping housekeeping entries."""
    start = directory or root
    for entry in sorted(start.iterdir(), key=lambda p: p.name):
        if is_housekeeping_entry(entry.name):
            continue
        if entry.is_symlink():
            continue
        if entry.is_dir():
            yield from iter_project_files(root, entry)
        elif entry.is_file():
            yield WalkedFile(absolute=entry, relative=entry.relative_to(root).as_posix())


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    normalized = pattern.replace("\\", "/")
    out: list[str] = []
    i = 0
    while i < len(normalized):
        ch = normalized[i]
        if ch == "*":
            if normalized[i + 1 : i + 2] == "*":
                if normalized[i + 2 : i + 3] == "/":
                    out.append("(?:[^/]+/)*")
                    i += 3
                    continue
                out.append(".*")
                i += 2
                continue
            out.append("[^/]*")
            i += 1
            continue
        if ch == "?":
            out.append("[^/]")
            i += 1
            continue
        if ch == "{":
            end = normalized.find("}", i)
            if end != -1:
                alternatives = normalized[i + 1 : end].split(",")
                out.append("(?:" + "|".join(re.escape(a) for a in alternatives) + ")")
                i = end + 1
                continue
        out.append(re.escape(ch))
        i += 1
    return re.compile("^" + "".join(out) + "$")


def normalize_selector(selector: str | Sequence[str] | None) -> list[str]:
    if selector is None:
        return [DEFAULT_SELECTOR]
    if isinstance(selector, str):
        return [selector.strip() or DEFAULT_SELECTOR]
    patterns = [s.strip() for s in selector if isinstance(s, str) and s.strip()]
    return patterns or [DEFAULT_SELECTOR]


def find_matching_files(root: Path, selector: str | Sequence[str] | None) -> list[WalkedFile]:
    matchers = [glob_to_regex(p) for p in normalize_selector(selector)]
    return [f for f in iter_project_files(root) if any(m.match(f.relative) for m in matchers)]


def ensure_parent_dir(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True, mode=0o755)


def atomic_write_text(path: Path, content: str) -> None:
    """Write ``content`` to a sibling temp file and swap it into place."""
    ensure_parent_dir(path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding=UTF8, newline="") as f:
            f.write(content)
        if path.exists():
            shutil.copymode(path, tmp_path)
        else:
            tmp_path.chmod(0o644)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            if tmp_path.exists():
                tmp_path.unlink()
        except OSError:
            pass
        raise


def read_text(path: Path) -> str:
    with path.open("r", encoding=UTF8, newline="") as f:
        return f.read()


def _ignore_housekeeping(_directory: str, names: list[str]) -> set[str]:
    return {name for name in names if is_housekeeping_entry(name)}


def copy_entry(src: Path, dest: Path, *, overwrite: bool) -> None:
    """Copy a file or directory tree, skipping housekeeping entries at every level."""
    ensure_parent_dir(dest)
    if src.is_dir():
        shutil.copytree(src, dest, ignore=_ignore_housekeeping, dirs_exist_ok=overwrite, symlinks=True)
        return
    shutil.copy2(src, dest)


def remove_entry(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


__all__ = [
    "DEFAULT_SELECTOR",
    "HOUSEKEEPING_ENTRIES",
    "UTF8",
    "WalkedFile",
    "atomic_write_text",
    "copy_entry",
    "ensure_parent_dir",
    "find_matching_files",
    "glob_to_regex",
    "is_housekeeping_entry",
    "iter_project_files",
    "normalize_selector",
    "read_text",
    "remove_entry",
]
