from __future__ import annotations

import errno
import os
from pathlib import Path

import pytest

from setup_sandbox.errors import BoundaryError, ConflictError, NotFoundError, ValidationError
from setup_sandbox.testing import create_test_context
from setup_sandbox.tools import create_tools
from setup_sandbox.tools.files import FilesApi


def _files(root: Path) -> FilesApi:
    return create_tools(create_test_context(project_dir=root)).files


def _write(path: Path, text: str = "x") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _snapshot(root: Path) -> list[str]:
    return sorted(p.relative_to(root).as_posix() for p in root.rglob("*"))


def test_write_outside_project_is_rejected_and_nothing_changes(tmp_path: Path) -> None:
    project = tmp_path / "project"
    project.mkdir()
    _write(project / "keep.txt")
    before = _snapshot(tmp_path)

    with pytest.raises(BoundaryError):
        _files(project).write("../../etc/passwd", "x")

    assert _snapshot(tmp_path) == before


def test_write_read_and_lines(tmp_path: Path) -> None:
    files = _files(tmp_path)
    files.write("src/app.txt", "hello")
    assert files.read("src/app.txt") == "hello"

    files.write("notes.md", ["a", "b"])
    assert (tmp_path / "notes.md").read_text(encoding="utf-8") == "a\nb"


def test_write_without_overwrite_conflicts(tmp_path: Path) -> None:
    files = _files(tmp_path)
    files.write("a.txt", "1")
    with pytest.raises(ConflictError):
        files.write("a.txt", "2", overwrite=False)
    assert files.read("a.txt") == "1"


def test_write_rejects_non_text(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        _files(tmp_path).write("a.txt", b"bytes")  # type: ignore[arg-type]
    with pytest.raises(ValidationError):
        _files(tmp_path).write("a.txt", ["ok", 3])  # type: ignore[list-item]


def test_read_missing_is_not_found(tmp_path: Path) -> None:
    with pytest.raises(NotFoundError):
        _files(tmp_path).read("missing.txt")


def test_exists_and_ensure_dirs(tmp_path: Path) -> None:
    files = _files(tmp_path)
    assert files.exists("a/b") is False
    files.ensure_dirs(["a/b", "c"])
    files.ensure_dirs("d")
    assert files.exists("a/b") and files.exists("c") and files.exists("d")
    assert (tmp_path / "a" / "b").is_dir()


def test_copy_file_and_conflict(tmp_path: Path) -> None:
    _write(tmp_path / "src.txt", "data")
    files = _files(tmp_path)
    files.copy("src.txt", "out/dst.txt")
    assert (tmp_path / "out" / "dst.txt").read_text(encoding="utf-8") == "data"

    with pytest.raises(ConflictError):
        files.copy("src.txt", "out/dst.txt")
    files.copy("src.txt", "out/dst.txt", overwrite=True)

    with pytest.raises(NotFoundError):
        files.copy("nope.txt", "x.txt")


def test_copy_directory_filters_housekeeping(tmp_path: Path) -> None:
    _write(tmp_path / "tpl" / "a.txt")
    _write(tmp_path / "tpl" / ".template-undo.json", "{}")
    _write(tmp_path / "tpl" / "node_modules" / "x.js")
    _write(tmp_path / "tpl" / "_setup.py")

    _files(tmp_path).copy("tpl", "out")
    assert _snapshot(tmp_path / "out") == ["a.txt"]


def test_copy_directory_into_itself_is_rejected(tmp_path: Path) -> None:
    _write(tmp_path / "tpl" / "a.txt")
    with pytest.raises(ValidationError):
        _files(tmp_path).copy("tpl", "tpl/inner")


def test_copy_template_dir_requires_directory(tmp_path: Path) -> None:
    _write(tmp_path / "file.txt")
    with pytest.raises(ValidationError):
        _files(tmp_path).copy_template_dir("file.txt", "out")


def test_move_file_and_directory(tmp_path: Path) -> None:
    _write(tmp_path / "a.txt", "A")
    _write(tmp_path / "dir" / "b.txt", "B")
    _write(tmp_path / "dir" / ".DS_Store", "")
    files = _files(tmp_path)

    files.move("a.txt", "moved/a.txt")
    files.move("dir", "moved/dir")

    assert not (tmp_path / "a.txt").exists()
    assert not (tmp_path / "dir").exists()
    assert _snapshot(tmp_path / "moved") == ["a.txt", "dir", "dir/b.txt"]


def test_move_conflict_and_overwrite(tmp_path: Path) -> None:
    _write(tmp_path / "a.txt", "new")
    _write(tmp_path / "b.txt", "old")
    files = _files(tmp_path)
    with pytest.raises(ConflictError):
        files.move("a.txt", "b.txt")
    files.move("a.txt", "b.txt", overwrite=True)
    assert files.read("b.txt") == "new"


def test_move_falls_back_to_copy_across_devices(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _write(tmp_path / "a.txt", "A")
    real_replace = os.replace

    def fake_replace(src, dst):  # type: ignore[no-untyped-def]
        if Path(src).name == "a.txt":
            raise OSError(errno.EXDEV, "Invalid cross-device link")
        return real_replace(src, dst)

    monkeypatch.setattr("setup_sandbox.tools.files.os.replace", fake_replace)
    _files(tmp_path).move("a.txt", "b.txt")

    assert not (tmp_path / "a.txt").exists()
    assert (tmp_path / "b.txt").read_text(encoding="utf-8") == "A"


def test_remove_is_recursive_and_idempotent(tmp_path: Path) -> None:
    _write(tmp_path / "dir" / "x" / "y.txt")
    files = _files(tmp_path)
    files.remove("dir")
    files.remove("dir")
    assert not (tmp_path / "dir").exists()


def test_remove_project_root_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        _files(tmp_path).remove(".")
    assert tmp_path.exists()


def _link_to_data(root: Path) -> None:
    _write(root / "data" / "keep.txt", "keep")
    try:
        (root / "link").symlink_to(root / "data", target_is_directory=True)
    except (OSError, NotImplementedError):
        pytest.skip("symlinks not supported")


def test_remove_symlink_removes_only_the_link(tmp_path: Path) -> None:
    _link_to_data(tmp_path)
    _files(tmp_path).remove("link")

    assert not (tmp_path / "link").is_symlink()
    assert (tmp_path / "data" / "keep.txt").read_text(encoding="utf-8") == "keep"


def test_move_symlink_moves_only_the_link(tmp_path: Path) -> None:
    _link_to_data(tmp_path)
    _files(tmp_path).move("link", "renamed")

    assert not (tmp_path / "link").is_symlink()
    assert (tmp_path / "renamed").is_symlink()
    assert (tmp_path / "data" / "keep.txt").exists()


def test_files_api_is_sealed(tmp_path: Path) -> None:
    files = _files(tmp_path)
    with pytest.raises(AttributeError):
        files._resolver = None  # type: ignore[misc]
    with pytest.raises(AttributeError):
        files.write = None  # type: ignore[method-assign]
    files.write("still.txt", "ok")
    assert (tmp_path / "still.txt").exists()
