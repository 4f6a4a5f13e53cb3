from __future__ import annotations

import re
from pathlib import Path

import pytest

from setup_sandbox.errors import NotFoundError, ValidationError
from setup_sandbox.testing import create_test_context
from setup_sandbox.tools import create_tools
from setup_sandbox.tools.text import TextApi, insert_after_marker, replace_between_markers


def _text(root: Path) -> TextApi:
    return create_tools(create_test_context(project_dir=root)).text


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _read(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def test_insert_after_marker_does_not_double_newlines() -> None:
    assert (
        insert_after_marker("# Header\n\nrest", marker="# Header\n", block="Body", relative="doc.md")
        == "# Header\nBody\n\nrest"
    )
    assert (
        insert_after_marker("# Header\n\nrest", marker="# Header\n", block="Body\n", relative="doc.md")
        == "# Header\nBody\n\nrest"
    )


def test_insert_after_is_idempotent(tmp_path: Path) -> None:
    _write(tmp_path / "doc.md", "# Header\n\n## Section")
    api = _text(tmp_path)

    api.insert_after("doc.md", marker="# Header", block="Description here")
    once = _read(tmp_path / "doc.md")
    api.insert_after("doc.md", marker="# Header", block="Description here")

    assert _read(tmp_path / "doc.md") == once
    assert once.startswith("# Header\nDescription here\n")
    assert once.count("Description here") == 1
    assert once.endswith("## Section")


def test_insert_after_errors(tmp_path: Path) -> None:
    _write(tmp_path / "doc.md", "# Existing")
    api = _text(tmp_path)
    with pytest.raises(NotFoundError, match="Marker"):
        api.insert_after("doc.md", marker="Nope", block="x")
    with pytest.raises(NotFoundError):
        api.insert_after("missing.md", marker="# Existing", block="x")
    with pytest.raises(ValidationError):
        api.insert_after("doc.md", marker="", block="x")


def test_ensure_block_skips_present_content(tmp_path: Path) -> None:
    _write(tmp_path / "doc.md", "<!-- m -->\nalready here\n")
    api = _text(tmp_path)
    api.ensure_block("doc.md", marker="<!-- m -->", block=["already here"])
    assert _read(tmp_path / "doc.md") == "<!-- m -->\nalready here\n"

    api.ensure_block("doc.md", marker="<!-- m -->", block=["new", "lines"])
    assert "new\nlines" in _read(tmp_path / "doc.md")


def test_replace_between_with_empty_block_leaves_one_newline(tmp_path: Path) -> None:
    _write(tmp_path / "doc.md", "top\n<!--A-->old\nstuff<!--B-->\nbottom\n")
    _text(tmp_path).replace_between("doc.md", start="<!--A-->", end="<!--B-->", block="")
    assert _read(tmp_path / "doc.md") == "top\n<!--A-->\n<!--B-->\nbottom\n"


def test_replace_between_with_block(tmp_path: Path) -> None:
    _write(tmp_path / "doc.md", "# Docs\n\n<!-- START -->\nOld\n<!-- END -->")
    _text(tmp_path).replace_between("doc.md", start="<!-- START -->", end="<!-- END -->", block=["New", "content"])
    assert _read(tmp_path / "doc.md") == "# Docs\n\n<!-- START -->\nNew\ncontent\n<!-- END -->"


def test_replace_between_missing_markers() -> None:
    with pytest.raises(NotFoundError, match="Start marker"):
        replace_between_markers("x", start="<a>", end="<b>", block="", relative="f")
    with pytest.raises(NotFoundError, match="End marker"):
        replace_between_markers("<b><a>", start="<a>", end="<b>", block="", relative="f")


def test_append_lines(tmp_path: Path) -> None:
    api = _text(tmp_path)
    api.append_lines(".gitignore", lines=["node_modules", "dist"])
    assert _read(tmp_path / ".gitignore") == "node_modules\ndist\n"

    _write(tmp_path / "notes.txt", "no newline")
    api.append_lines("notes.txt", lines="more")
    assert _read(tmp_path / "notes.txt") == "no newline\nmore\n"


def test_replace_treats_string_search_literally(tmp_path: Path) -> None:
    _write(tmp_path / "a.txt", "price: $1.00 (approx) and $1.00 again")
    _text(tmp_path).replace("a.txt", search="$1.00 (approx)", replace=r"\1 literal")
    assert _read(tmp_path / "a.txt") == r"price: \1 literal and $1.00 again"


def test_replace_accepts_compiled_pattern(tmp_path: Path) -> None:
    _write(tmp_path / "a.txt", "v1 v2 v3")
    _text(tmp_path).replace("a.txt", search=re.compile(r"v\d"), replace="v")
    assert _read(tmp_path / "a.txt") == "v v v"


def test_replace_ensure_match(tmp_path: Path) -> None:
    _write(tmp_path / "a.txt", "content")
    api = _text(tmp_path)
    api.replace("a.txt", search="absent", replace="x")
    assert _read(tmp_path / "a.txt") == "content"
    with pytest.raises(NotFoundError):
        api.replace("a.txt", search="absent", replace="x", ensure_match=True)
    with pytest.raises(ValidationError):
        api.replace("a.txt", search="", replace="x")
    with pytest.raises(ValidationError):
        api.replace("a.txt", search="content", replace=1)  # type: ignore[arg-type]
