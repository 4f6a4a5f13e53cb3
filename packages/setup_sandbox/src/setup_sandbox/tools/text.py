from __future__ import annotations

import re
from collections.abc import Sequence

from setup_sandbox.boundary import BoundaryResolver, Sealed
from setup_sandbox.errors import NotFoundError, ValidationError
from setup_sandbox.pathing import atomic_write_text, read_text
from setup_sandbox.tools._common import (
    ensure_leading_newline,
    ensure_trailing_newline,
    normalize_text_input,
    read_existing_text,
    require_non_empty,
    translate_os_errors,
)


def _pad_block(left: str, block: str, right: str) -> str:
    # One newline on each side of the inserted block, never two.
    result = block
    if not left.endswith("\n"):
        result = "\n" + result
    if not right.startswith("\n"):
        result = result + "\n"
    return result


def insert_after_marker(content: str, *, marker: str, block: str, relative: str) -> str:
    if block.strip() in content:
        return content
    index = content.find(marker)
    if index == -1:
        raise NotFoundError(f'Marker "{marker}" not found in {relative}', operation="text.insert_after")
    marker_end = index + len(marker)
    before, after = content[:marker_end], content[marker_end:]
    return before + _pad_block(before, ensure_trailing_newline(block), after) + after


def replace_between_markers(content: str, *, start: str, end: str, block: str, relative: str) -> str:
    start_index = content.find(start)
    if start_index == -1:
        raise NotFoundError(f'Start marker "{start}" not found in {relative}', operation="text.replace_between")
    start_end = start_index + len(start)
    end_index = content.find(end, start_end)
    if end_index == -1:
        raise NotFoundError(f'End marker "{end}" not found in {relative}', operation="text.replace_between")
    # An empty block still leaves a newline so the markers never fuse.
    replacement = ensure_trailing_newline(ensure_leading_newline(block)) if block else "\n"
    return content[:start_end] + replacement + content[end_index:]


class TextApi(Sealed):
    __slots__ = ("_resolver",)

    def __init__(self, resolver: BoundaryResolver) -> None:
        self._resolver = resolver

    def _rewrite(self, file: str, operation: str, updated: str, original: str) -> None:
        if updated == original:
            return
        absolute = self._resolver.resolve(file, operation)
        with translate_os_errors(operation, file):
            atomic_write_text(absolute, updated)

    def _read(self, file: str, operation: str) -> str:
        absolute = self._resolver.resolve(file, operation)
        return read_existing_text(absolute, operation=operation, relative=file)

    def insert_after(self, file: str, *, marker: str, block: str | Sequence[str]) -> None:
        require_non_empty(marker, "text.insert_after marker")
        content = self._read(file, "text.insert_after")
        text = normalize_text_input(block, "text.insert_after block")
        updated = insert_after_marker(content, marker=marker, block=text, relative=file)
        self._rewrite(file, "text.insert_after", updated, content)

    def ensure_block(self, file: str, *, marker: str, block: str | Sequence[str]) -> None:
        content = self._read(file, "text.ensure_block")
        text = normalize_text_input(block, "text.ensure_block block")
        if text.strip() in content:
            return
        self.insert_after(file, marker=marker, block=text)

    def replace_between(self, file: str, *, start: str, end: str, block: str | Sequence[str]) -> None:
        require_non_empty(start, "text.replace_between start")
        require_non_empty(end, "text.replace_between end")
        content = self._read(file, "text.replace_between")
        text = normalize_text_input(block, "text.replace_between block")
        updated = replace_between_markers(content, start=start, end=end, block=text, relative=file)
        self._rewrite(file, "text.replace_between", updated, content)

    def append_lines(self, file: str, *, lines: str | Sequence[str]) -> None:
        absolute = self._resolver.resolve(file, "text.append_lines")
        content = ""
        if absolute.exists():
            with translate_os_errors("text.append_lines", file):
                content = read_text(absolute)
        block = ensure_trailing_newline(normalize_text_input(lines, "text.append_lines lines"))
        if content and not content.endswith("\n"):
            content += "\n"
        with translate_os_errors("text.append_lines", file):
            atomic_write_text(absolute, content + block)

    def replace(
        self,
        file: str,
        *,
        search: str | re.Pattern[str],
        replace: str,
        ensure_match: bool = False,
    ) -> None:
        if not isinstance(replace, str):
            raise ValidationError("text.replace requires the replacement value to be a string", operation="text.replace")
        if isinstance(search, str):
            if not search:
                raise ValidationError("text.replace search must be a non-empty string", operation="text.replace")
            pattern = re.compile(re.escape(search))
        elif isinstance(search, re.Pattern):
            pattern = search
        else:
            raise ValidationError(
                "text.replace requires search to be a string or compiled pattern", operation="text.replace"
            )
        content = self._read(file, "text.replace")
        updated, count = pattern.subn(lambda _m: replace, content)
        if count == 0:
            if ensure_match:
                raise NotFoundError(f"text.replace could not find a match in {file}", operation="text.replace")
            return
        self._rewrite(file, "text.replace", updated, content)


__all__ = ["TextApi", "insert_after_marker", "replace_between_markers"]
