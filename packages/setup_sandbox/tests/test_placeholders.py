from __future__ import annotations

import pytest

from setup_sandbox.errors import ValidationError
from setup_sandbox.placeholders import (
    apply_replacements,
    extract_placeholders,
    format_placeholder,
    normalize_format,
    stringify_value,
)


def test_normalize_format_accepts_names_and_patterns() -> None:
    assert normalize_format(None) == "unicode"
    assert normalize_format("") == "unicode"
    assert normalize_format("Mustache") == "mustache"
    assert normalize_format("{{NAME}}") == "mustache"
    assert normalize_format("$NAME$") == "dollar"
    with pytest.raises(ValidationError):
        normalize_format("<<NAME>>")
    with pytest.raises(ValidationError):
        normalize_format(3)


@pytest.mark.parametrize(
    ("fmt", "expected"),
    [
        ("unicode", "⦃PROJECT⦄"),
        ("mustache", "{{PROJECT}}"),
        ("dollar", "$PROJECT$"),
        ("percent", "%PROJECT%"),
    ],
)
def test_format_placeholder(fmt: str, expected: str) -> None:
    assert format_placeholder("PROJECT", fmt) == expected


def test_apply_replacements_tolerates_inner_whitespace() -> None:
    text = "name: ⦃ NAME ⦄ / ⦃NAME⦄ / ⦃OTHER⦄"
    assert apply_replacements(text, {"NAME": "app"}) == "name: app / app / ⦃OTHER⦄"


def test_apply_replacements_keeps_backslashes_literal() -> None:
    assert apply_replacements("{{PATH}}", {"PATH": r"C:\new\dir"}, "mustache") == r"C:\new\dir"


def test_extract_placeholders_sorted_unique() -> None:
    text = "{{B}} {{A}} {{B}} {{lower}}"
    assert extract_placeholders(text, "mustache") == ["A", "B"]
    assert extract_placeholders(None) == []


def test_stringify_value() -> None:
    assert stringify_value(True) == "true"
    assert stringify_value(False) == "false"
    assert stringify_value(3) == "3"
    assert stringify_value("x") == "x"
