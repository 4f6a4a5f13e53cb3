from __future__ import annotations

from typing import Any

import pytest

from setup_sandbox.context import create_context
from setup_sandbox.dimensions import normalize_options, validate_dimensions
from setup_sandbox.errors import ValidationError
from setup_sandbox.tools.options import OptionsApi


def _options(tmp_path, raw: list[str], dimensions: dict[str, Any]) -> OptionsApi:  # type: ignore[no-untyped-def]
    dims = validate_dimensions(dimensions)
    normalized = normalize_options(raw, dims)
    ctx = create_context(
        project_name="demo",
        project_dir=tmp_path,
        options_raw=raw,
        options_by_dimension=normalized.by_dimension,
    )
    return OptionsApi(ctx.options, dims)


DIMENSIONS = {
    "capabilities": {"type": "multi", "values": ["api", "ui", "docs"]},
    "auth": {"type": "single", "values": ["none", "basic"], "default": "none"},
    "db": {"type": "single", "values": ["pg", "sqlite"]},
}


def test_has_checks_catch_all_dimension(tmp_path) -> None:  # type: ignore[no-untyped-def]
    options = _options(tmp_path, ["api", "auth=basic"], DIMENSIONS)
    assert options.has("api")
    assert not options.has("ui")
    assert not options.has("basic")


def test_in_and_dimension_defaults(tmp_path) -> None:  # type: ignore[no-untyped-def]
    options = _options(tmp_path, [], DIMENSIONS)
    assert options.in_("auth", "none")
    assert options.list("auth") == "none"
    assert options.list("db") is None
    assert options.list("capabilities") == []
    assert not options.in_("missing", "x")


def test_list_without_dimension_returns_raw_tokens(tmp_path) -> None:  # type: ignore[no-untyped-def]
    options = _options(tmp_path, ["ui", "api", "auth=basic"], DIMENSIONS)
    assert options.list() == ["ui", "api", "auth=basic"]
    assert options.raw() == ["ui", "api", "auth=basic"]
    assert options.list("capabilities") == ["api", "ui"]
    assert options.dimensions() == {"capabilities": ["api", "ui"], "auth": "basic", "db": None}


def test_require(tmp_path) -> None:  # type: ignore[no-untyped-def]
    options = _options(tmp_path, ["api", "db=pg"], DIMENSIONS)
    options.require("api")
    options.require("db", "pg")

    with pytest.raises(ValidationError) as exc:
        options.require("docs")
    assert exc.value.code == "missing_option"
    with pytest.raises(ValidationError, match='Dimension "db" must include "sqlite"'):
        options.require("db", "sqlite")
    with pytest.raises(ValidationError) as exc:
        options.require("nope", "x")
    assert exc.value.code == "unknown_dimension"


def test_when(tmp_path) -> None:  # type: ignore[no-untyped-def]
    options = _options(tmp_path, ["docs"], DIMENSIONS)
    assert options.when("docs", lambda: "ran") == "ran"
    assert options.when("api", lambda: "ran") is None


def test_without_multi_dimension_has_searches_everything(tmp_path) -> None:  # type: ignore[no-untyped-def]
    options = _options(tmp_path, ["auth=basic", "loose"], {"auth": {"type": "single", "values": ["none", "basic"]}})
    assert options.has("basic")
    assert options.has("loose")
    assert not options.has("none")


def test_returned_lists_are_copies(tmp_path) -> None:  # type: ignore[no-untyped-def]
    options = _options(tmp_path, ["api"], DIMENSIONS)
    options.list("capabilities").append("ui")
    options.list().append("ui")
    assert not options.has("ui")
    assert options.raw() == ["api"]
