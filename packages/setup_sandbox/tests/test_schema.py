from __future__ import annotations

from setup_sandbox.schema import validate_manifest


def test_valid_manifest_has_no_errors() -> None:
    manifest = {
        "name": "demo",
        "setup": {
            "authoringMode": "composable",
            "dimensions": {"auth": {"type": "single", "values": ["none"]}},
            "policy": "warn",
        },
        "constants": {"org": "acme"},
    }
    assert validate_manifest(manifest) == []
    assert validate_manifest({"setup": None, "constants": None}) == []


def test_errors_are_reported_with_paths() -> None:
    errors = validate_manifest(
        {
            "setup": {"supportedOptions": ["api", 3], "policy": "lenient"},
            "constants": ["not", "a", "map"],
        }
    )
    assert any(e.startswith("$.constants: ") for e in errors)
    assert any(e.startswith("$.setup.policy: ") for e in errors)
    assert any(e.startswith("$.setup.supportedOptions[1]: ") for e in errors)


def test_unknown_setup_key_is_named() -> None:
    errors = validate_manifest({"setup": {"bogus": True}})
    assert len(errors) == 1
    assert "bogus" in errors[0]


def test_custom_schema() -> None:
    assert validate_manifest(5, {"type": "integer"}) == []
    assert validate_manifest("x", {"type": "integer"}) == ["$: 'x' is not of type 'integer'"]
