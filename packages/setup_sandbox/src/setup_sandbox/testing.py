"""Test-only helpers for exercising setup scripts without a real scaffold run.

``create_test_context`` fills in sensible defaults so a test only has to name the fields it
cares about. The loggers implement the info/warn sink shape accepted by the ``logger`` tool.
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from types import MappingProxyType
from typing import Any

from setup_sandbox.context import (
    DEFAULT_AUTHOR_ASSETS_DIR,
    DEFAULT_AUTHORING_MODE,
    SetupContext,
    create_context,
)

__all__ = [
    "TEST_DEFAULTS",
    "RecordingLogger",
    "SilentLogger",
    "create_test_context",
]

TEST_DEFAULTS: MappingProxyType[str, Any] = MappingProxyType(
    {
        "project_name": "test-project",
        "project_dir": Path(tempfile.gettempdir()) / "test-project",
        "authoring_mode": DEFAULT_AUTHORING_MODE,
        "author_assets_dir": DEFAULT_AUTHOR_ASSETS_DIR,
    }
)


def create_test_context(**overrides: Any) -> SetupContext:
    return create_context(
        project_name=overrides.get("project_name", TEST_DEFAULTS["project_name"]),
        project_dir=overrides.get("project_dir", TEST_DEFAULTS["project_dir"]),
        cwd=overrides.get("cwd"),
        authoring_mode=overrides.get("authoring_mode", TEST_DEFAULTS["authoring_mode"]),
        author_assets_dir=overrides.get("author_assets_dir", TEST_DEFAULTS["author_assets_dir"]),
        inputs=overrides.get("inputs"),
        constants=overrides.get("constants"),
        options_raw=overrides.get("options_raw"),
        options_by_dimension=overrides.get("options_by_dimension"),
    )


class RecordingLogger:
    def __init__(self) -> None:
        self.info_calls: list[str] = []
        self.warn_calls: list[str] = []

    def info(self, msg: str) -> None:
        self.info_calls.append(msg)

    def warn(self, msg: str) -> None:
        self.warn_calls.append(msg)


class SilentLogger:
    def info(self, msg: str) -> None:
        pass

    def warn(self, msg: str) -> None:
        pass
