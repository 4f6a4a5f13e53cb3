from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from setup_sandbox.boundary import Sealed
from setup_sandbox.errors import ValidationError


class InputsApi(Sealed):
    """Read-only view over the placeholder values the user supplied."""

    __slots__ = ("_inputs",)

    def __init__(self, inputs: Mapping[str, Any]) -> None:
        self._inputs = inputs

    def get(self, name: str, fallback: Any = None) -> Any:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("inputs.get requires a placeholder token", operation="inputs.get")
        return self._inputs.get(name, fallback)

    def all(self) -> Mapping[str, Any]:
        return self._inputs

    def __contains__(self, name: object) -> bool:
        return name in self._inputs


__all__ = ["InputsApi"]
