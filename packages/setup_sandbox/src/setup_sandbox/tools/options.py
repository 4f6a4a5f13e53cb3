from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from setup_sandbox.boundary import Sealed
from setup_sandbox.context import OptionsSnapshot, thaw
from setup_sandbox.dimensions import DimensionDefinition, catch_all_dimension, selected_values
from setup_sandbox.errors import ValidationError

T = TypeVar("T")


class OptionsApi(Sealed):
    """
    Queries over the user's option selection.

    Single-argument forms (``has(value)``, ``require(value)``) look in the catch-all multi
    dimension (``capabilities``, else the first multi dimension). When the template declares no
    multi dimension they look at the raw tokens and at every dimension's selection instead.
    """

    __slots__ = ("_options", "_dimensions", "_catch_all")

    def __init__(self, options: OptionsSnapshot, dimensions: Mapping[str, DimensionDefinition]) -> None:
        self._options = options
        self._dimensions = dimensions
        self._catch_all = catch_all_dimension(dimensions)

    def _selection(self, dimension: str) -> list[str]:
        return selected_values(self._options.by_dimension.get(dimension))

    def has(self, value: str) -> bool:
        if self._catch_all is not None:
            return value in self._selection(self._catch_all)
        if value in self._options.raw:
            return True
        return any(value in self._selection(name) for name in self._options.by_dimension)

    def in_(self, dimension: str, value: str) -> bool:
        return value in self._selection(dimension)

    def require(self, dimension_or_value: str, value: str | None = None) -> None:
        if value is None:
            if not self.has(dimension_or_value):
                raise ValidationError(
                    f'Option "{dimension_or_value}" is required by this template',
                    operation="options.require",
                    code="missing_option",
                )
            return

        dimension = dimension_or_value
        if dimension not in self._dimensions and dimension not in self._options.by_dimension:
            raise ValidationError(
                f'Unknown dimension "{dimension}"', operation="options.require", code="unknown_dimension"
            )
        if not self.in_(dimension, value):
            raise ValidationError(
                f'Dimension "{dimension}" must include "{value}"',
                operation="options.require",
                code="missing_option",
            )

    def when(self, value: str, fn: Callable[[], T]) -> T | None:
        if not self.has(value):
            return None
        return fn()

    def list(self, dimension: str | None = None) -> Any:
        if dimension is None:
            return list(self._options.raw)
        selection = self._options.by_dimension.get(dimension)
        return thaw(selection)

    def raw(self) -> list[str]:
        return list(self._options.raw)

    def dimensions(self) -> dict[str, Any]:
        return thaw(self._options.by_dimension)


__all__ = ["OptionsApi"]
