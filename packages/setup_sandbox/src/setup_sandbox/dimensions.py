from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from setup_sandbox.errors import ValidationError

KIND_SINGLE = "single"
KIND_MULTI = "multi"
POLICY_STRICT = "strict"
POLICY_WARN = "warn"
DEFAULT_MULTI_DIMENSION = "capabilities"

DIMENSION_NAME_RE = re.compile(r"^[a-z][a-z0-9_-]{0,49}$")
DIMENSION_VALUE_RE = re.compile(r"^[A-Za-z0-9_-]+$")
MAX_VALUE_LENGTH = 50

_ALLOWED_DIMENSION_KEYS: frozenset[str] = frozenset(
    {"type", "values", "default", "requires", "conflicts", "policy", "description"}
)

Selection = Union[str, list[str], None]


@dataclass(frozen=True)
class DimensionDefinition:
    name: str
    kind: str
    values: tuple[str, ...]
    default: str | tuple[str, ...] | None = None
    requires: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    conflicts: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    policy: str = POLICY_STRICT
    description: str | None = None

    @property
    def is_multi(self) -> bool:
        return self.kind == KIND_MULTI

    def default_selection(self) -> Selection:
        if self.is_multi:
            return sorted(self.default or ())
        return self.default if isinstance(self.default, str) else None


@dataclass(frozen=True)
class NormalizedOptions:
    by_dimension: dict[str, Any]
    warnings: tuple[str, ...] = ()
    unknown: tuple[str, ...] = ()


def _dimension_error(name: str, message: str, *, code: str = "invalid_dimension") -> ValidationError:
    return ValidationError(message, operation="dimensions", code=code, details={"field": f"dimensions.{name}"})


def _parse_values(name: str, raw: Any) -> tuple[str, ...]:
    if not isinstance(raw, list) or not raw:
        raise _dimension_error(name, f'Dimension "{name}" must declare a non-empty "values" list')
    seen: list[str] = []
    for idx, value in enumerate(raw):
        if not isinstance(value, str) or not value:
            raise _dimension_error(name, f'Dimension "{name}" values[{idx}] must be a non-empty string')
        if len(value) > MAX_VALUE_LENGTH:
            raise _dimension_error(
                name, f'Dimension "{name}" value "{value[:MAX_VALUE_LENGTH]}..." exceeds {MAX_VALUE_LENGTH} characters'
            )
        if not DIMENSION_VALUE_RE.match(value):
            raise _dimension_error(
                name,
                f'Dimension "{name}" value "{value}" may only contain letters, numbers, hyphens, and underscores',
            )
        if value not in seen:
            seen.append(value)
    return tuple(seen)


def _parse_default(name: str, kind: str, raw: Any, values: tuple[str, ...]) -> str | tuple[str, ...] | None:
    if raw is None:
        return None
    if kind == KIND_SINGLE:
        if not isinstance(raw, str):
            raise _dimension_error(name, f'Dimension "{name}" default must be a single value')
        if raw not in values:
            raise _dimension_error(name, f'Dimension "{name}" default "{raw}" is not one of its values')
        return raw
    if not isinstance(raw, list):
        raise _dimension_error(name, f'Dimension "{name}" default must be a list of values')
    out: list[str] = []
    for value in raw:
        if not isinstance(value, str) or value not in values:
            raise _dimension_error(name, f'Dimension "{name}" default "{value}" is not one of its values')
        if value not in out:
            out.append(value)
    return tuple(out)


def _parse_relation(
    name: str,
    relation: str,
    raw: Any,
    *,
    own_values: tuple[str, ...],
    known_values: frozenset[str],
) -> dict[str, tuple[str, ...]]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise _dimension_error(name, f'Dimension "{name}" {relation} must be a mapping of value to list')
    out: dict[str, tuple[str, ...]] = {}
    for value, targets in raw.items():
        if value not in own_values:
            raise _dimension_error(name, f'Dimension "{name}" {relation} references unknown value "{value}"')
        if not isinstance(targets, list) or not targets:
            raise _dimension_error(name, f'Dimension "{name}" {relation}.{value} must be a non-empty list')
        for target in targets:
            if not isinstance(target, str) or target not in known_values:
                raise _dimension_error(
                    name, f'Dimension "{name}" {relation}.{value} references unknown value "{target}"'
                )
            if relation == "conflicts" and target == value:
                raise _dimension_error(name, f'Dimension "{name}" value "{value}" cannot conflict with itself')
        out[value] = tuple(dict.fromkeys(targets))
    return out


def validate_dimensions(raw: Mapping[str, Any] | None) -> dict[str, DimensionDefinition]:
    """
    Validate template-declared dimensions once at load time.

    ``requires``/``conflicts`` targets may name a value declared by any dimension, since a choice in
    one dimension commonly depends on a capability selected in another.
    """
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ValidationError("Dimensions must be a mapping", operation="dimensions", code="invalid_dimension")

    parsed: dict[str, tuple[str, tuple[str, ...], Mapping[str, Any]]] = {}
    for name, spec in raw.items():
        if not isinstance(name, str) or not DIMENSION_NAME_RE.match(name):
            raise _dimension_error(
                str(name),
                f'Dimension name "{name}" must start with a lowercase letter and contain only '
                "lowercase letters, numbers, hyphens, and underscores (max 50 chars)",
            )
        if not isinstance(spec, Mapping):
            raise _dimension_error(name, f'Dimension "{name}" must be a mapping')
        unknown = set(spec) - _ALLOWED_DIMENSION_KEYS
        if unknown:
            unknown_list = ", ".join(sorted(str(k) for k in unknown))
            raise _dimension_error(name, f'Dimension "{name}" has unknown keys: {unknown_list}')
        kind = spec.get("type", KIND_MULTI)
        if kind not in (KIND_SINGLE, KIND_MULTI):
            raise _dimension_error(name, f'Dimension "{name}" type must be "single" or "multi"')
        parsed[name] = (kind, _parse_values(name, spec.get("values")), spec)

    known_values = frozenset(v for _kind, values, _spec in parsed.values() for v in values)

    out: dict[str, DimensionDefinition] = {}
    for name, (kind, values, spec) in parsed.items():
        policy = spec.get("policy", POLICY_STRICT)
        if policy not in (POLICY_STRICT, POLICY_WARN):
            raise _dimension_error(name, f'Dimension "{name}" policy must be "strict" or "warn"')
        description = spec.get("description")
        if description is not None and not isinstance(description, str):
            raise _dimension_error(name, f'Dimension "{name}" description must be a string')
        out[name] = DimensionDefinition(
            name=name,
            kind=kind,
            values=values,
            default=_parse_default(name, kind, spec.get("default"), values),
            requires=_parse_relation(
                name, "requires", spec.get("requires"), own_values=values, known_values=known_values
            ),
            conflicts=_parse_relation(
                name, "conflicts", spec.get("conflicts"), own_values=values, known_values=known_values
            ),
            policy=policy,
            description=description,
        )
    return out


def catch_all_dimension(dimensions: Mapping[str, DimensionDefinition]) -> str | None:
    """The multi dimension that receives bare tokens: ``capabilities`` if declared, else the first multi."""
    preferred = dimensions.get(DEFAULT_MULTI_DIMENSION)
    if preferred is not None and preferred.is_multi:
        return DEFAULT_MULTI_DIMENSION
    return next((name for name, dim in dimensions.items() if dim.is_multi), None)


def _split_values(token: str, name: str, value_part: str) -> list[str]:
    values = [v.strip() for v in value_part.split("+") if v.strip()]
    if not values:
        raise ValidationError(
            f'Option "{name}=" is missing a value',
            operation="options",
            code="invalid_option",
            details={"token": token},
        )
    return values


def normalize_options(
    raw_tokens: Iterable[str] | None,
    dimensions: Mapping[str, DimensionDefinition] | None,
    *,
    by_dimension: Mapping[str, Any] | None = None,
) -> NormalizedOptions:
    """
    Resolve raw option tokens (``dim=a+b`` or bare ``value``) into per-dimension selections.

    ``by_dimension`` carries selections already grouped by the caller; declared entries are coerced
    to the dimension's kind and undeclared entries pass through unchanged.
    """
    dimensions = dimensions or {}
    catch_all = catch_all_dimension(dimensions)

    collected: dict[str, list[str]] = {}
    warnings: list[str] = []
    unknown: list[str] = []

    def accept(token: str, dim: DimensionDefinition, value: str) -> None:
        if value not in dim.values:
            if dim.policy == POLICY_WARN:
                warnings.append(
                    f'Dimension "{dim.name}" does not list value "{value}", but policy is "warn" so continuing.'
                )
            else:
                unknown.append(token)
                return
        bucket = collected.setdefault(dim.name, [])
        if value not in bucket:
            bucket.append(value)

    for raw in raw_tokens or ():
        token = str(raw).strip()
        if not token:
            continue
        if "=" in token:
            name_part, value_part = token.split("=", 1)
            name = name_part.strip()
            dim = dimensions.get(name)
            values = _split_values(token, name, value_part)
            if dim is None:
                unknown.append(token.replace(" ", ""))
                continue
            if not dim.is_multi and len(values) > 1:
                raise ValidationError(
                    f'Dimension "{name}" accepts a single value',
                    operation="options",
                    code="invalid_option",
                    details={"token": token},
                )
            clean = f"{name}={'+'.join(values)}"
            for value in values:
                accept(clean, dim, value)
            continue
        if catch_all is None:
            unknown.append(token)
            continue
        accept(token, dimensions[catch_all], token)

    passthrough: dict[str, Any] = {}
    for name, selection in (by_dimension or {}).items():
        dim = dimensions.get(name)
        if dim is None:
            passthrough[name] = selection
            continue
        if selection is None:
            continue
        items = [selection] if isinstance(selection, str) else list(selection)
        if not dim.is_multi and len(items) > 1:
            raise ValidationError(
                f'Dimension "{name}" accepts a single value',
                operation="options",
                code="invalid_option",
            )
        for value in items:
            accept(f"{name}={value}", dim, str(value).strip())

    resolved: dict[str, Any] = {}
    for name, dim in dimensions.items():
        chosen = collected.get(name)
        if not chosen:
            resolved[name] = dim.default_selection()
        elif dim.is_multi:
            resolved[name] = sorted(chosen)
        else:
            if len(chosen) > 1:
                raise ValidationError(
                    f'Dimension "{name}" accepts a single value',
                    operation="options",
                    code="invalid_option",
                )
            resolved[name] = chosen[0]
    resolved.update(passthrough)

    return NormalizedOptions(by_dimension=resolved, warnings=tuple(warnings), unknown=tuple(unknown))


def selected_values(selection: Any) -> list[str]:
    if selection is None:
        return []
    if isinstance(selection, str):
        return [selection]
    return [v for v in selection if isinstance(v, str)]


def validate_selection(
    by_dimension: Mapping[str, Any],
    dimensions: Mapping[str, DimensionDefinition],
) -> None:
    """Reject selections that break a dimension's ``requires`` or ``conflicts`` rules."""
    chosen = {v for selection in by_dimension.values() for v in selected_values(selection)}
    for name, dim in dimensions.items():
        for value in selected_values(by_dimension.get(name)):
            for needed in dim.requires.get(value, ()):
                if needed not in chosen:
                    raise ValidationError(
                        f'Dimension "{name}" value "{value}" requires "{needed}"',
                        operation="options",
                        code="missing_requirement",
                    )
            for other in dim.conflicts.get(value, ()):
                if other in chosen:
                    raise ValidationError(
                        f'Dimension "{name}" value "{value}" cannot be used with "{other}"',
                        operation="options",
                        code="conflicting_options",
                    )


__all__ = [
    "DEFAULT_MULTI_DIMENSION",
    "KIND_MULTI",
    "KIND_SINGLE",
    "POLICY_STRICT",
    "POLICY_WARN",
    "DimensionDefinition",
    "NormalizedOptions",
    "catch_all_dimension",
    "normalize_options",
    "selected_values",
    "validate_dimensions",
    "validate_selection",
]
