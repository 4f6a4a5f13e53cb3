from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass

from setup_sandbox.errors import ValidationError


@dataclass(frozen=True)
class PlaceholderFormat:
    name: str
    template: str
    opening: str
    closing: str
    description: str


FORMAT_UNICODE = "unicode"
FORMAT_MUSTACHE = "mustache"
FORMAT_DOLLAR = "dollar"
FORMAT_PERCENT = "percent"

DEFAULT_PLACEHOLDER_FORMAT = FORMAT_UNICODE

FORMAT_SPECS: dict[str, PlaceholderFormat] = {
    FORMAT_UNICODE: PlaceholderFormat(
        name=FORMAT_UNICODE,
        template="⦃NAME⦄",
        opening="⦃",
        closing="⦄",
        description="Unicode delimiters (default, safe inside JSX and template literals)",
    ),
    FORMAT_MUSTACHE: PlaceholderFormat(
        name=FORMAT_MUSTACHE,
        template="{{NAME}}",
        opening="{{",
        closing="}}",
        description="Mustache-style delimiters (works everywhere, but conflicts with JSX)",
    ),
    FORMAT_DOLLAR: PlaceholderFormat(
        name=FORMAT_DOLLAR,
        template="$NAME$",
        opening="$",
        closing="$",
        description="Dollar delimiters (avoids conflicts with template literals)",
    ),
    FORMAT_PERCENT: PlaceholderFormat(
        name=FORMAT_PERCENT,
        template="%NAME%",
        opening="%",
        closing="%",
        description="Percent delimiters (avoids conflicts with CSS/custom syntax)",
    ),
}

_TEMPLATE_TO_FORMAT: dict[str, str] = {spec.template: name for name, spec in FORMAT_SPECS.items()}


def normalize_format(value: object) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        return DEFAULT_PLACEHOLDER_FORMAT
    if not isinstance(value, str):
        raise ValidationError(
            "Placeholder format must be a string",
            operation="placeholder_format",
            details={"field": "placeholderFormat"},
        )
    lowered = value.strip().lower()
    if lowered in FORMAT_SPECS:
        return lowered
    if value.strip() in _TEMPLATE_TO_FORMAT:
        return _TEMPLATE_TO_FORMAT[value.strip()]
    supported = ", ".join(FORMAT_SPECS)
    raise ValidationError(
        f'Invalid placeholder format "{value}". Must be one of: {supported}',
        operation="placeholder_format",
        details={"field": "placeholderFormat"},
    )


def get_format_spec(value: object) -> PlaceholderFormat:
    return FORMAT_SPECS[normalize_format(value)]


def format_placeholder(token: str, placeholder_format: str = DEFAULT_PLACEHOLDER_FORMAT) -> str:
    return get_format_spec(placeholder_format).template.replace("NAME", token)


def token_pattern(token: str, placeholder_format: str = DEFAULT_PLACEHOLDER_FORMAT) -> re.Pattern[str]:
    spec = get_format_spec(placeholder_format)
    return re.compile(
        re.escape(spec.opening) + r"\s*" + re.escape(token) + r"\s*" + re.escape(spec.closing)
    )


def any_token_pattern(placeholder_format: str = DEFAULT_PLACEHOLDER_FORMAT) -> re.Pattern[str]:
    spec = get_format_spec(placeholder_format)
    return re.compile(
        re.escape(spec.opening) + r"\s*([A-Z][A-Z0-9_]*)\s*" + re.escape(spec.closing)
    )


def extract_placeholders(text: object, placeholder_format: str = DEFAULT_PLACEHOLDER_FORMAT) -> list[str]:
    if not isinstance(text, str):
        return []
    return sorted({m.group(1) for m in any_token_pattern(placeholder_format).finditer(text)})


def stringify_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def apply_replacements(
    content: str,
    replacements: Mapping[str, str],
    placeholder_format: str = DEFAULT_PLACEHOLDER_FORMAT,
) -> str:
    result = content
    for token, replacement in replacements.items():
        # Callable replacement keeps backslashes in values literal.
        result = token_pattern(token, placeholder_format).sub(lambda _m, r=replacement: r, result)
    return result


__all__ = [
    "DEFAULT_PLACEHOLDER_FORMAT",
    "FORMAT_DOLLAR",
    "FORMAT_MUSTACHE",
    "FORMAT_PERCENT",
    "FORMAT_SPECS",
    "FORMAT_UNICODE",
    "PlaceholderFormat",
    "any_token_pattern",
    "apply_replacements",
    "extract_placeholders",
    "format_placeholder",
    "get_format_spec",
    "normalize_format",
    "stringify_value",
    "token_pattern",
]
