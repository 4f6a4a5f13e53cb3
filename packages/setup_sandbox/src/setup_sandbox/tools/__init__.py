from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from setup_sandbox.audit import SecurityAuditLogger
from setup_sandbox.boundary import BoundaryResolver
from setup_sandbox.context import SetupContext
from setup_sandbox.dimensions import DimensionDefinition
from setup_sandbox.placeholders import DEFAULT_PLACEHOLDER_FORMAT, normalize_format
from setup_sandbox.tools.files import FilesApi
from setup_sandbox.tools.inputs import InputsApi
from setup_sandbox.tools.json_tools import JsonApi
from setup_sandbox.tools.logger import LoggerApi, LogSink, StdlibSink
from setup_sandbox.tools.options import OptionsApi
from setup_sandbox.tools.placeholders import PlaceholdersApi
from setup_sandbox.tools.templates import TemplatesApi
from setup_sandbox.tools.text import TextApi


@dataclass(frozen=True)
class SetupTools:
    placeholders: PlaceholdersApi
    inputs: InputsApi
    files: FilesApi
    json: JsonApi
    templates: TemplatesApi
    text: TextApi
    logger: LoggerApi
    options: OptionsApi


def create_tools(
    context: SetupContext,
    *,
    dimensions: Mapping[str, DimensionDefinition] | None = None,
    placeholder_format: str = DEFAULT_PLACEHOLDER_FORMAT,
    sink: LogSink | None = None,
    audit: SecurityAuditLogger | None = None,
) -> SetupTools:
    """Build every capability surface around one resolver bound to ``context.project_dir``."""
    resolver = BoundaryResolver(context.project_dir, audit=audit)
    fmt = normalize_format(placeholder_format)
    return SetupTools(
        placeholders=PlaceholdersApi(
            resolver,
            project_name=context.project_name,
            inputs=context.inputs,
            placeholder_format=fmt,
        ),
        inputs=InputsApi(context.inputs),
        files=FilesApi(resolver),
        json=JsonApi(resolver),
        templates=TemplatesApi(resolver, assets_dir=context.author_assets_dir, placeholder_format=fmt),
        text=TextApi(resolver),
        logger=LoggerApi(sink),
        options=OptionsApi(context.options, dimensions or {}),
    )


__all__ = [
    "FilesApi",
    "InputsApi",
    "JsonApi",
    "LogSink",
    "LoggerApi",
    "OptionsApi",
    "PlaceholdersApi",
    "SetupTools",
    "StdlibSink",
    "TemplatesApi",
    "TextApi",
    "create_tools",
]
