from setup_sandbox.audit import SecurityAuditLogger, iter_audit_jsonl
from setup_sandbox.boundary import BoundaryResolver, ValidatedPath, resolve_project_path
from setup_sandbox.context import (
    DEFAULT_AUTHOR_ASSETS_DIR,
    DEFAULT_AUTHORING_MODE,
    OptionsSnapshot,
    SetupContext,
    create_context,
    deep_freeze,
)
from setup_sandbox.dimensions import (
    DEFAULT_MULTI_DIMENSION,
    DimensionDefinition,
    NormalizedOptions,
    normalize_options,
    validate_dimensions,
    validate_selection,
)
from setup_sandbox.errors import (
    BoundaryError,
    ConflictError,
    NotFoundError,
    SetupError,
    ValidationError,
    sanitize_error_message,
)
from setup_sandbox.gate import SecurityGate, SetupSession
from setup_sandbox.host import SetupOutcome, run_setup_script
from setup_sandbox.jsonpath import parse_json_path
from setup_sandbox.manifest import TemplateSetup, load_template_setup
from setup_sandbox.pathing import DEFAULT_SELECTOR
from setup_sandbox.placeholders import DEFAULT_PLACEHOLDER_FORMAT
from setup_sandbox.schema import TEMPLATE_MANIFEST_SCHEMA, validate_manifest
from setup_sandbox.tools import SetupTools, create_tools
from setup_sandbox.validators import (
    validate_author_assets_dir,
    validate_authoring_mode,
    validate_inputs,
    validate_option_tokens,
    validate_project_name,
)

__all__ = [
    "DEFAULT_AUTHORING_MODE",
    "DEFAULT_AUTHOR_ASSETS_DIR",
    "DEFAULT_MULTI_DIMENSION",
    "DEFAULT_PLACEHOLDER_FORMAT",
    "DEFAULT_SELECTOR",
    "BoundaryError",
    "BoundaryResolver",
    "ConflictError",
    "DimensionDefinition",
    "NormalizedOptions",
    "NotFoundError",
    "OptionsSnapshot",
    "SecurityAuditLogger",
    "SecurityGate",
    "SetupContext",
    "SetupError",
    "SetupOutcome",
    "SetupSession",
    "SetupTools",
    "TEMPLATE_MANIFEST_SCHEMA",
    "TemplateSetup",
    "ValidatedPath",
    "ValidationError",
    "create_context",
    "create_tools",
    "deep_freeze",
    "iter_audit_jsonl",
    "load_template_setup",
    "normalize_options",
    "parse_json_path",
    "resolve_project_path",
    "run_setup_script",
    "sanitize_error_message",
    "validate_author_assets_dir",
    "validate_authoring_mode",
    "validate_dimensions",
    "validate_inputs",
    "validate_manifest",
    "validate_option_tokens",
    "validate_project_name",
    "validate_selection",
]
