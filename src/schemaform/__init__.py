"""
schemaform: JSON Schema validation with errors keyed by form field.

Validates data against a declarative schema and translates the raw
diagnostics into records keyed by caller-defined field identifiers:

- SchemaEngine: compiles schemas, caches compiled validators
- validate / make_field_validator: whole-object and single-field checks
- map_errors: diagnostics -> FieldErrorRecord list
- SchemaForm: one schema + one field mapping

Example:
    >>> from schemaform import SchemaForm
    >>> form = SchemaForm(schema, {"username": "localUsername"})
    >>> form.errors_for({"username": "ab"})
    [FieldErrorRecord(name='localUsername', errors=("'ab' is too short",))]
"""

__version__ = "0.1.0"

from .exceptions import (
    SchemaFormError,
    SchemaCompileError,
    FieldValidationError,
    SchemaLoadError,
)
from .settings import CacheMode, EngineSettings, parse_engine_settings
from .diagnostics import (
    Diagnostic,
    RequiredMissing,
    ConstraintViolation,
    AggregateOverride,
    diagnostic_from_dict,
)
from .engine import CompiledValidator, SchemaEngine, ValidationResult, schema_fingerprint
from .mapping import (
    FieldErrorRecord,
    map_errors,
    merge_records,
    records_to_dict,
    resolve_leaf_name,
)
from .validators import MISSING, check_field, field_of, make_field_validator, validate
from .form import SchemaForm
from .loader import load_schema

__all__ = [
    "__version__",
    # Errors
    "SchemaFormError",
    "SchemaCompileError",
    "FieldValidationError",
    "SchemaLoadError",
    # Settings
    "CacheMode",
    "EngineSettings",
    "parse_engine_settings",
    # Diagnostics
    "Diagnostic",
    "RequiredMissing",
    "ConstraintViolation",
    "AggregateOverride",
    "diagnostic_from_dict",
    # Engine
    "CompiledValidator",
    "SchemaEngine",
    "ValidationResult",
    "schema_fingerprint",
    # Mapping
    "FieldErrorRecord",
    "map_errors",
    "merge_records",
    "records_to_dict",
    "resolve_leaf_name",
    # Validation
    "MISSING",
    "check_field",
    "field_of",
    "make_field_validator",
    "validate",
    "SchemaForm",
    "load_schema",
]
