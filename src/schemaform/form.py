"""
Form facade.

``SchemaForm`` bundles what one logical form needs: its schema, the mapping
from schema property names to control identifiers, and the engine that
compiles the schema.

Example:
    >>> form = SchemaForm(schema, {"username": "localUsername"})
    >>> form.validate(data, on_error=lambda diagnostics, _: show(form.map_errors_to_fields(diagnostics)))
    >>> username_rule = form.validate_field("username")
"""

from typing import Any, Hashable, Iterable, List, Mapping, Optional

from .diagnostics import DiagnosticLike
from .engine import CompiledValidator, SchemaEngine, ValidationResult
from .mapping import FieldErrorRecord, map_errors
from .validators import ErrorCallback, FieldValidator, SuccessCallback, make_field_validator, validate


class SchemaForm:
    """
    Validation entry points for one schema and one field mapping.

    Args:
        schema: Schema definition
        field_map: Schema property name -> control identifier
        engine: Engine used to compile the schema (a new one by default)
        key: Optional explicit cache key for the schema
    """

    def __init__(
        self,
        schema: Mapping[str, Any],
        field_map: Mapping[str, str],
        engine: Optional[SchemaEngine] = None,
        key: Optional[Hashable] = None,
    ):
        self.schema = schema
        self.field_map = dict(field_map)
        self.engine = engine if engine is not None else SchemaEngine()
        self.key = key

    @property
    def validator(self) -> CompiledValidator:
        return self.engine.compile(self.schema, key=self.key)

    def validate(
        self,
        data: Any,
        on_success: Optional[SuccessCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> ValidationResult:
        """Validate the whole object; see ``validators.validate``."""
        return validate(self.validator, data, on_success=on_success, on_error=on_error)

    def validate_field(self, schema_field_name: str) -> FieldValidator:
        """Async per-field hook for one schema property."""
        return make_field_validator(self.validator, schema_field_name)

    def map_errors_to_fields(
        self, diagnostics: Optional[Iterable[DiagnosticLike]]
    ) -> List[FieldErrorRecord]:
        return map_errors(diagnostics, self.field_map)

    def errors_for(self, data: Any) -> List[FieldErrorRecord]:
        """Validate ``data`` and map the result; empty when valid."""
        return self.map_errors_to_fields(self.validator.run(data).diagnostics)

    def __repr__(self) -> str:
        return f"SchemaForm(fields={list(self.field_map)})"
