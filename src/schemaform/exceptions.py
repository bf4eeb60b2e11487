"""
Core Exception Classes for schemaform.

Two tiers of failure exist:

- Schema malformation is a programmer error. It surfaces as
  ``SchemaCompileError`` out of ``SchemaEngine.compile`` and is never
  recovered inside the package.
- Data validation failures are never exceptions inside the core. They are
  returned as diagnostics. ``FieldValidationError`` only exists at the
  boundary with a form framework, where a per-field check signals
  "show this message on this control" by raising.

This module has zero dependencies so every other module can import it.
"""

from typing import Any, Dict, Optional


class SchemaFormError(Exception):
    """Base exception for schemaform."""

    pass


class SchemaCompileError(SchemaFormError):
    """
    Raised when a schema definition cannot be compiled.

    Attributes:
        reason: Human-readable description of the problem.
        schema_path: JSON pointer (``#/properties/age``) of the offending
            subschema, or ``"#"`` for the root.
    """

    def __init__(self, reason: str, schema_path: str = "#"):
        self.reason = reason
        self.schema_path = schema_path
        super().__init__(f"Invalid schema at {schema_path}: {reason}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {"error": "schema_error", "reason": self.reason, "schemaPath": self.schema_path}


class FieldValidationError(SchemaFormError):
    """
    Rejection of a single-field check.

    Attributes:
        message: The message to show on the control, verbatim.
        field: Caller-facing identifier of the control, when known.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.field, "errors": [self.message]}

    def __repr__(self) -> str:
        return f"FieldValidationError(field={self.field!r}, message={self.message!r})"


class SchemaLoadError(SchemaFormError):
    """Raised when a schema document cannot be read or parsed."""

    def __init__(self, source: Any, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Cannot load schema from {source}: {reason}")
