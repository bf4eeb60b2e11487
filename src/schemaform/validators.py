"""
Whole-object and single-field validation.

- validate: run the compiled validator over a whole object and dispatch
  ``on_success`` / ``on_error`` callbacks (form submit semantics)
- check_field: validate one control's value in isolation, synchronously
- make_field_validator: async adapter over ``check_field`` matching the
  per-field validation hook of a form framework (return = valid,
  raise FieldValidationError = show the message)

Single-field checks reuse the compiled validator of the whole schema. The
value is placed in an object holding only that property, so failures for
other required properties are expected and filtered out by mapping only
the field under test.

Example:
    >>> check = make_field_validator(validator, "username")
    >>> asyncio.run(check({"field": "localUsername"}, "ab"))
    Traceback (most recent call last):
    ...
    FieldValidationError: 'ab' is too short
"""

import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, Tuple

from .diagnostics import Diagnostic
from .engine import CompiledValidator, ValidationResult
from .exceptions import FieldValidationError
from .mapping import map_errors

logger = logging.getLogger(__name__)

SuccessCallback = Callable[[Any, CompiledValidator], None]
ErrorCallback = Callable[[Tuple[Diagnostic, ...], CompiledValidator], None]
FieldValidator = Callable[[Any, Any], Awaitable[None]]


class _Missing:
    """Sentinel type for a control holding no value."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def validate(
    validator: CompiledValidator,
    data: Any,
    on_success: Optional[SuccessCallback] = None,
    on_error: Optional[ErrorCallback] = None,
) -> ValidationResult:
    """
    Validate a whole object and dispatch exactly one callback.

    Args:
        validator: Compiled validator for the form's schema
        data: The object to validate
        on_success: Called as ``on_success(data, validator)`` when valid
        on_error: Called as ``on_error(diagnostics, validator)`` with every
            diagnostic when invalid

    Returns:
        The ValidationResult (callers may rely on the callbacks alone)
    """
    result = validator.run(data)
    if result.valid:
        if on_success is not None:
            on_success(data, validator)
    elif on_error is not None:
        on_error(result.diagnostics, validator)
    return result


def field_of(field_context: Any) -> Optional[str]:
    """Caller identifier carried by a field context (``.field`` or ``["field"]``)."""
    if field_context is None:
        return None
    if isinstance(field_context, Mapping):
        return field_context.get("field")
    return getattr(field_context, "field", None)


def check_field(
    validator: CompiledValidator,
    schema_field_name: str,
    caller_field: Optional[str],
    value: Any,
) -> Optional[str]:
    """
    Validate one field's value against the whole schema.

    Args:
        validator: Compiled validator for the full schema
        schema_field_name: Property name in the schema
        caller_field: Identifier the form uses for the control
        value: Current value; MISSING builds an empty object so that a
            required property reports its required-missing failure

    Returns:
        The message to show on the control, or None when the field is valid
        or no failure is attributable to it
    """
    data = {} if value is MISSING else {schema_field_name: value}
    result = validator.run(data)
    if result.valid:
        return None

    records = map_errors(result.diagnostics, {schema_field_name: caller_field})
    match = next((record for record in records if record.name == caller_field), None)
    if match is None or not match.errors:
        return None
    return match.errors[0]


def make_field_validator(
    validator: CompiledValidator, schema_field_name: str
) -> FieldValidator:
    """
    Build the async per-field hook for one schema property.

    The returned coroutine function takes ``(field_context, value)``.
    It returns None when the field is valid and raises FieldValidationError
    with the message otherwise. No awaiting happens inside it.
    """

    async def validate_field(field_context: Any, value: Any) -> None:
        caller_field = field_of(field_context)
        message = check_field(validator, schema_field_name, caller_field, value)
        if message is not None:
            logger.debug("Field %s (%s) rejected: %s", caller_field, schema_field_name, message)
            raise FieldValidationError(message, field=caller_field)

    validate_field.__name__ = f"validate_{schema_field_name}"
    return validate_field
