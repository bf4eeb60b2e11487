"""
Validation diagnostics.

A diagnostic describes one validation failure. Diagnostics form a closed
family of frozen dataclasses so that consumers can dispatch with
``isinstance`` instead of comparing keyword strings:

- RequiredMissing: a required property is absent
- ConstraintViolation: any other keyword failed (minLength, pattern, const...)
- AggregateOverride: an ``errorMessage`` override replaced one or more
  failures with caller-supplied text

Every diagnostic serializes with ``to_dict()`` to the wire form
``{keyword, instancePath, schemaPath, params, message}``, and
``diagnostic_from_dict`` reads that form back.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Iterable, List, Mapping, Sequence, Tuple, Union

from jsonschema import ValidationError


# Keyword reported for a failure of a boolean ``false`` subschema
FALSE_SCHEMA_KEYWORD = "false schema"

# Keyword -> name of the params entry carrying the keyword's value
PARAM_NAMES: Dict[str, str] = {
    "minLength": "limit",
    "maxLength": "limit",
    "minimum": "limit",
    "maximum": "limit",
    "exclusiveMinimum": "limit",
    "exclusiveMaximum": "limit",
    "minItems": "limit",
    "maxItems": "limit",
    "minProperties": "limit",
    "maxProperties": "limit",
    "multipleOf": "multipleOf",
    "pattern": "pattern",
    "const": "allowedValue",
    "enum": "allowedValues",
    "type": "type",
    "format": "format",
}


def escape_pointer_segment(segment: Any) -> str:
    """Escape one JSON pointer segment (``~`` -> ``~0``, ``/`` -> ``~1``)."""
    return str(segment).replace("~", "~0").replace("/", "~1")


def unescape_pointer_segment(segment: str) -> str:
    return segment.replace("~1", "/").replace("~0", "~")


def json_pointer(parts: Iterable[Any]) -> str:
    """Instance location as a slash-delimited pointer; ``""`` for the root."""
    return "".join("/" + escape_pointer_segment(part) for part in parts)


def schema_pointer(parts: Iterable[Any]) -> str:
    """Schema location in ``#/properties/name/minLength`` form."""
    return "#" + json_pointer(parts)


class Diagnostic:
    """Base class of the diagnostic family."""

    kind: ClassVar[str] = ""
    instance_path: str
    message: str
    schema_path: str

    @property
    def params(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire representation."""
        return {
            "keyword": self.kind,
            "instancePath": self.instance_path,
            "schemaPath": self.schema_path,
            "params": self.params,
            "message": self.message,
        }


@dataclass(frozen=True)
class RequiredMissing(Diagnostic):
    """A required property is absent from the object at ``instance_path``."""

    missing_property: str
    instance_path: str = ""
    message: str = ""
    schema_path: str = "#/required"

    kind: ClassVar[str] = "required"

    @property
    def params(self) -> Dict[str, Any]:
        return {"missingProperty": self.missing_property}


@dataclass(frozen=True)
class ConstraintViolation(Diagnostic):
    """The value at ``instance_path`` fails ``keyword``."""

    keyword: str
    instance_path: str = ""
    message: str = ""
    schema_path: str = ""
    constraint_params: Mapping[str, Any] = field(default_factory=dict)

    @property
    def kind(self) -> str:  # type: ignore[override]
        return self.keyword

    @property
    def params(self) -> Dict[str, Any]:
        return dict(self.constraint_params)

    def __hash__(self) -> int:
        # Param values may be lists or dicts; equal params always share keys
        return hash(
            (self.keyword, self.instance_path, self.message, self.schema_path,
             tuple(sorted(self.constraint_params)))
        )


@dataclass(frozen=True)
class AggregateOverride(Diagnostic):
    """
    Caller-supplied message standing in for the failures it summarizes.

    Attributes:
        nested: The diagnostics replaced by this override, in emission order
    """

    instance_path: str = ""
    message: str = ""
    schema_path: str = ""
    nested: Tuple[Diagnostic, ...] = ()

    kind: ClassVar[str] = "errorMessage"

    @property
    def params(self) -> Dict[str, Any]:
        return {"errors": [item.to_dict() for item in self.nested]}


DiagnosticLike = Union[Diagnostic, Mapping[str, Any]]


def diagnostic_from_dict(data: Mapping[str, Any]) -> Diagnostic:
    """
    Read a diagnostic from its wire representation.

    Accepts the keys produced by ``Diagnostic.to_dict``. Missing keys default
    to empty values.
    """
    keyword = data.get("keyword") or ""
    params = data.get("params") or {}
    instance_path = data.get("instancePath") or ""
    message = data.get("message") or ""
    schema_path = data.get("schemaPath") or ""

    if keyword == AggregateOverride.kind:
        nested = tuple(diagnostic_from_dict(item) for item in params.get("errors") or ())
        return AggregateOverride(
            instance_path=instance_path,
            message=message,
            schema_path=schema_path,
            nested=nested,
        )
    if keyword == RequiredMissing.kind:
        return RequiredMissing(
            missing_property=params.get("missingProperty") or "",
            instance_path=instance_path,
            message=message,
            schema_path=schema_path or "#/required",
        )
    return ConstraintViolation(
        keyword=keyword,
        instance_path=instance_path,
        message=message,
        schema_path=schema_path,
        constraint_params=dict(params),
    )


def coerce_diagnostics(diagnostics: Iterable[DiagnosticLike]) -> List[Diagnostic]:
    """Accept diagnostics or their dict forms, preserving order."""
    return [
        item if isinstance(item, Diagnostic) else diagnostic_from_dict(item)
        for item in diagnostics
    ]


def from_validation_errors(
    errors: Sequence[ValidationError],
) -> List[Tuple[ValidationError, Diagnostic]]:
    """
    Convert jsonschema errors into diagnostics, keeping each source error.

    jsonschema reports one ``required`` error per missing property, in the
    order of the ``required`` list, without naming the property as data.
    The missing properties are recovered from the keyword value and the
    instance, and handed out in that same order.
    """
    pairs: List[Tuple[ValidationError, Diagnostic]] = []
    required_seen: Dict[Tuple[Any, ...], int] = {}

    for error in errors:
        instance_path = json_pointer(error.absolute_path)
        schema_path = schema_pointer(error.absolute_schema_path)

        if error.validator == "required":
            key = (instance_path, schema_path)
            index = required_seen.get(key, 0)
            required_seen[key] = index + 1
            missing = [
                name for name in (error.validator_value or ()) if name not in error.instance
            ]
            diagnostic: Diagnostic = RequiredMissing(
                missing_property=missing[index] if index < len(missing) else "",
                instance_path=instance_path,
                message=error.message,
                schema_path=schema_path,
            )
        else:
            keyword = FALSE_SCHEMA_KEYWORD if error.validator is None else str(error.validator)
            param_name = PARAM_NAMES.get(keyword)
            diagnostic = ConstraintViolation(
                keyword=keyword,
                instance_path=instance_path,
                message=error.message,
                schema_path=schema_path,
                constraint_params={param_name: error.validator_value} if param_name else {},
            )
        pairs.append((error, diagnostic))

    return pairs
