"""
Keyword vocabulary of form schemas.

Form schemas are JSON Schema Draft 7 plus two extension keywords:

- ``nullable``: when true, ``None`` satisfies the ``type`` keyword in
  addition to the declared type. It does not make a property optional.
- ``errorMessage``: caller-facing override text (see ``overrides``).

This module builds the jsonschema validator class that understands
``nullable`` and anchors ``pattern`` the ECMA-262 way, and checks a schema
for problems the Draft 7 metaschema does not catch (contradictory bounds,
invalid patterns, malformed overrides and, in strict mode, unknown keywords).
"""

import functools
import re
from typing import Any, Dict, Iterator, Mapping, Tuple

from jsonschema import Draft7Validator, ValidationError, validators

from .exceptions import SchemaCompileError
from .diagnostics import schema_pointer


EXTENSION_KEYWORDS = frozenset({"nullable", "errorMessage"})

# Annotation and structural keywords that carry no validator of their own
ANNOTATION_KEYWORDS = frozenset(
    {
        "$schema",
        "$id",
        "$comment",
        "title",
        "description",
        "default",
        "examples",
        "definitions",
        "readOnly",
        "writeOnly",
        "contentMediaType",
        "contentEncoding",
        "then",
        "else",
    }
)

KNOWN_KEYWORDS = frozenset(Draft7Validator.VALIDATORS) | ANNOTATION_KEYWORDS | EXTENSION_KEYWORDS

BOUND_PAIRS = (
    ("minLength", "maxLength"),
    ("minimum", "maximum"),
    ("minItems", "maxItems"),
    ("minProperties", "maxProperties"),
)

# errorMessage keys with a structure of their own
OVERRIDE_STRUCTURAL_KEYS = frozenset({"properties", "required", "_"})


def nullable_type(validator, types, instance, schema):
    """``type`` keyword that admits ``None`` when the schema is nullable."""
    if instance is None and schema.get("nullable") is True:
        return
    if isinstance(types, str):
        types = [types]
    if not any(validator.is_type(instance, type_name) for type_name in types):
        reprs = ", ".join(repr(type_name) for type_name in types)
        yield ValidationError(f"{instance!r} is not of type {reprs}")


@functools.lru_cache(maxsize=None)
def ecma_regex(pattern: str) -> "re.Pattern[str]":
    """
    Compile ``pattern`` with ECMA-262 anchoring.

    An unescaped ``$`` outside a character class matches only at the end of
    the input, never before a trailing newline.

    Raises:
        re.error: If the pattern does not compile
    """
    translated = []
    escaped = in_class = False
    for char in pattern:
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif in_class:
            in_class = char != "]"
        elif char == "[":
            in_class = True
        elif char == "$":
            translated.append(r"\Z")
            continue
        translated.append(char)
    return re.compile("".join(translated))


def ecma_pattern(validator, pattern, instance, schema):
    """``pattern`` keyword using ECMA-262 anchoring."""
    if validator.is_type(instance, "string") and not ecma_regex(pattern).search(instance):
        yield ValidationError(f"{instance!r} does not match {pattern!r}")


def ecma_pattern_properties(validator, pattern_properties, instance, schema):
    """``patternProperties`` keyword using ECMA-262 anchoring."""
    if not validator.is_type(instance, "object"):
        return
    for pattern, subschema in pattern_properties.items():
        regex = ecma_regex(pattern)
        for name, value in instance.items():
            if regex.search(name):
                yield from validator.descend(value, subschema, path=name, schema_path=pattern)


FormValidator = validators.extend(
    Draft7Validator,
    validators={
        "type": nullable_type,
        "pattern": ecma_pattern,
        "patternProperties": ecma_pattern_properties,
    },
)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def iter_subschemas(
    schema: Any, path: Tuple[Any, ...] = ()
) -> Iterator[Tuple[Dict[str, Any], Tuple[Any, ...]]]:
    """
    Yield every object subschema with its schema path, root first.

    Boolean subschemas are skipped; they carry no keywords.
    """
    if not isinstance(schema, dict):
        return
    yield schema, path

    for keyword in ("properties", "patternProperties", "definitions"):
        children = schema.get(keyword)
        if isinstance(children, dict):
            for name, child in children.items():
                yield from iter_subschemas(child, path + (keyword, name))

    dependencies = schema.get("dependencies")
    if isinstance(dependencies, dict):
        for name, child in dependencies.items():
            yield from iter_subschemas(child, path + ("dependencies", name))

    for keyword in ("allOf", "anyOf", "oneOf"):
        children = schema.get(keyword)
        if isinstance(children, list):
            for index, child in enumerate(children):
                yield from iter_subschemas(child, path + (keyword, index))

    items = schema.get("items")
    if isinstance(items, list):
        for index, child in enumerate(items):
            yield from iter_subschemas(child, path + ("items", index))
    else:
        yield from iter_subschemas(items, path + ("items",))

    for keyword in (
        "additionalItems",
        "additionalProperties",
        "contains",
        "propertyNames",
        "not",
        "if",
        "then",
        "else",
    ):
        yield from iter_subschemas(schema.get(keyword), path + (keyword,))


def _check_pattern(pattern: Any, where: str) -> None:
    if not isinstance(pattern, str):
        return
    try:
        ecma_regex(pattern)
    except re.error as e:
        raise SchemaCompileError(f"invalid regular expression {pattern!r}: {e}", where) from e


def _check_error_message(subschema: Mapping[str, Any], where: str, strict: bool) -> None:
    """Check the shape of an ``errorMessage`` value."""
    override = subschema["errorMessage"]
    if isinstance(override, str):
        return
    if not isinstance(override, dict):
        raise SchemaCompileError("errorMessage must be a string or an object", where)

    declared = subschema.get("properties") or {}
    for key, value in override.items():
        if key == "properties":
            if not isinstance(value, dict) or not all(isinstance(v, str) for v in value.values()):
                raise SchemaCompileError(
                    "errorMessage.properties must map property names to strings", where
                )
        elif key == "required":
            if isinstance(value, dict):
                if not all(isinstance(v, str) for v in value.values()):
                    raise SchemaCompileError(
                        "errorMessage.required must map property names to strings", where
                    )
            elif not isinstance(value, str):
                raise SchemaCompileError(
                    "errorMessage.required must be a string or an object", where
                )
        elif not isinstance(value, str):
            raise SchemaCompileError(f"errorMessage.{key} must be a string", where)
        elif strict and key != "_" and key not in KNOWN_KEYWORDS and key not in declared:
            raise SchemaCompileError(
                f"errorMessage.{key} names neither a keyword nor a declared property", where
            )


def lint_schema(schema: Mapping[str, Any], strict: bool = False) -> None:
    """
    Check a schema for problems the metaschema does not catch.

    Args:
        schema: Schema definition, already valid against the Draft 7 metaschema
        strict: Also reject keywords outside the known vocabulary

    Raises:
        SchemaCompileError: On the first problem found
    """
    for subschema, path in iter_subschemas(schema):
        where = schema_pointer(path)

        if strict:
            unknown = sorted(str(key) for key in subschema if key not in KNOWN_KEYWORDS)
            if unknown:
                raise SchemaCompileError(f"unknown keyword(s): {', '.join(unknown)}", where)

        for low, high in BOUND_PAIRS:
            lower, upper = subschema.get(low), subschema.get(high)
            if _is_number(lower) and _is_number(upper) and lower > upper:
                raise SchemaCompileError(f"{low} ({lower}) is greater than {high} ({upper})", where)

        if "nullable" in subschema and not isinstance(subschema["nullable"], bool):
            raise SchemaCompileError("nullable must be a boolean", where)

        _check_pattern(subschema.get("pattern"), where)
        pattern_properties = subschema.get("patternProperties")
        if isinstance(pattern_properties, dict):
            for pattern in pattern_properties:
                _check_pattern(pattern, where)

        if "errorMessage" in subschema:
            _check_error_message(subschema, where, strict)
