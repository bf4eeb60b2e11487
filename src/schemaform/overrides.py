"""
``errorMessage`` overrides.

A schema (or any subschema) may carry an ``errorMessage`` value that replaces
the default text of the failures it covers. Replaced failures are folded into
one ``AggregateOverride`` diagnostic per group, with the originals kept as
``nested``. Supported forms:

    errorMessage: "Invalid value"            # every failure of this subschema
    errorMessage:
      const: "You must accept terms"         # failures of one keyword here
      required: "Field is required"          # every missing property here
      required: {phone: "Phone is required"} # one missing property here
      properties: {age: "Age is 18 to 100"}  # failures located under a property
      age: "Age is 18 to 100"                # same, for a declared property
      _: "Something is wrong"                # anything else in this subschema

The innermost subschema with an applicable override wins. Overrides are not
looked up through ``$ref``: a failure inside a referenced schema can only be
overridden by a subschema on the path that leads to the reference.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, List, Mapping, Optional, Sequence, Tuple, Union

from jsonschema import ValidationError

from .diagnostics import (
    AggregateOverride,
    Diagnostic,
    RequiredMissing,
    json_pointer,
    schema_pointer,
)
from .keywords import OVERRIDE_STRUCTURAL_KEYS

logger = logging.getLogger(__name__)

# Keywords whose subschemas sit one level below, keyed by property name or index
_KEYED_INSTANCE_KEYWORDS = ("properties", "patternProperties")
_DIRECT_INSTANCE_KEYWORDS = ("additionalProperties", "additionalItems")
_KEYED_SAME_INSTANCE_KEYWORDS = ("allOf", "anyOf", "oneOf", "dependencies")


@dataclass(frozen=True)
class _Frame:
    """A subschema on the way to a failing keyword."""

    node: Mapping[str, Any]
    schema_path: Tuple[Any, ...]
    depth: int  # number of instance path segments consumed to reach the node


@dataclass(frozen=True)
class _Override:
    key: Hashable
    message: str
    instance_path: Tuple[Any, ...]
    schema_path: Tuple[Any, ...]


@dataclass
class _Group:
    override: _Override
    nested: List[Diagnostic] = field(default_factory=list)

    def freeze(self) -> AggregateOverride:
        return AggregateOverride(
            instance_path=json_pointer(self.override.instance_path),
            message=self.override.message,
            schema_path=schema_pointer(self.override.schema_path + ("errorMessage",)),
            nested=tuple(self.nested),
        )


def _child(node: Any, key: Any) -> Any:
    try:
        return node[key]
    except (KeyError, IndexError, TypeError):
        return None


def schema_chain(
    schema: Mapping[str, Any], error: ValidationError
) -> Tuple[List[_Frame], bool]:
    """
    Walk from the root schema to the subschema holding the failing keyword.

    Returns:
        Tuple of (frames outermost first, complete). ``complete`` is False
        when the walk stopped early, for instance at a ``$ref``.
    """
    path = list(error.absolute_schema_path)[:-1]
    node: Any = schema
    depth = 0
    index = 0
    frames = [_Frame(schema, (), 0)]

    while index < len(path):
        keyword = path[index]
        following = path[index + 1] if index + 1 < len(path) else None

        if keyword in _KEYED_INSTANCE_KEYWORDS and following is not None:
            node = _child(_child(node, keyword), following)
            index, depth = index + 2, depth + 1
        elif keyword == "items" and isinstance(_child(node, "items"), list):
            node = _child(node["items"], following)
            index, depth = index + 2, depth + 1
        elif keyword == "items" or keyword in _DIRECT_INSTANCE_KEYWORDS:
            node = _child(node, keyword)
            index, depth = index + 1, depth + 1
        elif keyword in _KEYED_SAME_INSTANCE_KEYWORDS and following is not None:
            node = _child(_child(node, keyword), following)
            index += 2
        elif keyword == "if" and following in ("then", "else"):
            node = _child(node, following)
            index += 2
        elif keyword == "propertyNames":
            node = _child(node, keyword)
            index += 1
        else:
            break

        if not isinstance(node, dict):
            break
        frames.append(_Frame(node, tuple(path[:index]), depth))
    else:
        return frames, True

    return frames, False


def _property_messages(node: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, str]:
    messages: Dict[str, str] = {}
    declared = node.get("properties")
    if isinstance(declared, dict):
        for name, message in override.items():
            if name in declared and name not in OVERRIDE_STRUCTURAL_KEYS and isinstance(message, str):
                messages[name] = message
    explicit = override.get("properties")
    if isinstance(explicit, dict):
        messages.update(explicit)
    return messages


def _override_at(
    frame: _Frame,
    error: ValidationError,
    diagnostic: Diagnostic,
    at_node: bool,
) -> Optional[_Override]:
    """The override ``frame`` applies to this failure, if any."""
    override = frame.node.get("errorMessage")
    if override is None:
        return None

    instance_path = tuple(error.absolute_path)
    prefix = instance_path[: frame.depth]
    node_key = (id(frame.node), prefix)

    if isinstance(override, str):
        return _Override((node_key, "*"), override, prefix, frame.schema_path)
    if not isinstance(override, Mapping):
        return None

    if at_node:
        keyword = error.validator
        if keyword == "required":
            required = override.get("required")
            if isinstance(required, str):
                return _Override((node_key, "required"), required, prefix, frame.schema_path)
            if isinstance(required, Mapping) and isinstance(diagnostic, RequiredMissing):
                message = required.get(diagnostic.missing_property)
                if isinstance(message, str):
                    return _Override(
                        (node_key, "required", diagnostic.missing_property),
                        message,
                        prefix,
                        frame.schema_path,
                    )
        elif keyword not in OVERRIDE_STRUCTURAL_KEYS and isinstance(override.get(keyword), str):
            return _Override((node_key, "keyword", keyword), override[keyword], prefix, frame.schema_path)

    if len(instance_path) > frame.depth:
        name = instance_path[frame.depth]
        message = _property_messages(frame.node, override).get(name)
        if message is not None:
            return _Override(
                (node_key, "property", name),
                message,
                instance_path[: frame.depth + 1],
                frame.schema_path,
            )

    fallback = override.get("_")
    if isinstance(fallback, str):
        return _Override((node_key, "_"), fallback, prefix, frame.schema_path)
    return None


def find_override(
    schema: Mapping[str, Any], error: ValidationError, diagnostic: Diagnostic
) -> Optional[_Override]:
    """The innermost override that covers this failure, if any."""
    frames, complete = schema_chain(schema, error)
    last = len(frames) - 1
    for position in range(last, -1, -1):
        found = _override_at(frames[position], error, diagnostic, complete and position == last)
        if found is not None:
            return found
    return None


def apply_overrides(
    schema: Mapping[str, Any],
    pairs: Sequence[Tuple[ValidationError, Diagnostic]],
) -> List[Diagnostic]:
    """
    Fold overridden failures into aggregate diagnostics.

    Each aggregate takes the position of the first failure it covers, so the
    output keeps the validator's emission order.

    Args:
        schema: The root schema the errors were produced against
        pairs: (jsonschema error, diagnostic) in emission order

    Returns:
        Diagnostics with overridden failures replaced by AggregateOverride
    """
    output: List[Union[Diagnostic, _Group]] = []
    groups: Dict[Hashable, _Group] = {}

    for error, diagnostic in pairs:
        override = find_override(schema, error, diagnostic)
        if override is None:
            output.append(diagnostic)
            continue
        group = groups.get(override.key)
        if group is None:
            group = groups[override.key] = _Group(override)
            output.append(group)
        group.nested.append(diagnostic)

    if groups:
        logger.debug("Folded failures into %d errorMessage override(s)", len(groups))
    return [item.freeze() if isinstance(item, _Group) else item for item in output]
