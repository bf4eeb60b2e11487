"""
Diagnostic to field mapping.

Translates diagnostics into ``FieldErrorRecord`` entries keyed by the
identifiers a presentation layer uses for its controls.

- resolve_leaf_name: instance path -> caller identifier (leaf segment only)
- map_errors: diagnostics -> field error records
- merge_records: opt-in folding of records sharing a name

Nested paths resolve by their last segment only, so ``/billing/city`` and
``/shipping/city`` both resolve through the mapping entry for ``city``.

Example:
    >>> map_errors(result.diagnostics, {"username": "localUsername"})
    [FieldErrorRecord(name='localUsername', errors=("'ab' is too short",))]
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .diagnostics import (
    AggregateOverride,
    Diagnostic,
    DiagnosticLike,
    RequiredMissing,
    coerce_diagnostics,
    unescape_pointer_segment,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldErrorRecord:
    """Messages to show on one control. ``errors`` is stored as a tuple."""

    name: str
    errors: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "errors", tuple(self.errors))

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "errors": list(self.errors)}


def resolve_leaf_name(instance_path: str, mapping: Mapping[str, str]) -> Optional[str]:
    """
    Resolve an instance path to a caller identifier by its last segment.

    Returns None for the root path, a path ending in ``/``, or a leaf name
    the mapping does not know.
    """
    if not instance_path:
        return None
    leaf = instance_path.split("/")[-1]
    if not leaf:
        return None
    return mapping.get(unescape_pointer_segment(leaf)) or None


def _resolve(diagnostic: Diagnostic, mapping: Mapping[str, str]) -> Optional[str]:
    if isinstance(diagnostic, RequiredMissing):
        return mapping.get(diagnostic.missing_property) or None
    return resolve_leaf_name(diagnostic.instance_path, mapping)


def _map_aggregate(
    aggregate: AggregateOverride, mapping: Mapping[str, str]
) -> List[FieldErrorRecord]:
    records: List[FieldErrorRecord] = []
    for nested in aggregate.nested:
        if isinstance(nested, RequiredMissing):
            name = mapping.get(nested.missing_property)
            if name and aggregate.message:
                records.append(FieldErrorRecord(name, [aggregate.message]))
        if nested.instance_path:
            name = resolve_leaf_name(nested.instance_path, mapping)
            if name and aggregate.message:
                records.append(FieldErrorRecord(name, [aggregate.message]))
    return records


def map_errors(
    diagnostics: Optional[Iterable[DiagnosticLike]],
    mapping: Optional[Mapping[str, str]],
) -> List[FieldErrorRecord]:
    """
    Convert diagnostics into field error records.

    Records follow diagnostic order. Diagnostics that resolve to no mapped
    identifier are dropped. Two diagnostics for the same control give two
    records; use ``merge_records`` to fold them.

    Args:
        diagnostics: Diagnostics, or their ``to_dict()`` forms
        mapping: Schema property name -> caller identifier

    Returns:
        List of FieldErrorRecord
    """
    if not diagnostics or not mapping:
        return []

    records: List[FieldErrorRecord] = []
    for diagnostic in coerce_diagnostics(diagnostics):
        if isinstance(diagnostic, AggregateOverride):
            records.extend(_map_aggregate(diagnostic, mapping))
            continue

        if not isinstance(diagnostic, RequiredMissing) and not diagnostic.instance_path:
            logger.debug("Dropping root-level %s diagnostic", diagnostic.kind)
            continue

        name = _resolve(diagnostic, mapping)
        if name and diagnostic.message:
            records.append(FieldErrorRecord(name, [diagnostic.message]))
        else:
            logger.debug(
                "Dropping unmapped %s diagnostic at %r",
                diagnostic.kind,
                diagnostic.instance_path,
            )

    return records


def merge_records(records: Iterable[FieldErrorRecord]) -> List[FieldErrorRecord]:
    """
    Fold records sharing a name into one.

    Names keep their first-seen order; messages keep their order.
    """
    merged: Dict[str, List[str]] = {}
    for record in records:
        merged.setdefault(record.name, []).extend(record.errors)
    return [FieldErrorRecord(name, errors) for name, errors in merged.items()]


def records_to_dict(records: Iterable[FieldErrorRecord]) -> List[Dict[str, Any]]:
    return [record.to_dict() for record in records]
