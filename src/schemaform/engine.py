"""
Schema compilation and the compiled-validator cache.

``SchemaEngine`` turns a schema definition into a ``CompiledValidator`` and
keeps the result for the lifetime of the engine. There is no process-wide
engine: construct one and hand it to whatever needs it.

Cache key algorithm:
- An explicit ``key`` argument (schema id or version) is used as given.
- Otherwise, with ``cache_by="identity"`` (default), the schema object's
  identity. The cache holds a reference to the schema, so an identity is
  never reused while its entry is alive.
- With ``cache_by="content"``, SHA256 of the canonical JSON form.

Example:
    >>> engine = SchemaEngine()
    >>> validator = engine.compile(schema)
    >>> result = validator.run({"username": "ab"})
    >>> result.valid
    False
    >>> engine.compile(schema) is validator
    True
"""

import hashlib
import itertools
import json
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, Hashable, Mapping, Optional, Tuple, Union

import jsonschema

from .diagnostics import Diagnostic, from_validation_errors, schema_pointer
from .exceptions import SchemaCompileError
from .keywords import FormValidator, lint_schema
from .overrides import apply_overrides
from .settings import CacheMode, EngineSettings, parse_engine_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of one validation run.

    ``diagnostics`` is empty if and only if ``valid`` is True.
    """

    valid: bool
    diagnostics: Tuple[Diagnostic, ...] = ()

    def __bool__(self) -> bool:
        return self.valid

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [diagnostic.to_dict() for diagnostic in self.diagnostics],
        }


class CompiledValidator:
    """
    Reusable validation function for one schema.

    Immutable once built; ``run`` is pure and may be called any number of
    times, from any number of threads.
    """

    __slots__ = ("_schema", "_validator", "_all_errors")

    def __init__(self, schema: Mapping[str, Any], validator: Any, all_errors: bool = True):
        object.__setattr__(self, "_schema", schema)
        object.__setattr__(self, "_validator", validator)
        object.__setattr__(self, "_all_errors", all_errors)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    @property
    def schema(self) -> Mapping[str, Any]:
        return self._schema

    @property
    def all_errors(self) -> bool:
        return self._all_errors

    def run(self, data: Any) -> ValidationResult:
        """
        Validate ``data``.

        Returns:
            ValidationResult with diagnostics in the validator's emission order
        """
        errors = self._validator.iter_errors(data)
        if not self._all_errors:
            errors = itertools.islice(errors, 1)
        pairs = from_validation_errors(list(errors))
        if not pairs:
            return ValidationResult(valid=True)
        diagnostics = apply_overrides(self._schema, pairs)
        return ValidationResult(valid=False, diagnostics=tuple(diagnostics))

    def is_valid(self, data: Any) -> bool:
        return self._validator.is_valid(data)

    def __repr__(self) -> str:
        title = self._schema.get("title") if isinstance(self._schema, Mapping) else None
        return f"CompiledValidator(title={title!r})"


@dataclass(frozen=True)
class _CacheEntry:
    schema: Any
    validator: CompiledValidator


def schema_fingerprint(schema: Any) -> str:
    """SHA256 of the canonical JSON form of ``schema``."""
    canonical = json.dumps(schema, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class SchemaEngine:
    """
    Compiles schema definitions and caches the compiled validators.

    Args:
        settings: EngineSettings, a settings dict, or None for defaults
        **overrides: Individual settings overriding ``settings``

    Attributes:
        settings: The effective EngineSettings
        compile_count: Number of compilations performed (cache misses)
    """

    def __init__(
        self,
        settings: Union[EngineSettings, Dict[str, Any], None] = None,
        **overrides: Any,
    ):
        self.settings = parse_engine_settings(settings, **overrides)
        self.compile_count = 0
        self._cache: "OrderedDict[Hashable, _CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def cache_key(self, schema: Any, key: Optional[Hashable] = None) -> Hashable:
        """Cache key for ``schema`` under the current settings."""
        if key is not None:
            return ("key", key)
        if self.settings.cache_by == CacheMode.CONTENT:
            return ("content", schema_fingerprint(schema))
        return ("identity", id(schema))

    def compile(self, schema: Mapping[str, Any], key: Optional[Hashable] = None) -> CompiledValidator:
        """
        Compile ``schema``, or return the validator cached for it.

        Args:
            schema: Schema definition (a dict in JSON Schema Draft 7 form)
            key: Optional explicit cache key; two schemas compiled with the
                same key share one validator

        Returns:
            The compiled validator

        Raises:
            SchemaCompileError: If the schema is malformed
        """
        cache_key = self.cache_key(schema, key)
        entry = self._cache.get(cache_key)
        if entry is not None:
            logger.debug("Schema cache hit: %s", cache_key[0])
            return entry.validator

        with self._lock:
            entry = self._cache.get(cache_key)
            if entry is not None:
                return entry.validator

            validator = self._build(schema)
            self._cache[cache_key] = _CacheEntry(schema, validator)
            self.compile_count += 1
            logger.debug(
                "Compiled schema (%s key, %d cached)", cache_key[0], len(self._cache)
            )

            limit = self.settings.max_cache_entries
            while limit is not None and len(self._cache) > limit:
                evicted, _ = self._cache.popitem(last=False)
                logger.debug("Evicted compiled schema: %s", evicted[0])

        return validator

    def _build(self, schema: Mapping[str, Any]) -> CompiledValidator:
        if not isinstance(schema, Mapping):
            raise SchemaCompileError(
                f"schema must be an object, got {type(schema).__name__}"
            )
        try:
            FormValidator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise SchemaCompileError(e.message, schema_pointer(e.absolute_path)) from e

        lint_schema(schema, strict=self.settings.strict)
        return CompiledValidator(
            schema, FormValidator(schema), all_errors=self.settings.all_errors
        )

    def invalidate(self, schema_or_key: Any) -> bool:
        """
        Drop the cached validator for a schema object or an explicit key.

        Returns:
            True if an entry was removed
        """
        if isinstance(schema_or_key, (dict, list)):
            candidates = [("identity", id(schema_or_key)), ("content", schema_fingerprint(schema_or_key))]
        else:
            candidates = [("key", schema_or_key)]

        removed = False
        with self._lock:
            for candidate in candidates:
                if self._cache.pop(candidate, None) is not None:
                    removed = True
        return removed

    def clear(self) -> None:
        """Drop every cached validator."""
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, schema: Any) -> bool:
        return self.cache_key(schema) in self._cache
