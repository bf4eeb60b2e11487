"""
Tests for schema compilation and the compiled-validator cache.

Tests cover:
- Identity-keyed caching, explicit keys, content hashing
- Invalidation, clearing and eviction
- Concurrent compilation of one schema
- Fatal errors for malformed schemas
- CompiledValidator.run results
"""

import copy
from concurrent.futures import ThreadPoolExecutor

import pytest
from parameterized import parameterized

from schemaform import (
    CacheMode,
    CompiledValidator,
    ConstraintViolation,
    RequiredMissing,
    SchemaCompileError,
    SchemaEngine,
    ValidationResult,
    schema_fingerprint,
)

from conftest import VALID_DATA, make_registration_schema


class TestCompileCache:
    """Compiled validators are cached per schema identity by default."""

    def test_same_object_compiles_once(self, registration_schema):
        engine = SchemaEngine()
        first = engine.compile(registration_schema)
        second = engine.compile(registration_schema)
        assert first is second
        assert engine.compile_count == 1

    def test_equal_but_distinct_objects_recompile(self, registration_schema):
        engine = SchemaEngine()
        first = engine.compile(registration_schema)
        second = engine.compile(copy.deepcopy(registration_schema))
        assert first is not second
        assert engine.compile_count == 2

    def test_explicit_key_shares_validator(self):
        engine = SchemaEngine()
        first = engine.compile(make_registration_schema(), key="registration@v1")
        second = engine.compile(make_registration_schema(), key="registration@v1")
        assert first is second
        assert engine.compile_count == 1

    def test_different_keys_compile_separately(self, registration_schema):
        engine = SchemaEngine()
        engine.compile(registration_schema, key="v1")
        engine.compile(registration_schema, key="v2")
        assert engine.compile_count == 2

    def test_content_mode_shares_equal_schemas(self, registration_schema):
        engine = SchemaEngine(cache_by="content")
        assert engine.settings.cache_by == CacheMode.CONTENT
        first = engine.compile(registration_schema)
        second = engine.compile(copy.deepcopy(registration_schema))
        assert first is second
        assert engine.compile_count == 1

    def test_fingerprint_ignores_key_order(self):
        assert schema_fingerprint({"a": 1, "b": 2}) == schema_fingerprint({"b": 2, "a": 1})
        assert schema_fingerprint({"a": 1}) != schema_fingerprint({"a": 2})

    def test_contains(self, registration_schema):
        engine = SchemaEngine()
        assert registration_schema not in engine
        engine.compile(registration_schema)
        assert registration_schema in engine
        assert len(engine) == 1

    def test_engines_do_not_share_caches(self, registration_schema):
        first, second = SchemaEngine(), SchemaEngine()
        assert first.compile(registration_schema) is not second.compile(registration_schema)


class TestCacheInvalidation:
    """Cache entries are dropped explicitly."""

    def test_invalidate_schema_forces_recompile(self, registration_schema):
        engine = SchemaEngine()
        engine.compile(registration_schema)
        assert engine.invalidate(registration_schema) is True
        engine.compile(registration_schema)
        assert engine.compile_count == 2

    def test_invalidate_key(self, registration_schema):
        engine = SchemaEngine()
        engine.compile(registration_schema, key="v1")
        assert engine.invalidate("v1") is True
        assert engine.invalidate("v1") is False

    def test_invalidate_unknown_schema(self, registration_schema):
        assert SchemaEngine().invalidate(registration_schema) is False

    def test_clear(self, registration_schema):
        engine = SchemaEngine()
        engine.compile(registration_schema)
        engine.compile(make_registration_schema())
        engine.clear()
        assert len(engine) == 0

    def test_oldest_entry_evicted(self):
        engine = SchemaEngine(max_cache_entries=1)
        first, second = make_registration_schema(), make_registration_schema()
        engine.compile(first)
        engine.compile(second)
        assert len(engine) == 1
        assert first not in engine
        assert second in engine
        engine.compile(first)
        assert engine.compile_count == 3


class TestConcurrentCompile:
    def test_parallel_compiles_of_one_schema(self, registration_schema):
        """Concurrent callers get one validator and one compilation."""
        engine = SchemaEngine()
        with ThreadPoolExecutor(max_workers=8) as pool:
            validators = list(pool.map(lambda _: engine.compile(registration_schema), range(32)))
        assert engine.compile_count == 1
        assert all(v is validators[0] for v in validators)


class TestMalformedSchemas:
    """Schema problems are fatal compile errors, never diagnostics."""

    @parameterized.expand([
        ("unknown_type", {"type": "strng"}),
        ("bad_min_length", {"type": "string", "minLength": -1}),
        ("string_lengths", {"type": "string", "minLength": 10, "maxLength": 6}),
        ("numeric_bounds", {"type": "number", "minimum": 100, "maximum": 18}),
        ("item_counts", {"type": "array", "minItems": 3, "maxItems": 1}),
        ("bad_pattern", {"type": "string", "pattern": "([a-z"}),
        ("nullable_not_bool", {"type": "string", "nullable": "yes"}),
        ("error_message_number", {"type": "string", "errorMessage": 5}),
        ("error_message_value", {"type": "string", "errorMessage": {"minLength": 3}}),
        ("error_message_required", {"type": "object", "errorMessage": {"required": ["a"]}}),
        ("not_an_object", ["type", "string"]),
    ])
    def test_raises_compile_error(self, _name, schema):
        with pytest.raises(SchemaCompileError):
            SchemaEngine().compile(schema)

    def test_nested_error_reports_location(self):
        schema = {
            "type": "object",
            "properties": {"password": {"type": "string", "minLength": 10, "maxLength": 6}},
        }
        with pytest.raises(SchemaCompileError) as exc_info:
            SchemaEngine().compile(schema)
        assert exc_info.value.schema_path == "#/properties/password"
        assert "minLength" in exc_info.value.reason

    def test_failed_compile_is_not_cached(self):
        engine = SchemaEngine()
        schema = {"type": "string", "minLength": 10, "maxLength": 6}
        with pytest.raises(SchemaCompileError):
            engine.compile(schema)
        assert len(engine) == 0
        assert engine.compile_count == 0

    def test_unknown_keyword_allowed_by_default(self):
        SchemaEngine().compile({"type": "string", "placeholder": "Your name"})

    def test_unknown_keyword_rejected_in_strict_mode(self):
        with pytest.raises(SchemaCompileError) as exc_info:
            SchemaEngine(strict=True).compile({"type": "string", "placeholder": "Your name"})
        assert "placeholder" in exc_info.value.reason

    def test_strict_mode_accepts_extension_keywords(self, registration_schema):
        SchemaEngine(strict=True).compile(registration_schema)

    def test_strict_mode_rejects_unknown_override_key(self):
        schema = {
            "type": "object",
            "properties": {"age": {"type": "number"}},
            "errorMessage": {"height": "Height is invalid"},
        }
        SchemaEngine().compile(schema)
        with pytest.raises(SchemaCompileError):
            SchemaEngine(strict=True).compile(copy.deepcopy(schema))

    def test_error_serializes(self):
        error = SchemaCompileError("bad bounds", "#/properties/age")
        assert error.to_dict() == {
            "error": "schema_error",
            "reason": "bad bounds",
            "schemaPath": "#/properties/age",
        }


class TestCompiledValidator:
    """CompiledValidator.run is pure and reports diagnostics as data."""

    def test_valid_data(self, validator):
        result = validator.run(dict(VALID_DATA))
        assert result == ValidationResult(valid=True)
        assert result.diagnostics == ()
        assert bool(result) is True

    def test_invalid_data_has_diagnostics(self, validator):
        result = validator.run({"username": "ab"})
        assert result.valid is False
        assert bool(result) is False
        assert len(result.diagnostics) > 0

    def test_runs_are_deterministic(self, validator):
        first = validator.run({"username": "ab"})
        second = validator.run({"username": "ab"})
        assert first == second

    def test_emission_order(self, validator):
        """Property failures come before required failures, in schema order."""
        result = validator.run({"username": "ab"})
        diagnostics = result.diagnostics
        assert isinstance(diagnostics[0], ConstraintViolation)
        assert diagnostics[0].keyword == "minLength"
        assert diagnostics[0].instance_path == "/username"
        assert [d.missing_property for d in diagnostics[1:]] == [
            "password",
            "phone",
            "acceptTerms",
        ]
        assert all(isinstance(d, RequiredMissing) for d in diagnostics[1:])

    def test_required_diagnostic_shape(self, validator):
        result = validator.run({})
        first = result.diagnostics[0]
        assert first.kind == "required"
        assert first.instance_path == ""
        assert first.schema_path == "#/required"
        assert first.params == {"missingProperty": "username"}
        assert first.message

    def test_constraint_diagnostic_shape(self, validator):
        data = dict(VALID_DATA, password="abc")
        (diagnostic,) = validator.run(data).diagnostics
        assert diagnostic.to_dict() == {
            "keyword": "minLength",
            "instancePath": "/password",
            "schemaPath": "#/properties/password/minLength",
            "params": {"limit": 6},
            "message": diagnostic.message,
        }

    def test_input_is_not_mutated(self, validator):
        data = {"username": "ab", "age": 5}
        validator.run(data)
        assert data == {"username": "ab", "age": 5}

    def test_validator_is_immutable(self, validator):
        with pytest.raises(AttributeError):
            validator.schema = {}
        assert isinstance(validator, CompiledValidator)

    def test_stop_at_first_error(self, registration_schema):
        validator = SchemaEngine(all_errors=False).compile(registration_schema)
        result = validator.run({"username": "ab"})
        assert len(result.diagnostics) == 1
        assert result.diagnostics[0].instance_path == "/username"

    def test_is_valid(self, validator):
        assert validator.is_valid(dict(VALID_DATA)) is True
        assert validator.is_valid({}) is False


class TestNullable:
    """nullable admits None without making the property optional."""

    def test_nullable_accepts_none(self, validator):
        assert validator.run(dict(VALID_DATA, age=None)).valid

    def test_non_nullable_rejects_none(self, validator):
        result = validator.run(dict(VALID_DATA, username=None))
        (diagnostic,) = result.diagnostics
        assert diagnostic.kind == "type"
        assert diagnostic.instance_path == "/username"

    def test_nullable_still_checks_bounds(self, validator):
        result = validator.run(dict(VALID_DATA, age=10))
        (diagnostic,) = result.diagnostics
        assert diagnostic.kind == "minimum"

    def test_nullable_does_not_make_optional(self, engine):
        schema = {
            "type": "object",
            "properties": {"nickname": {"type": "string", "nullable": True}},
            "required": ["nickname"],
        }
        validator = engine.compile(schema)
        assert validator.run({"nickname": None}).valid
        assert not validator.run({}).valid

    def test_type_list(self, engine):
        validator = engine.compile({"type": ["string", "number"], "nullable": True})
        assert validator.run("x").valid
        assert validator.run(3).valid
        assert validator.run(None).valid
        assert not validator.run(True).valid


class TestPatterns:
    """pattern and patternProperties anchor the ECMA-262 way."""

    @parameterized.expand([
        ("end_anchor", "^[0-9]+$", "123", True),
        ("trailing_newline", "^[0-9]+$", "123\n", False),
        ("escaped_dollar", "^\\$[0-9]+$", "$5", True),
        ("dollar_in_class", "^[$]+$", "$$", True),
        ("dollar_in_class_newline", "^[$]+$", "$$\n", False),
        ("unanchored", "[0-9]", "a1b", True),
    ])
    def test_pattern(self, _name, pattern, value, expected):
        validator = SchemaEngine().compile({"type": "string", "pattern": pattern})
        assert validator.run(value).valid is expected

    def test_pattern_properties_trailing_newline(self, engine):
        validator = engine.compile({
            "type": "object",
            "patternProperties": {"^code$": {"type": "string"}},
        })
        assert not validator.run({"code": 1}).valid
        assert validator.run({"code\n": 1}).valid

    def test_pattern_message(self, engine):
        validator = engine.compile({"type": "string", "pattern": "^a$"})
        (diagnostic,) = validator.run("a\n").diagnostics
        assert diagnostic.keyword == "pattern"
        assert diagnostic.params == {"pattern": "^a$"}


class TestFalseSchema:
    def test_keyword_is_readable(self, engine):
        validator = engine.compile({"type": "object", "properties": {"legacy": False}})
        (diagnostic,) = validator.run({"legacy": 1}).diagnostics
        assert isinstance(diagnostic, ConstraintViolation)
        assert diagnostic.kind == "false schema"
        assert diagnostic.to_dict()["keyword"] == "false schema"
        assert "None" not in diagnostic.to_dict()["keyword"]


class TestHashable:
    def test_results_and_diagnostics_hash(self, validator):
        result = validator.run({"username": "ab", "age": 5})
        assert hash(result) == hash(validator.run({"username": "ab", "age": 5}))
        assert len(set(result.diagnostics)) == len(result.diagnostics)

    def test_params_with_list_values(self):
        first = ConstraintViolation("enum", "/color", "bad", "#/enum", {"allowedValues": ["red"]})
        second = ConstraintViolation("enum", "/color", "bad", "#/enum", {"allowedValues": ["red"]})
        assert first == second
        assert hash(first) == hash(second)
