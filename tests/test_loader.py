"""
Tests for schema loading from local files.
"""

import json

import pytest
import yaml

from schemaform import SchemaEngine, SchemaLoadError, load_schema

from conftest import make_registration_schema


class TestLoadSchema:
    def test_json_file(self, tmp_path):
        path = tmp_path / "registration.json"
        path.write_text(json.dumps(make_registration_schema()))
        assert load_schema(path) == make_registration_schema()

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "registration.yaml"
        path.write_text(yaml.safe_dump(make_registration_schema()))
        assert load_schema(str(path)) == make_registration_schema()

    def test_dict_passes_through(self, registration_schema):
        assert load_schema(registration_schema) is registration_schema

    def test_each_load_is_a_new_identity(self, tmp_path):
        """Every received schema object compiles on its own."""
        path = tmp_path / "registration.json"
        path.write_text(json.dumps(make_registration_schema()))
        engine = SchemaEngine()
        engine.compile(load_schema(path))
        engine.compile(load_schema(path))
        assert engine.compile_count == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(SchemaLoadError) as exc_info:
            load_schema(tmp_path / "missing.json")
        assert exc_info.value.reason == "file not found"

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(SchemaLoadError):
            load_schema(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yml"
        path.write_text("type: [object\n")
        with pytest.raises(SchemaLoadError):
            load_schema(path)

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")
        with pytest.raises(SchemaLoadError) as exc_info:
            load_schema(path)
        assert "list" in exc_info.value.reason
