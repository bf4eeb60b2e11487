"""
Pytest configuration and shared fixtures for schemaform tests.

The registration schema mirrors a typical sign-up form: username, password,
phone, an optional age and a terms checkbox with an override message.
"""

import sys
from pathlib import Path

import pytest

# Ensure src and tests directories are in path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))

from schemaform import SchemaEngine


TERMS_MESSAGE = "You must accept terms and conditions"

FIELD_MAP = {
    "username": "U",
    "password": "P",
    "phone": "H",
    "age": "A",
    "acceptTerms": "T",
}

VALID_DATA = {
    "username": "abc",
    "password": "abcdef",
    "phone": "08123456789",
    "acceptTerms": True,
}


def make_registration_schema():
    """Fresh registration schema dict (a new identity on every call)."""
    return {
        "type": "object",
        "properties": {
            "username": {"type": "string", "nullable": False, "minLength": 3},
            "password": {
                "type": "string",
                "nullable": False,
                "minLength": 6,
                "maxLength": 10,
            },
            "phone": {
                "type": "string",
                "nullable": False,
                "pattern": "^((\\+62-?)|0)?[0-9]{10,13}$",
            },
            "age": {
                "type": "number",
                "nullable": True,
                "minimum": 18,
                "maximum": 100,
            },
            "acceptTerms": {
                "type": "boolean",
                "nullable": False,
                "const": True,
                "errorMessage": {"const": TERMS_MESSAGE},
            },
        },
        "required": ["username", "password", "phone", "acceptTerms"],
    }


@pytest.fixture
def registration_schema():
    return make_registration_schema()


@pytest.fixture
def field_map():
    return dict(FIELD_MAP)


@pytest.fixture
def engine():
    return SchemaEngine()


@pytest.fixture
def validator(engine, registration_schema):
    return engine.compile(registration_schema)


@pytest.fixture
def valid_data():
    return dict(VALID_DATA)
