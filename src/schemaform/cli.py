#!/usr/bin/env python3
"""
CLI for checking data against form schemas.

Usage:
    schemaform check schema.json --input '{"username": "ab"}'
    schemaform check schema.yaml --input @data.json --map username=localUsername
    schemaform lint schema.json --strict
    schemaform --version
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from schemaform import __version__
from schemaform.engine import SchemaEngine
from schemaform.exceptions import SchemaCompileError, SchemaLoadError
from schemaform.loader import load_schema
from schemaform.mapping import map_errors, merge_records, records_to_dict

EXIT_INVALID = 1
EXIT_SCHEMA_ERROR = 2

app = typer.Typer(
    name="schemaform",
    help="Validate data against form schemas and map errors to fields",
    no_args_is_help=True,
    add_completion=False,
)


def setup_logging(verbose: int, quiet: bool):
    """Configure logging based on verbosity flags."""
    if quiet:
        level = logging.ERROR
    elif verbose >= 2:
        level = logging.DEBUG
    elif verbose >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def parse_input(value: Optional[str]) -> Any:
    """
    Parse data from a JSON string or @file.json.

    Raises:
        typer.Exit: On parse error
    """
    if value is None:
        return {}

    if value.startswith("@"):
        path = Path(value[1:])
        if not path.exists():
            typer.echo(f"Error: Input file not found: {path}", err=True)
            raise typer.Exit(EXIT_INVALID)
        try:
            return json.loads(path.read_text())
        except json.JSONDecodeError as e:
            typer.echo(f"Error: Invalid JSON in input file: {e}", err=True)
            raise typer.Exit(EXIT_INVALID)

    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        typer.echo(f"Error: Invalid JSON in --input: {e}", err=True)
        raise typer.Exit(EXIT_INVALID)


def parse_mapping(entries: Optional[List[str]], schema: Dict[str, Any]) -> Dict[str, str]:
    """
    Parse ``schema_name=field_name`` entries.

    Without entries every declared property maps to itself.
    """
    if not entries:
        return {name: name for name in schema.get("properties") or {}}

    mapping: Dict[str, str] = {}
    for entry in entries:
        schema_name, sep, field_name = entry.partition("=")
        if not sep or not schema_name or not field_name:
            typer.echo(f"Error: Invalid --map entry {entry!r}, expected schema=field", err=True)
            raise typer.Exit(EXIT_INVALID)
        mapping[schema_name] = field_name
    return mapping


def _load_and_compile(schema_path: Path, strict: bool):
    try:
        schema = load_schema(schema_path)
        return schema, SchemaEngine(strict=strict).compile(schema)
    except SchemaLoadError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(EXIT_SCHEMA_ERROR)
    except SchemaCompileError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(EXIT_SCHEMA_ERROR)


@app.command()
def check(
    schema_path: Path = typer.Argument(..., help="Path to schema JSON/YAML file"),
    input: Optional[str] = typer.Option(None, "--input", "-i", help="Data as JSON or @file.json"),
    map: Optional[List[str]] = typer.Option(None, "--map", "-m", help="schema_name=field_name (repeatable)"),
    strict: bool = typer.Option(False, "--strict", help="Reject unknown schema keywords"),
    merge: bool = typer.Option(False, "--merge", help="Merge records that share a field name"),
    raw: bool = typer.Option(False, "--raw", help="Also print the raw diagnostics"),
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="Increase verbosity (-v, -vv)"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-error output"),
):
    """Validate data and print field error records as JSON."""
    setup_logging(verbose, quiet)

    schema, validator = _load_and_compile(schema_path, strict)
    data = parse_input(input)
    mapping = parse_mapping(map, schema)

    result = validator.run(data)
    records = map_errors(result.diagnostics, mapping)
    if merge:
        records = merge_records(records)

    if not quiet:
        output: Dict[str, Any] = {"valid": result.valid, "fields": records_to_dict(records)}
        if raw:
            output["errors"] = [diagnostic.to_dict() for diagnostic in result.diagnostics]
        typer.echo(json.dumps(output, indent=2, default=str))

    if not result.valid:
        raise typer.Exit(EXIT_INVALID)


@app.command()
def lint(
    schema_path: Path = typer.Argument(..., help="Path to schema JSON/YAML file"),
    strict: bool = typer.Option(False, "--strict", help="Reject unknown schema keywords"),
):
    """Compile a schema and report whether it is well formed."""
    schema, _ = _load_and_compile(schema_path, strict)
    properties = schema.get("properties") or {}
    typer.echo(f"OK: {schema_path} ({len(properties)} properties)")


def version_callback(value: bool):
    """Handle --version flag."""
    if value:
        typer.echo(f"schemaform {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(None, "--version", callback=version_callback, is_eager=True,
                                 help="Show version and exit"),
):
    """schemaform - JSON Schema validation with field-keyed errors."""


def main():
    """Entry point for the schemaform CLI."""
    app()


if __name__ == "__main__":
    main()
