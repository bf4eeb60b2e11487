"""
Schema loading from local files.

Schemas are plain dicts once loaded; this module only reads JSON or YAML
documents from disk. Dicts pass through untouched so that the engine's
identity cache keeps working for callers that already hold a schema.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Union

import yaml

from .exceptions import SchemaLoadError

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")


def load_schema(source: Union[str, Path, Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Load a schema definition.

    Args:
        source: Path to a ``.json``, ``.yaml`` or ``.yml`` file, or a schema
            dict (returned as is)

    Returns:
        The schema dict

    Raises:
        SchemaLoadError: If the file is missing, unparseable, or not an object
    """
    if isinstance(source, Mapping):
        return source  # type: ignore[return-value]

    path = Path(source)
    if not path.is_file():
        raise SchemaLoadError(path, "file not found")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SchemaLoadError(path, str(e)) from e

    try:
        if path.suffix.lower() in YAML_SUFFIXES:
            schema = yaml.safe_load(content)
        else:
            schema = json.loads(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise SchemaLoadError(path, f"invalid document: {e}") from e

    if not isinstance(schema, dict):
        raise SchemaLoadError(path, f"expected an object, got {type(schema).__name__}")

    logger.debug("Loaded schema from %s", path)
    return schema
