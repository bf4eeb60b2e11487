"""
Engine settings models.

Pydantic models for validating schema engine configuration, whether it is
built in code or read from a YAML/JSON settings block.

Example YAML:
    ```yaml
    schema_engine:
      strict: true
      all_errors: true
      cache_by: identity
      max_cache_entries: 128
    ```
"""

from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field


class CacheMode(str, Enum):
    """How the engine derives a cache key when the caller supplies none."""

    IDENTITY = "identity"  # Same schema object, same compiled validator
    CONTENT = "content"  # Same canonical JSON, same compiled validator


class EngineSettings(BaseModel):
    """
    Schema engine configuration.

    Attributes:
        strict: Reject unknown keywords at compile time
        all_errors: Report every failure instead of stopping at the first
        cache_by: Cache key strategy for schemas compiled without a key
        max_cache_entries: Evict the oldest compiled validator past this size
    """

    strict: bool = Field(False, description="Reject unknown schema keywords")
    all_errors: bool = Field(True, description="Collect every diagnostic")
    cache_by: CacheMode = Field(
        CacheMode.IDENTITY, description="Cache key strategy"
    )
    max_cache_entries: Optional[int] = Field(
        None, ge=1, description="Maximum number of cached validators"
    )


def parse_engine_settings(
    settings: Union[EngineSettings, Dict[str, Any], None] = None,
    **overrides: Any,
) -> EngineSettings:
    """
    Build EngineSettings from a settings block, an existing model or nothing.

    Keyword overrides win over values in ``settings``.

    Raises:
        pydantic.ValidationError: If a value is out of range or of the wrong type
    """
    if settings is None:
        base: Dict[str, Any] = {}
    elif isinstance(settings, EngineSettings):
        base = settings.model_dump()
    else:
        base = dict(settings)
    base.update(overrides)
    return EngineSettings(**base)
