"""InternalConfig: Authoritative runtime configuration.

This is the only config schema that runtime code sees. It is fully
validated and frozen; runtime code reads fields directly, with no
fallback defaults of its own.
"""

from typing import Optional

from pydantic import ConfigDict

from hsmusic.schemas.base import HsmusicBaseModel
from hsmusic.schemas.param import FindMode, LogLevel


class InternalLoggingConfig(HsmusicBaseModel):
    """Runtime logging configuration."""
    level: LogLevel
    file: Optional[str]


class InternalDebugConfig(HsmusicBaseModel):
    """Runtime diagnostics configuration."""
    track_invalid_properties: bool


class InternalFindConfig(HsmusicBaseModel):
    """Runtime lookup configuration."""
    mode: FindMode


class InternalCacheConfig(HsmusicBaseModel):
    """Runtime cache-warming configuration."""
    precache: bool
    show_readiness: bool


class InternalConfig(HsmusicBaseModel):
    """Fully resolved, immutable runtime configuration.

    Usage
    -----
        def __init__(self, config: InternalConfig):
            self.find_mode = config.find.mode  # NOT .get()
    """

    logging: InternalLoggingConfig
    debug: InternalDebugConfig
    find: InternalFindConfig
    cache: InternalCacheConfig

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,
    )
