"""ParamConfig: Expert defaults for a wiki data load run.

Every tunable parameter has its default here. Runtime code never reads
ParamConfig directly; it only receives InternalConfig.
"""

from typing import Literal, Optional

from pydantic import Field

from hsmusic.schemas.base import HsmusicBaseModel

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
FindMode = Literal["error", "warn", "quiet"]


class LoggingConfig(HsmusicBaseModel):
    """Logging configuration."""
    level: LogLevel = "INFO"
    file: Optional[str] = Field(None, description="Also log to this file when set")


class DebugConfig(HsmusicBaseModel):
    """Developer diagnostics."""
    track_invalid_properties: bool = Field(
        False, description="Record reads of undeclared properties for a batch report"
    )


class FindConfig(HsmusicBaseModel):
    """Reference lookups made directly through the orchestrator."""
    mode: FindMode = "warn"


class CacheConfig(HsmusicBaseModel):
    """What to do with exposed properties once wiki data is linked."""
    precache: bool = Field(False, description="Compute every exposed property after linking")
    show_readiness: bool = Field(False, description="Log how many properties are ready after linking")


class ParamConfig(HsmusicBaseModel):
    """Complete expert configuration with all defaults.

    Usage
    -----
    This config is NOT used directly by runtime code. It serves as the
    base layer in config resolution:

        internal_cfg = resolve_config(param_cfg, user_cfg)
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    debug: DebugConfig = Field(default_factory=DebugConfig)
    find: FindConfig = Field(default_factory=FindConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
