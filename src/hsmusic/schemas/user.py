"""UserConfig: Forgiving, minimal user-facing configuration.

Accepts flat upper-case aliases (LOG_LEVEL -> logging.level) as well as
nested sections. Users only specify what they want to override.
"""

from typing import Optional

from pydantic import Field, field_validator

from hsmusic.schemas.base import HsmusicBaseModel


class UserLoggingConfig(HsmusicBaseModel):
    """User-facing logging config."""
    level: Optional[str] = None
    file: Optional[str] = None

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v):
        """Accept level names in any case."""
        if isinstance(v, str):
            return v.upper().strip()
        return v


class UserCacheConfig(HsmusicBaseModel):
    """User-facing cache config."""
    precache: Optional[bool] = None
    show_readiness: Optional[bool] = None


class UserConfig(HsmusicBaseModel):
    """User-facing configuration schema.

    Usage
    -----
        user_cfg = UserConfig(LOG_LEVEL="debug", PRECACHE=True)
        internal = resolve_config(ParamConfig(), user_cfg)
    """

    # Flat aliases
    log_level: Optional[str] = Field(None, alias="LOG_LEVEL")
    log_file: Optional[str] = Field(None, alias="LOG_FILE")
    track_invalid_properties: Optional[bool] = Field(None, alias="DEBUG_TRACK_INVALID_PROPERTIES")
    find_mode: Optional[str] = Field(None, alias="FIND_MODE")
    precache: Optional[bool] = Field(None, alias="PRECACHE")

    # Nested overrides (advanced users)
    logging: Optional[UserLoggingConfig] = None
    cache: Optional[UserCacheConfig] = None

    model_config = HsmusicBaseModel.model_config.copy()
    # Allow forgiving input dictionaries (ignore unknown keys)
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Accept level names in any case."""
        if isinstance(v, str):
            return v.upper().strip()
        return v

    @field_validator("find_mode", mode="before")
    @classmethod
    def normalize_find_mode(cls, v):
        """Normalize find modes to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v

    def to_internal_overrides(self) -> dict:
        """Convert flat UserConfig to nested InternalConfig structure."""
        overrides = {}

        logging_section = {}
        if self.log_level is not None:
            logging_section["level"] = self.log_level
        if self.log_file is not None:
            logging_section["file"] = self.log_file
        if self.logging is not None:
            logging_section.update(self.logging.model_dump(exclude_none=True))
        if logging_section:
            overrides["logging"] = logging_section

        if self.track_invalid_properties is not None:
            overrides["debug"] = {"track_invalid_properties": self.track_invalid_properties}

        if self.find_mode is not None:
            overrides["find"] = {"mode": self.find_mode}

        cache_section = {}
        if self.precache is not None:
            cache_section["precache"] = self.precache
        if self.cache is not None:
            cache_section.update(self.cache.model_dump(exclude_none=True))
        if cache_section:
            overrides["cache"] = cache_section

        return overrides
