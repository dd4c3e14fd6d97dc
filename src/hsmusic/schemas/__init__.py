"""Pydantic configuration schemas for hsmusic.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
UserConfig : class
    User-facing configuration (forgiving, minimal)
"""

from hsmusic.schemas.resolve import resolve_config
from hsmusic.schemas.internal import InternalConfig
from hsmusic.schemas.param import ParamConfig
from hsmusic.schemas.user import UserConfig

__all__ = [
    'resolve_config',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
]
