from .load import load_config
from .schema import (
    AppConfig,
    CacheConfig,
    DebridConfig,
    EnvOverrides,
    ScoringConfig,
    SourceConfig,
    StremioConfig,
)

__all__ = [
    "AppConfig",
    "CacheConfig",
    "DebridConfig",
    "EnvOverrides",
    "ScoringConfig",
    "SourceConfig",
    "StremioConfig",
    "load_config",
]
