"""Pydantic configuration models with validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]


def _normalize_path(value: Any) -> Path:
    """
    Normalize a path-like value without causing filesystem side-effects.

    This function MUST NOT create directories or files.
    """
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


class CacheConfig(BaseSettings):
    """Cache for upstream source results (backend-agnostic)."""

    backend: Literal["memory", "diskcache"] = Field(
        default="memory",
        description="Cache backend: 'memory' (process-local) or 'diskcache' (SQLite)",
    )
    directory: Path = Field(
        default=Path("./.cache/debridarr"),
        alias="dir",
        description="Diskcache SQLite DB path",
    )
    ttl_seconds: int = Field(
        default=3600,
        description="Default TTL for cache entries (seconds)",
    )
    max_entries: int = Field(
        default=2000,
        description="Capacity of the memory backend (oldest evicted first)",
    )
    max_concurrent: int = Field(
        default=10,
        description="Max parallel diskcache ops (semaphore limit)",
    )

    model_config = SettingsConfigDict(
        env_prefix="DEBRIDARR_CACHE_",
        case_sensitive=False,
        populate_by_name=True,
    )

    @field_validator("directory", mode="before")
    @classmethod
    def _validate_dir(cls, v: Any) -> Path:
        return _normalize_path(v)


class SourceConfig(BaseModel):
    """One upstream Stremio-compatible addon."""

    name: str
    base_url: str
    enabled: bool = True
    pre_resolved: bool = Field(
        default=False,
        description="Source returns direct links (its own premium integration).",
    )
    timeout_seconds: float | None = Field(
        default=None,
        description="HTTP timeout for this source (None = http.timeout_seconds).",
    )
    cache_ttl_seconds: int = Field(
        default=3600,
        description="How long query results are reused. 0 = no caching.",
    )
    season_pack_fallback: bool = Field(
        default=False,
        description="Re-query the bare series id when an episode id is empty.",
    )


def _default_sources() -> list[SourceConfig]:
    return [
        SourceConfig(
            name="torrentio",
            base_url="https://torrentio.strem.fun",
            season_pack_fallback=True,
        ),
        SourceConfig(name="tpb", base_url="https://thepiratebay-plus.strem.fun"),
        SourceConfig(
            name="nuvio",
            base_url="https://nuviostreams.hayd.uk",
            pre_resolved=True,
            cache_ttl_seconds=720,
        ),
    ]


class DebridConfig(BaseModel):
    """Click-time resolution against the debrid providers."""

    default_provider: str = Field(default="alldebrid")
    agent: str = Field(
        default="debridarr",
        description="Agent name reported to providers that ask for one.",
    )
    request_timeout_seconds: float = Field(default=15.0)
    resolve_timeout_seconds: float = Field(
        default=30.0,
        description="Upper bound for one whole resolution (upload/poll/unlock).",
    )
    resolution_cache_ttl_seconds: int = Field(default=900)
    resolution_cache_max_entries: int = Field(default=500)

    rate_limit_per_minute: int = Field(default=30)
    rate_limit_per_hour: int = Field(default=1000)
    rate_limit_max_keys: int = Field(default=200)

    breaker_failure_threshold: int = Field(default=5)
    breaker_reset_seconds: float = Field(default=300.0)
    breaker_max_entries: int = Field(default=200)

    poll_max_iterations: int = Field(default=12)
    poll_queued_delay_seconds: float = Field(default=1.0)
    poll_progress_delay_seconds: float = Field(default=2.0)
    poll_stuck_after: int = Field(
        default=8,
        description="Iterations of literal zero progress before reporting stuck.",
    )
    poll_manual_after: int = Field(
        default=6,
        description="Consecutive queued statuses before asking for manual action.",
    )

    min_video_size_mb: int = Field(default=50)

    @field_validator(
        "request_timeout_seconds",
        "resolve_timeout_seconds",
        "poll_queued_delay_seconds",
        "poll_progress_delay_seconds",
    )
    @classmethod
    def _positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts and delays must be > 0")
        return v


class ScoringConfig(BaseModel):
    """Weights of the default candidate scorer.

    Score = resolution + source quality + codec + language
            - size-ceiling penalty - reliability penalty.
    """

    resolution_points: dict[str, float] = Field(
        default={"2160": 60.0, "1080": 45.0, "720": 25.0, "480": 10.0, "0": 0.0}
    )
    source_quality_points: dict[str, float] = Field(
        default={
            "remux": 12.0,
            "bluray": 10.0,
            "web-dl": 8.0,
            "webrip": 5.0,
            "hdtv": 2.0,
            "dvdrip": 0.0,
            "telesync": -40.0,
            "cam": -60.0,
        }
    )
    codec_points: dict[str, float] = Field(
        default={"h264": 2.0, "h265": 3.0, "av1": 0.0}
    )
    conservative_codec_points: dict[str, float] = Field(
        default={"h264": 6.0, "h265": -10.0, "av1": -15.0},
        description="Codec weights when the user asks for maximum compatibility.",
    )
    conservative_4k_penalty: float = Field(default=20.0)
    language_points: list[float] = Field(
        default=[30.0, 20.0, 10.0],
        description="Bonus by position in the user's language preference list.",
    )
    oversize_penalty: float = Field(default=100.0)
    season_pack_penalty: float = Field(default=3.0)
    reliability_penalties: dict[str, float] = Field(
        default={},
        description="Penalty by URL host or torrent info hash.",
    )


class StremioConfig(BaseModel):
    """Addon manifest and stream-list behaviour."""

    addon_name: str = Field(default="Debridarr")
    source_timeout_seconds: float = Field(
        default=12.0,
        description="Per-source timeout for one aggregation.",
    )
    default_languages: list[str] = Field(default=["en"])
    preload_next_episode: bool = Field(default=True)
    public_base_url: str | None = Field(
        default=None,
        description="Base URL for play links; derived from the request if unset.",
    )

    @field_validator("source_timeout_seconds")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("source_timeout_seconds must be > 0")
        return v


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (http/logging/cache/sources/debrid/...).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    app_name: str = Field(default="debridarr", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # HTTP client (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=15.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
    )
    http_follow_redirects: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "http_follow_redirects",
            AliasPath("http", "follow_redirects"),
        ),
    )
    http_user_agent: str = Field(
        default="Debridarr/0.1.0",
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent for outgoing HTTP requests.",
    )

    api_rate_limit_rpm: int = Field(
        default=50,
        description="Inbound requests per client IP and minute. 0 = unlimited.",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    play_secret: str | None = Field(
        default=None,
        description="HMAC secret for play links. Random per process if unset.",
    )
    sweep_interval_seconds: float = Field(default=60.0)

    cache: CacheConfig = Field(default_factory=CacheConfig)
    sources: list[SourceConfig] = Field(default_factory=_default_sources)
    debrid: DebridConfig = Field(default_factory=DebridConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    stremio: StremioConfig = Field(default_factory=StremioConfig)

    @field_validator("http_timeout_seconds", "sweep_interval_seconds")
    @classmethod
    def _validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @field_validator("sources")
    @classmethod
    def _validate_unique_sources(cls, v: list[SourceConfig]) -> list[SourceConfig]:
        names = [s.name for s in v]
        if len(names) != len(set(names)):
            raise ValueError("source names must be unique")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "follow_redirects": self.http_follow_redirects,
                "user_agent": self.http_user_agent,
            },
            "logging": {"level": self.log_level, "format": self.log_format},
            "cache": {
                "backend": self.cache.backend,
                "dir": str(self.cache.directory),
                "ttl_seconds": self.cache.ttl_seconds,
            },
            "sources": [s.model_dump() for s in self.sources],
            "debrid": self.debrid.model_dump(),
            "scoring": self.scoring.model_dump(),
            "stremio": self.stremio.model_dump(),
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    load.py creates EnvOverrides() to read DEBRIDARR_* variables,
    converts to dict of set values, merges into YAML/defaults,
    then validates AppConfig.

    Supported env var examples (flat, explicit):
    - DEBRIDARR_HTTP_TIMEOUT_SECONDS
    - DEBRIDARR_LOG_LEVEL
    - DEBRIDARR_PLAY_SECRET
    - DEBRIDARR_RESOLVE_TIMEOUT_SECONDS
    """

    model_config = SettingsConfigDict(
        env_prefix="DEBRIDARR_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    http_timeout_seconds: Optional[float] = None
    http_follow_redirects: Optional[bool] = None
    http_user_agent: Optional[str] = None

    api_rate_limit_rpm: Optional[int] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    play_secret: Optional[str] = None
    public_base_url: Optional[str] = None

    cache_backend: Optional[Literal["memory", "diskcache"]] = None
    cache_dir: Optional[Path] = None
    cache_ttl_seconds: Optional[int] = None

    default_provider: Optional[str] = None
    resolve_timeout_seconds: Optional[float] = None
    resolution_cache_ttl_seconds: Optional[int] = None

    @field_validator("cache_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Any:
        if v is None:
            return None
        return _normalize_path(v)

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
