"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "debridarr",
    "environment": "dev",
    "api_rate_limit_rpm": 50,
    "http": {
        "timeout_seconds": 15.0,
        "follow_redirects": True,
        "user_agent": "Debridarr/0.1.0",
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "cache": {
        "backend": "memory",
        "dir": "./.cache/debridarr",
        "ttl_seconds": 3600,
    },
    "debrid": {
        "default_provider": "alldebrid",
        "resolve_timeout_seconds": 30.0,
        "resolution_cache_ttl_seconds": 900,
    },
    "stremio": {
        "source_timeout_seconds": 12.0,
        "default_languages": ["en"],
    },
}
