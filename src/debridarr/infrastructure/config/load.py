"""Layered configuration loading.

Layers, lowest to highest precedence::

    DEFAULT_CONFIG  <  YAML file  <  DEBRIDARR_* env (+ .env)  <  CLI

Every layer is first brought into the sectioned YAML shape, then folded
into one dict that ``AppConfig`` validates.
"""

from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from .defaults import DEFAULT_CONFIG
from .schema import AppConfig, EnvOverrides

_SECTIONS = ("http", "logging", "cache", "debrid", "scoring", "stremio")

_TOP_LEVEL = (
    "app_name",
    "environment",
    "api_rate_limit_rpm",
    "play_secret",
    "sweep_interval_seconds",
)

# env/CLI names that live inside a section
_FLAT_TO_SECTION: dict[str, tuple[str, str]] = {
    "http_timeout_seconds": ("http", "timeout_seconds"),
    "http_follow_redirects": ("http", "follow_redirects"),
    "http_user_agent": ("http", "user_agent"),
    "log_level": ("logging", "level"),
    "log_format": ("logging", "format"),
    "cache_backend": ("cache", "backend"),
    "cache_dir": ("cache", "dir"),
    "cache_ttl_seconds": ("cache", "ttl_seconds"),
    "default_provider": ("debrid", "default_provider"),
    "resolve_timeout_seconds": ("debrid", "resolve_timeout_seconds"),
    "resolution_cache_ttl_seconds": ("debrid", "resolution_cache_ttl_seconds"),
    "public_base_url": ("stremio", "public_base_url"),
}


def _fold(into: dict[str, Any], layer: Mapping[str, Any]) -> dict[str, Any]:
    """Fold *layer* into *into* in place.

    Mappings merge key by key; anything else (the ``sources`` list
    included) replaces what the lower layer had.
    """
    for key, value in layer.items():
        current = into.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            _fold(current, value)
        else:
            into[key] = value
    return into


def _sectioned(layer: Mapping[str, Any]) -> dict[str, Any]:
    """Bring one layer into the sectioned shape, ignoring unknown keys."""
    out: dict[str, Any] = {
        name: dict(layer[name])
        for name in _SECTIONS
        if isinstance(layer.get(name), Mapping)
    }
    out.update({name: layer[name] for name in _TOP_LEVEL if name in layer})

    if layer.get("sources") is not None:
        out["sources"] = list(layer["sources"])

    for flat, (section, key) in _FLAT_TO_SECTION.items():
        if flat not in layer:
            continue
        value = layer[flat]
        out.setdefault(section, {})[key] = str(value) if isinstance(value, Path) else value
    return out


def _yaml_layer(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)
    parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError(f"Config YAML must be a mapping, got: {type(parsed)!r}")
    return parsed


def load_config(
    *,
    config_path: Path | None = None,
    dotenv_path: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """Build the validated AppConfig from all layers.

    A ``.env`` file only fills variables that are not already set in the
    process environment.  Nothing is written to disk.

    Raises:
        FileNotFoundError: *config_path* or *dotenv_path* does not exist.
        ValueError: the YAML document is not a mapping.
        pydantic.ValidationError: the merged configuration is invalid.
    """
    if dotenv_path is not None:
        if not dotenv_path.exists():
            raise FileNotFoundError(dotenv_path)
        load_dotenv(dotenv_path, override=False)

    layers: list[Mapping[str, Any]] = [deepcopy(DEFAULT_CONFIG)]
    if config_path is not None:
        layers.append(_yaml_layer(config_path))
    layers.append(EnvOverrides().to_update_dict())
    layers.append(cli_overrides or {})

    merged: dict[str, Any] = {}
    for layer in layers:
        _fold(merged, _sectioned(layer))
    return AppConfig.model_validate(merged)
