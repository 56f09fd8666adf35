"""Lookup of debrid providers by key."""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from debridarr.domain.ports.debrid_provider import DebridProviderPort

log = structlog.get_logger(__name__)

# Alternate spellings seen in user configuration URLs.
_ALIASES = {
    "ad": "alldebrid",
    "all-debrid": "alldebrid",
    "rd": "realdebrid",
    "real-debrid": "realdebrid",
}


class DebridProviderRegistry:
    def __init__(self, providers: Iterable[DebridProviderPort]) -> None:
        self._providers = {p.key: p for p in providers}
        log.info("debrid_providers_registered", providers=sorted(self._providers))

    @property
    def keys(self) -> list[str]:
        return sorted(self._providers)

    def get(self, key: str | None) -> DebridProviderPort | None:
        if not key:
            return None
        normalized = key.strip().lower()
        return self._providers.get(_ALIASES.get(normalized, normalized))

    def short_names(self) -> dict[str, str]:
        """Provider key -> label shown on stream names (e.g. "AD")."""
        return {key: p.short_name for key, p in self._providers.items()}
