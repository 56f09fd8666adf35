"""Port for upstream content sources."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from debridarr.domain.entities.candidate import ContentType, StreamCandidate


@runtime_checkable
class StreamSourcePort(Protocol):
    """One upstream backend that turns a content id into candidates.

    Implementations swallow their own transport and parsing failures and
    return an empty list; the aggregator still guards against anything
    that slips through.
    """

    @property
    def name(self) -> str:
        """Provenance tag written onto every candidate."""
        ...

    @property
    def pre_resolved(self) -> bool:
        """True when the source hands out direct links already."""
        ...

    async def query(
        self, content_type: ContentType, content_id: str
    ) -> list[StreamCandidate]: ...
