"""Port for host/torrent reliability lookups."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from debridarr.domain.entities.candidate import StreamCandidate


@runtime_checkable
class ReliabilityLookupPort(Protocol):
    """Returns a non-negative penalty; 0 means no known problems."""

    def penalty(self, candidate: StreamCandidate) -> float: ...
