from .candidate import (
    ContentType,
    Resolution,
    SelectionResult,
    StreamCandidate,
    StreamPreferences,
    StreamRequest,
)
from .errors import (
    CredentialRequired,
    DebridApiError,
    IntegrityError,
    ManualActionRequired,
    PermanentProviderError,
    RateLimited,
    ResolutionTimeout,
    ResolveError,
    ServiceUnavailable,
    StillCaching,
    TorrentStuck,
    TransientProviderError,
    UnknownProvider,
)
from .resolution import (
    DebridFile,
    PlayReference,
    ResolutionCacheEntry,
    ResolveOutcome,
    TorrentState,
    TorrentStatus,
)

__all__ = [
    "ContentType",
    "CredentialRequired",
    "DebridApiError",
    "DebridFile",
    "IntegrityError",
    "ManualActionRequired",
    "PermanentProviderError",
    "PlayReference",
    "RateLimited",
    "Resolution",
    "ResolutionCacheEntry",
    "ResolutionTimeout",
    "ResolveError",
    "ResolveOutcome",
    "SelectionResult",
    "ServiceUnavailable",
    "StillCaching",
    "StreamCandidate",
    "StreamPreferences",
    "StreamRequest",
    "TorrentState",
    "TorrentStatus",
    "TorrentStuck",
    "TransientProviderError",
    "UnknownProvider",
]
