"""Resolution error taxonomy.

Each error carries a machine-readable ``kind`` and the HTTP status the
play endpoint answers with.  Upstream-source failures never appear
here: sources degrade to an empty candidate list instead.
"""

from __future__ import annotations


class ResolveError(Exception):
    """Base error for click-time resolution."""

    kind = "internal"
    status_code = 500

    def __init__(self, message: str = "", *, code: str | None = None) -> None:
        super().__init__(message or self.kind)
        self.code = code or self.kind


class IntegrityError(ResolveError):
    """Play link signature missing or invalid."""

    kind = "invalid_signature"
    status_code = 403


class CredentialRequired(ResolveError):
    """No credential and nothing to fall back to."""

    kind = "credential_required"
    status_code = 401


class UnknownProvider(ResolveError):
    kind = "unknown_provider"
    status_code = 400


class RateLimited(ResolveError):
    """Per-credential request window exhausted."""

    kind = "rate_limited"
    status_code = 429

    def __init__(self, message: str = "", *, retry_after: float = 60.0) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class ServiceUnavailable(ResolveError):
    """Circuit breaker open for this credential."""

    kind = "service_unavailable"
    status_code = 503


class PermanentProviderError(ResolveError):
    """Provider refused for good (not premium, bad key, dead torrent, ...)."""

    kind = "permanent_provider_error"
    status_code = 400


class TransientProviderError(ResolveError):
    """Provider may succeed if the user retries later."""

    kind = "transient_provider_error"
    status_code = 503


class StillCaching(TransientProviderError):
    kind = "still_caching"
    status_code = 202


class TorrentStuck(TransientProviderError):
    kind = "stuck"
    status_code = 202


class ManualActionRequired(TransientProviderError):
    kind = "manual_action_required"
    status_code = 202


class ResolutionTimeout(ResolveError):
    kind = "timeout"
    status_code = 504


class DebridApiError(Exception):
    """Transport or API failure talking to a debrid provider.

    Raised by provider adapters for retriable conditions (network errors,
    HTTP 429/5xx, malformed payloads).  Permanent refusals raise
    :class:`PermanentProviderError` instead.
    """

    def __init__(self, message: str, *, code: str = "api_error") -> None:
        super().__init__(message)
        self.code = code
