"""Shared HTTP plumbing for debrid provider adapters."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from debridarr.domain.entities.errors import DebridApiError

log = structlog.get_logger(__name__)


class HttpDebridProvider:
    """Base class: bearer-authenticated JSON requests with error mapping.

    Network errors, HTTP 429 and 5xx become :class:`DebridApiError`.
    Other statuses are returned to the subclass, which knows how its
    provider encodes permanent refusals.
    """

    key = ""
    short_name = ""
    api_base = ""

    def __init__(self, http_client: httpx.AsyncClient, *, timeout: float = 15.0) -> None:
        self._http = http_client
        self._timeout = timeout

    async def _request(
        self,
        method: str,
        path: str,
        credential: str,
        *,
        params: Any = None,
        data: Any = None,
    ) -> tuple[int, Any]:
        url = f"{self.api_base}{path}"
        try:
            resp = await self._http.request(
                method,
                url,
                params=params,
                data=data,
                headers={"Authorization": f"Bearer {credential}"},
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            log.warning("debrid_request_failed", provider=self.key, path=path, error=str(exc))
            raise DebridApiError(f"{self.key} request failed: {exc}", code="network") from exc

        if resp.status_code == 429:
            raise DebridApiError(f"{self.key} rate limited the request", code="rate_limited")
        if resp.status_code >= 500:
            raise DebridApiError(
                f"{self.key} returned HTTP {resp.status_code}", code="server_error"
            )
        if resp.status_code == 204 or not resp.content:
            return resp.status_code, {}

        try:
            return resp.status_code, resp.json()
        except ValueError as exc:
            raise DebridApiError(f"{self.key} returned invalid JSON", code="bad_payload") from exc
