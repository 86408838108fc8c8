"""Shared HTTP layer for the JSON enrichment APIs.

Every provider issues its GET requests through :meth:`JsonApiProvider._get_json`,
which turns transport problems, HTTP statuses and API error bodies into a
typed :class:`ExternalLookupError`.  The lookup client then decides about
retries from ``error.kind`` alone.

    httpx.TransportError (timeouts, resets)  -> TRANSIENT
    other httpx.HTTPError                    -> UNKNOWN
    429 / provider rate-limit statuses       -> RATE_LIMITED
    API error body (provider hook)           -> provider-specific
    5xx, unparseable 2xx body                -> TRANSIENT
    404                                      -> NOT_FOUND
    other non-2xx                            -> UNKNOWN
"""

from __future__ import annotations

from typing import Any

import httpx

from src.utils.errors import ExternalLookupError, FailureKind

DEFAULT_TIMEOUT = 8.0


class JsonApiProvider:
    """Base class for providers that GET JSON from one external API.

    Parameters
    ----------
    http_client:
        Injected ``httpx.AsyncClient`` (shared connection pool, mockable).
    timeout:
        Per-request timeout in seconds.
    """

    _provider_name: str = "json_api"
    _rate_limit_statuses: frozenset[int] = frozenset({429})

    def __init__(self, http_client: httpx.AsyncClient, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._http = http_client
        self._timeout = timeout

    def get_provider_name(self) -> str:
        return self._provider_name

    def _error(self, kind: FailureKind, message: str, **kwargs: Any) -> ExternalLookupError:
        return ExternalLookupError(kind, message, provider_name=self._provider_name, **kwargs)

    def _check_payload(self, payload: Any, status: int) -> None:
        """Hook for APIs that report errors inside the response body."""

    async def _get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """GET *url* and return the decoded JSON body.

        Raises
        ------
        ExternalLookupError
            For every failure, classified as described in the module docstring.
        """
        request_headers = {"Accept": "application/json"}
        if headers:
            request_headers.update(headers)

        try:
            response = await self._http.get(
                url, params=params, headers=request_headers, timeout=self._timeout
            )
        except httpx.TransportError as exc:
            raise self._error(
                FailureKind.TRANSIENT, f"{type(exc).__name__}: {exc}"
            ) from exc
        except httpx.HTTPError as exc:
            raise self._error(FailureKind.UNKNOWN, f"{type(exc).__name__}: {exc}") from exc

        status = response.status_code
        if status in self._rate_limit_statuses:
            raise self._error(
                FailureKind.RATE_LIMITED, f"Rate limited (HTTP {status})", status_code=status
            )

        try:
            payload = response.json()
        except ValueError:
            payload = None

        self._check_payload(payload, status)

        if status >= 500:
            raise self._error(
                FailureKind.TRANSIENT, f"Server error (HTTP {status})", status_code=status
            )
        if status == 404:
            raise self._error(FailureKind.NOT_FOUND, "Not found (HTTP 404)", status_code=status)
        if not 200 <= status < 300:
            raise self._error(
                FailureKind.UNKNOWN, f"Unexpected status (HTTP {status})", status_code=status
            )
        if payload is None:
            raise self._error(
                FailureKind.TRANSIENT, "Unable to parse API response as JSON", status_code=status
            )
        return payload
