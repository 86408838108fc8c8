"""Custom exception hierarchy for the concert enrichment clients.

All application exceptions inherit from :class:`EnrichmentError`, which
carries an optional ``provider_name`` so log lines can identify which
external service (e.g. "lastfm", "musicbrainz", "photon") caused the failure.

    EnrichmentError  (base -- catch-all for any enrichment error)
    +-- ConfigurationError   (startup / missing config, raised loudly)
    +-- ExternalLookupError  (one failed call to an external API, typed)

``ExternalLookupError`` never reaches callers of the provider coroutines.
It is raised by the HTTP layer of each provider and consumed by the lookup
client, which uses its :class:`FailureKind` to pick a retry decision instead
of sniffing error message strings.
"""

from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):  # noqa: UP042
    """Classification of a failed external call.

    NOT_FOUND:           the API confirmed there is no data for the key
    INVALID_CREDENTIALS: API key missing, invalid or suspended
    RATE_LIMITED:        HTTP 429/503 or an API-specific rate-limit code
    TRANSIENT:           timeout, connection reset, other 5xx, garbled body
    UNKNOWN:             anything else
    """

    NOT_FOUND = "NOT_FOUND"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    RATE_LIMITED = "RATE_LIMITED"
    TRANSIENT = "TRANSIENT"
    UNKNOWN = "UNKNOWN"


class EnrichmentError(Exception):
    """Base exception for all enrichment errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name``.  ``__str__`` prefixes the provider name in brackets
    for log scanning, e.g. ``[lastfm] Invalid API key``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


class ConfigurationError(EnrichmentError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ExternalLookupError(EnrichmentError):
    """Raised by a provider's HTTP layer when one external call fails.

    Parameters
    ----------
    kind:
        The failure class driving the retry decision.
    status_code:
        HTTP status of the response, if one was received.
    api_error_code:
        Error code parsed from the response body (Last.fm ``error`` field).
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str = "External lookup failed",
        provider_name: str | None = None,
        status_code: int | None = None,
        api_error_code: int | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._kind = kind
        self._status_code = status_code
        self._api_error_code = api_error_code

    @property
    def kind(self) -> FailureKind:
        return self._kind

    @property
    def status_code(self) -> int | None:
        return self._status_code

    @property
    def api_error_code(self) -> int | None:
        return self._api_error_code
