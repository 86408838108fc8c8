"""Utility modules for the enrichment clients.

Available utility modules (all re-exported here for convenience):

- **circuit_breaker** -- Closed/open breaker with a cooldown deadline that
  only ever moves forward; trips permanently on bad credentials.
- **concurrency** -- The request gate (FIFO concurrency slots plus a minimum
  interval between call starts) and the ``throttled_gather`` fan-out helper.
- **errors** -- Exception hierarchy rooted at EnrichmentError, with the
  typed ``FailureKind`` every external failure is classified into.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **retry** -- Bounded retry policy (linear backoff for transient errors,
  capped exponential backoff for rate limits).
- **text_normalizer** -- Cache-key normalization for artist names,
  coordinates and venue queries.
"""

# -- Circuit breaker -------------------------------------------------------
from src.utils.circuit_breaker import CircuitBreaker

# -- Async concurrency helpers ---------------------------------------------
from src.utils.concurrency import RequestGate, throttled_gather

# -- Domain exception hierarchy --------------------------------------------
from src.utils.errors import (
    ConfigurationError,
    EnrichmentError,
    ExternalLookupError,
    FailureKind,
)

# -- Structured logging setup ----------------------------------------------
from src.utils.logging import configure_logging, get_logger

# -- Retry policy ----------------------------------------------------------
from src.utils.retry import RetryContext, RetryPolicy

# -- Cache-key normalization -----------------------------------------------
from src.utils.text_normalizer import coordinate_key, normalize_artist_key, venue_query_key

__all__ = [
    "CircuitBreaker",
    "ConfigurationError",
    "EnrichmentError",
    "ExternalLookupError",
    "FailureKind",
    "RequestGate",
    "RetryContext",
    "RetryPolicy",
    "configure_logging",
    "coordinate_key",
    "get_logger",
    "normalize_artist_key",
    "throttled_gather",
    "venue_query_key",
]
