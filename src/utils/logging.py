"""Structured logging for the enrichment clients, built on structlog.

Every module logs snake_case events with key/value context, e.g.::

    lookup_retry_scheduled  provider=musicbrainz key=radiohead kind=rate_limited delay_s=120.0
    prefetch_stopped_early  section=artists reason=rate_limited entries=312

The lookup clients bind ``provider`` once, so every line from a pipeline
carries the API it belongs to.  Output goes through one of two renderers
sharing the same processor chain: a coloured console renderer while
developing or running the prefetch CLI by hand, and JSON lines when
``APP_ENV=production`` (or ``json_output=True``) so build logs can be
grepped for ``lookup_invalid_credentials`` or ``lookup_calls_paused``.

Standard-library ``logging`` is routed through the same formatter.  httpx
and httpcore are held at WARNING because the lookup clients already log
each call with its outcome.
"""

import logging
import os
import sys

import structlog

# Third-party loggers that duplicate what the lookup clients report.
_QUIET_LOGGERS = ("httpx", "httpcore")


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> structlog.BoundLogger:
    """Configure structlog for the CLI or an embedding application.

    Args:
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR).
            DEBUG adds per-key cache hits and misses.
        json_output: Force JSON lines. When False, JSON is still used if
            ``APP_ENV`` is ``production``.

    Returns:
        A configured structlog BoundLogger.
    """
    use_json = json_output or os.environ.get("APP_ENV", "development") == "production"

    # merge_contextvars first so bound request context precedes event fields.
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    renderer: structlog.types.Processor
    if use_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*shared_processors, renderer],
        # Events below log_level are dropped before any processor runs.
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *shared_processors,
                renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a structlog logger named *name* (usually ``__name__``).

    Falls back to :func:`configure_logging` defaults when nothing has
    configured structlog yet, e.g. when the providers are used as a library.
    """
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(logger_name=name)
