"""structlog configuration for the URL fetcher service."""

import logging
import sys

import structlog

# httpx and httpcore log every outbound request; FetchClient already emits fetch_* events.
_QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine.Engine")


def setup_logging(log_level: str = "INFO", debug: bool = False) -> None:
    """Configure structlog and route stdlib logging through it.

    ``debug`` selects the console renderer for local runs. Otherwise every event
    is a JSON line with UTC timestamps and the bound ``request_id``.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if debug:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
