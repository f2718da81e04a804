"""
Structured Logging

DESIGN DECISION: Every module logs through structlog with snake_case
event names and keyword context, rendered as JSON.
This provides:
1. Greppable, machine-readable logs
2. Context on every failure that is swallowed on purpose
   (a failed context source, a failed chat turn)
3. One place to change the output format

Never log payloads that may hold secrets or bulk data:
API keys, base64 media, full financial context text.
"""

import logging

import structlog


structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(debug: bool = False) -> None:
    """
    Attach a stdlib handler so structlog output is actually emitted.

    Call once at application startup. Libraries embedding this package
    can skip it and configure stdlib logging themselves.
    """
    logging.basicConfig(
        format="%(message)s",
        level=logging.DEBUG if debug else logging.INFO,
    )
    # httpx logs full request URLs at INFO, and the gateway URL carries the API key
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a named structured logger."""
    return structlog.get_logger(name)
