"""Logging configuration for mediaopt."""

from __future__ import annotations

import logging

import structlog


def configure_logging(level: int = logging.INFO) -> None:
    """Configure stdlib logging and route structlog through it as JSON."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def bind_media_context(*, context: str, media_id: int) -> None:
    """Attach the media being processed to every structlog event of this task."""
    structlog.contextvars.bind_contextvars(context=context, media_id=media_id)


def clear_media_context() -> None:
    structlog.contextvars.clear_contextvars()
