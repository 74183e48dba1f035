from __future__ import annotations

import logging
import sys

import structlog

from stepgoals.core.config import settings

log = structlog.get_logger("stepgoals")


def configure_logging(*, level: str | None = None, json: bool | None = None) -> None:
    """Route structlog through stdlib logging with a console or JSON renderer."""
    level_name = (level or settings.LOG_LEVEL).upper()
    use_json = settings.json_logs if json is None else json

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=getattr(logging, level_name, logging.INFO))

    renderer = structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level_name, logging.INFO)),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
