import logging
import sys
from typing import Any, Callable, MutableMapping, TextIO, cast

import structlog

from bookloop.config import settings

Processor = Callable[[Any, str, MutableMapping[str, Any]], Any]


def setup_logging(stream: TextIO = sys.stdout) -> None:
    """
    Configure structured logging once for the whole process.

    INFO and above render JSON lines for log aggregation; DEBUG renders a
    readable console format for local work.
    """
    level = settings.LOG_LEVEL

    logging.basicConfig(
        format="[%(asctime)s] %(levelname)s in %(name)s:%(lineno)d: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=stream,
        level=level,
    )

    for noisy_logger in ["httpx", "openai", "sqlalchemy.engine", "uvicorn.access"]:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    renderer: Processor = cast(
        Processor,
        (
            structlog.dev.ConsoleRenderer(colors=True)
            if level == "DEBUG"
            else structlog.processors.JSONRenderer()
        ),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )
