"""structlog configuration

dev mode: pretty console output
json mode: structured JSON output, one object per line

Services log money as Decimal and bind request_id / task_id through
contextvars; the shared chain below renders both the same way in either mode.
"""

import logging
import os
from decimal import Decimal

import structlog
from structlog.types import EventDict, WrappedLogger

# per-statement DEBUG chatter, and access lines LoggingMiddleware already writes
_QUIET_LOGGERS = ("aiosqlite", "uvicorn.access")


def stringify_decimals(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Render Decimal values (payment amounts) as their canonical string"""
    for key, value in event_dict.items():
        if isinstance(value, Decimal):
            event_dict[key] = str(value)
    return event_dict


def setup_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """Initialize structlog

    Args:
        log_format: "json" (production) or "dev" (console); defaults to FIELDOPS_LOG_FORMAT
        log_level: root level name; defaults to FIELDOPS_LOG_LEVEL, then INFO
    """
    log_format = log_format or os.environ.get("FIELDOPS_LOG_FORMAT", "dev")
    log_level = log_level or os.environ.get("FIELDOPS_LOG_LEVEL", "INFO")

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        stringify_decimals,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(
            ensure_ascii=False
        )
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
