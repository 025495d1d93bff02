import logging
import structlog
import sys

from fastapi import Depends
from functools import lru_cache
from structlog.stdlib import BoundLogger
from typing import Annotated

from .config import Config, ConfigDependency

__all__ = [
    "log_level_from_str",
    "get_logger",
    "LoggerDependency",
]

LOG_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def log_level_from_str(level: str, default: int = logging.INFO) -> int:
    return LOG_LEVELS.get(level.lower(), default)


def configure_structlog(config: Config) -> None:
    if config.debug:
        renderers = [structlog.dev.ConsoleRenderer()]
    else:
        renderers = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            *renderers,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level_from_str(config.log_level)),
        # stderr, so that CLI output (TSV, JSON) on stdout stays clean
        logger_factory=structlog.WriteLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


@lru_cache()
def get_logger(config: ConfigDependency) -> BoundLogger:
    configure_structlog(config)
    return structlog.get_logger(service=config.service_name)


LoggerDependency = Annotated[BoundLogger, Depends(get_logger)]
