"""structlog setup and cycle timing."""

import logging
import sys
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog

from wxrelay.config.settings import Settings

# Libraries that log every request or trigger at INFO
NOISY_LOGGERS = ("apscheduler", "httpx", "httpcore")


class OperationTimer:
    """Time a block and log its start and outcome.

    Keyword context is bound to structlog's contextvars for the duration of
    the block, so every event logged inside it (by any module) carries the
    same fields, e.g. ``kind="alerts"`` for a relay cycle.
    """

    def __init__(self, operation_name: str, logger: Any = None, **context: Any) -> None:
        self.operation_name = operation_name
        self.logger = logger or structlog.get_logger()
        self.context = context
        self.start_time: float = 0
        self.end_time: float = 0
        self._bound: Any = None

    def __enter__(self) -> "OperationTimer":
        self._bound = structlog.contextvars.bind_contextvars(**self.context)
        self.start_time = time.monotonic()
        self.logger.info(f"Starting {self.operation_name}", operation=self.operation_name)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.end_time = time.monotonic()
        try:
            if exc_type is None:
                self.logger.info(
                    f"Completed {self.operation_name}",
                    operation=self.operation_name,
                    duration_seconds=round(self.duration, 3),
                )
            else:
                self.logger.error(
                    f"Failed {self.operation_name}",
                    operation=self.operation_name,
                    duration_seconds=round(self.duration, 3),
                    error=str(exc_val),
                )
        finally:
            structlog.contextvars.reset_contextvars(**self._bound)

    @property
    def duration(self) -> float:
        """Seconds elapsed, final once the block has exited."""
        end = self.end_time or time.monotonic()
        return end - self.start_time


def _handlers(settings: Settings, level: int) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if settings.log_file:
        path = Path(settings.log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                filename=path,
                maxBytes=settings.log_max_bytes,
                backupCount=settings.log_backup_count,
            )
        )

    for handler in handlers:
        handler.setLevel(level)
    return handlers


def _processors(colored: bool) -> list[structlog.types.Processor]:
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if colored:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.extend([structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()])
    return processors


def configure_logging(settings: Settings) -> None:
    """Configure structlog on top of stdlib logging.

    Console output is colored on a TTY and JSON lines otherwise. When
    ``log_file`` is set, events also go to a size-rotated file.

    Args:
        settings: Application settings containing logging configuration.
    """
    level = getattr(logging, settings.log_level)

    logging.basicConfig(
        level=level,
        handlers=_handlers(settings, level),
        format="%(message)s",
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.configure(
        processors=_processors(sys.stdout.isatty()),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, typically for ``__name__``."""
    return structlog.get_logger(name)
