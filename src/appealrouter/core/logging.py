"""Loguru setup with stdlib interception."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from loguru import logger

from appealrouter.core.config import LoggingConfig

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level> | {extra}"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message} | {extra}"

INTERCEPTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi")


class InterceptHandler(logging.Handler):
    """Forward stdlib log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Replace loguru's default sink with console (and optional file) sinks."""
    if config is None:
        config = LoggingConfig()

    logger.remove()
    logger.add(
        sys.stdout,
        level=config.level.upper(),
        format=CONSOLE_FORMAT,
        colorize=True,
        backtrace=True,
    )

    if config.log_dir:
        log_path = Path(config.log_dir) / config.filename
        log_path.parent.mkdir(parents=True, exist_ok=True)
        if config.json_logs:
            logger.add(
                str(log_path),
                level=config.level.upper(),
                rotation=config.rotation,
                retention=config.retention,
                enqueue=True,
                serialize=True,
            )
        else:
            logger.add(
                str(log_path),
                level=config.level.upper(),
                rotation=config.rotation,
                retention=config.retention,
                enqueue=True,
                format=FILE_FORMAT,
                colorize=False,
            )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in INTERCEPTED_LOGGERS:
        logging.getLogger(name).handlers = [InterceptHandler()]
