"""
Logging configuration for the fan control backend.

Imported for its side effect: configures the loguru sinks and routes the
core package's stdlib logging records into loguru.
"""

import inspect
import logging
import logging.handlers
import os
import sys

from loguru import logger

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
SYSLOG_IDENT = "fancontrol"


class InterceptHandler(logging.Handler):
    """Forward stdlib logging records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller that issued the logging call
        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _syslog_sink():
    handler = logging.handlers.SysLogHandler(
        address="/dev/log", facility=logging.handlers.SysLogHandler.LOG_USER
    )
    handler.ident = f"{SYSLOG_IDENT}: "
    return handler


def setup_logging(level: str = LOG_LEVEL, syslog: bool = False):
    """(Re)configure loguru sinks.

    Args:
        level: Minimum level for the stderr sink
        syslog: Also send INFO and above to the local syslog daemon
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
               "<cyan>{name}</cyan> - <level>{message}</level>",
    )
    if syslog:
        try:
            logger.add(_syslog_sink(), level="INFO", format="{message}")
        except OSError as e:
            logger.warning(f"Syslog unavailable, logging to stderr only: {e}")

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)


setup_logging(syslog=os.environ.get("LOG_SYSLOG", "") == "1")
