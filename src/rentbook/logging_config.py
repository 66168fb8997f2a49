"""Logging setup for the rentbook package."""

import datetime
import json
import logging
import os
from typing import Optional, Union

PACKAGE_LOGGER = "rentbook"
PLAIN_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """Formatter that outputs one JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, ensure_ascii=False)


def setup_logging(
    log_level: Union[int, str] = logging.WARNING,
    log_file: Optional[str] = None,
    json_format: bool = False,
) -> logging.Logger:
    """Configure logging for the rentbook package.

    Handlers are attached to the package logger, not the root logger, so
    embedding applications keep their own configuration.

    Args:
        log_level: Level name ("INFO") or number
        log_file: Optional path of a file to log to as well
        json_format: Emit JSON records instead of plain text

    Returns:
        The configured package logger

    Raises:
        ValueError: If log_level is not a known level name
    """
    if isinstance(log_level, str):
        level = logging.getLevelName(log_level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level '{log_level}'")
        log_level = level

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(log_level)

    # Clear handlers from a previous call
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = JSONFormatter() if json_format else logging.Formatter(PLAIN_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
