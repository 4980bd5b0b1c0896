"""
Vestor - Logging setup

Installs console (and optional file) handlers on the ``vestor`` logger.
Modules log through ``logging.getLogger(__name__)`` and pass structured
context in ``extra``; with JSON output enabled those fields become keys of
each JSON line.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pythonjsonlogger import jsonlogger

ROOT_LOGGER_NAME = "vestor"
PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _json_formatter() -> logging.Formatter:
    return jsonlogger.JsonFormatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
        rename_fields={"asctime": "timestamp", "levelname": "level"},
    )


def configure_logging(
    level: str = "WARNING",
    json_output: bool = False,
    log_file: str | None = None,
) -> logging.Logger:
    """
    Configure the ``vestor`` logger.

    Args:
        level: Minimum log level name
        json_output: Emit one JSON object per line instead of plain text
        log_file: Also write to this file (parent directories are created)

    Returns:
        The configured ``vestor`` logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers to avoid duplicates
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = _json_formatter() if json_output else logging.Formatter(PLAIN_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger
