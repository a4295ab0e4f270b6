from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

APP_LOGGER = "compass"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE = "app.log"
MAX_BYTES = 5 * 1024 * 1024
BACKUPS = 5


def _resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


def _rotating_handler(log_dir: str, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    os.makedirs(log_dir, exist_ok=True)
    handler = RotatingFileHandler(
        os.path.join(log_dir, LOG_FILE), maxBytes=MAX_BYTES, backupCount=BACKUPS, encoding="utf-8"
    )
    handler.setFormatter(formatter)
    handler.setLevel(level)
    return handler


def init_logging(log_dir: Optional[str] = None, level: str | int = "INFO", *, to_file: bool = True) -> logging.Logger:
    """Configure the `compass` app logger once and return it.

    - log_dir: where app.log rotates (default: $LOG_DIR or ./logs)
    - level: logging level name or int
    - to_file: False keeps output console-only (tests, one-shot CLI runs)

    Components log through `get_logger(area)`, i.e. `compass.<area>`, and propagate here.
    """
    app_logger = logging.getLogger(APP_LOGGER)
    if app_logger.handlers:
        return app_logger

    numeric = _resolve_level(level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    file_path = None
    if to_file:
        target = log_dir or os.environ.get("LOG_DIR", "logs")
        app_logger.addHandler(_rotating_handler(target, numeric, formatter))
        file_path = os.path.join(target, LOG_FILE)

    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    stream.setLevel(numeric)
    app_logger.addHandler(stream)
    app_logger.setLevel(numeric)

    app_logger.debug("logging_ready | level=%s file=%s", logging.getLevelName(numeric), file_path)
    return app_logger


def get_logger(area: str) -> logging.Logger:
    """Component logger for an area: get_logger('hud') -> 'compass.hud'."""
    return logging.getLogger(f"{APP_LOGGER}.{area}")
