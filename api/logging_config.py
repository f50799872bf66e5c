"""Process-wide logging setup: one stdout handler, plain or JSON lines."""

import logging
import sys
from logging.config import dictConfig

from pythonjsonlogger import jsonlogger

from config import settings

PLAIN_FORMAT = "%(asctime)s | %(levelname)5s | %(name)s | %(message)s"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def build_formatter(json_mode: bool = False) -> logging.Formatter:
    if json_mode:
        return jsonlogger.JsonFormatter(JSON_FORMAT, json_ensure_ascii=False)
    return logging.Formatter(PLAIN_FORMAT)


def setup_logging() -> None:
    level = settings.LOG_LEVEL.upper()

    dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": {"()": build_formatter, "json_mode": settings.LOG_JSON}},
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "stream": sys.stdout,
                "formatter": "default",
            }
        },
        "root": {"level": level, "handlers": ["stdout"]},
        "loggers": {
            # SQL_ECHO already routes statements through this logger
            "sqlalchemy.engine": {"level": "INFO" if settings.SQL_ECHO else "WARNING"},
            "urllib3": {"level": "WARNING"},
            "uvicorn.access": {"level": level},
        },
    })
