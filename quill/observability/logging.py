from __future__ import annotations

import logging
from logging.config import dictConfig

from asgi_correlation_id.context import correlation_id
from pythonjsonlogger import jsonlogger

SERVICE_NAME = "quill"

_FIELDS = "%(asctime)s %(levelname)s %(name)s %(message)s %(correlation_id)s"
_CONSOLE_FORMAT = (
    "%(asctime)s %(levelname)-8s [%(correlation_id)s] %(name)s: %(message)s"
)


class CorrelationIdFilter(logging.Filter):
    """Stamp each record with the request ID set by CorrelationIdMiddleware."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id.get() or "-"
        return True


def configure_logging(level: str = "INFO", json_logs: bool = True) -> None:
    """Send app, client and server logs to one stderr handler.

    ``json_logs=False`` swaps the JSON formatter for a one-line console
    format, which is easier to read while developing.
    """
    server = {"handlers": ["stderr"], "level": level, "propagate": False}
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"request_id": {"()": CorrelationIdFilter}},
            "formatters": {
                "json": {
                    "()": jsonlogger.JsonFormatter,
                    "fmt": _FIELDS,
                    "static_fields": {"service": SERVICE_NAME},
                },
                "console": {"format": _CONSOLE_FORMAT},
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "formatter": "json" if json_logs else "console",
                    "filters": ["request_id"],
                }
            },
            "root": {"handlers": ["stderr"], "level": level},
            "loggers": {
                SERVICE_NAME: {"level": level},
                # request lines from the Supabase clients are noise at INFO
                "httpx": {"level": "WARNING"},
                "httpcore": {"level": "WARNING"},
                "botocore": {"level": "WARNING"},
                "uvicorn.error": server,
                "uvicorn.access": server,
            },
        }
    )
