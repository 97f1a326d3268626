"""Root logger setup for the gateway and its workers.

``LOG_FORMAT=json`` emits one JSON object per record, tagged with the
service name so gateway lines can be told apart in a shared log stream;
anything else gives plain text lines for local runs. ``LOG_LEVEL`` sets the
root threshold.
"""

import logging
import os
import sys

from pythonjsonlogger.json import JsonFormatter

SERVICE_NAME = "threadboard-gateway"

_TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_JSON_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

# Request-per-line chatter from HTTP clients, uvicorn and the AWS SDK
_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "botocore", "boto3", "s3transfer")


def _build_formatter(log_format: str) -> logging.Formatter:
    if log_format == "json":
        return JsonFormatter(
            _JSON_FORMAT,
            rename_fields={"asctime": "timestamp", "levelname": "level"},
            static_fields={"service": SERVICE_NAME},
        )
    return logging.Formatter(_TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


def configure_logging() -> None:
    """Install a single stdout handler on the root logger.

    Safe to call more than once; earlier handlers are replaced.
    """
    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
    log_format = os.environ.get("LOG_FORMAT", "text").lower()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_build_formatter(log_format))
    root_logger.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
