"""
Logging configuration for the bridge

Health requests (/health, /healthz, /status) are polled constantly by the
Designer extension and process supervisors, so their access lines are
dropped.
"""

import logging
import logging.config
from typing import Any, Dict

HEALTH_PATHS = ("/health", "/healthz", "/status")

SERVER_LOGGERS = ("uvicorn", "uvicorn.error")


class HealthCheckFilter(logging.Filter):
    """Filter to suppress health and status polling logs."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter out health requests from uvicorn access logs."""
        if record.name == "uvicorn.access":
            message = record.getMessage()
            if "GET" in message and any(f"{path} " in message for path in HEALTH_PATHS):
                return False
        return True


def _logger(handler: str, level: str) -> Dict[str, Any]:
    return {"handlers": [handler], "level": level, "propagate": False}


def get_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """
    Build the dictConfig for the bridge process.

    Args:
        level: Level for the flowbridge loggers and the root logger

    Returns:
        Dictionary for logging.config.dictConfig (also passed to uvicorn)
    """
    level = level.upper()

    loggers = {name: _logger("default", "INFO") for name in SERVER_LOGGERS}
    loggers["uvicorn.access"] = _logger("access", "INFO")
    loggers["flowbridge"] = _logger("default", level)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"health_filter": {"()": HealthCheckFilter}},
        "formatters": {
            "default": {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"},
            "access": {"format": "%(message)s"},
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
            "access": {
                "class": "logging.StreamHandler",
                "formatter": "access",
                "stream": "ext://sys.stdout",
                "filters": ["health_filter"],
            },
        },
        "loggers": loggers,
        "root": {"level": level, "handlers": ["default"]},
    }
