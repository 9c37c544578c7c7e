import logging.config
import sys
from typing import Any, Dict, Optional

# Per-user cycle output goes here so it can be routed separately from request logs
STATS_LOGGER_NAME = "tcapi.stats"


def _stats_handlers(stats_log_file: Optional[str]) -> Dict[str, Dict[str, Any]]:
    handlers: Dict[str, Dict[str, Any]] = {
        "stats_console": {
            "formatter": "stats",
            "class": "logging.StreamHandler",
            "stream": sys.stdout,
        }
    }
    if stats_log_file:
        handlers["stats_file"] = {
            "formatter": "stats",
            "class": "logging.handlers.RotatingFileHandler",
            "filename": stats_log_file,
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 5,
            "encoding": "utf-8",
        }
    return handlers


def setup_logging(log_level: str = "INFO", stats_log_file: Optional[str] = None):
    log_level = log_level.upper()
    stats_handlers = _stats_handlers(stats_log_file)

    LOGGING_CONFIG = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": "%(asctime)s | %(levelname)-8s | %(name)s\n%(pathname)s:%(lineno)d\n%(message)s",
            },
            "simple": {
                "format": "%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s",
            },
            "stats": {
                "format": "%(asctime)s | %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "formatter": "simple",
                "class": "logging.StreamHandler",
                "stream": sys.stdout,
            },
            "error_console": {
                "formatter": "detailed",
                "class": "logging.StreamHandler",
                "stream": sys.stderr,
                "level": "WARNING",
            },
            **stats_handlers,
        },
        "loggers": {
            "": {  # root logger
                "handlers": ["console", "error_console"],
                "level": log_level,
                "propagate": True,
            },
            "uvicorn.error": {
                "handlers": ["console", "error_console"],
                "level": log_level,
                "propagate": False,
            },
            "uvicorn.access": {
                "handlers": ["console"],
                "level": log_level,
                "propagate": False,
            },
            "tcapi": {
                "handlers": ["console", "error_console"],
                "level": log_level,
                "propagate": False,
            },
            STATS_LOGGER_NAME: {
                "handlers": list(stats_handlers),
                "level": "INFO",
                "propagate": False,
            },
        },
    }
    logging.config.dictConfig(LOGGING_CONFIG)
