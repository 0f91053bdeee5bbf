"""
Logging setup.

Modules log through ``logging.getLogger(__name__)``; this module
wires those loggers to a single console handler once, at startup.
"""

import logging.config

from topup_desk.config import get_settings


def configure_logging() -> None:
    settings = get_settings()
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            },
        },
        "root": {"handlers": ["console"], "level": "WARNING"},
        "loggers": {
            "topup_desk": {"level": settings.LOG_LEVEL},
            # httpx logs every request at INFO, including the bot token in the URL
            "httpx": {"level": "WARNING"},
        },
    })
