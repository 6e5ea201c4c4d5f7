# backend/stockroom/core/logging_config.py

import logging
import logging.config

from stockroom.core.config import settings


def configure_logging(level: str = None) -> None:
    level = (level or settings.log_level).upper()

    logging.config.dictConfig(
        {
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
            "loggers": {
                "stockroom": {"handlers": ["console"], "level": level, "propagate": False},
            },
        }
    )
