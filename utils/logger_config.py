import logging.config
import sys


def configure_logging(level: str = "INFO", error_log: str = "daily_alchemy_errors.log"):
    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,

        # Formatters: How the logs look
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S"
            },
        },

        # Handlers: Where the logs go
        "handlers": {
            "console": {
                "level": level,
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "stream": sys.stdout,
            },
            "file": {
                "level": "ERROR",
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "standard",
                "filename": error_log,
                "maxBytes": 10485760,  # 10MB
                "backupCount": 5,
                "delay": True,
            },
        },

        # Loggers
        "loggers": {
            "": {
                "handlers": ["console", "file"],
                "level": "WARNING",
                "propagate": True
            },
            "daily_alchemy": {  # engine: combines, leases, oracle calls, puzzles
                "handlers": ["console", "file"],
                "level": level,
                "propagate": False
            },
            "sqlalchemy.engine": {
                "handlers": ["console"],
                "level": "WARNING",  # INFO shows SQL queries
                "propagate": False
            },
        }
    }

    logging.config.dictConfig(logging_config)
