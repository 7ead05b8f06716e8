"""Logging setup for the command line."""

from __future__ import annotations

from typing import Any

__all__ = ["generate_config"]


def generate_config(level: str = "DEBUG") -> dict[str, Any]:
    """
    Build a ``logging.config.dictConfig`` dictionary.

    Log records go to stderr so YAML written to stdout stays clean.

    Args:
        level: Level for the ps2pipeline loggers.

    Returns:
        dict: The logging configuration.
    """
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": "%(levelname)s: %(message)s"},
            "verbose": {"format": "[%(levelname)s] %(name)s: %(message)s"},
        },
        "handlers": {
            "default": {
                "level": level,
                "formatter": "verbose" if level == "DEBUG" else "standard",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "ps2pipeline": {
                "handlers": ["default"],
                "level": level,
                "propagate": False,
            }
        },
    }
