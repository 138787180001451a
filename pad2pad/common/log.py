"""
Logging configuration helpers.

Shared by the relay and sender entry points: version-tagged formatting and
optional file handler wiring.
"""

from __future__ import annotations

import logging

from pad2pad import __version__

__all__ = [
    "logging_setup",
    "logFormatWithVersion_get",
]


def logging_setup(level: str, log_format: str, log_file: str | None) -> None:
    """
    Configure logging handlers and version-tagged format string.

    Args:
        level:
            Effective log level token (for example `INFO` or `DEBUG`).
        log_format:
            Base formatter string.
        log_file:
            Optional log file path.

    Raises:
        ValueError:
            Raised when `level` is not a logging level name.
    """
    level_value = logging.getLevelName(level.upper())
    if not isinstance(level_value, int):
        raise ValueError(f"Unknown log level '{level}'")

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level_value,
        format=logFormatWithVersion_get(log_format),
        handlers=handlers,
        force=True,
    )


def logFormatWithVersion_get(log_format: str) -> str:
    """
    Inject runtime version tag into timestamped log format.

    Args:
        log_format:
            Base formatter string.

    Returns:
        Formatter string with embedded version token.
    """
    return log_format.replace("%(asctime)s", f"%(asctime)s [v{__version__}]")
