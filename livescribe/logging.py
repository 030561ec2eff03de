"""Logging helpers for livescribe."""

from __future__ import annotations

import logging
from typing import Optional, Union

_LOGGER_CONFIGURED = False
_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(level: Union[int, str] = logging.INFO, force: bool = False) -> None:
    """Configure basic logging once for the application.

    Later calls only adjust the root level unless ``force`` is set, in which
    case the root handlers are rebuilt.
    """

    global _LOGGER_CONFIGURED
    resolved = _resolve_level(level)
    if _LOGGER_CONFIGURED and not force:
        logging.getLogger().setLevel(resolved)
        return

    logging.basicConfig(level=resolved, format=_FORMAT, force=force)
    _LOGGER_CONFIGURED = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Convenience helper that ensures logging is configured."""

    if not _LOGGER_CONFIGURED:
        configure_logging()
    return logging.getLogger(name or "livescribe")


__all__ = ["configure_logging", "get_logger"]
