"""Runtime logging helpers."""

from __future__ import annotations

import os
import sys
from logging import Handler
from typing import Literal

from loguru import logger
from rich.console import Console
from rich.logging import RichHandler

LogProfile = Literal["default", "hook"]

DEBUG_ENV = "SHELLWARE_DEBUG"
LEGACY_DEBUG_ENVS = ("PLUGINS_DEBUG", "AWS_MIDDLEWARE_DEBUG")

_PROFILE_FORMATS: dict[LogProfile, str] = {
    "hook": "{message}",
    "default": "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<7} | {name}:{function}:{line} | {message}",
}
_CONFIGURED_PROFILE: LogProfile | None = None


def debug_enabled() -> bool:
    """Debug tracing is on when any debug variable is present, whatever its value."""

    return any(name in os.environ for name in (DEBUG_ENV, *LEGACY_DEBUG_ENVS))


def _build_hook_handler() -> Handler:
    return RichHandler(
        console=Console(stderr=True),
        show_level=True,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )


def configure_logging(*, profile: LogProfile = "default", level: str | None = None) -> None:
    """Configure process-level logging once.

    All output goes to stderr: stdout is reserved for the corrected command line.
    """

    global _CONFIGURED_PROFILE
    if profile == _CONFIGURED_PROFILE:
        return

    if debug_enabled():
        resolved = "DEBUG"
    else:
        resolved = (level or os.getenv("SHELLWARE_LOG_LEVEL", "WARNING")).upper()
    logger.remove()
    if profile == "hook":
        logger.add(
            _build_hook_handler(),
            level=resolved,
            format=_PROFILE_FORMATS[profile],
            backtrace=False,
            diagnose=False,
        )
    else:
        logger.add(
            sys.stderr,
            level=resolved,
            format=_PROFILE_FORMATS[profile],
            backtrace=False,
            diagnose=False,
        )
    _CONFIGURED_PROFILE = profile
