"""Global framework mode: debug, release or test."""

from __future__ import annotations

import os

ENV_GIN_MODE = "GIN_MODE"

DEBUG_MODE = "debug"
RELEASE_MODE = "release"
TEST_MODE = "test"

_AVAILABLE_MODES = (DEBUG_MODE, RELEASE_MODE, TEST_MODE)

_mode_name = DEBUG_MODE


def set_mode(value: str) -> None:
    """Set the framework mode; an empty value selects debug mode.

    Raises ValueError for an unknown mode name.
    """
    global _mode_name
    if not value:
        value = DEBUG_MODE
    if value not in _AVAILABLE_MODES:
        raise ValueError(
            f"gin mode unknown: {value} (available mode: {' '.join(_AVAILABLE_MODES)})"
        )
    _mode_name = value


def mode() -> str:
    """Return the current framework mode."""
    return _mode_name


set_mode(os.environ.get(ENV_GIN_MODE, ""))