"""Shared logging utilities for topslice modules."""

from __future__ import annotations

import logging


_LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)


def verbosity_to_level(verbosity: int) -> int:
    """0 (or less) -> WARNING, 1 -> INFO, 2 or more -> DEBUG."""
    return _LEVELS[min(max(int(verbosity), 0), len(_LEVELS) - 1)]


def resolve_verbosity(verbosity: int, verbose: bool = False) -> int:
    """Combine the integer verbosity with the boolean ``verbose`` switch."""
    if verbose:
        return max(1, int(verbosity))
    return int(verbosity)
