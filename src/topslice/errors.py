"""Exceptions raised by topslice."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Invalid slice finder parameters (raised before any computation)."""


class InvalidInputError(ValueError):
    """Feature matrix or error vector that cannot be encoded."""
