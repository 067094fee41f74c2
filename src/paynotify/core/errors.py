"""Error types raised by the core."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised at startup when rules or regions cannot be built."""
