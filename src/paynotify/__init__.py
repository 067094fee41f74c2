"""paynotify: turn bank and messaging notifications into payment records."""

__version__ = "0.1.0"
