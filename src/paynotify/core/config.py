"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_MAX_EVENTS = 10
DEFAULT_WINDOW_MS = 60_000
DEFAULT_DEDUP_TTL_MS = 300_000


@dataclass(frozen=True)
class RateLimitConfig:
    """Fixed-window admission settings."""

    max_events: int = DEFAULT_MAX_EVENTS
    window_ms: int = DEFAULT_WINDOW_MS


@dataclass(frozen=True)
class DedupConfig:
    """Deduplication settings for the core pipeline."""

    mode: str = "per_source"
    only_on_match: bool = True
    ttl_ms: int = DEFAULT_DEDUP_TTL_MS
