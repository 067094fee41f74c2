"""Deduplication helpers (core domain).

Banking apps often repost the same notification; fingerprints of recently
dispatched transactions are kept in memory only, for a bounded TTL.
"""

from __future__ import annotations

import hashlib
import re
import threading
from typing import Optional


def _collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def normalize_for_fingerprint(text: str) -> str:
    """Normalize text for deterministic fingerprinting."""

    return _collapse_whitespace(text).lower()


def compute_fingerprint(
    source_key: str,
    normalized_text: str,
    mode: str,
    posted_at_ms: Optional[int] = None,
) -> Optional[str]:
    """Return a fingerprint hash based on dedup mode.

    With ``posted_at_ms`` a re-delivery of the same notification (same post
    time) matches, while a new payment with identical wording does not.
    """

    if mode == "off":
        return None

    if mode == "global":
        payload = normalized_text
    elif mode == "per_source":
        payload = f"{source_key}\n{normalized_text}"
    else:
        raise ValueError(f"Unsupported dedup mode: {mode}")

    if posted_at_ms is not None:
        payload = f"{posted_at_ms}\n{payload}"

    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class DuplicateSuppressor:
    """In-memory fingerprint set with per-entry expiry."""

    def __init__(self, ttl_ms: int) -> None:
        self._ttl_ms = ttl_ms
        self._seen: dict[str, int] = {}
        self._lock = threading.Lock()

    def check_and_mark(self, fingerprint: str, now_ms: int) -> bool:
        """Return True if the fingerprint is still fresh, otherwise record it."""

        with self._lock:
            self._prune(now_ms)
            if fingerprint in self._seen:
                return True
            self._seen[fingerprint] = now_ms
            return False

    def _prune(self, now_ms: int) -> None:
        cutoff = now_ms - self._ttl_ms
        stale = [fp for fp, seen_at in self._seen.items() if seen_at <= cutoff]
        for fp in stale:
            del self._seen[fp]

    def __len__(self) -> int:
        return len(self._seen)
