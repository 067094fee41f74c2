"""Fixed-window admission control (core domain).

The window resets only at discrete boundaries, so up to twice the threshold
can pass around a boundary. That bound is accepted; a sliding window is not
used.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional

from paynotify.core.config import RateLimitConfig
from paynotify.core.models import Admission


@dataclass
class RateWindowState:
    window_start_ms: int
    count_in_window: int


class AdmissionController:
    """Counts events per window and denies anything past the threshold."""

    def __init__(self, config: Optional[RateLimitConfig] = None) -> None:
        self._config = config or RateLimitConfig()
        self._state: Optional[RateWindowState] = None
        self._lock = threading.Lock()

    @property
    def state(self) -> Optional[RateWindowState]:
        return self._state

    def admit(self, now_ms: int) -> Admission:
        # Reset-then-increment must happen as one unit under concurrent callers.
        with self._lock:
            state = self._state
            if state is None or now_ms - state.window_start_ms >= self._config.window_ms:
                self._state = RateWindowState(window_start_ms=now_ms, count_in_window=1)
                return Admission.ALLOW

            state.count_in_window += 1
            if state.count_in_window > self._config.max_events:
                return Admission.DENY
            return Admission.ALLOW
