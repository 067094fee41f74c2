"""Per-event failure isolation around the extraction engine."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from paynotify.core.engine import ExtractionEngine
from paynotify.core.models import ExtractionResult, NoMatch

LOGGER = logging.getLogger(__name__)


class RecoverySupervisor:
    """Turns unexpected extraction failures into NoMatch for that event.

    After a failure the engine is rebuilt from the factory. The engine holds
    only the immutable rule table, so rebuilding amounts to confirming the
    table is intact.
    """

    def __init__(self, engine_factory: Callable[[], ExtractionEngine]) -> None:
        self._engine_factory = engine_factory
        self._engine = engine_factory()
        self._lock = threading.Lock()
        self._failures = 0

    @property
    def engine(self) -> ExtractionEngine:
        return self._engine

    @property
    def failures(self) -> int:
        return self._failures

    def extract(self, source: str, title: Optional[str], body: Optional[str], observed_at_ms: int = 0) -> ExtractionResult:
        try:
            return self._engine.extract(source, title, body, observed_at_ms)
        except Exception:
            LOGGER.exception("Extraction failed for %s; returning no match", source)
            with self._lock:
                self._failures += 1
            self._recover()
            return NoMatch("unexpected_failure")

    def _recover(self) -> None:
        try:
            engine = self._engine_factory()
        except Exception:
            LOGGER.exception("Engine rebuild failed; keeping the previous engine")
            return
        if not engine.rule_table.verify():
            LOGGER.error("Rule table failed verification after rebuild; keeping the previous engine")
            return
        with self._lock:
            self._engine = engine
