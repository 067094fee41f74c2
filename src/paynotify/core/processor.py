"""Core event processing pipeline.

The pipeline enforces a strict order:
1) Fast-exit for unmonitored sources or empty text
2) Fixed-window admission control
3) Optional content-level dedup of raw events (only_on_match=False)
4) Supervised extraction
5) Optional content-level dedup of transactions (only_on_match=True)
6) Dispatch through the notifier port

This module is integration-agnostic. It only relies on the notifier port for
dispatch, enabling other inbound sources or delivery adapters without
changes here.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from paynotify.core.admission import AdmissionController
from paynotify.core.config import DedupConfig
from paynotify.core.dedup import DuplicateSuppressor, compute_fingerprint, normalize_for_fingerprint
from paynotify.core.models import (
    Admission,
    AdmissionDenied,
    Duplicate,
    ExtractionResult,
    NoMatch,
    OcrDocument,
    ProcessingResult,
    RawEvent,
)
from paynotify.core.ocr import OCR_SOURCE, OcrFieldMapper
from paynotify.core.ports import NotifierPort
from paynotify.core.supervisor import RecoverySupervisor

LOGGER = logging.getLogger(__name__)


class TransactionProcessor:
    """Orchestrates admission, extraction, dedup and dispatch."""

    def __init__(
        self,
        supervisor: RecoverySupervisor,
        admission: AdmissionController,
        notifier: NotifierPort,
        dedup_config: DedupConfig,
        allowed_sources: Optional[Iterable[str]] = None,
        ocr_mapper: Optional[OcrFieldMapper] = None,
    ) -> None:
        self._supervisor = supervisor
        self._admission = admission
        self._notifier = notifier
        self._dedup = dedup_config
        self._suppressor = DuplicateSuppressor(dedup_config.ttl_ms)
        self._allowed_sources = set(allowed_sources) if allowed_sources is not None else None
        self._ocr_mapper = ocr_mapper

    async def handle(self, event: RawEvent) -> ProcessingResult:
        """Process one notification event through the core pipeline."""

        if self._allowed_sources is not None and event.source not in self._allowed_sources:
            return NoMatch("unmonitored_source")

        # Empty notifications never count against the rate limit.
        if not event.title.strip() and not event.body.strip():
            return NoMatch("empty_input")

        if self._admission.admit(event.posted_at_ms) is Admission.DENY:
            LOGGER.info("Rate limit reached, dropping event from %s", event.source)
            return AdmissionDenied(event.source)

        if not self._dedup.only_on_match and self._seen(
            event.source, event.combined_text(), event.posted_at_ms, posted_at_ms=event.posted_at_ms
        ):
            LOGGER.info("Dedup skip for %s (same notification)", event.source)
            return Duplicate(event.source)

        result = self._supervisor.extract(event.source, event.title, event.body, event.posted_at_ms)
        return await self._dispatch(result, event.source, event.posted_at_ms, posted_at_ms=event.posted_at_ms)

    async def handle_ocr(self, document: OcrDocument, observed_at_ms: int) -> ProcessingResult:
        """Process one OCR document the same way as a notification."""

        if self._ocr_mapper is None:
            raise RuntimeError("OCR mapper is not configured")
        if not document.full_text.strip():
            return NoMatch("empty_input")

        if self._admission.admit(observed_at_ms) is Admission.DENY:
            LOGGER.info("Rate limit reached, dropping OCR document")
            return AdmissionDenied(OCR_SOURCE)

        if not self._dedup.only_on_match and self._seen(OCR_SOURCE, document.full_text, observed_at_ms):
            LOGGER.info("Dedup skip for OCR document (same text)")
            return Duplicate(OCR_SOURCE)

        result = self._ocr_mapper.map(document, observed_at_ms)
        return await self._dispatch(result, OCR_SOURCE, observed_at_ms)

    async def _dispatch(
        self,
        result: ExtractionResult,
        source: str,
        now_ms: int,
        posted_at_ms: Optional[int] = None,
    ) -> ProcessingResult:
        if isinstance(result, NoMatch):
            LOGGER.debug("No transaction in event from %s (%s)", source, result.reason)
            return result

        # Only transactions are fingerprinted here, so irrelevant notifications
        # never fill the dedup set.
        if self._dedup.only_on_match and self._seen(source, result.raw_text, now_ms, posted_at_ms):
            LOGGER.info("Dedup skip for %s (same transaction)", source)
            return Duplicate(source, result)

        try:
            await self._notifier.send(result)
        except Exception:
            LOGGER.exception("Failed to dispatch transaction from %s", source)
        else:
            LOGGER.info("Transaction dispatched: %s %s from %s", result.bank_name, result.amount, source)
        return result

    def _seen(self, source: str, text: str, now_ms: int, posted_at_ms: Optional[int] = None) -> bool:
        # Notifications are keyed on post time too; OCR documents on text alone.
        fingerprint = compute_fingerprint(source, normalize_for_fingerprint(text), self._dedup.mode, posted_at_ms)
        if fingerprint is None:
            return False
        return self._suppressor.check_and_mark(fingerprint, now_ms)
