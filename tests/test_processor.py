from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import List

from paynotify.core.admission import AdmissionController
from paynotify.core.bank_rules import DEFAULT_RULES
from paynotify.core.config import DedupConfig, RateLimitConfig
from paynotify.core.engine import ExtractionEngine
from paynotify.core.models import (
    AdmissionDenied,
    Duplicate,
    ExtractedTransaction,
    NoMatch,
    OcrBlock,
    OcrDocument,
    RawEvent,
)
from paynotify.core.ocr import OcrFieldMapper, build_logo_regions, DEFAULT_LOGO_REGIONS
from paynotify.core.processor import TransactionProcessor
from paynotify.core.rules_engine import build_rule_table
from paynotify.core.supervisor import RecoverySupervisor

SCB = "com.scb.phone"
BODY = "เงินเข้า 2,500.00 บาท จาก สมชาย บัญชี 123-4-56789"


class FakeNotifier:
    def __init__(self) -> None:
        self.sent: List[ExtractedTransaction] = []

    async def send(self, transaction: ExtractedTransaction) -> None:
        self.sent.append(transaction)


class FailingNotifier:
    async def send(self, transaction: ExtractedTransaction) -> None:
        raise RuntimeError("network down")


def _processor(
    notifier=None,
    max_events: int = 10,
    dedup: DedupConfig = DedupConfig(mode="off"),
    allowed_sources=None,
) -> TransactionProcessor:
    table = build_rule_table(DEFAULT_RULES)
    supervisor = RecoverySupervisor(lambda: ExtractionEngine(table))
    return TransactionProcessor(
        supervisor=supervisor,
        admission=AdmissionController(RateLimitConfig(max_events=max_events, window_ms=60_000)),
        notifier=notifier or FakeNotifier(),
        dedup_config=dedup,
        allowed_sources=allowed_sources,
        ocr_mapper=OcrFieldMapper(table, supervisor, build_logo_regions(DEFAULT_LOGO_REGIONS)),
    )


def _event(body: str = BODY, source: str = SCB, posted_at_ms: int = 1_000) -> RawEvent:
    return RawEvent(source=source, title="SCB", body=body, posted_at_ms=posted_at_ms)


def test_transaction_is_dispatched() -> None:
    notifier = FakeNotifier()
    processor = _processor(notifier)

    result = asyncio.run(processor.handle(_event()))

    assert isinstance(result, ExtractedTransaction)
    assert result.amount == Decimal("2500.00")
    assert notifier.sent == [result]


def test_no_match_is_not_dispatched() -> None:
    notifier = FakeNotifier()
    processor = _processor(notifier)

    result = asyncio.run(processor.handle(_event(body="Your OTP is ready")))

    assert result == NoMatch("amount_missing")
    assert notifier.sent == []


def test_rate_limit_denies_after_max_events() -> None:
    notifier = FakeNotifier()
    processor = _processor(notifier, max_events=2)

    async def run():
        return [await processor.handle(_event(posted_at_ms=1_000 + i)) for i in range(3)]

    results = asyncio.run(run())

    assert isinstance(results[0], ExtractedTransaction)
    assert isinstance(results[1], ExtractedTransaction)
    assert results[2] == AdmissionDenied(SCB)
    assert len(notifier.sent) == 2


def test_unmonitored_and_empty_events_skip_admission() -> None:
    processor = _processor(max_events=1, allowed_sources={SCB})

    async def run():
        return [
            await processor.handle(_event(source="com.example.game")),
            await processor.handle(RawEvent(source=SCB, title="", body="  ", posted_at_ms=1)),
            await processor.handle(_event()),
        ]

    unmonitored, empty, accepted = asyncio.run(run())

    assert unmonitored == NoMatch("unmonitored_source")
    assert empty == NoMatch("empty_input")
    assert isinstance(accepted, ExtractedTransaction)


def test_redelivered_notification_is_suppressed() -> None:
    notifier = FakeNotifier()
    processor = _processor(notifier, dedup=DedupConfig(mode="per_source"))

    async def run():
        return [await processor.handle(_event(posted_at_ms=1_000)) for _ in range(2)]

    first, second = asyncio.run(run())

    assert isinstance(first, ExtractedTransaction)
    assert isinstance(second, Duplicate)
    assert second.source == SCB
    assert second.transaction == first
    assert len(notifier.sent) == 1


def test_identical_wording_posted_later_is_a_new_payment() -> None:
    notifier = FakeNotifier()
    processor = _processor(notifier, dedup=DedupConfig())

    async def run():
        return [
            await processor.handle(_event(body="เงินเข้า 100.00 บาท", posted_at_ms=1_000)),
            await processor.handle(_event(body="เงินเข้า 100.00 บาท", posted_at_ms=120_000)),
        ]

    first, second = asyncio.run(run())

    assert isinstance(first, ExtractedTransaction)
    assert isinstance(second, ExtractedTransaction)
    assert len(notifier.sent) == 2


def test_global_mode_ignores_source() -> None:
    notifier = FakeNotifier()
    processor = _processor(notifier, dedup=DedupConfig(mode="global"))

    async def run():
        await processor.handle(_event(source=SCB, posted_at_ms=1_000))
        return await processor.handle(_event(source="com.ktb.netbank", posted_at_ms=1_000))

    assert isinstance(asyncio.run(run()), Duplicate)
    assert len(notifier.sent) == 1


def test_dedup_off_dispatches_every_repeat() -> None:
    notifier = FakeNotifier()
    processor = _processor(notifier, dedup=DedupConfig(mode="off"))

    async def run():
        for i in range(3):
            await processor.handle(_event(posted_at_ms=1_000 + i))

    asyncio.run(run())
    assert len(notifier.sent) == 3


def test_raw_event_dedup_runs_before_extraction() -> None:
    notifier = FakeNotifier()
    processor = _processor(notifier, dedup=DedupConfig(mode="per_source", only_on_match=False))

    async def run():
        return [
            await processor.handle(_event(body="Your OTP is ready")),
            await processor.handle(_event(body="Your OTP is ready")),
        ]

    first, second = asyncio.run(run())

    assert first == NoMatch("amount_missing")
    assert second == Duplicate(SCB)
    assert notifier.sent == []


def test_notifier_failure_still_returns_transaction() -> None:
    processor = _processor(FailingNotifier())

    result = asyncio.run(processor.handle(_event()))

    assert isinstance(result, ExtractedTransaction)


def test_ocr_document_goes_through_the_same_pipeline() -> None:
    notifier = FakeNotifier()
    processor = _processor(notifier)
    document = OcrDocument(
        blocks=(
            OcrBlock("KBANK", (0.06, 0.06, 0.2, 0.1)),
            OcrBlock("รับเงิน 300.00 บาท"),
        )
    )

    result = asyncio.run(processor.handle_ocr(document, 1_000))

    assert isinstance(result, ExtractedTransaction)
    assert result.bank_name == "KBANK"
    assert result.matched_source == "com.kasikorn.retail.mbanking"
    assert notifier.sent == [result]
