"""JSON-lines bridge to the host application.

Inbound: the platform listener writes one JSON object per observed
notification, and OCR results as a JSON document with text blocks.
Outbound: each extracted transaction is written as one JSON line carrying the
fields the host UI layer consumes.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from typing import IO, Iterable, Iterator, Mapping, Optional

from paynotify.core.models import ExtractedTransaction, OcrBlock, OcrDocument, RawEvent

LOGGER = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def event_from_dict(data: Mapping) -> RawEvent:
    """Build a RawEvent, accepting both listener and host key spellings."""

    source = data.get("source") or data.get("packageName")
    if not source:
        raise ValueError("event has no source")
    body = data.get("body")
    if body is None:
        body = data.get("text", "")
    posted_at = data.get("postedAt", data.get("timestamp"))
    return RawEvent(
        source=str(source),
        title=str(data.get("title") or ""),
        body=str(body or ""),
        posted_at_ms=int(posted_at) if posted_at is not None else _now_ms(),
    )


def read_events(lines: Iterable[str]) -> Iterator[RawEvent]:
    """Yield events from JSON lines; malformed lines are logged and skipped."""

    for line_no, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            data = json.loads(line)
            if not isinstance(data, dict):
                raise ValueError("event is not a JSON object")
            yield event_from_dict(data)
        except (ValueError, TypeError) as exc:
            LOGGER.warning("Skipping malformed event on line %s: %s", line_no, exc)


def ocr_document_from_dict(data: Mapping) -> OcrDocument:
    """Build an OcrDocument from {"blocks": [{"text": ..., "box": [x1, y1, x2, y2]}]}."""

    blocks = []
    for raw in data.get("blocks", []):
        box = raw.get("box")
        if box is not None:
            if len(box) != 4:
                raise ValueError(f"OCR block box needs 4 coordinates: {box}")
            box = tuple(float(value) for value in box)
        blocks.append(OcrBlock(text=str(raw.get("text", "")), box=box))
    if not blocks and data.get("text"):
        blocks.append(OcrBlock(text=str(data["text"])))
    return OcrDocument(blocks=tuple(blocks))


class JsonLinesNotifier:
    """Notifier adapter that writes transactions as JSON lines for the host."""

    def __init__(self, stream: Optional[IO[str]] = None) -> None:
        self._stream = stream or sys.stdout

    async def send(self, transaction: ExtractedTransaction) -> None:
        self._stream.write(json.dumps(transaction.to_payload(), ensure_ascii=False) + "\n")
        self._stream.flush()
