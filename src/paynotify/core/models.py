"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any platform-specific notification or OCR types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Tuple, Union

UNKNOWN_SENDER = "Unknown"

# A normalized (x1, y1, x2, y2) rectangle, each coordinate in 0..1.
Box = Tuple[float, float, float, float]


@dataclass(frozen=True)
class RawEvent:
    """One inbound notification as delivered by the platform collaborator."""

    source: str
    title: str
    body: str
    posted_at_ms: int

    def combined_text(self) -> str:
        return combine_text(self.title, self.body)


@dataclass(frozen=True)
class ExtractedTransaction:
    """A payment transaction pulled out of notification or OCR text."""

    bank_name: str
    amount: Decimal
    account_number: str
    sender_info: str
    raw_text: str
    observed_at_ms: int
    source: str = field(default="", compare=False)
    matched_source: str = ""

    def to_payload(self) -> dict[str, Any]:
        """Return the dictionary handed to the host application."""

        return {
            "packageName": self.source,
            "bankName": self.bank_name,
            "amount": float(self.amount),
            "accountNumber": self.account_number,
            "senderInfo": self.sender_info,
            "rawText": self.raw_text,
            "timestamp": self.observed_at_ms,
        }


@dataclass(frozen=True)
class NoMatch:
    """Expected "no transaction here" outcome, never raised."""

    reason: str


@dataclass(frozen=True)
class AdmissionDenied:
    """The event was dropped by the rate limiter before extraction."""

    source: str


@dataclass(frozen=True)
class Duplicate:
    """The same content was already seen within the dedup window."""

    source: str
    transaction: Optional[ExtractedTransaction] = None


class Admission(Enum):
    ALLOW = "allow"
    DENY = "deny"


ExtractionResult = Union[ExtractedTransaction, NoMatch]
ProcessingResult = Union[ExtractedTransaction, NoMatch, AdmissionDenied, Duplicate]


@dataclass(frozen=True)
class OcrBlock:
    """A recognized text block with an optional normalized bounding box."""

    text: str
    box: Optional[Box] = None


@dataclass(frozen=True)
class OcrDocument:
    """OCR output for one captured screen."""

    blocks: Tuple[OcrBlock, ...]

    @property
    def full_text(self) -> str:
        return "\n".join(block.text for block in self.blocks)


@dataclass(frozen=True)
class LogoRegion:
    """Screen region where a bank's logo or name is expected."""

    bank_name: str
    box: Box

    def contains(self, x: float, y: float) -> bool:
        x1, y1, x2, y2 = self.box
        return x1 <= x <= x2 and y1 <= y <= y2


def combine_text(title: Optional[str], body: Optional[str]) -> str:
    """Join title and body with a single space, title first."""

    return f"{title or ''} {body or ''}"
