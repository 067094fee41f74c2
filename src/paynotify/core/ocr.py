"""OCR field mapping (core domain).

OCR output goes through the same extraction engine as notifications. Logo
regions and bank names in the text only pick the initial source guess.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional, Sequence

from paynotify.core.errors import ConfigurationError
from paynotify.core.models import ExtractionResult, LogoRegion, OcrDocument
from paynotify.core.rules_engine import RuleTable
from paynotify.core.supervisor import RecoverySupervisor

LOGGER = logging.getLogger(__name__)

# Used when no hint matched; it is never registered, so generic fallback applies.
OCR_SOURCE = "ocr"

_HEADER_BOX = (0.05, 0.05, 0.25, 0.15)

DEFAULT_LOGO_REGIONS = [
    {"bank_name": "SCB", "box": list(_HEADER_BOX)},
    {"bank_name": "KBANK", "box": list(_HEADER_BOX)},
    {"bank_name": "KTB", "box": list(_HEADER_BOX)},
    {"bank_name": "BBL", "box": list(_HEADER_BOX)},
]


def build_logo_regions(regions_config: Iterable[Mapping]) -> List[LogoRegion]:
    """Validate logo region configs; boxes are normalized (x1, y1, x2, y2)."""

    regions: List[LogoRegion] = []
    for entry in regions_config:
        bank_name = entry.get("bank_name")
        box = entry.get("box") or []
        if not bank_name:
            raise ConfigurationError(f"Logo region is missing bank_name: {dict(entry)!r}")
        if len(box) != 4:
            raise ConfigurationError(f"Logo region for {bank_name} needs 4 coordinates")
        x1, y1, x2, y2 = (float(value) for value in box)
        if not (0.0 <= x1 <= x2 <= 1.0 and 0.0 <= y1 <= y2 <= 1.0):
            raise ConfigurationError(f"Logo region for {bank_name} is not a normalized box: {box}")
        regions.append(LogoRegion(bank_name=bank_name, box=(x1, y1, x2, y2)))
    return regions


def detect_bank_from_regions(document: OcrDocument, regions: Sequence[LogoRegion]) -> Optional[str]:
    """Return the first bank whose name shows up inside its expected region."""

    for region in regions:
        wanted = region.bank_name.lower()
        for block in document.blocks:
            if block.box is None:
                continue
            left, top = block.box[0], block.box[1]
            if region.contains(left, top) and wanted in block.text.lower():
                return region.bank_name
    return None


def detect_bank_from_text(text: str, rule_table: RuleTable) -> Optional[str]:
    """Return the first rule's bank whose name or alias appears in the text."""

    lowered = text.lower()
    for rule in rule_table.all_rules():
        if any(name.lower() in lowered for name in rule.names()):
            return rule.bank_name
    return None


class OcrFieldMapper:
    """Maps an OCR document onto a regular extraction call."""

    def __init__(
        self,
        rule_table: RuleTable,
        supervisor: RecoverySupervisor,
        logo_regions: Sequence[LogoRegion] = (),
    ) -> None:
        self._rule_table = rule_table
        self._supervisor = supervisor
        self._logo_regions = list(logo_regions)

    def guess_source(self, document: OcrDocument) -> str:
        bank_name = detect_bank_from_regions(document, self._logo_regions)
        if bank_name is None:
            bank_name = detect_bank_from_text(document.full_text, self._rule_table)
        if bank_name is None:
            return OCR_SOURCE
        return self._rule_table.source_for_bank(bank_name) or OCR_SOURCE

    def map(self, document: OcrDocument, observed_at_ms: int = 0) -> ExtractionResult:
        source = self.guess_source(document)
        LOGGER.debug("OCR document mapped to source %s", source)
        return self._supervisor.extract(source, "", document.full_text, observed_at_ms)
