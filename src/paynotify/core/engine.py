"""Rule selection and field extraction (core domain).

The engine is a pure function over its inputs and the immutable RuleTable,
so it is safe to call from any thread.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
import logging
from typing import Optional

from paynotify.core.models import (
    UNKNOWN_SENDER,
    ExtractedTransaction,
    ExtractionResult,
    NoMatch,
    combine_text,
)
from paynotify.core.rules_engine import ExtractionRule, RuleTable, first_group

LOGGER = logging.getLogger(__name__)


def parse_amount(raw: str) -> Optional[Decimal]:
    """Strip thousands separators and parse a non-negative decimal."""

    cleaned = raw.replace(",", "").strip()
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount < 0:
        return None
    return amount


class ExtractionEngine:
    """Turns (source, title, body) into an ExtractedTransaction or NoMatch."""

    def __init__(self, rule_table: RuleTable) -> None:
        self._rule_table = rule_table

    @property
    def rule_table(self) -> RuleTable:
        return self._rule_table

    def select_rule(self, source: str, text: str) -> Optional[ExtractionRule]:
        """Exact source lookup, else the first rule whose bank name is in the text.

        The fallback resolves straight to a concrete rule; it never goes back
        through source lookup.
        """

        rule = self._rule_table.lookup(source)
        if rule is not None:
            return rule

        lowered = text.lower()
        for candidate in self._rule_table.all_rules():
            if candidate.bank_name.lower() in lowered:
                return candidate
        return None

    def extract(self, source: str, title: Optional[str], body: Optional[str], observed_at_ms: int = 0) -> ExtractionResult:
        if not (title or "").strip() and not (body or "").strip():
            return NoMatch("empty_input")

        text = combine_text(title, body)
        rule = self.select_rule(source, text)
        if rule is None:
            return NoMatch("unknown_source")
        return self.apply_rule(rule, source, text, observed_at_ms)

    def apply_rule(self, rule: ExtractionRule, source: str, text: str, observed_at_ms: int) -> ExtractionResult:
        # Amount is the only mandatory field; account and sender are enrichments.
        amount_match = rule.amount_pattern.search(text)
        if not amount_match:
            return NoMatch("amount_missing")
        amount = parse_amount(first_group(amount_match))
        if amount is None:
            return NoMatch("amount_invalid")

        account_match = rule.account_pattern.search(text)
        account_number = first_group(account_match).strip() if account_match else ""

        sender_info = UNKNOWN_SENDER
        sender_match = rule.sender_pattern.search(text)
        if sender_match:
            sender_info = first_group(sender_match).strip() or UNKNOWN_SENDER

        if rule.source != source:
            LOGGER.debug("Source %s resolved to %s rule by name", source, rule.bank_name)

        return ExtractedTransaction(
            bank_name=rule.bank_name,
            amount=amount,
            account_number=account_number,
            sender_info=sender_info,
            raw_text=text,
            observed_at_ms=observed_at_ms,
            source=source,
            matched_source=rule.source,
        )
