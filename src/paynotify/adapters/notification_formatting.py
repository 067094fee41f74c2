"""Shared notification formatting helpers.

Keeping formatting here prevents drift between adapters and keeps messages
consistent regardless of delivery channel.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
import html

from paynotify.core.models import ExtractedTransaction

DIVIDER = "──────────────"


def format_amount(amount: Decimal) -> str:
    """Two decimals with thousands separators, e.g. 2,500.00."""

    return f"{amount:,.2f}"


def format_title(transaction: ExtractedTransaction) -> str:
    return f"รับเงินเข้าบัญชี {transaction.bank_name}"


def format_summary(transaction: ExtractedTransaction) -> str:
    """One-line body used for compact system notifications."""

    return f"{format_amount(transaction.amount)} บาท จาก {transaction.sender_info}"


def _timestamp(transaction: ExtractedTransaction) -> str:
    observed = datetime.fromtimestamp(transaction.observed_at_ms / 1000, tz=timezone.utc)
    return observed.astimezone().strftime("%H:%M:%S %d-%m-%Y").strip()


def _detail_lines(transaction: ExtractedTransaction) -> list[str]:
    lines = [
        f"จำนวน {format_amount(transaction.amount)} บาท",
        f"จาก {transaction.sender_info}",
    ]
    if transaction.account_number:
        lines.append(f"บัญชี {transaction.account_number}")
    return lines


def _format_markdown(transaction: ExtractedTransaction) -> str:
    """Create the Markdown notification body used by Saved Messages."""

    def escape_md(value: str) -> str:
        for ch in r"*[`_":
            value = value.replace(ch, f"\\{ch}")
        return value

    lines = [
        f"[{_timestamp(transaction)}]",
        f"**{escape_md(format_title(transaction))}**",
        DIVIDER,
        *(escape_md(line) for line in _detail_lines(transaction)),
        DIVIDER,
    ]
    return "\n".join(lines)


def _format_html(transaction: ExtractedTransaction) -> str:
    """Create the HTML notification body used by the Bot API adapter."""

    parts = [
        f"[{html.escape(_timestamp(transaction))}]",
        f"<b>{html.escape(format_title(transaction))}</b>",
        DIVIDER,
        *(html.escape(line) for line in _detail_lines(transaction)),
        DIVIDER,
    ]
    return "\n".join(parts)


def format_notification(transaction: ExtractedTransaction, mode: str) -> str:
    """Return the notification formatted for the requested mode."""

    if mode == "markdown":
        return _format_markdown(transaction)
    if mode == "html":
        return _format_html(transaction)
    raise ValueError(f"Unsupported notification format: {mode}")
