"""Telegram notification adapter for Saved Messages.

Formats a human-readable Markdown message and sends it to Saved Messages.
"""

from __future__ import annotations

from paynotify.adapters.notification_formatting import format_notification
from paynotify.core.models import ExtractedTransaction


class TelegramSavedMessagesNotifier:
    """Notifier adapter that sends transactions to the user's Saved Messages."""

    def __init__(self, client) -> None:
        self._client = client

    async def send(self, transaction: ExtractedTransaction) -> None:
        """Send the formatted notification to Saved Messages."""

        message = format_notification(transaction, mode="markdown")
        await self._client.send_message("me", message, parse_mode="Markdown")
