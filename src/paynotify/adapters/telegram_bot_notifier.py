"""Telegram Bot API notification adapter.

Uses the Bot API for delivery so transactions can be routed via a bot chat.
"""

from __future__ import annotations

import asyncio
import json
import urllib.error
import urllib.request

from paynotify.adapters.notification_formatting import format_notification
from paynotify.core.models import ExtractedTransaction


class TelegramBotNotifier:
    """Notifier adapter that sends transactions via the Telegram Bot API."""

    def __init__(self, bot_token: str, chat_id: str, timeout: float = 10) -> None:
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._timeout = timeout

    def _endpoint(self) -> str:
        return f"https://api.telegram.org/bot{self._bot_token}/sendMessage"

    def build_payload(self, transaction: ExtractedTransaction) -> dict:
        return {
            "chat_id": self._chat_id,
            "text": format_notification(transaction, mode="html"),
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }

    def _post(self, payload: dict) -> None:
        data = json.dumps(payload).encode("utf-8")
        request = urllib.request.Request(self._endpoint(), data=data, method="POST")
        request.add_header("Content-Type", "application/json")
        try:
            with urllib.request.urlopen(request, timeout=self._timeout):
                pass
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace")
            raise RuntimeError(f"Bot API error {e.code}: {body}") from e

    async def send(self, transaction: ExtractedTransaction) -> None:
        """Send the formatted notification via the Bot API."""

        # urllib blocks, so the request runs on a worker thread.
        await asyncio.to_thread(self._post, self.build_payload(transaction))
