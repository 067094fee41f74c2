"""Telegram-to-core event mapping adapter.

Bank alerts forwarded into a Telegram chat (SMS forwarders, bank bots) are
turned into RawEvents here. This keeps Telethon-specific details out of the
core pipeline.
"""

from __future__ import annotations

import time
from typing import Optional

from telethon.tl.custom import Message

from paynotify.core.models import RawEvent


def source_key_from_message(message: Message) -> str:
    """Normalize a source key using a single rule enforced across the app."""

    chat = getattr(message, "chat", None)
    username = getattr(chat, "username", None)

    if isinstance(username, str) and username:
        return f"@{username.lower()}"

    # Fallback: always stable and universal
    return f"chat_id:{message.chat_id}"


def _title_from_message(message: Message) -> str:
    chat = getattr(message, "chat", None)
    title = getattr(chat, "title", None)
    if title:
        return str(title)
    first = getattr(chat, "first_name", None)
    last = getattr(chat, "last_name", None)
    return " ".join(part for part in [first, last] if part)


def _posted_at_ms(message: Message) -> int:
    date = getattr(message, "date", None)
    if date is None:
        return int(time.time() * 1000)
    return int(date.timestamp() * 1000)


def build_event(message: Message, route_to: Optional[str] = None) -> RawEvent:
    """Build a core RawEvent from a Telethon Message.

    ``route_to`` replaces the chat key with a rule source, so alerts from a
    bank bot chat are extracted with that bank's rule.
    """

    return RawEvent(
        source=route_to or source_key_from_message(message),
        title=_title_from_message(message),
        body=message.raw_text or "",
        posted_at_ms=_posted_at_ms(message),
    )
