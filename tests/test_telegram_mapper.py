from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace

from paynotify.adapters.telegram_mapper import build_event, source_key_from_message


def _message(username=None, title=None, text="เงินเข้า 100 บาท", date=None):
    chat = SimpleNamespace(username=username, title=title, first_name="Som", last_name="Chai")
    return SimpleNamespace(chat=chat, chat_id=-1001, raw_text=text, date=date)


def test_source_key_prefers_username() -> None:
    assert source_key_from_message(_message(username="KPlus_Alerts")) == "@kplus_alerts"
    assert source_key_from_message(_message()) == "chat_id:-1001"


def test_build_event_uses_chat_and_date() -> None:
    date = datetime(2024, 1, 1, tzinfo=timezone.utc)

    event = build_event(_message(username="scb_bot", title="SCB Alerts", date=date))

    assert event.source == "@scb_bot"
    assert event.title == "SCB Alerts"
    assert event.body == "เงินเข้า 100 บาท"
    assert event.posted_at_ms == int(date.timestamp() * 1000)


def test_route_replaces_chat_key() -> None:
    event = build_event(_message(username="kplus_alerts"), route_to="com.kasikorn.retail.mbanking")

    assert event.source == "com.kasikorn.retail.mbanking"
    assert event.title == "Som Chai"
