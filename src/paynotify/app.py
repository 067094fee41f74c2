"""Application entry point for the paynotify extractor."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
import time
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import text2art
from dotenv import load_dotenv
from telethon import events

from paynotify import settings
from paynotify.adapters.host_bridge import JsonLinesNotifier, ocr_document_from_dict, read_events
from paynotify.adapters.telegram_bot_notifier import TelegramBotNotifier
from paynotify.adapters.telegram_mapper import build_event, source_key_from_message
from paynotify.adapters.telegram_notifier import TelegramSavedMessagesNotifier
from paynotify.client import authorize, build_client
from paynotify.core.admission import AdmissionController
from paynotify.core.config import DedupConfig, RateLimitConfig
from paynotify.core.engine import ExtractionEngine
from paynotify.core.errors import ConfigurationError
from paynotify.core.models import ExtractedTransaction
from paynotify.core.ocr import OcrFieldMapper, build_logo_regions
from paynotify.core.processor import TransactionProcessor
from paynotify.core.rules_engine import RuleTable, build_rule_table
from paynotify.core.supervisor import RecoverySupervisor

NAME = "PAYNOTIFY"
FONT = "tarty-1"


def _print_banner() -> None:
    # The banner goes to stderr so stdout stays a clean JSON-lines stream.
    print(text2art(NAME, FONT, space=1), file=sys.stderr)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = _RedactingFormatter(_collect_redaction_values(config), fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        # stderr keeps log lines out of the host bridge stream on stdout.
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/paynotify.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        file_handler = RotatingFileHandler(
            path,
            maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
            backupCount=int(file_cfg.get("backup_count", 5)),
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _build_rule_table() -> RuleTable:
    # Rules compile once at startup; a bad rule aborts before any event is read.
    rule_table = build_rule_table(settings.RULES_CONFIG)
    logging.getLogger(__name__).info("%s rules are loaded", len(rule_table))
    return rule_table


def _build_notifier(client=None):
    """Select the dispatch adapter from configuration."""

    method = settings.NOTIFICATION_METHOD
    if method == "stdout":
        return JsonLinesNotifier()
    if method == "bot":
        load_dotenv()
        bot_token = os.getenv("BOT_API")
        if not bot_token:
            raise ConfigurationError("BOT_API is required when notifications.method=bot")
        if not settings.BOT_CHAT_ID:
            raise ConfigurationError("notifications.bot_chat_id is required for bot notifications")
        return TelegramBotNotifier(bot_token=bot_token, chat_id=str(settings.BOT_CHAT_ID))
    if method == "saved_messages":
        if client is None:
            raise ConfigurationError("notifications.method=saved_messages needs a Telegram client")
        return TelegramSavedMessagesNotifier(client)
    raise ConfigurationError("notifications.method must be 'stdout', 'saved_messages' or 'bot'")


def build_processor(rule_table: RuleTable, notifier, allowed_sources=None) -> TransactionProcessor:
    """Wire the core components once per process."""

    supervisor = RecoverySupervisor(lambda: ExtractionEngine(rule_table))
    admission = AdmissionController(
        RateLimitConfig(
            max_events=settings.RATE_LIMIT_MAX_EVENTS,
            window_ms=settings.RATE_LIMIT_WINDOW_MS,
        )
    )
    dedup_config = DedupConfig(
        mode=settings.DEDUP_MODE,
        only_on_match=settings.DEDUP_ONLY_ON_MATCH,
        ttl_ms=settings.DEDUP_TTL_MS,
    )
    ocr_mapper = OcrFieldMapper(rule_table, supervisor, build_logo_regions(settings.LOGO_REGIONS_CONFIG))
    return TransactionProcessor(
        supervisor=supervisor,
        admission=admission,
        notifier=notifier,
        dedup_config=dedup_config,
        allowed_sources=allowed_sources,
        ocr_mapper=ocr_mapper,
    )


def _uses_telegram_client() -> bool:
    return settings.NOTIFICATION_METHOD == "saved_messages"


async def _with_client(work) -> None:
    """Run ``work(notifier)``, connecting a Telegram client only when needed."""

    if not _uses_telegram_client():
        await work(_build_notifier())
        return

    client = build_client()
    await client.connect()
    try:
        await authorize(client)
        await work(_build_notifier(client))
    finally:
        await client.disconnect()


def _feed(path: str) -> None:
    """Process JSON-lines notification events from a file or stdin."""

    logger = logging.getLogger(__name__)
    rule_table = _build_rule_table()

    async def _process(notifier) -> None:
        processor = build_processor(rule_table, notifier, allowed_sources=settings.SOURCES)
        handle = sys.stdin if path == "-" else open(path, "r", encoding="utf-8")
        try:
            for event in read_events(handle):
                try:
                    await processor.handle(event)
                except Exception:
                    logger.exception("Error while processing event from %s", event.source)
        finally:
            if handle is not sys.stdin:
                handle.close()

    asyncio.run(_with_client(_process))


def _ocr(path: str) -> None:
    """Process one OCR document JSON file."""

    rule_table = _build_rule_table()
    with open(path, "r", encoding="utf-8") as handle:
        document = ocr_document_from_dict(json.load(handle))

    async def _process(notifier) -> None:
        processor = build_processor(rule_table, notifier)
        result = await processor.handle_ocr(document, int(time.time() * 1000))
        if not isinstance(result, ExtractedTransaction):
            logging.getLogger(__name__).info("No transaction found in %s: %s", path, result)

    asyncio.run(_with_client(_process))


def _rules() -> None:
    rule_table = _build_rule_table()
    for rule in rule_table:
        aliases = ", ".join(rule.aliases) or "-"
        print(f"{rule.source} | {rule.bank_name} | aliases: {aliases}")


def _login() -> None:
    """Authorize the Telegram session and report the account in use."""

    async def _session() -> None:
        client = build_client()
        await client.connect()
        try:
            await authorize(client)
            me = await client.get_me()
            logging.getLogger(__name__).info("Logged in as: %s", me.first_name)
        finally:
            await client.disconnect()

    asyncio.run(_session())


def _run() -> None:
    """Watch configured Telegram chats for forwarded bank alerts."""

    logger = logging.getLogger(__name__)
    logger.info("Starting paynotify watcher")

    rule_table = _build_rule_table()
    client = build_client()
    client.loop.run_until_complete(client.connect())
    client.loop.run_until_complete(authorize(client))

    notifier = _build_notifier(client)
    logger.info("Selected notification method - %s", settings.NOTIFICATION_METHOD)
    # Chat filtering happens in the handler against raw chat keys; routed
    # events carry a bank source that is not in SOURCES.
    processor = build_processor(rule_table, notifier)

    @client.on(events.NewMessage(incoming=True))
    async def handler(event) -> None:
        try:
            source_key = source_key_from_message(event.message)
            if source_key not in settings.SOURCES:
                return
            raw_event = build_event(event.message, settings.SOURCE_ROUTES.get(source_key))
            await processor.handle(raw_event)
        except Exception:
            logger.exception("Error while processing message")

    client.start()
    logger.info("Client connected. Listening for incoming messages...")
    client.run_until_disconnected()


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="paynotify")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Watch Telegram chats for bank alerts")
    feed_parser = subparsers.add_parser("feed", help="Process JSON-lines notification events")
    feed_parser.add_argument("path", nargs="?", default="-", help="events file, '-' for stdin")
    ocr_parser = subparsers.add_parser("ocr", help="Process an OCR document JSON file")
    ocr_parser.add_argument("path")
    subparsers.add_parser("rules", help="List the configured extraction rules")
    subparsers.add_parser("login", help="Authorize the Telegram session")

    args = parser.parse_args(argv)
    _print_banner()
    _configure_logging()

    if args.command == "feed":
        _feed(args.path)
        return
    if args.command == "ocr":
        _ocr(args.path)
        return
    if args.command == "rules":
        _rules()
        return
    if args.command == "login":
        _login()
        return
    _run()


if __name__ == "__main__":
    main()
