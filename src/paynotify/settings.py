"""Static configuration for paynotify.

All user-editable settings (monitored sources, rules, rate limit, dedup,
notifications, OCR regions) live in a single JSON file for quick edits
without touching Python.
"""

import json
import os

from paynotify.core.bank_rules import DEFAULT_MONITORED_SOURCES, DEFAULT_RULES
from paynotify.core.ocr import DEFAULT_LOGO_REGIONS

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))

# Overridable so a packaged install can point at its own file.
CONFIG_PATH = os.getenv("PAYNOTIFY_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _normalize_sources(raw_sources: list) -> tuple[set[str], dict[str, str]]:
    """Normalize sources and build a routing map keyed by source_key.

    Entries are either plain source keys or objects with ``source_key``,
    ``enabled`` and an optional ``route_to`` naming the rule source that a
    chat's messages should be extracted with.
    """

    sources: set[str] = set()
    routes: dict[str, str] = {}
    for entry in raw_sources:
        if isinstance(entry, str):
            sources.add(entry)
            continue
        source_key = entry.get("source_key")
        if not source_key:
            continue
        if not entry.get("enabled", True):
            continue
        sources.add(source_key)
        route_to = entry.get("route_to")
        if route_to:
            routes[source_key] = route_to
    return sources, routes


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Monitored sources: bank app identifiers for the listener feed and Telegram
# chats for the watcher. Anything else is ignored before admission.
SOURCES, SOURCE_ROUTES = _normalize_sources(_CONFIG.get("sources") or DEFAULT_MONITORED_SOURCES)

# Rules replace the built-in Thai bank rules when present.
RULES_CONFIG = _CONFIG.get("rules") or DEFAULT_RULES

# Fixed-window admission control.
_rate_limit = _CONFIG.get("rate_limit", {})
RATE_LIMIT_MAX_EVENTS = int(_rate_limit.get("max_events", 10))
RATE_LIMIT_WINDOW_MS = int(_rate_limit.get("window_ms", 60000))

# Deduplication controls to reduce repeated alerts for reposted notifications.
# - DEDUP_MODE: "off", "per_source", or "global"
# - DEDUP_ONLY_ON_MATCH: only fingerprint extracted transactions
# - DEDUP_TTL_MS: how long a fingerprint suppresses repeats
_dedup = _CONFIG.get("dedup", {})
DEDUP_MODE = _dedup.get("mode", "per_source")
DEDUP_ONLY_ON_MATCH = _dedup.get("only_on_match", True)
DEDUP_TTL_MS = int(_dedup.get("ttl_ms", 300000))

# Notification method switches adapters without changing core logic.
_notifications = _CONFIG.get("notifications", {})
NOTIFICATION_METHOD = _notifications.get("method", "stdout")
# Bot chat id is only required when method=bot.
BOT_CHAT_ID = _notifications.get("bot_chat_id")

# Logo regions used as the first OCR bank hint.
_ocr = _CONFIG.get("ocr", {})
LOGO_REGIONS_CONFIG = _ocr.get("logo_regions") or DEFAULT_LOGO_REGIONS

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
