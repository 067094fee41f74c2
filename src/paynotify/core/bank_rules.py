"""Built-in extraction rules for the Thai bank apps we monitor.

Entries use the same shape as the ``rules`` section of config.json, so a
config file can replace them wholesale. Every bank shares the pattern lists
below; the lists are tried in order and the first matching pattern wins.
"""

from __future__ import annotations

_MONEY_IN = r"(?:transferred|received|deposit(?:ed)?|money\s+in|โอนเงิน|รับเงิน|เงินเข้า|ได้รับเงิน|รายการโอน|จำนวนเงิน|ยอดเงินเข้า)"
_NUMBER = r"(\d[\d,]*(?:\.\d+)?)"
_CURRENCY = r"(?:บาท|THB|฿)"

AMOUNT_PATTERNS = [
    # "เงินเข้า 1,234.50 บาท": money-in phrase, then the first amount carrying a currency
    _MONEY_IN + r"[^\n]*?" + _NUMBER + r"\s*" + _CURRENCY,
    # "1,234.50 THB"
    _NUMBER + r"\s*" + _CURRENCY,
    # "฿1,234.50"
    r"(?:THB|฿)\s*" + _NUMBER,
    # "รับเงิน 500": money-in phrase followed by a bare number
    _MONEY_IN + r"\D*?" + _NUMBER,
]

ACCOUNT_PATTERNS = [
    r"(?:a/c|acct|account|บัญชี)[^\d\n]*(\d{3}[-\s]?\d+[-\s]?\d+)",
    # Masked numbers such as "xxx-x-x5678-x"
    r"(?:a/c|acct|account|บัญชี)[^\dxX*\n]*([xX*]{1,4}(?:[-\s]?[xX*\d]+)*\d[xX*\d-]*)",
]

SENDER_PATTERNS = [
    r"(?:จาก|โดย|\bfrom\b|\bby\b)\s*[:\-]?\s*"
    # "จากบัญชี xxx-x-x1234-x" names an account, not a sender
    r"(?!\s*(?:บัญชี|a/c|acct|account))([^\d\n]+?)"
    r"(?=\s*(?:\n|$)|\s*\d|\s*(?:บัญชี|เข้า|ไปยัง|จำนวน|ยอด|เวลา|วันที่|บาท|THB|฿)"
    r"|\s+(?:a/c|acct|account|to|ref|on|at)\b)",
]


def _bank(source: str, bank_name: str, *aliases: str) -> dict:
    return {
        "source": source,
        "bank_name": bank_name,
        "aliases": list(aliases),
        "amount_pattern": AMOUNT_PATTERNS,
        "account_pattern": ACCOUNT_PATTERNS,
        "sender_pattern": SENDER_PATTERNS,
    }


DEFAULT_RULES = [
    _bank("com.scb.phone", "SCB", "ไทยพาณิชย์", "Siam Commercial Bank"),
    _bank("com.kasikorn.retail.mbanking", "KBANK", "กสิกร", "KASIKORN"),
    _bank("com.kasikorn.retail.mbanking.wap", "KBANK", "กสิกร", "KASIKORN"),
    _bank("com.ktb.netbank", "KTB", "กรุงไทย", "Krungthai"),
    _bank("com.bbl.mobilebanking", "BBL", "ธนาคารกรุงเทพ", "Bangkok Bank"),
    _bank("com.tmb.droid.mybiz", "TTB", "ทหารไทย", "ธนชาต"),
    _bank("com.tmbbank.tmb.retail.ios", "TTB", "ทหารไทย", "ธนชาต"),
    _bank("th.co.uob.uobmbk", "UOB", "ยูโอบี"),
]

# Package identifiers the notification listener forwards; messaging apps are
# included so forwarded bank alerts reach the generic fallback.
DEFAULT_MONITORED_SOURCES = [rule["source"] for rule in DEFAULT_RULES] + [
    "com.google.android.gm",
    "com.whatsapp",
]
