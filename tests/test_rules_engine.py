from __future__ import annotations

import pytest

from paynotify.core.bank_rules import ACCOUNT_PATTERNS, AMOUNT_PATTERNS, DEFAULT_RULES, SENDER_PATTERNS
from paynotify.core.errors import ConfigurationError
from paynotify.core.rules_engine import build_rule_table


def _entry(source: str, bank_name: str, **overrides) -> dict:
    entry = {
        "source": source,
        "bank_name": bank_name,
        "amount_pattern": AMOUNT_PATTERNS,
        "account_pattern": ACCOUNT_PATTERNS,
        "sender_pattern": SENDER_PATTERNS,
    }
    entry.update(overrides)
    return entry


def test_lookup_and_declaration_order() -> None:
    table = build_rule_table([_entry("app.b", "BANK_B"), _entry("app.a", "BANK_A")])

    assert table.lookup("app.a").bank_name == "BANK_A"
    assert table.lookup("app.missing") is None
    assert [rule.source for rule in table.all_rules()] == ["app.b", "app.a"]
    assert len(table) == 2


def test_duplicate_source_fails_fast() -> None:
    with pytest.raises(ConfigurationError, match="Duplicate"):
        build_rule_table([_entry("app.a", "BANK_A"), _entry("app.a", "BANK_B")])


def test_rule_missing_a_pattern_is_rejected() -> None:
    entry = _entry("app.a", "BANK_A")
    del entry["sender_pattern"]
    with pytest.raises(ConfigurationError, match="sender_pattern"):
        build_rule_table([entry])


def test_empty_pattern_list_is_rejected() -> None:
    with pytest.raises(ConfigurationError, match="account_pattern"):
        build_rule_table([_entry("app.a", "BANK_A", account_pattern=[])])


def test_malformed_regex_is_rejected() -> None:
    with pytest.raises(ConfigurationError, match="invalid amount_pattern"):
        build_rule_table([_entry("app.a", "BANK_A", amount_pattern="(unclosed")])


def test_missing_bank_name_is_rejected() -> None:
    with pytest.raises(ConfigurationError, match="bank_name"):
        build_rule_table([_entry("app.a", "")])


def test_disabled_rules_are_skipped() -> None:
    table = build_rule_table([_entry("app.a", "BANK_A", enabled=False), _entry("app.b", "BANK_B")])
    assert table.lookup("app.a") is None
    assert len(table) == 1


def test_single_string_pattern_is_accepted() -> None:
    table = build_rule_table([_entry("app.a", "BANK_A", amount_pattern=r"(\d+)")])
    assert table.lookup("app.a").amount_pattern.raw == [r"(\d+)"]


def test_field_pattern_tries_patterns_in_declared_order() -> None:
    table = build_rule_table([_entry("app.a", "BANK_A", amount_pattern=[r"A(\d+)", r"B(\d+)"])])
    match = table.lookup("app.a").amount_pattern.search("B5 A7")
    assert match.group(1) == "7"


def test_source_for_bank_returns_first_declared_source() -> None:
    table = build_rule_table(DEFAULT_RULES)
    assert table.source_for_bank("kbank") == "com.kasikorn.retail.mbanking"
    assert table.source_for_bank("NOPE") is None


def test_default_rules_build_and_verify() -> None:
    table = build_rule_table(DEFAULT_RULES)
    assert len(table) == len(DEFAULT_RULES)
    assert table.verify()
