"""Extraction rule compilation and the rule table (core domain)."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from paynotify.core.errors import ConfigurationError

PatternConfig = Union[str, Iterable[str]]

_PATTERN_FIELDS = ("amount_pattern", "account_pattern", "sender_pattern")


@dataclass(frozen=True)
class FieldPattern:
    """Ordered alternatives for one field; the first pattern that matches wins."""

    patterns: Tuple[re.Pattern, ...]

    def search(self, text: str) -> Optional[re.Match]:
        for pattern in self.patterns:
            match = pattern.search(text)
            if match:
                return match
        return None

    @property
    def raw(self) -> List[str]:
        return [pattern.pattern for pattern in self.patterns]


@dataclass(frozen=True)
class ExtractionRule:
    """Compiled rule for one source identifier."""

    source: str
    bank_name: str
    amount_pattern: FieldPattern
    account_pattern: FieldPattern
    sender_pattern: FieldPattern
    aliases: Tuple[str, ...] = ()

    def names(self) -> Tuple[str, ...]:
        return (self.bank_name, *self.aliases)


def first_group(match: re.Match) -> str:
    """Return the first non-empty capture group, or the whole match."""

    for group in match.groups():
        if group:
            return group
    return match.group(0)


def _compile_field(source: str, field_name: str, value: Optional[PatternConfig]) -> FieldPattern:
    if isinstance(value, str):
        raw_patterns = [value]
    else:
        raw_patterns = list(value or [])
    raw_patterns = [raw for raw in raw_patterns if raw]
    if not raw_patterns:
        raise ConfigurationError(f"Rule for {source!r} is missing {field_name}")

    compiled = []
    for raw in raw_patterns:
        try:
            compiled.append(re.compile(raw, re.IGNORECASE))
        except re.error as exc:
            raise ConfigurationError(f"Rule for {source!r} has an invalid {field_name} {raw!r}: {exc}") from exc
    return FieldPattern(patterns=tuple(compiled))


def build_rule(entry: Mapping) -> ExtractionRule:
    """Compile one rule config entry, failing fast on anything incomplete."""

    source = entry.get("source")
    bank_name = entry.get("bank_name")
    if not source:
        raise ConfigurationError(f"Rule is missing a source: {dict(entry)!r}")
    if not bank_name:
        raise ConfigurationError(f"Rule for {source!r} is missing bank_name")

    amount, account, sender = (_compile_field(source, name, entry.get(name)) for name in _PATTERN_FIELDS)
    return ExtractionRule(
        source=source,
        bank_name=bank_name,
        amount_pattern=amount,
        account_pattern=account,
        sender_pattern=sender,
        aliases=tuple(entry.get("aliases", []) or []),
    )


class RuleTable:
    """Immutable source -> rule mapping that remembers declaration order."""

    def __init__(self, rules: Iterable[ExtractionRule]) -> None:
        ordered: List[ExtractionRule] = []
        by_source: dict[str, ExtractionRule] = {}
        for rule in rules:
            if rule.source in by_source:
                raise ConfigurationError(f"Duplicate rule source: {rule.source}")
            by_source[rule.source] = rule
            ordered.append(rule)
        self._rules = tuple(ordered)
        self._by_source = by_source

    def lookup(self, source: str) -> Optional[ExtractionRule]:
        return self._by_source.get(source)

    def all_rules(self) -> Tuple[ExtractionRule, ...]:
        return self._rules

    def source_for_bank(self, bank_name: str) -> Optional[str]:
        """Return the first declared source whose rule carries this bank name."""

        wanted = bank_name.lower()
        for rule in self._rules:
            if rule.bank_name.lower() == wanted:
                return rule.source
        return None

    def verify(self) -> bool:
        """Confirm the table still holds exactly the rules it was built with."""

        if len(self._by_source) != len(self._rules):
            return False
        return all(self._by_source.get(rule.source) is rule for rule in self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[ExtractionRule]:
        return iter(self._rules)


def build_rule_table(rules_config: Iterable[Mapping]) -> RuleTable:
    """Normalize rule configs and compile every pattern up front.

    Disabled entries are skipped; anything malformed raises ConfigurationError
    before the first event is processed.
    """

    rules = [build_rule(entry) for entry in rules_config if entry.get("enabled", True)]
    return RuleTable(rules)
