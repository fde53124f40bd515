"""Rule-based categorization.

Rules are compiled once into matchers and evaluated in the order they are
handed over (storage orders them by priority, then pattern). The first match
wins. ``contains`` rules compare lower-cased text; regex rules are compiled
case-insensitive and searched anywhere in the text.

A rule whose regex does not compile is kept as an inert matcher so rule
positions stay stable; its pattern is reported back to the caller.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .logging_setup import get_logger
from .models import ImportRule, Transaction

logger = get_logger("ledger_import.categorize")


# ----------------------------------------------------------------------------
# Matchers
# ----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ContainsMatcher:
    needle: str

    def matches(self, text: str) -> bool:
        return self.needle in text.lower()


@dataclass(frozen=True, slots=True)
class RegexMatcher:
    pattern: re.Pattern[str]

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


@dataclass(frozen=True, slots=True)
class NeverMatcher:
    """Stand-in for a rule whose regex failed to compile."""

    source: str

    def matches(self, text: str) -> bool:
        return False


type Matcher = ContainsMatcher | RegexMatcher | NeverMatcher


def compile_rule(rule: ImportRule) -> Matcher:
    """Compile one rule; raises ``re.error`` for an invalid regex."""

    if rule.is_regex:
        return RegexMatcher(re.compile(rule.pattern, re.IGNORECASE))
    return ContainsMatcher(rule.pattern.lower())


# ----------------------------------------------------------------------------
# Categorizer
# ----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class _CompiledRule:
    matcher: Matcher
    category_id: int


class Categorizer:
    """First-match-wins categorizer over a fixed, ordered rule snapshot."""

    __slots__ = ("_rules",)

    def __init__(self, compiled: Sequence[_CompiledRule]) -> None:
        self._rules = tuple(compiled)

    @classmethod
    def from_rules(cls, rules: Iterable[ImportRule]) -> tuple[Categorizer, list[str]]:
        """Compile ``rules`` and return ``(categorizer, invalid_patterns)``.

        Invalid regex patterns become inert matchers and are listed in the
        returned warnings, one entry per offending rule.
        """

        compiled: list[_CompiledRule] = []
        invalid: list[str] = []
        for rule in rules:
            try:
                matcher = compile_rule(rule)
            except re.error as e:
                logger.debug("Invalid regex %r: %s", rule.pattern, e)
                invalid.append(rule.pattern)
                matcher = NeverMatcher(rule.pattern)
            compiled.append(_CompiledRule(matcher=matcher, category_id=rule.category_id))
        return cls(compiled), invalid

    def __len__(self) -> int:
        return len(self._rules)

    def categorize(self, text: str) -> int | None:
        """Category id of the first rule matching ``text``, or ``None``."""

        for rule in self._rules:
            if rule.matcher.matches(text):
                return rule.category_id
        return None

    def categorize_batch(self, transactions: Iterable[Transaction]) -> int:
        """Fill ``category_id`` on uncategorized transactions in place.

        Matching always uses ``original_description``; already-categorized
        transactions are left alone. Returns how many were assigned.
        """

        assigned = 0
        for tx in transactions:
            if tx.category_id is not None:
                continue
            cat = self.categorize(tx.original_description)
            if cat is not None:
                tx.category_id = cat
                assigned += 1
        return assigned


# ----------------------------------------------------------------------------
# Rule suggestion
# ----------------------------------------------------------------------------


def suggest_rule(description: str) -> str:
    """Propose a ``contains`` pattern from a raw bank description.

    Store numbers, reference codes and ``#``/``*`` separators are stripped and
    the first two remaining words are kept, lower-cased. For example
    ``"WHOLEFDS MKT #10234"`` becomes ``"wholefds mkt"``. When nothing
    survives the cleanup the original text is used.
    """

    cleaned = "".join(ch for ch in description.upper() if not ("0" <= ch <= "9"))
    cleaned = cleaned.replace("#", "").replace("*", " ").strip()
    words = cleaned.split()
    if words:
        pattern = " ".join(words[:2])
    else:
        pattern = description
    return pattern.lower()


__all__ = [
    "Categorizer",
    "ContainsMatcher",
    "Matcher",
    "NeverMatcher",
    "RegexMatcher",
    "compile_rule",
    "suggest_rule",
]
