from __future__ import annotations

from decimal import Decimal

import pytest

from ledger_import.categorize import Categorizer, NeverMatcher, compile_rule, suggest_rule
from ledger_import.models import ImportRule, Transaction


def _tx(desc: str, category_id: int | None = None) -> Transaction:
    return Transaction(
        account_id=1,
        date="2024-01-15",
        description=desc,
        original_description=desc,
        amount=Decimal("-1.00"),
        category_id=category_id,
    )


def test_first_matching_rule_wins():
    cat, invalid = Categorizer.from_rules(
        [ImportRule.contains("coffee", 1), ImportRule.contains("blue bottle", 2)]
    )
    assert invalid == []
    assert cat.categorize("BLUE BOTTLE COFFEE") == 1
    assert cat.categorize("BLUE BOTTLE TEA") == 2
    assert cat.categorize("SAFEWAY") is None


def test_contains_rules_are_case_insensitive_both_ways():
    cat, _ = Categorizer.from_rules([ImportRule.contains("StarBucks", 5)])
    assert cat.categorize("STARBUCKS STORE 12345") == 5
    assert cat.categorize("starbucks") == 5


def test_regex_rules_are_case_insensitive_searches():
    cat, _ = Categorizer.from_rules([ImportRule.regex(r"uber\s*(eats|trip)", 9)])
    assert cat.categorize("UBER   TRIP HELP.UBER.COM") == 9
    assert cat.categorize("PAYMENT UBER EATS") == 9
    assert cat.categorize("UBERX") is None


def test_invalid_regex_is_inert_and_reported():
    cat, invalid = Categorizer.from_rules(
        [ImportRule.regex("([unclosed", 1), ImportRule.contains("unclosed", 2)]
    )
    assert invalid == ["([unclosed"]
    assert len(cat) == 2
    assert cat.categorize("([unclosed") == 2


def test_compile_rule_raises_for_invalid_regex():
    import re

    with pytest.raises(re.error):
        compile_rule(ImportRule.regex("(", 1))
    assert not NeverMatcher("(").matches("(")


def test_empty_rule_set_matches_nothing():
    cat, invalid = Categorizer.from_rules([])
    assert len(cat) == 0 and invalid == []
    assert cat.categorize("ANYTHING") is None


def test_categorize_batch_only_fills_uncategorized_using_original_description():
    cat, _ = Categorizer.from_rules([ImportRule.contains("netflix", 3)])
    renamed = _tx("NETFLIX.COM")
    renamed.description = "Streaming"
    already = _tx("NETFLIX.COM", category_id=8)
    other = _tx("SHELL OIL")
    assigned = cat.categorize_batch([renamed, already, other])
    assert assigned == 1
    assert renamed.category_id == 3
    assert already.category_id == 8
    assert other.category_id is None


@pytest.mark.parametrize(
    ("description", "expected"),
    [
        ("STARBUCKS STORE 12345", "starbucks store"),
        ("WHOLEFDS MKT #10234", "wholefds mkt"),
        ("SQ *BLUE BOTTLE COFFEE", "sq blue"),
        ("NETFLIX.COM", "netflix.com"),
        ("12345", "12345"),
        ("#*#", "#*#"),
    ],
)
def test_suggest_rule(description, expected):
    assert suggest_rule(description) == expected
