"""Data models for ``ledger_import``.

Plain dataclasses for the records that flow through the import pipeline. The
storage layer (``db.models.ledger``) has its own ORM rows; conversion between
the two lives in :mod:`ledger_import.persistence`.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import StrEnum

# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class Transaction:
    """A ledger transaction, usually a candidate parsed from a CSV row.

    ``original_description`` is the raw source text and is never edited; it
    drives rule matching and the dedup hash. ``description`` is the
    user-facing label and may be renamed later without affecting matching.
    ``import_hash`` is empty only for manually entered rows.
    """

    account_id: int
    date: str
    description: str
    original_description: str
    amount: Decimal
    category_id: int | None = None
    notes: str = ""
    is_transfer: bool = False
    import_hash: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    id: int | None = None

    def is_income(self) -> bool:
        return self.amount > 0

    def is_expense(self) -> bool:
        return self.amount < 0


# ---------------------------------------------------------------------------
# Categories and rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Category:
    id: int
    name: str


def find_category_by_name(categories: Iterable[Category], name: str) -> Category | None:
    """Case-insensitive lookup of a category by its name."""

    wanted = name.strip().casefold()
    for cat in categories:
        if cat.name.casefold() == wanted:
            return cat
    return None


@dataclass(frozen=True, slots=True)
class ImportRule:
    """A categorization rule: substring (``contains``) or regular expression.

    Storage hands rules back ordered by ``priority`` descending, then
    ``pattern`` ascending; the categorizer evaluates them in that order.
    """

    pattern: str
    category_id: int
    is_regex: bool = False
    priority: int = 0
    id: int | None = None

    @classmethod
    def contains(cls, pattern: str, category_id: int, *, priority: int = 0) -> ImportRule:
        return cls(pattern=pattern, category_id=category_id, is_regex=False, priority=priority)

    @classmethod
    def regex(cls, pattern: str, category_id: int, *, priority: int = 0) -> ImportRule:
        return cls(pattern=pattern, category_id=category_id, is_regex=True, priority=priority)


def rule_sort_key(rule: ImportRule) -> tuple[int, str]:
    """Sort key giving the canonical evaluation order (priority desc, pattern asc)."""

    return (-rule.priority, rule.pattern)


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class AccountType(StrEnum):
    CHECKING = "Checking"
    SAVINGS = "Savings"
    CREDIT_CARD = "Credit Card"
    INVESTMENT = "Investment"
    CASH = "Cash"
    LOAN = "Loan"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: str) -> AccountType:
        """Parse a user-supplied account type; unknown values map to ``OTHER``."""

        key = value.strip().lower()
        if key in {"credit card", "creditcard", "credit"}:
            return cls.CREDIT_CARD
        for member in cls:
            if member.value.lower() == key:
                return member
        return cls.OTHER

    @property
    def is_credit(self) -> bool:
        return self in {AccountType.CREDIT_CARD, AccountType.LOAN}


@dataclass(frozen=True, slots=True)
class Account:
    id: int
    name: str
    account_type: AccountType = AccountType.CHECKING
    institution: str = ""
    currency: str = "USD"
    notes: str = ""


__all__ = [
    "Transaction",
    "Category",
    "ImportRule",
    "Account",
    "AccountType",
    "find_category_by_name",
    "rule_sort_key",
]
