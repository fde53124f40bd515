# ruff: noqa: I001
"""Persistence integration for ledger_import.

Functions here read and write the ledger tables owned by ``libs/db``. They
rely on SQLAlchemy ORM models defined in ``db.models.ledger`` and a session
provided by ``db.client``; callers own the transaction scope
(``session_scope``).

Scope:
- ``LedgerStore``: the narrow surface the import pipeline needs (rules and
  categories snapshot, duplicate check, category/rule creation, batch insert).
- ``SqlLedgerStore``: its SQLAlchemy implementation.
- Account helpers and default category seeding for the CLI.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date
from typing import Protocol

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from db.models.ledger import (
    LedgerAccount,
    LedgerCategory,
    LedgerImportRule,
    LedgerTransaction,
)
from .categories import create_category as _create_category
from .categories import list_categories
from .logging_setup import get_logger
from .models import Account, AccountType, Category, ImportRule, Transaction

logger = get_logger("ledger_import.persistence")

# Keep IN (...) lists well under SQLite's bound-parameter limit.
_HASH_LOOKUP_CHUNK = 500

DEFAULT_CATEGORIES: tuple[str, ...] = (
    "Bills & Subscriptions",
    "Clothing",
    "Coffee Shops",
    "Doctor",
    "Education",
    "Electronics",
    "Entertainment",
    "Fees & Charges",
    "Flights",
    "Food & Dining",
    "Freelance",
    "Games",
    "Gas & Fuel",
    "Gifts & Donations",
    "Groceries",
    "Gym",
    "Health & Fitness",
    "Home & Garden",
    "Hotels",
    "Housing",
    "Income",
    "Insurance",
    "Interest",
    "Movies & Shows",
    "Parking",
    "Personal Care",
    "Pharmacy",
    "Public Transit",
    "Rent/Mortgage",
    "Restaurants",
    "Ride Share",
    "Shopping",
    "Streaming",
    "Transfer",
    "Transportation",
    "Travel",
    "Uncategorized",
    "Utilities",
)


class LedgerStore(Protocol):
    """What the import pipeline needs from storage."""

    def load_import_rules(self) -> Sequence[ImportRule]: ...

    def load_categories(self) -> Sequence[Category]: ...

    def hash_exists(self, import_hash: str) -> bool: ...

    def create_category(self, name: str) -> Category: ...

    def add_import_rule(self, rule: ImportRule) -> ImportRule: ...

    def insert_transactions(self, transactions: Sequence[Transaction]) -> int: ...


# ---------------------------
# Row conversions
# ---------------------------


def _rule_from_row(row: LedgerImportRule) -> ImportRule:
    return ImportRule(
        pattern=row.pattern,
        category_id=row.category_id,
        is_regex=bool(row.is_regex),
        priority=row.priority,
        id=row.id,
    )


def _account_from_row(row: LedgerAccount) -> Account:
    return Account(
        id=row.id,
        name=row.name,
        account_type=AccountType.parse(row.account_type),
        institution=row.institution,
        currency=row.currency,
        notes=row.notes,
    )


def _row_from_transaction(tx: Transaction) -> LedgerTransaction:
    return LedgerTransaction(
        account_id=tx.account_id,
        date=date.fromisoformat(tx.date),
        description=tx.description,
        original_description=tx.original_description,
        amount=tx.amount,
        category_id=tx.category_id,
        notes=tx.notes,
        is_transfer=tx.is_transfer,
        import_hash=tx.import_hash,
        created_at=tx.created_at,
    )


def _chunks(items: Sequence[str], size: int) -> Iterable[Sequence[str]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


# ---------------------------
# SQLAlchemy store
# ---------------------------


class SqlLedgerStore:
    """``LedgerStore`` over a SQLAlchemy session (caller owns commit/rollback)."""

    def __init__(self, session: Session) -> None:
        self.session = session

    # ---- snapshot reads ----------------------------------------------------

    def load_import_rules(self) -> list[ImportRule]:
        """Rules in evaluation order: priority descending, then pattern."""

        rows = (
            self.session.execute(
                select(LedgerImportRule).order_by(
                    LedgerImportRule.priority.desc(),
                    LedgerImportRule.pattern.asc(),
                    LedgerImportRule.id.asc(),
                )
            )
            .scalars()
            .all()
        )
        return [_rule_from_row(r) for r in rows]

    def load_categories(self) -> list[Category]:
        return list_categories(self.session)

    def hash_exists(self, import_hash: str) -> bool:
        if not import_hash:
            return False
        found = self.session.execute(
            select(LedgerTransaction.id).where(LedgerTransaction.import_hash == import_hash).limit(1)
        ).first()
        return found is not None

    def existing_hashes(self, hashes: Iterable[str]) -> set[str]:
        """Subset of ``hashes`` already stored (empty hashes are ignored)."""

        wanted = sorted({h for h in hashes if h})
        found: set[str] = set()
        for chunk in _chunks(wanted, _HASH_LOOKUP_CHUNK):
            found.update(
                self.session.scalars(
                    select(LedgerTransaction.import_hash).where(
                        LedgerTransaction.import_hash.in_(chunk)
                    )
                ).all()
            )
        return found

    # ---- writes ------------------------------------------------------------

    def create_category(self, name: str) -> Category:
        """Idempotent, case-insensitive; invalid names raise ``ValueError``."""

        return _create_category(self.session, name)["category"]

    def add_import_rule(self, rule: ImportRule) -> ImportRule:
        """Persist ``rule`` unless an identical rule exists; returns the stored rule."""

        existing = (
            self.session.execute(
                select(LedgerImportRule).where(
                    LedgerImportRule.pattern == rule.pattern,
                    LedgerImportRule.category_id == rule.category_id,
                    LedgerImportRule.is_regex == rule.is_regex,
                )
            )
            .scalars()
            .first()
        )
        if existing is not None:
            return _rule_from_row(existing)

        row = LedgerImportRule(
            pattern=rule.pattern,
            category_id=rule.category_id,
            is_regex=rule.is_regex,
            priority=rule.priority,
        )
        with self.session.begin_nested():
            self.session.add(row)
            self.session.flush()
        return _rule_from_row(row)

    def delete_import_rule(self, rule_id: int) -> bool:
        result = self.session.execute(delete(LedgerImportRule).where(LedgerImportRule.id == rule_id))
        return bool(result.rowcount)

    def insert_transactions(self, transactions: Sequence[Transaction]) -> int:
        """Insert new transactions; skip hashes already stored or repeated.

        Rows with an empty ``import_hash`` (manual entries) are always
        inserted. Inserted transactions get their ``id`` filled in. Returns
        the number of rows inserted.
        """

        stored = self.existing_hashes(tx.import_hash for tx in transactions)
        seen: set[str] = set()
        pending: list[tuple[Transaction, LedgerTransaction]] = []
        for tx in transactions:
            if tx.import_hash:
                if tx.import_hash in stored or tx.import_hash in seen:
                    continue
                seen.add(tx.import_hash)
            pending.append((tx, _row_from_transaction(tx)))

        if pending:
            self.session.add_all([row for _tx, row in pending])
            self.session.flush()
            for tx, row in pending:
                tx.id = row.id

        skipped = len(transactions) - len(pending)
        logger.info("Inserted %d transaction(s); skipped %d duplicate(s)", len(pending), skipped)
        return len(pending)

    # ---- accounts ----------------------------------------------------------

    def create_account(
        self,
        name: str,
        *,
        account_type: AccountType = AccountType.CHECKING,
        institution: str = "",
        currency: str = "USD",
        notes: str = "",
    ) -> Account:
        name_n = " ".join(name.split())
        if not name_n:
            raise ValueError("Account name cannot be empty")
        taken = self.session.execute(
            select(LedgerAccount.id).where(func.lower(LedgerAccount.name) == name_n.lower())
        ).first()
        if taken is not None:
            raise ValueError(f"Account already exists: {name_n!r}")
        row = LedgerAccount(
            name=name_n,
            account_type=account_type.value,
            institution=institution.strip(),
            currency=currency.strip().upper() or "USD",
            notes=notes,
        )
        self.session.add(row)
        self.session.flush()
        return _account_from_row(row)

    def get_account(self, account_id: int) -> Account | None:
        row = self.session.get(LedgerAccount, account_id)
        return _account_from_row(row) if row is not None else None

    def list_accounts(self) -> list[Account]:
        rows = self.session.execute(select(LedgerAccount).order_by(LedgerAccount.name)).scalars()
        return [_account_from_row(r) for r in rows]

    def count_transactions(self, *, account_id: int | None = None) -> int:
        stmt = select(func.count(LedgerTransaction.id))
        if account_id is not None:
            stmt = stmt.where(LedgerTransaction.account_id == account_id)
        return int(self.session.execute(stmt).scalar_one())


def seed_default_categories(session: Session) -> int:
    """Insert the default category list when the table is empty.

    Returns the number of categories inserted (0 when any already exist).
    """

    present = session.execute(select(func.count(LedgerCategory.id))).scalar_one()
    if present:
        return 0
    session.add_all([LedgerCategory(name=n) for n in DEFAULT_CATEGORIES])
    session.flush()
    logger.info("Seeded %d default categories", len(DEFAULT_CATEGORIES))
    return len(DEFAULT_CATEGORIES)


__all__ = [
    "DEFAULT_CATEGORIES",
    "LedgerStore",
    "SqlLedgerStore",
    "seed_default_categories",
]
