from __future__ import annotations

from datetime import date as date_type
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CHAR,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import expression as sa_expr

# BIGINT keys on Postgres; SQLite only autoincrements INTEGER PRIMARY KEY.
_PK = BigInteger().with_variant(Integer(), "sqlite")

ACCOUNT_TYPES = ("Checking", "Savings", "Credit Card", "Investment", "Cash", "Loan", "Other")


class Base(DeclarativeBase):
    pass


# ---------------------------
# Reference: ledger_accounts
# ---------------------------


class LedgerAccount(Base):
    __tablename__ = "ledger_accounts"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    account_type: Mapped[str] = mapped_column(
        String, nullable=False, server_default=text("'Checking'")
    )
    institution: Mapped[str] = mapped_column(String, nullable=False, server_default=text("''"))
    currency: Mapped[str] = mapped_column(CHAR(3), nullable=False, server_default=text("'USD'"))
    notes: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("''"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "account_type in (" + ",".join(f"'{t}'" for t in ACCOUNT_TYPES) + ")",
            name="ck_ledger_accounts_type",
        ),
    )


# ---------------------------
# Reference: ledger_categories
# ---------------------------


class LedgerCategory(Base):
    __tablename__ = "ledger_categories"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    # Case-insensitive uniqueness comes from the lower(name) index below.
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


Index("uq_ledger_categories_name_ci", func.lower(LedgerCategory.name), unique=True)


# ---------------------------
# Core: ledger_transactions
# ---------------------------


class LedgerTransaction(Base):
    __tablename__ = "ledger_transactions"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("ledger_accounts.id"), nullable=False, index=True
    )
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    # User-facing label; may be renamed. ``original_description`` is the raw
    # bank text used for rule matching and is never edited.
    description: Mapped[str] = mapped_column(Text, nullable=False)
    original_description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    category_id: Mapped[int | None] = mapped_column(
        ForeignKey("ledger_categories.id"), nullable=True
    )
    notes: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("''"))
    is_transfer: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=sa_expr.false()
    )
    # Empty for manually entered rows; unique otherwise (partial index below).
    import_hash: Mapped[str] = mapped_column(String(16), nullable=False, server_default=text("''"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index(
            "uq_ledger_tx_import_hash",
            "import_hash",
            unique=True,
            sqlite_where=text("import_hash != ''"),
            postgresql_where=text("import_hash <> ''"),
        ),
        Index("ix_ledger_tx_account_date", "account_id", "date"),
    )


# ---------------------------
# Rules: ledger_import_rules
# ---------------------------


class LedgerImportRule(Base):
    __tablename__ = "ledger_import_rules"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    pattern: Mapped[str] = mapped_column(Text, nullable=False)
    category_id: Mapped[int] = mapped_column(ForeignKey("ledger_categories.id"), nullable=False)
    is_regex: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=sa_expr.false())
    priority: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (Index("ix_ledger_import_rules_order", "priority", "pattern"),)


__all__ = [
    "ACCOUNT_TYPES",
    "Base",
    "LedgerAccount",
    "LedgerCategory",
    "LedgerImportRule",
    "LedgerTransaction",
]
