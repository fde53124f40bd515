# ruff: noqa: I001
"""Ledger core tables and seed categories.

Revision ID: 0001_ledger_core
Revises: None
Create Date: 2026-10-17
"""

from __future__ import annotations  # ruff: noqa: I001

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_ledger_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_PK = sa.BigInteger().with_variant(sa.Integer(), "sqlite")

_ACCOUNT_TYPES = ("Checking", "Savings", "Credit Card", "Investment", "Cash", "Loan", "Other")

# Mirrors ledger_import.persistence.DEFAULT_CATEGORIES.
_DEFAULT_CATEGORIES = (
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


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def upgrade() -> None:
    # ledger_accounts
    op.create_table(
        "ledger_accounts",
        sa.Column("id", _PK, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(), nullable=False, unique=True),
        sa.Column(
            "account_type",
            sa.String(),
            nullable=False,
            server_default=sa.text("'Checking'"),
        ),
        sa.Column("institution", sa.String(), nullable=False, server_default=sa.text("''")),
        sa.Column("currency", sa.CHAR(3), nullable=False, server_default=sa.text("'USD'")),
        sa.Column("notes", sa.Text(), nullable=False, server_default=sa.text("''")),
        _created_at(),
        sa.CheckConstraint(
            "account_type in (" + ",".join(f"'{t}'" for t in _ACCOUNT_TYPES) + ")",
            name="ck_ledger_accounts_type",
        ),
    )

    # ledger_categories
    categories = op.create_table(
        "ledger_categories",
        sa.Column("id", _PK, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(64), nullable=False),
        _created_at(),
    )
    op.create_index(
        "uq_ledger_categories_name_ci",
        "ledger_categories",
        [sa.text("lower(name)")],
        unique=True,
    )

    # ledger_transactions
    op.create_table(
        "ledger_transactions",
        sa.Column("id", _PK, primary_key=True, autoincrement=True),
        sa.Column(
            "account_id",
            _PK,
            sa.ForeignKey("ledger_accounts.id"),
            nullable=False,
        ),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("original_description", sa.Text(), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column(
            "category_id",
            _PK,
            sa.ForeignKey("ledger_categories.id"),
            nullable=True,
        ),
        sa.Column("notes", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("is_transfer", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("import_hash", sa.String(16), nullable=False, server_default=sa.text("''")),
        _created_at(),
    )
    op.create_index(
        "ix_ledger_transactions_account_id", "ledger_transactions", ["account_id"], unique=False
    )
    op.create_index(
        "ix_ledger_tx_account_date", "ledger_transactions", ["account_id", "date"], unique=False
    )
    # Manual rows carry an empty hash and are exempt from uniqueness.
    op.create_index(
        "uq_ledger_tx_import_hash",
        "ledger_transactions",
        ["import_hash"],
        unique=True,
        sqlite_where=sa.text("import_hash != ''"),
        postgresql_where=sa.text("import_hash <> ''"),
    )

    # ledger_import_rules
    op.create_table(
        "ledger_import_rules",
        sa.Column("id", _PK, primary_key=True, autoincrement=True),
        sa.Column("pattern", sa.Text(), nullable=False),
        sa.Column(
            "category_id",
            _PK,
            sa.ForeignKey("ledger_categories.id"),
            nullable=False,
        ),
        sa.Column("is_regex", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("priority", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _created_at(),
    )
    op.create_index(
        "ix_ledger_import_rules_order", "ledger_import_rules", ["priority", "pattern"], unique=False
    )

    op.bulk_insert(categories, [{"name": n} for n in _DEFAULT_CATEGORIES])


def downgrade() -> None:
    op.drop_index("ix_ledger_import_rules_order", table_name="ledger_import_rules")
    op.drop_table("ledger_import_rules")
    op.drop_index("uq_ledger_tx_import_hash", table_name="ledger_transactions")
    op.drop_index("ix_ledger_tx_account_date", table_name="ledger_transactions")
    op.drop_index("ix_ledger_transactions_account_id", table_name="ledger_transactions")
    op.drop_table("ledger_transactions")
    op.drop_index("uq_ledger_categories_name_ci", table_name="ledger_categories")
    op.drop_table("ledger_categories")
    op.drop_table("ledger_accounts")
