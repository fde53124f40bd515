from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import select

from db.client import session_scope
from db.models.ledger import LedgerTransaction
from ledger_import.models import AccountType, ImportRule, Transaction, rule_sort_key
from ledger_import.persistence import DEFAULT_CATEGORIES, SqlLedgerStore, seed_default_categories

from tests.helpers.db import bootstrap_sqlite_db, create_account


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return bootstrap_sqlite_db(tmp_path / "ledger-test.db")


def _tx(account_id: int, desc: str, amount: str, import_hash: str) -> Transaction:
    return Transaction(
        account_id=account_id,
        date="2024-01-15",
        description=desc,
        original_description=desc,
        amount=Decimal(amount),
        import_hash=import_hash,
    )


def test_seed_defaults_only_once(db_url: str):
    with session_scope(database_url=db_url) as s:
        cats = SqlLedgerStore(s).load_categories()
        assert [c.name for c in cats] == sorted(DEFAULT_CATEGORIES, key=str.lower)
        assert seed_default_categories(s) == 0


def test_rules_load_in_evaluation_order(db_url: str):
    with session_scope(database_url=db_url) as s:
        store = SqlLedgerStore(s)
        cat_id = store.load_categories()[0].id
        store.add_import_rule(ImportRule.contains("zeta", cat_id))
        store.add_import_rule(ImportRule.contains("alpha", cat_id))
        store.add_import_rule(ImportRule.regex("^uber", cat_id, priority=10))

    with session_scope(database_url=db_url) as s:
        rules = SqlLedgerStore(s).load_import_rules()
    assert [(r.pattern, r.is_regex) for r in rules] == [
        ("^uber", True),
        ("alpha", False),
        ("zeta", False),
    ]
    assert all(r.id is not None for r in rules)
    assert rules == sorted(rules, key=rule_sort_key)


def test_add_identical_rule_returns_existing(db_url: str):
    with session_scope(database_url=db_url) as s:
        store = SqlLedgerStore(s)
        cat_id = store.load_categories()[0].id
        first = store.add_import_rule(ImportRule.contains("safeway", cat_id))
        again = store.add_import_rule(ImportRule.contains("safeway", cat_id))
        assert first.id == again.id
        assert len(store.load_import_rules()) == 1
        assert store.delete_import_rule(first.id)
        assert not store.delete_import_rule(first.id)


def test_insert_skips_stored_and_repeated_hashes(db_url: str):
    account = create_account(db_url)
    with session_scope(database_url=db_url) as s:
        store = SqlLedgerStore(s)
        batch = [
            _tx(account.id, "A", "-1.00", "00000000000000aa"),
            _tx(account.id, "A again", "-1.00", "00000000000000aa"),
            _tx(account.id, "manual", "-2.00", ""),
        ]
        assert store.insert_transactions(batch) == 2
        assert batch[0].id is not None
        assert batch[1].id is None

    with session_scope(database_url=db_url) as s:
        store = SqlLedgerStore(s)
        assert store.hash_exists("00000000000000aa")
        assert not store.hash_exists("")
        second = [
            _tx(account.id, "A", "-1.00", "00000000000000aa"),
            _tx(account.id, "B", "-3.00", "00000000000000bb"),
            _tx(account.id, "manual", "-2.00", ""),
        ]
        assert store.insert_transactions(second) == 2
        assert store.count_transactions(account_id=account.id) == 4
        assert store.existing_hashes(["00000000000000bb", "ffffffffffffffff", ""]) == {
            "00000000000000bb"
        }


def test_stored_transaction_round_trips_fields(db_url: str):
    account = create_account(db_url)
    with session_scope(database_url=db_url) as s:
        store = SqlLedgerStore(s)
        cat = store.load_categories()[0]
        tx = _tx(account.id, "STARBUCKS", "-4.50", "1234567890abcdef")
        tx.category_id = cat.id
        store.insert_transactions([tx])

    with session_scope(database_url=db_url) as s:
        row = s.execute(select(LedgerTransaction)).scalars().one()
        assert row.date.isoformat() == "2024-01-15"
        assert row.amount == Decimal("-4.50")
        assert row.category_id == cat.id
        assert row.original_description == "STARBUCKS"
        assert row.is_transfer is False


def test_accounts(db_url: str):
    with session_scope(database_url=db_url) as s:
        store = SqlLedgerStore(s)
        a = store.create_account(
            "  Sapphire   Card ", account_type=AccountType.CREDIT_CARD, institution="Chase"
        )
        assert a.name == "Sapphire Card"
        assert a.account_type is AccountType.CREDIT_CARD
        with pytest.raises(ValueError):
            store.create_account("sapphire card")
        with pytest.raises(ValueError):
            store.create_account("   ")
        assert store.get_account(a.id) == a
        assert store.get_account(a.id + 100) is None
        assert [x.name for x in store.list_accounts()] == ["Sapphire Card"]


def test_failed_scope_rolls_back(db_url: str):
    account = create_account(db_url)
    with pytest.raises(RuntimeError):
        with session_scope(database_url=db_url) as s:
            SqlLedgerStore(s).insert_transactions([_tx(account.id, "A", "-1", "aaaaaaaaaaaaaaaa")])
            raise RuntimeError("boom")

    with session_scope(database_url=db_url) as s:
        assert SqlLedgerStore(s).count_transactions() == 0
