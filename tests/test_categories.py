from __future__ import annotations

from pathlib import Path

import pytest

from db.client import session_scope
from ledger_import.categories import create_category, list_categories, normalize_name, validate_name

from tests.helpers.db import bootstrap_sqlite_db


def test_normalize_and_validate_names():
    assert normalize_name("  Pet   Supplies ") == "Pet Supplies"
    assert validate_name("Rent/Mortgage").ok
    assert validate_name("Food & Dining").ok
    assert not validate_name("   ").ok
    assert not validate_name("x" * 65).ok
    bad = validate_name("Cafés!")
    assert not bad.ok and bad.reason


def test_create_category_is_idempotent_and_case_insensitive(tmp_path: Path):
    url = bootstrap_sqlite_db(tmp_path / "cats.db", seed=False)
    with session_scope(database_url=url) as s:
        first = create_category(s, "Pet  Supplies")
        assert first["created"]
        assert first["category"].name == "Pet Supplies"
        again = create_category(s, "pet supplies")
        assert not again["created"]
        assert again["category"].id == first["category"].id
        create_category(s, "apparel")
        assert [c.name for c in list_categories(s)] == ["apparel", "Pet Supplies"]


def test_create_category_rejects_invalid_names(tmp_path: Path):
    url = bootstrap_sqlite_db(tmp_path / "cats.db", seed=False)
    with session_scope(database_url=url) as s:
        with pytest.raises(ValueError, match="Invalid category name"):
            create_category(s, "Bad;Name")
