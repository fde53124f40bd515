from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from ledger_import.profiles import DEFAULT_DATE_FORMAT, CsvProfile, load_profile, manual_profile


def test_manual_profile_defaults():
    p = manual_profile()
    assert (p.date_column, p.description_column, p.amount_column) == (0, 1, 2)
    assert p.date_format == DEFAULT_DATE_FORMAT == "%m/%d/%Y"
    assert p.has_header and not p.negate_amounts and not p.is_credit_account
    assert not p.uses_debit_credit


def test_amount_column_and_debit_credit_are_exclusive():
    with pytest.raises(ValidationError):
        CsvProfile(amount_column=2, debit_column=3)


def test_negative_columns_are_rejected():
    with pytest.raises(ValidationError):
        CsvProfile(date_column=-1)


def test_overrides_switch_amount_source():
    p = manual_profile().with_overrides(debit_column=3, credit_column=4)
    assert p.amount_column is None
    assert p.uses_debit_credit
    back = p.with_overrides(amount_column=5)
    assert (back.amount_column, back.debit_column, back.credit_column) == (5, None, None)


def test_overrides_ignore_none_and_keep_profile_frozen():
    base = CsvProfile(name="Chase Credit Card", amount_column=5)
    same = base.with_overrides(date_column=None, negate_amounts=None)
    assert same is base
    flipped = base.with_overrides(negate_amounts=True, has_header=False)
    assert flipped.negate_amounts and not flipped.has_header
    assert flipped.name == "Chase Credit Card"
    assert not base.negate_amounts
    with pytest.raises(ValidationError):
        base.date_column = 3  # type: ignore[misc]


def test_load_profile_from_json(tmp_path: Path):
    f = tmp_path / "mapping.json"
    f.write_text(
        '{"name": "Credit Union", "date_column": 1, "description_column": 3,'
        ' "amount_column": null, "debit_column": 4, "credit_column": 5,'
        ' "date_format": "%Y-%m-%d", "skip_rows": 2}',
        encoding="utf-8",
    )
    p = load_profile(f)
    assert p.name == "Credit Union"
    assert p.uses_debit_credit
    assert p.skip_rows == 2


def test_load_profile_rejects_unknown_keys(tmp_path: Path):
    f = tmp_path / "bad.json"
    f.write_text('{"date_col": 1}', encoding="utf-8")
    with pytest.raises(ValidationError):
        load_profile(f)
