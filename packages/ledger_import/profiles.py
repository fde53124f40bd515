"""CSV layout profiles.

A :class:`CsvProfile` says how to read one bank's CSV export: which columns
hold the date, description and amount, the date format, and the sign
convention. Profiles come from the format detector or from the operator's
manual mapping (CLI options or a JSON file), and are validated with Pydantic
so a hand-written mapping fails early rather than mid-parse.
"""

from __future__ import annotations

from os import PathLike
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_DATE_FORMAT = "%m/%d/%Y"


class CsvProfile(BaseModel):
    """Declarative column mapping and parsing configuration for one layout.

    The amount comes either from ``amount_column`` or from the
    ``debit_column``/``credit_column`` pair, never both. When neither is set
    every row's amount is zero.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    name: str = "Custom"
    date_column: int = Field(default=0, ge=0)
    description_column: int = Field(default=1, ge=0)
    amount_column: int | None = Field(default=2, ge=0)
    debit_column: int | None = Field(default=None, ge=0)
    credit_column: int | None = Field(default=None, ge=0)
    date_format: str = DEFAULT_DATE_FORMAT
    has_header: bool = True
    skip_rows: int = Field(default=0, ge=0)
    negate_amounts: bool = False
    is_credit_account: bool = False

    @model_validator(mode="after")
    def _single_amount_source(self) -> CsvProfile:
        if self.amount_column is not None and (
            self.debit_column is not None or self.credit_column is not None
        ):
            raise ValueError(
                "amount_column cannot be combined with debit_column/credit_column"
            )
        return self

    @property
    def uses_debit_credit(self) -> bool:
        return self.amount_column is None and (
            self.debit_column is not None or self.credit_column is not None
        )

    def with_overrides(self, **overrides: Any) -> CsvProfile:
        """Return a validated copy with the non-``None`` overrides applied.

        Setting a debit or credit column clears ``amount_column`` (and vice
        versa) so an override switches the amount source instead of producing
        an invalid profile.
        """

        updates = {k: v for k, v in overrides.items() if v is not None}
        if not updates:
            return self
        if "amount_column" in updates:
            updates.setdefault("debit_column", None)
            updates.setdefault("credit_column", None)
        elif "debit_column" in updates or "credit_column" in updates:
            updates["amount_column"] = None
        merged = self.model_dump()
        merged.update(updates)
        return CsvProfile.model_validate(merged)


def manual_profile(*, has_header: bool = True) -> CsvProfile:
    """The fallback profile used when no bank fingerprint matches.

    ``has_header`` should follow the preview's guess so a headerless file
    keeps its first row.
    """

    return CsvProfile(has_header=has_header)


def load_profile(path: str | PathLike[str]) -> CsvProfile:
    """Load and validate a manual mapping from a JSON file."""

    text = Path(path).read_text(encoding="utf-8")
    return CsvProfile.model_validate_json(text)


__all__ = ["CsvProfile", "DEFAULT_DATE_FORMAT", "manual_profile", "load_profile"]
