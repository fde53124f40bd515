"""CSV preview and row parsing.

``preview_csv`` reads a bank export into memory and guesses whether the first
row is a header. ``parse_rows`` turns the data rows into :class:`Transaction`
candidates under a :class:`~ledger_import.profiles.CsvProfile`, normalizing
dates to ISO ``YYYY-MM-DD`` and amounts to :class:`~decimal.Decimal` with the
ledger sign convention (negative = money out).

Every candidate carries an ``import_hash`` used for duplicate suppression on
re-import. The hash covers the account, the row's position in the file, the
raw date cell, the description and the parsed amount, so two genuinely
identical purchases on the same day stay distinct while re-importing the same
file is a no-op.
"""

from __future__ import annotations

import csv
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from os import PathLike
from pathlib import Path

from ..logging_setup import get_logger
from ..models import Transaction
from ..profiles import CsvProfile

logger = get_logger("ledger_import.ingest.csv_import")

_FALLBACK_DATE_FORMATS: tuple[str, ...] = (
    "%m/%d/%Y",
    "%Y-%m-%d",
    "%m-%d-%Y",
    "%m/%d/%y",
    "%d/%m/%Y",
)
# Formats that mark a first-row cell as data rather than a column label.
_HEADER_PROBE_DATE_FORMATS: tuple[str, ...] = ("%m/%d/%Y", "%Y-%m-%d")

_FNV_OFFSET = 0xCBF29CE484222325
_FNV_PRIME = 0x100000001B3
_MASK64 = 0xFFFFFFFFFFFFFFFF


# ----------------------------------------------------------------------------
# Errors
# ----------------------------------------------------------------------------


class RowParseError(ValueError):
    """A data row whose date or amount cell could not be parsed.

    ``row`` is 1-based and counts from the first data row handed to
    :func:`parse_rows` (skipped rows included).
    """

    def __init__(self, row: int, field: str, value: str) -> None:
        self.row = row
        self.field = field
        self.value = value
        super().__init__(f"Row {row}: failed to parse {field} {value!r}")


class EmptyCsvError(csv.Error):
    """Raised when a CSV file contains no rows at all."""


# ----------------------------------------------------------------------------
# Preview
# ----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CsvPreview:
    """Headers and data rows of a CSV file, as read for detection and parsing.

    When the first row did not look like a header, ``headers`` holds generic
    ``Column N`` labels and ``rows`` includes the first row.
    """

    headers: list[str]
    rows: list[list[str]] = field(default_factory=list)
    has_header: bool = True

    @property
    def detection_headers(self) -> list[str]:
        """Headers to hand the format detector (empty for headerless files)."""

        return list(self.headers) if self.has_header else []

    @property
    def first_row(self) -> list[str]:
        return list(self.rows[0]) if self.rows else []


def _is_decimal_cell(text: str) -> bool:
    cleaned = text.replace("$", "").replace(",", "").strip()
    try:
        return Decimal(cleaned).is_finite()
    except InvalidOperation:
        return False


def _is_date_cell(text: str) -> bool:
    for fmt in _HEADER_PROBE_DATE_FORMATS:
        try:
            datetime.strptime(text, fmt)
        except ValueError:
            continue
        return True
    return False


def looks_like_header(row: Sequence[str]) -> bool:
    """True when no cell of ``row`` parses as a number or a common date."""

    for cell in row:
        text = cell.strip()
        if _is_decimal_cell(text) or _is_date_cell(text):
            return False
    return True


def preview_csv(csv_path: str | PathLike[str]) -> CsvPreview:
    """Read ``csv_path`` fully and split off the header row when present.

    Raises ``FileNotFoundError``/``PermissionError`` from opening the file,
    ``csv.Error`` for malformed input and :class:`EmptyCsvError` when the file
    has no rows.
    """

    p = Path(csv_path)
    with p.open(encoding="utf-8-sig", newline="") as f:
        all_rows = [list(r) for r in csv.reader(f)]

    if not all_rows:
        raise EmptyCsvError(f"CSV file is empty: {csv_path}")

    first = all_rows[0]
    if looks_like_header(first):
        return CsvPreview(headers=first, rows=all_rows[1:], has_header=True)

    headers = [f"Column {i + 1}" for i in range(len(first))]
    return CsvPreview(headers=headers, rows=all_rows, has_header=False)


def rows_for_profile(preview: CsvPreview, profile: CsvProfile) -> list[list[str]]:
    """Return the data rows to parse, honoring the profile's ``has_header``.

    The preview's header guess and the profile (detected or operator-supplied)
    can disagree; the profile wins.
    """

    if profile.has_header == preview.has_header:
        return list(preview.rows)
    if profile.has_header:
        # The preview kept the first row as data; it is a header after all.
        return list(preview.rows[1:])
    return [list(preview.headers), *preview.rows]


# ----------------------------------------------------------------------------
# Cell parsing
# ----------------------------------------------------------------------------


def parse_date(text: str, date_format: str) -> date:
    """Parse ``text`` with ``date_format``, falling back to common layouts."""

    for fmt in (date_format, *_FALLBACK_DATE_FORMATS):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Could not parse date: {text}")


def parse_decimal(text: str) -> Decimal:
    """Parse a money cell such as ``"$1,234.56"``, ``"(500.00)"`` or ``""``.

    Blank cells are zero. Non-numeric and non-finite values raise
    ``ValueError``.
    """

    cleaned = (
        text.replace("$", "").replace(",", "").replace("(", "-").replace(")", "").strip()
    )
    if not cleaned:
        return Decimal(0)
    for candidate in (cleaned, cleaned.replace('"', "").strip()):
        try:
            value = Decimal(candidate)
        except InvalidOperation:
            continue
        if not value.is_finite():
            break
        return value
    raise ValueError(f"Failed to parse {text!r} as decimal")


def _cell(row: Sequence[str], index: int | None) -> str:
    if index is None or index >= len(row):
        return ""
    return row[index].strip()


def parse_amount(row: Sequence[str], profile: CsvProfile) -> Decimal:
    """Signed amount of ``row`` under ``profile`` (negative = money out)."""

    if profile.amount_column is not None:
        amount = parse_decimal(_cell(row, profile.amount_column))
    else:
        debit = _cell(row, profile.debit_column)
        credit = _cell(row, profile.credit_column)
        if debit:
            amount = -abs(parse_decimal(debit))
        elif credit:
            amount = abs(parse_decimal(credit))
        else:
            amount = Decimal(0)

    if profile.negate_amounts:
        amount = -amount
    if amount.is_zero():
        # Keep "-0.00" out of hashes and storage.
        amount = abs(amount)
    return amount


# ----------------------------------------------------------------------------
# Dedup hash
# ----------------------------------------------------------------------------


def fnv1a(data: bytes) -> int:
    """64-bit FNV-1a."""

    h = _FNV_OFFSET
    for byte in data:
        h ^= byte
        h = (h * _FNV_PRIME) & _MASK64
    return h


def compute_hash(
    account_id: int, row_index: int, date_text: str, description: str, amount: Decimal
) -> str:
    """Deterministic 16-hex-digit import hash for one parsed row."""

    payload = f"{account_id}|{row_index}|{date_text}|{description}|{amount}"
    return f"{fnv1a(payload.encode('utf-8')):016x}"


# ----------------------------------------------------------------------------
# Row parser
# ----------------------------------------------------------------------------


def parse_rows(
    rows: Sequence[Sequence[str]], profile: CsvProfile, account_id: int
) -> list[Transaction]:
    """Convert data rows into transaction candidates.

    The first ``profile.skip_rows`` rows are discarded and rows with a blank
    date cell are skipped. Any unparseable date or amount aborts the whole
    parse with :class:`RowParseError`.
    """

    out: list[Transaction] = []
    skipped_blank = 0
    for index, row in enumerate(rows):
        if index < profile.skip_rows:
            continue

        date_text = _cell(row, profile.date_column)
        if not date_text:
            skipped_blank += 1
            continue

        try:
            parsed_date = parse_date(date_text, profile.date_format)
        except ValueError:
            raise RowParseError(index + 1, "date", date_text) from None

        description = _cell(row, profile.description_column)

        try:
            amount = parse_amount(row, profile)
        except ValueError:
            raw = _amount_cells(row, profile)
            raise RowParseError(index + 1, "amount", raw) from None

        out.append(
            Transaction(
                account_id=account_id,
                date=parsed_date.isoformat(),
                description=description,
                original_description=description,
                amount=amount,
                import_hash=compute_hash(account_id, index, date_text, description, amount),
            )
        )

    if skipped_blank:
        logger.debug("Skipped %d row(s) with a blank date cell", skipped_blank)
    return out


def _amount_cells(row: Sequence[str], profile: CsvProfile) -> str:
    if profile.amount_column is not None:
        return _cell(row, profile.amount_column)
    debit = _cell(row, profile.debit_column)
    return debit or _cell(row, profile.credit_column)


__all__ = [
    "CsvPreview",
    "EmptyCsvError",
    "RowParseError",
    "compute_hash",
    "fnv1a",
    "looks_like_header",
    "parse_amount",
    "parse_date",
    "parse_decimal",
    "parse_rows",
    "preview_csv",
    "rows_for_profile",
]
