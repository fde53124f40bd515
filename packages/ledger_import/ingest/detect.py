"""Bank CSV format detection.

Known bank exports are recognized by header fingerprints (and, for the one
headerless layout, by the shape of the first data row). The registry is an
ordered list of ``(predicate, builder)`` pairs tried top to bottom, so more
specific fingerprints sit above looser ones. Detection is best effort: callers
fall back to :func:`ledger_import.profiles.manual_profile` on ``None``.

Header comparisons are case-insensitive and ignore surrounding whitespace.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from ..profiles import CsvProfile


@dataclass(frozen=True, slots=True)
class _Shape:
    """Normalized view of a file's header row and first data row."""

    headers: tuple[str, ...]
    first_row: tuple[str, ...]
    headerless: bool

    def has(self, name: str) -> bool:
        return name in self.headers

    def has_containing(self, fragment: str) -> bool:
        return any(fragment in h for h in self.headers)

    def first_is(self, name: str) -> bool:
        return bool(self.headers) and self.headers[0] == name

    def col(self, name: str, default: int | None) -> int | None:
        try:
            return self.headers.index(name)
        except ValueError:
            return default


@dataclass(frozen=True, slots=True)
class BankFingerprint:
    name: str
    matches: Callable[[_Shape], bool]
    build: Callable[[_Shape], CsvProfile]


def _headered(name: str, **fields) -> CsvProfile:
    return CsvProfile(name=name, has_header=True, **fields)


# ---------------------------------------------------------------------------
# Fingerprints (priority order)
# ---------------------------------------------------------------------------


def _is_wells_fargo(s: _Shape) -> bool:
    return s.headerless and len(s.first_row) == 5 and s.first_row[2].strip() == "*"


def _wells_fargo(s: _Shape) -> CsvProfile:
    return CsvProfile(
        name="Wells Fargo",
        date_column=0,
        description_column=4,
        amount_column=1,
        has_header=False,
    )


def _amex(s: _Shape) -> CsvProfile:
    # Charges are exported positive and payments negative; flip to the
    # ledger convention (charges negative).
    return _headered(
        "American Express",
        date_column=s.col("date", 0),
        description_column=s.col("description", 1),
        amount_column=s.col("amount", None),
        negate_amounts=True,
        is_credit_account=True,
    )


def _boa_credit(s: _Shape) -> CsvProfile:
    return _headered(
        "Bank of America Credit Card",
        date_column=s.col("posted date", 0),
        description_column=s.col("payee", 2),
        amount_column=s.col("amount", None),
        is_credit_account=True,
    )


def _boa_checking(s: _Shape) -> CsvProfile:
    return _headered(
        "Bank of America Checking",
        date_column=s.col("date", 0),
        description_column=s.col("description", 1),
        amount_column=s.col("amount", None),
    )


def _usaa(s: _Shape) -> CsvProfile:
    return _headered(
        "USAA",
        date_column=s.col("date", 0),
        description_column=s.col("description", 1),
        amount_column=s.col("amount", None),
    )


def _citi(s: _Shape) -> CsvProfile:
    return _headered(
        "Citi",
        date_column=s.col("date", 1),
        description_column=s.col("description", 2),
        amount_column=None,
        debit_column=s.col("debit", None),
        credit_column=s.col("credit", None),
        is_credit_account=True,
    )


def _capital_one_credit(s: _Shape) -> CsvProfile:
    return _headered(
        "Capital One Credit Card",
        date_column=s.col("transaction date", 0),
        description_column=s.col("description", 3),
        amount_column=None,
        debit_column=s.col("debit", None),
        credit_column=s.col("credit", None),
        date_format="%Y-%m-%d",
        is_credit_account=True,
    )


def _capital_one_checking(s: _Shape) -> CsvProfile:
    return _headered(
        "Capital One Checking",
        date_column=s.col("transaction date", 1),
        description_column=s.col("transaction description", 4),
        amount_column=s.col("transaction amount", None),
    )


def _discover(s: _Shape) -> CsvProfile:
    return _headered(
        "Discover",
        date_column=0,
        description_column=s.col("description", 2),
        amount_column=s.col("amount", None),
        is_credit_account=True,
    )


def _chase_checking(s: _Shape) -> CsvProfile:
    return _headered(
        "Chase Checking",
        date_column=s.col("posting date", 1),
        description_column=s.col("description", 2),
        amount_column=s.col("amount", None),
    )


def _chase_credit(s: _Shape) -> CsvProfile:
    return _headered(
        "Chase Credit Card",
        date_column=s.col("transaction date", 0),
        description_column=s.col("description", 2),
        amount_column=s.col("amount", None),
        is_credit_account=True,
    )


FINGERPRINTS: tuple[BankFingerprint, ...] = (
    BankFingerprint("Wells Fargo", _is_wells_fargo, _wells_fargo),
    BankFingerprint("American Express", lambda s: s.has("card member"), _amex),
    BankFingerprint(
        "Bank of America Credit Card",
        lambda s: s.has("reference number") and s.has("address"),
        _boa_credit,
    ),
    BankFingerprint(
        "Bank of America Checking", lambda s: s.has_containing("running bal"), _boa_checking
    ),
    BankFingerprint("USAA", lambda s: s.has("original description"), _usaa),
    BankFingerprint(
        "Citi",
        lambda s: s.first_is("status") and s.has("debit") and s.has("credit"),
        _citi,
    ),
    BankFingerprint("Capital One Credit Card", lambda s: s.has("card no."), _capital_one_credit),
    BankFingerprint(
        "Capital One Checking",
        lambda s: s.first_is("account number") and s.has("transaction amount"),
        _capital_one_checking,
    ),
    BankFingerprint(
        "Discover",
        lambda s: s.has_containing("trans. date") or s.has_containing("trans.date"),
        _discover,
    ),
    BankFingerprint(
        "Chase Checking",
        lambda s: s.has("details") and s.has_containing("check or slip"),
        _chase_checking,
    ),
    BankFingerprint(
        "Chase Credit Card",
        lambda s: s.has("transaction date") and s.has("post date") and s.has("type"),
        _chase_credit,
    ),
)

KNOWN_BANKS: tuple[str, ...] = tuple(fp.name for fp in FINGERPRINTS)


def detect_bank_format(headers: Sequence[str], first_row: Sequence[str]) -> CsvProfile | None:
    """Return the profile of the first matching bank fingerprint, or ``None``.

    ``headers`` is empty for headerless files; ``first_row`` is the first data
    row (used only by structural fingerprints). Pure function of its inputs.
    """

    shape = _Shape(
        headers=tuple(h.strip().lower() for h in headers),
        first_row=tuple(first_row),
        headerless=len(headers) == 0,
    )
    for fp in FINGERPRINTS:
        if fp.matches(shape):
            return fp.build(shape)
    return None


__all__ = ["detect_bank_format", "BankFingerprint", "FINGERPRINTS", "KNOWN_BANKS"]
