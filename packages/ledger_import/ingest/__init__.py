"""Bank CSV ingestion: format detection, preview and row parsing."""

from .csv_import import (
    CsvPreview,
    EmptyCsvError,
    RowParseError,
    compute_hash,
    parse_rows,
    preview_csv,
    rows_for_profile,
)
from .detect import KNOWN_BANKS, detect_bank_format

__all__ = [
    "CsvPreview",
    "EmptyCsvError",
    "KNOWN_BANKS",
    "RowParseError",
    "compute_hash",
    "detect_bank_format",
    "parse_rows",
    "preview_csv",
    "rows_for_profile",
]
