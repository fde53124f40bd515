"""Public interface for the ``ledger_import`` package.

Re-exports the import-and-categorization core: profiles, format detection,
row parsing, the rule categorizer and the wizard state machine. Storage,
terminal prompts and the CLI live in their own modules
(``ledger_import.persistence``, ``ledger_import.review``,
``ledger_import.cli``) and are imported explicitly.
"""

from .categorize import Categorizer, suggest_rule
from .ingest.csv_import import (
    CsvPreview,
    EmptyCsvError,
    RowParseError,
    compute_hash,
    parse_rows,
    preview_csv,
    rows_for_profile,
)
from .ingest.detect import KNOWN_BANKS, detect_bank_format
from .models import (
    Account,
    AccountType,
    Category,
    ImportRule,
    Transaction,
    find_category_by_name,
)
from .profiles import CsvProfile, load_profile, manual_profile
from .wizard import InvalidTransition, Phase, WizardState, apply_category, start_wizard, transition

__all__ = [
    # Pipeline
    "detect_bank_format",
    "KNOWN_BANKS",
    "preview_csv",
    "rows_for_profile",
    "parse_rows",
    "compute_hash",
    "Categorizer",
    "suggest_rule",
    "start_wizard",
    "transition",
    "apply_category",
    # Models / types
    "Account",
    "AccountType",
    "Category",
    "CsvPreview",
    "CsvProfile",
    "ImportRule",
    "Phase",
    "Transaction",
    "WizardState",
    "find_category_by_name",
    "load_profile",
    "manual_profile",
    # Errors
    "EmptyCsvError",
    "InvalidTransition",
    "RowParseError",
]
