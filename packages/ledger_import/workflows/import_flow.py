# ruff: noqa: I001
"""Workflow orchestrator for the end-to-end CSV import.

CSV → preview → format detection (or manual profile) → row parsing → bulk
rule categorization → optional interactive wizard for what is left →
deduplicated batch insert. Keeping this composition out of the CLI lets tests
drive the whole pipeline against an in-memory or SQLite-backed store.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from os import PathLike
from typing import Any

from ..categorize import Categorizer
from ..ingest.csv_import import parse_rows, preview_csv, rows_for_profile
from ..ingest.detect import detect_bank_format
from ..logging_setup import get_logger
from ..models import AccountType, Transaction
from ..persistence import LedgerStore
from ..profiles import CsvProfile, manual_profile
from ..review import NamePrompt, Selector, WizardOutcome, run_categorization_wizard

logger = get_logger("ledger_import.workflows.import_flow")


@dataclass(slots=True)
class ImportResult:
    profile: CsvProfile
    detected: bool
    transactions: list[Transaction] = field(default_factory=list)
    auto_categorized: int = 0
    invalid_rules: list[str] = field(default_factory=list)
    wizard: WizardOutcome | None = None
    inserted: int = 0
    duplicates: int = 0
    dry_run: bool = False

    @property
    def parsed(self) -> int:
        return len(self.transactions)

    @property
    def uncategorized(self) -> int:
        return sum(1 for tx in self.transactions if tx.category_id is None)


def resolve_profile(
    headers: list[str],
    first_row: list[str],
    *,
    profile: CsvProfile | None = None,
    overrides: dict[str, Any] | None = None,
    has_header: bool = True,
) -> tuple[CsvProfile, bool]:
    """Pick the profile for a file: explicit, else detected, else manual.

    The manual fallback takes ``has_header`` (the preview's guess). Returns
    ``(profile, detected)``; operator ``overrides`` apply last.
    """

    detected = False
    if profile is None:
        found = detect_bank_format(headers, first_row)
        if found is not None:
            logger.info("Detected bank format: %s", found.name)
            profile, detected = found, True
        else:
            logger.info("No known bank format matched; using the manual column mapping")
            profile = manual_profile(has_header=has_header)
    if overrides:
        profile = profile.with_overrides(**overrides)
    return profile, detected


def _count_duplicates(store: LedgerStore, transactions: list[Transaction]) -> int:
    seen: set[str] = set()
    dupes = 0
    for tx in transactions:
        if not tx.import_hash:
            continue
        if tx.import_hash in seen or store.hash_exists(tx.import_hash):
            dupes += 1
        seen.add(tx.import_hash)
    return dupes


def import_csv(
    csv_path: str | PathLike[str],
    *,
    store: LedgerStore,
    account_id: int,
    account_type: AccountType | None = None,
    profile: CsvProfile | None = None,
    overrides: dict[str, Any] | None = None,
    wizard: bool = True,
    allow_create: bool = True,
    selector: Selector | None = None,
    name_prompt: NamePrompt | None = None,
    dry_run: bool = False,
    on_progress: Callable[[str], None] | None = None,
) -> ImportResult:
    """End-to-end import of one CSV file into ``account_id``.

    Parameters
    ----------
    profile:
        Explicit profile (e.g. loaded from a JSON mapping); skips detection.
    overrides:
        Operator column/format overrides applied on top of the chosen profile.
    wizard:
        Run the interactive categorization wizard for descriptions no rule
        matched. ``selector``/``name_prompt`` replace the terminal prompts.
    dry_run:
        Parse and categorize only; nothing is inserted and ``duplicates``
        reports how many rows are already stored.

    Raises
    ------
    csv.Error / EmptyCsvError / OSError
        From reading the file.
    RowParseError
        When a row's date or amount cannot be parsed (nothing is inserted).
    """

    preview = preview_csv(csv_path)
    chosen, detected = resolve_profile(
        preview.detection_headers,
        preview.first_row,
        profile=profile,
        overrides=overrides,
        has_header=preview.has_header,
    )
    if account_type is not None and chosen.is_credit_account != account_type.is_credit:
        logger.info(
            "Profile %s looks like a %s account but account %d is %s",
            chosen.name,
            "credit" if chosen.is_credit_account else "deposit",
            account_id,
            account_type.value,
        )

    transactions = parse_rows(rows_for_profile(preview, chosen), chosen, account_id)
    result = ImportResult(
        profile=chosen, detected=detected, transactions=transactions, dry_run=dry_run
    )
    if on_progress:
        on_progress(f"Parsed {result.parsed} transaction(s) using profile '{chosen.name}'.")

    # One consistent snapshot of rules and categories for the whole import.
    rules = tuple(store.load_import_rules())
    categories = tuple(store.load_categories())
    categorizer, invalid = Categorizer.from_rules(rules)
    for pattern in invalid:
        logger.warning("Ignoring rule with invalid regex: %r", pattern)
    result.invalid_rules = invalid
    result.auto_categorized = categorizer.categorize_batch(transactions)
    logger.info(
        "Rules categorized %d of %d transaction(s)", result.auto_categorized, result.parsed
    )

    if wizard and not dry_run and result.uncategorized:
        result.wizard = run_categorization_wizard(
            transactions,
            store,
            categories=categories,
            allow_create=allow_create,
            selector=selector,
            name_prompt=name_prompt,
            **({"print_fn": on_progress} if on_progress else {}),
        )

    if dry_run:
        result.duplicates = _count_duplicates(store, transactions)
    else:
        result.inserted = store.insert_transactions(transactions)
        result.duplicates = result.parsed - result.inserted
    return result


__all__ = ["ImportResult", "import_csv", "resolve_profile"]
