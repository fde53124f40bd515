# ruff: noqa: I001
"""CLI for the ``ledger_import`` package.

This module exposes callable command handlers (``cmd_import``,
``cmd_add_rule`` ...) and a Typer-based console interface. Environment
variables (notably ``LEDGER_DATABASE_URL``) are loaded from a local ``.env``
using ``python-dotenv`` before delegating to command logic. Business logic
lives in :mod:`ledger_import.workflows` and :mod:`ledger_import.persistence`;
handlers translate its exceptions into ``Error: ...`` lines on stderr and a
non-zero exit status.
"""

from __future__ import annotations

import csv
import os
import re
import sys
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .categorize import suggest_rule
from .ingest.csv_import import preview_csv
from .ingest.detect import KNOWN_BANKS, detect_bank_format
from .logging_setup import configure_logging
from .models import AccountType, ImportRule, find_category_by_name
from .profiles import CsvProfile, load_profile


# ---- Small module-level helpers used by CLI commands -------------------------


def _err(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def _resolve_allow_create(allow_create: bool | None) -> bool:
    """Explicit option wins; else ``LEDGER_ALLOW_CATEGORY_CREATE``; default on."""

    if allow_create is not None:
        return allow_create
    env_val = os.getenv("LEDGER_ALLOW_CATEGORY_CREATE")
    if env_val is not None and env_val.strip().lower() in {"0", "false", "no"}:
        return False
    return True


def _describe_profile(profile: CsvProfile) -> list[str]:
    if profile.uses_debit_credit:
        amount = f"debit={profile.debit_column} credit={profile.credit_column}"
    else:
        amount = f"amount={profile.amount_column}"
    return [
        f"Format: {profile.name}",
        f"  columns: date={profile.date_column} description={profile.description_column} {amount}",
        f"  date format: {profile.date_format}",
        f"  header: {'yes' if profile.has_header else 'no'}  skip rows: {profile.skip_rows}",
        f"  negate amounts: {'yes' if profile.negate_amounts else 'no'}",
        f"  credit account: {'yes' if profile.is_credit_account else 'no'}",
    ]


# ---- Command handlers --------------------------------------------------------


def cmd_init_db(*, database_url: str | None = None) -> int:
    """Create the ledger tables and seed the default categories."""

    from db.client import get_engine, session_scope
    from db.models import Base
    from .persistence import seed_default_categories

    try:
        Base.metadata.create_all(get_engine(database_url=database_url))
        with session_scope(database_url=database_url) as session:
            seeded = seed_default_categories(session)
    except Exception as e:
        return _err(f"failed to initialize database: {e}")

    print(f"Database ready; seeded {seeded} default categories.")
    return 0


def cmd_detect(csv_path: str) -> int:
    """Print the detected bank format for ``csv_path``, or that none matched."""

    try:
        preview = preview_csv(csv_path)
    except FileNotFoundError:
        return _err(f"File not found: {csv_path}")
    except PermissionError:
        return _err(f"Permission denied: {csv_path}")
    except (csv.Error, UnicodeDecodeError) as e:
        return _err(f"Failed to read CSV: {e}")

    profile = detect_bank_format(preview.detection_headers, preview.first_row)
    if profile is None:
        print("No known bank format matched; pass column options to import it.")
        return 0
    for line in _describe_profile(profile):
        print(line)
    return 0


def cmd_banks() -> int:
    for name in KNOWN_BANKS:
        print(name)
    return 0


def cmd_import(
    csv_path: str,
    *,
    account_id: int,
    database_url: str | None = None,
    profile_file: str | None = None,
    overrides: dict[str, Any] | None = None,
    wizard: bool = True,
    allow_create: bool | None = None,
    dry_run: bool = False,
) -> int:
    """Import one CSV file into an account and print a summary.

    Flow
    ----
    - Resolve the profile: ``--profile-file`` if given, else the detected bank
      format, else the manual mapping; column options override either.
    - Parse, categorize with the stored rules, then (unless ``--no-wizard`` or
      ``--dry-run``) walk the remaining descriptions interactively.
    - Insert, skipping rows whose import hash is already stored.

    Everything happens in one database transaction: a parse error or a
    failure mid-way leaves the database untouched.
    """

    from db.client import session_scope
    from .ingest.csv_import import RowParseError
    from .persistence import SqlLedgerStore
    from .workflows import import_csv

    profile: CsvProfile | None = None
    if profile_file:
        try:
            profile = load_profile(profile_file)
        except OSError as e:
            return _err(f"cannot read profile file {profile_file}: {e}")
        except ValueError as e:
            return _err(f"invalid profile file {profile_file}: {e}")

    try:
        with session_scope(database_url=database_url) as session:
            store = SqlLedgerStore(session)
            account = store.get_account(account_id)
            if account is None:
                return _err(f"No account with id {account_id}; create one with add-account.")
            result = import_csv(
                csv_path,
                store=store,
                account_id=account.id,
                account_type=account.account_type,
                profile=profile,
                overrides=overrides,
                wizard=wizard,
                allow_create=_resolve_allow_create(allow_create),
                dry_run=dry_run,
                on_progress=print,
            )
    except FileNotFoundError:
        return _err(f"File not found: {csv_path}")
    except PermissionError:
        return _err(f"Permission denied: {csv_path}")
    except RowParseError as e:
        return _err(f"{e} (nothing was imported)")
    except (csv.Error, UnicodeDecodeError) as e:
        return _err(f"Failed to read CSV: {e}")
    except ValueError as e:
        return _err(str(e))
    except Exception as e:  # pragma: no cover
        return _err(f"import failed: {e}")

    source = "detected" if result.detected else "manual"
    print(f"Profile: {result.profile.name} ({source})")
    print(f"Parsed: {result.parsed}")
    print(f"Auto-categorized: {result.auto_categorized}")
    if result.wizard is not None:
        print(f"Categorized in review: {result.wizard.applied}")
        print(f"Rules learned: {len(result.wizard.created_rules)}")
    print(f"Uncategorized: {result.uncategorized}")
    if dry_run:
        print(f"Dry run: {result.parsed - result.duplicates} new, {result.duplicates} already imported")
    else:
        print(f"Inserted: {result.inserted}")
        print(f"Skipped (duplicates): {result.duplicates}")
    return 0


def cmd_add_rule(
    pattern: str,
    category: str,
    *,
    regex: bool = False,
    priority: int = 0,
    database_url: str | None = None,
) -> int:
    """Save a categorization rule pointing at an existing category."""

    from db.client import session_scope
    from .persistence import SqlLedgerStore

    pattern = pattern.strip()
    if not pattern:
        return _err("pattern cannot be empty")
    if regex:
        try:
            re.compile(pattern)
        except re.error as e:
            return _err(f"invalid regex {pattern!r}: {e}")
        rule_factory = ImportRule.regex
    else:
        pattern = pattern.lower()
        rule_factory = ImportRule.contains

    try:
        with session_scope(database_url=database_url) as session:
            store = SqlLedgerStore(session)
            cat = find_category_by_name(store.load_categories(), category)
            if cat is None:
                return _err(f"Unknown category: {category!r}")
            saved = store.add_import_rule(rule_factory(pattern, cat.id, priority=priority))
    except Exception as e:
        return _err(f"failed to save rule: {e}")

    kind = "regex" if saved.is_regex else "contains"
    print(f"Rule {saved.id}: {kind} '{saved.pattern}' -> {cat.name} (priority {saved.priority})")
    return 0


def cmd_list_rules(*, database_url: str | None = None) -> int:
    from db.client import session_scope
    from .persistence import SqlLedgerStore

    try:
        with session_scope(database_url=database_url) as session:
            store = SqlLedgerStore(session)
            names = {c.id: c.name for c in store.load_categories()}
            rules = store.load_import_rules()
    except Exception as e:
        return _err(f"failed to load rules: {e}")

    if not rules:
        print("No rules yet.")
        return 0
    for r in rules:
        kind = "regex" if r.is_regex else "contains"
        target = names.get(r.category_id, f"#{r.category_id}")
        print(f"{r.id}\t{r.priority}\t{kind}\t{r.pattern}\t{target}")
    return 0


def cmd_delete_rule(rule_id: int, *, database_url: str | None = None) -> int:
    from db.client import session_scope
    from .persistence import SqlLedgerStore

    try:
        with session_scope(database_url=database_url) as session:
            deleted = SqlLedgerStore(session).delete_import_rule(rule_id)
    except Exception as e:
        return _err(f"failed to delete rule: {e}")

    if not deleted:
        return _err(f"No rule with id {rule_id}")
    print(f"Deleted rule {rule_id}.")
    return 0


def cmd_list_categories(*, database_url: str | None = None) -> int:
    from db.client import session_scope
    from .persistence import SqlLedgerStore

    try:
        with session_scope(database_url=database_url) as session:
            categories = SqlLedgerStore(session).load_categories()
    except Exception as e:
        return _err(f"failed to load categories: {e}")

    for c in categories:
        print(f"{c.id}\t{c.name}")
    return 0


def cmd_add_category(name: str, *, database_url: str | None = None) -> int:
    from db.client import session_scope
    from .categories import create_category

    try:
        with session_scope(database_url=database_url) as session:
            res = create_category(session, name)
    except ValueError as e:
        return _err(str(e))
    except Exception as e:
        return _err(f"failed to create category: {e}")

    cat = res["category"]
    if res["created"]:
        print(f"Created category {cat.id}: {cat.name}")
    else:
        print(f"Category already exists: {cat.name} ({cat.id})")
    return 0


def cmd_list_accounts(*, database_url: str | None = None) -> int:
    from db.client import session_scope
    from .persistence import SqlLedgerStore

    try:
        with session_scope(database_url=database_url) as session:
            store = SqlLedgerStore(session)
            rows = [(a, store.count_transactions(account_id=a.id)) for a in store.list_accounts()]
    except Exception as e:
        return _err(f"failed to load accounts: {e}")

    if not rows:
        print("No accounts yet; create one with add-account.")
        return 0
    for account, n in rows:
        inst = f" @ {account.institution}" if account.institution else ""
        print(f"{account.id}\t{account.name}{inst}\t{account.account_type.value}\t{n} transaction(s)")
    return 0


def cmd_add_account(
    name: str,
    *,
    account_type: str = AccountType.CHECKING.value,
    institution: str = "",
    currency: str = "USD",
    database_url: str | None = None,
) -> int:
    from db.client import session_scope
    from .persistence import SqlLedgerStore

    try:
        with session_scope(database_url=database_url) as session:
            account = SqlLedgerStore(session).create_account(
                name,
                account_type=AccountType.parse(account_type),
                institution=institution,
                currency=currency,
            )
    except ValueError as e:
        return _err(str(e))
    except Exception as e:
        return _err(f"failed to create account: {e}")

    print(f"Created account {account.id}: {account.name} ({account.account_type.value})")
    return 0


def cmd_suggest(description: str) -> int:
    print(suggest_rule(description))
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import bank CSV exports into a local ledger, categorizing transactions "
        "with learned rules. Loads LEDGER_DATABASE_URL from a local .env."
    ),
)


# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults). Typer inspects these when used as default values below.
CSV_PATH_OPTION: OptionInfo = typer.Option(
    ...,  # required
    "--csv-path",
    help="Path to the bank CSV export",
    dir_okay=False,
    file_okay=True,
    exists=False,  # allow non-existent here; the handler reports nice errors
    readable=True,
)
PRIORITY_OPTION: OptionInfo = typer.Option(
    0, "--priority", help="Higher priority rules are tried first."
)


def _database_url(ctx: typer.Context) -> str | None:
    obj = ctx.obj or {}
    return obj.get("database_url")


@app.command("init-db")
def init_db_cmd(ctx: typer.Context) -> None:
    """Create tables and seed the default categories."""

    raise typer.Exit(cmd_init_db(database_url=_database_url(ctx)))


@app.command("detect")
def detect_cmd(csv_path: Annotated[Path, CSV_PATH_OPTION]) -> None:
    """Show which bank format a CSV file matches."""

    raise typer.Exit(cmd_detect(str(csv_path)))


@app.command("banks")
def banks_cmd() -> None:
    """List the bank formats that are detected automatically."""

    raise typer.Exit(cmd_banks())


@app.command("import")
def import_cmd(
    ctx: typer.Context,
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    *,
    account_id: int = typer.Option(..., "--account-id", help="Account receiving the rows."),
    profile_file: Path | None = typer.Option(
        None, "--profile-file", help="JSON column mapping; skips detection."
    ),
    date_column: int | None = typer.Option(None, help="0-based date column."),
    description_column: int | None = typer.Option(None, help="0-based description column."),
    amount_column: int | None = typer.Option(None, help="0-based signed amount column."),
    debit_column: int | None = typer.Option(None, help="0-based debit (money out) column."),
    credit_column: int | None = typer.Option(None, help="0-based credit (money in) column."),
    date_format: str | None = typer.Option(None, help="strftime format, e.g. %m/%d/%Y."),
    skip_rows: int | None = typer.Option(None, help="Data rows to skip after the header."),
    negate: bool | None = typer.Option(
        None, "--negate/--no-negate", help="Flip the sign of every amount."
    ),
    header: bool | None = typer.Option(
        None, "--header/--no-header", help="Whether the first row is a header."
    ),
    wizard: bool = typer.Option(
        True, "--wizard/--no-wizard", help="Review uncategorized descriptions interactively."
    ),
    allow_create: bool | None = typer.Option(
        None,
        help=(
            "Enable in-wizard category creation (default true). "
            "Override with env LEDGER_ALLOW_CATEGORY_CREATE=0."
        ),
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Parse and report; insert nothing."),
) -> None:
    """Import a bank CSV into an account."""

    overrides = {
        "date_column": date_column,
        "description_column": description_column,
        "amount_column": amount_column,
        "debit_column": debit_column,
        "credit_column": credit_column,
        "date_format": date_format,
        "skip_rows": skip_rows,
        "negate_amounts": negate,
        "has_header": header,
    }
    raise typer.Exit(
        cmd_import(
            str(csv_path),
            account_id=account_id,
            database_url=_database_url(ctx),
            profile_file=str(profile_file) if profile_file else None,
            overrides=overrides,
            wizard=wizard,
            allow_create=allow_create,
            dry_run=dry_run,
        )
    )


@app.command("rule")
def rule_cmd(
    ctx: typer.Context,
    pattern: str,
    category: str,
    priority: int = PRIORITY_OPTION,
) -> None:
    """Add a case-insensitive substring rule."""

    raise typer.Exit(
        cmd_add_rule(pattern, category, priority=priority, database_url=_database_url(ctx))
    )


@app.command("regex-rule")
def regex_rule_cmd(
    ctx: typer.Context,
    pattern: str,
    category: str,
    priority: int = PRIORITY_OPTION,
) -> None:
    """Add a case-insensitive regular-expression rule."""

    raise typer.Exit(
        cmd_add_rule(
            pattern, category, regex=True, priority=priority, database_url=_database_url(ctx)
        )
    )


@app.command("rules")
def rules_cmd(ctx: typer.Context) -> None:
    """List rules in evaluation order."""

    raise typer.Exit(cmd_list_rules(database_url=_database_url(ctx)))


@app.command("delete-rule")
def delete_rule_cmd(ctx: typer.Context, rule_id: int) -> None:
    """Delete a rule by id."""

    raise typer.Exit(cmd_delete_rule(rule_id, database_url=_database_url(ctx)))


@app.command("categories")
def categories_cmd(ctx: typer.Context) -> None:
    """List categories."""

    raise typer.Exit(cmd_list_categories(database_url=_database_url(ctx)))


@app.command("add-category")
def add_category_cmd(ctx: typer.Context, name: str) -> None:
    """Create a category (no-op when it already exists)."""

    raise typer.Exit(cmd_add_category(name, database_url=_database_url(ctx)))


@app.command("accounts")
def accounts_cmd(ctx: typer.Context) -> None:
    """List accounts with their transaction counts."""

    raise typer.Exit(cmd_list_accounts(database_url=_database_url(ctx)))


@app.command("add-account")
def add_account_cmd(
    ctx: typer.Context,
    name: str,
    account_type: str = typer.Option(
        AccountType.CHECKING.value,
        "--type",
        help="Checking, Savings, Credit Card, Investment, Cash, Loan or Other.",
    ),
    institution: str = typer.Option("", help="Bank or card issuer."),
    currency: str = typer.Option("USD", help="ISO currency code."),
) -> None:
    """Create an account to import into."""

    raise typer.Exit(
        cmd_add_account(
            name,
            account_type=account_type,
            institution=institution,
            currency=currency,
            database_url=_database_url(ctx),
        )
    )


@app.command("suggest")
def suggest_cmd(description: str) -> None:
    """Print the rule pattern the wizard would learn from a description."""

    raise typer.Exit(cmd_suggest(description))


@app.callback()
def _root(
    ctx: typer.Context,
    *,
    database_url: str | None = typer.Option(
        None, help="Override LEDGER_DATABASE_URL (falls back to env vars, then ./ledger.db)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level."),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging before any
    subcommand runs.
    """

    # Load environment from .env in CWD (override=False to keep existing env)
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    configure_logging("DEBUG" if verbose else None)

    ctx.obj = {"database_url": database_url}


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    # Running as a module: `python -m ledger_import.cli`
    app()
