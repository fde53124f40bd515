"""Category domain helpers and service operations.

This module centralizes small, server-side validated operations for the
``ledger_categories`` table and exposes a minimal API used by the wizard, the
storage layer and the CLI. Validation is duplicated lightly on the client
(terminal UI) but is authoritatively enforced here.

Exports
-------
- ``create_category(...)``: idempotent category creation with case-insensitive
  conflict detection. Returns the created/existing row and a ``created`` flag.
- ``normalize_name(...)`` and ``validate_name(...)``: helper utilities shared
  by the terminal UI and the wizard to provide early feedback before hitting
  the database.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TypedDict

from db.models.ledger import LedgerCategory
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .models import Category

# ---------------------------
# Name normalization/validation
# ---------------------------

_ALLOWED_RE = re.compile(r"^[A-Za-z0-9 &\-/]+$")


def normalize_name(name: str) -> str:
    """Return a trimmed, single-spaced representation of ``name``.

    Does not change case; consumers may choose preferred casing conventions.
    """

    # Trim and collapse internal whitespace to single spaces
    return " ".join(name.strip().split())


@dataclass(frozen=True, slots=True)
class NameValidation:
    ok: bool
    reason: str | None = None


def validate_name(name: str, *, min_len: int = 1, max_len: int = 64) -> NameValidation:
    """Lightweight client/server validation for category names.

    Rules
    -----
    - Trim whitespace; enforce length bounds 1..64.
    - Allowed characters: letters, numbers, spaces, and ``& - /``.
    """

    n = normalize_name(name)
    if len(n) < min_len:
        return NameValidation(False, "Name cannot be empty")
    if len(n) > max_len:
        return NameValidation(False, f"Name must be at most {max_len} characters")
    if not _ALLOWED_RE.match(n):
        return NameValidation(False, "Only letters, numbers, spaces, and & - / are allowed")
    return NameValidation(True, None)


# ---------------------------
# Service result shape
# ---------------------------


class CreateCategoryResult(TypedDict):
    category: Category
    created: bool


def _to_category(row: LedgerCategory) -> Category:
    return Category(id=row.id, name=row.name)


def _find_by_name(session: Session, name: str) -> LedgerCategory | None:
    return (
        session.execute(
            select(LedgerCategory).where(func.lower(LedgerCategory.name) == name.lower())
        )
        .scalars()
        .first()
    )


def create_category(session: Session, name: str) -> CreateCategoryResult:
    """Create a new category if it doesn't exist (case-insensitive).

    Parameters
    ----------
    session:
        SQLAlchemy session to use (callers own the transaction scope).
    name:
        Category name as typed by the operator; normalized before use.

    Returns
    -------
    dict
        A mapping ``{"category": Category, "created": bool}``.

    Idempotency
    -----------
    A case-insensitive duplicate of ``name`` returns the existing row with
    ``created=False``. Invalid names raise ``ValueError``.
    """

    name_n = normalize_name(name)
    check = validate_name(name_n)
    if not check.ok:
        raise ValueError(f"Invalid category name: {check.reason or 'invalid_name'}")

    existing = _find_by_name(session, name_n)
    if existing is not None:
        return {"category": _to_category(existing), "created": False}

    row = LedgerCategory(name=name_n)
    try:
        with session.begin_nested():
            session.add(row)
            session.flush()  # obtain the generated id
    except IntegrityError:  # pragma: no cover - depends on concurrent writers
        # Lost a race on the lower(name) unique index; treat as idempotent.
        existing = _find_by_name(session, name_n)
        if existing is None:
            raise
        return {"category": _to_category(existing), "created": False}

    return {"category": _to_category(row), "created": True}


def list_categories(session: Session) -> list[Category]:
    """Return all categories sorted by name (case-insensitive)."""

    rows = (
        session.execute(select(LedgerCategory).order_by(func.lower(LedgerCategory.name)))
        .scalars()
        .all()
    )
    return [_to_category(r) for r in rows]


__all__ = [
    "normalize_name",
    "validate_name",
    "create_category",
    "list_categories",
    "NameValidation",
    "CreateCategoryResult",
]
