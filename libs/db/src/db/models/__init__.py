"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the ledger models used by ``ledger_import``.
"""

from .ledger import (
    Base,
    LedgerAccount,
    LedgerCategory,
    LedgerImportRule,
    LedgerTransaction,
)

__all__ = [
    "Base",
    "LedgerAccount",
    "LedgerCategory",
    "LedgerImportRule",
    "LedgerTransaction",
]
