"""High-level workflows composing ingest, categorization and storage."""

from .import_flow import ImportResult, import_csv, resolve_profile

__all__ = ["ImportResult", "import_csv", "resolve_profile"]
