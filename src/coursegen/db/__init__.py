"""SQLite persistence for the usage ledger."""

from coursegen.db.database import ensure_schema, get_db

__all__ = ["ensure_schema", "get_db"]
