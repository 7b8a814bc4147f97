"""
Index store module.

A self-contained inverted index persisted in a single SQLite file:
forward document rows, per-field token counts, and postings with
positions. SQLite provides durability and cross-process locking.
"""

from .connection import ConnectionManager
from .schema import SCHEMA_VERSION, init_schema, verify_schema, get_statistics
from .repository import DocumentRepository, Posting, FieldStatistics
from .index_store import IndexStore, TEXT_FIELD, analyze_document

__all__ = [
    "ConnectionManager",
    "SCHEMA_VERSION",
    "init_schema",
    "verify_schema",
    "get_statistics",
    "DocumentRepository",
    "Posting",
    "FieldStatistics",
    "IndexStore",
    "TEXT_FIELD",
    "analyze_document"
]
