"""
Index store schema definitions.

Defines the forward document table, per-field token counts, the
inverted postings table, and the metadata table carrying the schema
version that open() validates against.
"""

import sqlite3
from datetime import datetime, timezone

from ..core import get_logger, SchemaMismatchError
from .connection import ConnectionManager, translate_error

logger = get_logger(__name__)


SCHEMA_VERSION = "1"
ANALYZER_NAME = "unicode-casefold-nodiacritics"

STORE_META_TABLE = """
CREATE TABLE IF NOT EXISTS store_meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""

DOCUMENTS_TABLE = """
CREATE TABLE IF NOT EXISTS documents (
    doc_id TEXT PRIMARY KEY,
    body TEXT NOT NULL,
    metadata TEXT,
    page_count INTEGER NOT NULL DEFAULT 0,
    file_hash TEXT,
    file_size INTEGER,
    extraction_backend TEXT,
    indexed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
)
"""

FIELD_LENGTHS_TABLE = """
CREATE TABLE IF NOT EXISTS field_lengths (
    doc_id TEXT NOT NULL,
    field TEXT NOT NULL,
    length INTEGER NOT NULL,
    PRIMARY KEY (doc_id, field),
    FOREIGN KEY (doc_id) REFERENCES documents(doc_id) ON DELETE CASCADE
)
"""

POSTINGS_TABLE = """
CREATE TABLE IF NOT EXISTS postings (
    field TEXT NOT NULL,
    term TEXT NOT NULL,
    doc_id TEXT NOT NULL,
    frequency INTEGER NOT NULL,
    positions TEXT NOT NULL,
    PRIMARY KEY (field, term, doc_id),
    FOREIGN KEY (doc_id) REFERENCES documents(doc_id) ON DELETE CASCADE
) WITHOUT ROWID
"""

STORE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_postings_term ON postings(term)",
    "CREATE INDEX IF NOT EXISTS idx_postings_doc ON postings(doc_id)",
    "CREATE INDEX IF NOT EXISTS idx_field_lengths_field ON field_lengths(field)"
]

REQUIRED_TABLES = {"store_meta", "documents", "field_lengths", "postings"}


def init_schema(manager: ConnectionManager) -> None:
    """
    Create all tables and record the schema version.

    Args:
        manager: Connection manager of a freshly created store.
    """
    logger.info(f"Initializing index store schema: {manager.db_path}")

    with manager.transaction() as cur:
        cur.execute(STORE_META_TABLE)
        cur.execute(DOCUMENTS_TABLE)
        cur.execute(FIELD_LENGTHS_TABLE)
        cur.execute(POSTINGS_TABLE)

        for index_sql in STORE_INDEXES:
            cur.execute(index_sql)

        cur.executemany(
            "INSERT OR REPLACE INTO store_meta (key, value) VALUES (?, ?)",
            [
                ("schema_version", SCHEMA_VERSION),
                ("analyzer", ANALYZER_NAME),
                ("created_at", datetime.now(timezone.utc).isoformat()),
            ]
        )

    logger.info("Schema initialization complete")


def verify_schema(manager: ConnectionManager) -> None:
    """
    Check that an existing file holds a store this version can read.

    Args:
        manager: Connection manager of an opened, pre-existing store.

    Raises:
        SchemaMismatchError: If tables are missing or the recorded
                             schema version or analyzer differ.
        StoreCorruptionError: If the file cannot be read as a database.
    """
    try:
        rows = manager.connection.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table'"
        ).fetchall()
    except sqlite3.Error as e:
        raise translate_error(e, "reading schema")

    tables = {row["name"] for row in rows}
    missing = REQUIRED_TABLES - tables
    if missing:
        raise SchemaMismatchError(
            f"Not a refman index store, missing tables: {', '.join(sorted(missing))}",
            {"path": str(manager.db_path)}
        )

    meta = {row["key"]: row["value"] for row in manager.query("SELECT key, value FROM store_meta")}

    version = meta.get("schema_version")
    if version != SCHEMA_VERSION:
        raise SchemaMismatchError(
            f"Index store schema version {version!r} is not supported (expected {SCHEMA_VERSION!r})",
            {"path": str(manager.db_path), "found": version}
        )

    analyzer = meta.get("analyzer")
    if analyzer != ANALYZER_NAME:
        raise SchemaMismatchError(
            f"Index store was built with analyzer {analyzer!r}, expected {ANALYZER_NAME!r}",
            {"path": str(manager.db_path), "found": analyzer}
        )


def get_statistics(manager: ConnectionManager) -> dict:
    """
    Collect store statistics.

    Returns:
        Dictionary with document, term and postings counts, body size,
        and the oldest and newest indexing timestamps.
    """
    stats = {}

    row = manager.query_one("SELECT COUNT(*) AS count FROM documents")
    stats["total_documents"] = row["count"]

    row = manager.query_one("SELECT COUNT(DISTINCT term) AS count FROM postings")
    stats["distinct_terms"] = row["count"]

    row = manager.query_one("SELECT COUNT(*) AS count FROM postings")
    stats["total_postings"] = row["count"]

    row = manager.query_one("SELECT SUM(LENGTH(body)) AS total FROM documents")
    total_chars = row["total"] or 0
    stats["total_text_mb"] = round(total_chars / (1024 * 1024), 2)

    row = manager.query_one(
        "SELECT MIN(indexed_at) AS oldest, MAX(indexed_at) AS newest FROM documents"
    )
    stats["oldest_index"] = row["oldest"]
    stats["newest_index"] = row["newest"]

    return stats
