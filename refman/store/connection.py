"""
SQLite connection management for the index store.

Opens the store file with WAL journaling and a busy timeout, maps
sqlite3 failures onto the store error categories, and provides a
transaction context manager that commits or rolls back as a unit.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from ..core import get_logger, StoreIOError, StoreCorruptionError, StoreError

logger = get_logger(__name__)


# Substrings of sqlite3 messages that mean the file is not a usable database.
CORRUPTION_MARKERS = (
    "file is not a database",
    "database disk image is malformed",
    "file is encrypted",
)


def translate_error(error: sqlite3.Error, action: str) -> StoreError:
    """
    Map a sqlite3 exception onto the store error taxonomy.

    Args:
        error: The sqlite3 exception.
        action: Short description of what was attempted.

    Returns:
        StoreCorruptionError for damaged files, StoreIOError otherwise.
    """
    message = str(error)
    if any(marker in message.lower() for marker in CORRUPTION_MARKERS):
        return StoreCorruptionError(f"Index store is corrupt ({action}): {message}")
    return StoreIOError(f"Index store I/O failure ({action}): {message}")


class ConnectionManager:
    """
    Owns the single SQLite connection of an open index store.

    The connection runs in autocommit mode; writes go through
    transaction(), which issues BEGIN IMMEDIATE so the write lock is
    taken before any row changes.
    """

    def __init__(self, db_path: Path, timeout: float = 30.0):
        """
        Initialize connection manager.

        Args:
            db_path: Path to the SQLite store file.
            timeout: Seconds to wait for a lock held by another process.
        """
        self.db_path = Path(db_path)
        self.timeout = timeout
        self._connection: Optional[sqlite3.Connection] = None

    def connect(self, create: bool) -> sqlite3.Connection:
        """
        Open the connection.

        Args:
            create: Whether the file may be created. When False the file
                    must already exist.

        Returns:
            The open connection.

        Raises:
            StoreIOError: If the file cannot be opened.
            StoreCorruptionError: If the file is not a database.
        """
        mode = "rwc" if create else "rw"
        uri = f"{self.db_path.resolve().as_uri()}?mode={mode}"

        conn = None
        try:
            conn = sqlite3.connect(
                uri,
                uri=True,
                timeout=self.timeout,
                isolation_level=None
            )
            conn.row_factory = sqlite3.Row

            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=FULL")
            conn.execute("PRAGMA foreign_keys=ON")
            conn.execute("PRAGMA temp_store=MEMORY")
        except sqlite3.Error as e:
            if conn is not None:
                conn.close()
            raise translate_error(e, f"opening {self.db_path}")

        self._connection = conn
        logger.debug(f"Opened store connection: {self.db_path}")
        return conn

    @property
    def connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise StoreIOError(f"Index store is closed: {self.db_path}")
        return self._connection

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Cursor, None, None]:
        """
        Run a block of writes atomically.

        Yields:
            Cursor bound to the open transaction.

        Raises:
            StoreError: If any statement or the commit fails; the
                        transaction is rolled back first.
        """
        conn = self.connection
        cursor = conn.cursor()

        try:
            cursor.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            cursor.close()
            raise translate_error(e, "starting transaction")

        try:
            yield cursor
            cursor.execute("COMMIT")
        except BaseException as e:
            try:
                conn.execute("ROLLBACK")
            except sqlite3.Error as rollback_error:
                logger.error(f"Rollback failed: {rollback_error}")
            if isinstance(e, sqlite3.Error):
                raise translate_error(e, "writing") from e
            raise
        finally:
            cursor.close()

    def query(self, sql: str, params: tuple = ()) -> list:
        """
        Run a read query and fetch all rows.

        Args:
            sql: Query string.
            params: Query parameters.

        Returns:
            List of sqlite3.Row objects.
        """
        try:
            return self.connection.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise translate_error(e, "reading")

    def query_one(self, sql: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        rows = self.query(sql, params)
        return rows[0] if rows else None

    def close(self) -> None:
        """Close the connection if open."""
        if self._connection is None:
            return
        try:
            self._connection.close()
        except sqlite3.Error as e:
            raise translate_error(e, "closing")
        finally:
            self._connection = None
            logger.debug(f"Closed store connection: {self.db_path}")
