"""
Document and postings repository for the index store.

Provides the row-level reads and writes behind IndexStore: atomic
replacement of one document with its postings, forward lookups, and
the inverted lookups the query engine evaluates against.
"""

import json
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from ..core import get_logger, Document, ReferenceMetadata, StoreCorruptionError
from .connection import ConnectionManager

logger = get_logger(__name__)


# field -> term -> positions
FieldPostings = Dict[str, Dict[str, List[int]]]


def _decode(value: str, what: str):
    """Decode a JSON column, treating garbage as store corruption."""
    try:
        return json.loads(value)
    except ValueError as e:
        raise StoreCorruptionError(f"Unreadable {what} in index store: {e}")


@dataclass(frozen=True)
class Posting:
    """
    One inverted-index entry joined with its field length.

    Attributes:
        field: Field the term occurs in.
        term: Normalized term.
        doc_id: Document identifier.
        frequency: Occurrences of the term in the field.
        positions: Token positions of each occurrence.
        field_length: Token count of the field in this document.
    """
    field: str
    term: str
    doc_id: str
    frequency: int
    positions: Tuple[int, ...]
    field_length: int


@dataclass(frozen=True)
class FieldStatistics:
    """Corpus-level statistics of one field, used for scoring."""
    doc_count: int
    average_length: float


class DocumentRepository:
    """
    Repository for document and postings rows.

    Every write of a document, its field lengths, and its postings
    happens inside one transaction.
    """

    def __init__(self, manager: ConnectionManager):
        self.manager = manager

    def replace(self, document: Document, field_postings: FieldPostings) -> bool:
        """
        Insert a document, replacing any previous version with the same id.

        Args:
            document: Document to store.
            field_postings: Analyzed fields of the document.

        Returns:
            True if a previous version was replaced.
        """
        metadata_json = (
            json.dumps(document.metadata.to_dict(), ensure_ascii=False, sort_keys=True)
            if document.metadata else None
        )

        length_rows = [
            (document.doc_id, field, sum(len(positions) for positions in terms.values()))
            for field, terms in field_postings.items()
        ]
        posting_rows = [
            (field, term, document.doc_id, len(positions), json.dumps(positions))
            for field, terms in field_postings.items()
            for term, positions in terms.items()
        ]

        with self.manager.transaction() as cur:
            cur.execute("SELECT 1 FROM documents WHERE doc_id = ?", (document.doc_id,))
            replaced = cur.fetchone() is not None

            if replaced:
                cur.execute("DELETE FROM postings WHERE doc_id = ?", (document.doc_id,))
                cur.execute("DELETE FROM field_lengths WHERE doc_id = ?", (document.doc_id,))
                cur.execute("DELETE FROM documents WHERE doc_id = ?", (document.doc_id,))

            cur.execute("""
                INSERT INTO documents
                (doc_id, body, metadata, page_count, file_hash, file_size, extraction_backend)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (
                document.doc_id,
                document.text,
                metadata_json,
                document.page_count,
                document.file_hash,
                document.file_size,
                document.extraction_backend
            ))

            cur.executemany(
                "INSERT INTO field_lengths (doc_id, field, length) VALUES (?, ?, ?)",
                length_rows
            )
            cur.executemany(
                "INSERT INTO postings (field, term, doc_id, frequency, positions) VALUES (?, ?, ?, ?, ?)",
                posting_rows
            )

        logger.debug(
            f"Stored {document.doc_id}: {len(posting_rows)} postings across "
            f"{len(length_rows)} fields ({'replaced' if replaced else 'new'})"
        )
        return replaced

    def get(self, doc_id: str) -> Optional[Document]:
        """
        Fetch a document by its identifier.

        Args:
            doc_id: Absolute path of the document.

        Returns:
            Document or None.
        """
        row = self.manager.query_one("SELECT * FROM documents WHERE doc_id = ?", (doc_id,))
        return self._row_to_document(row) if row else None

    def get_many(self, doc_ids: Iterable[str]) -> Dict[str, Document]:
        """Fetch several documents, keyed by identifier."""
        doc_ids = list(doc_ids)
        result = {}
        # SQLite caps bound parameters; stay well below the limit.
        for start in range(0, len(doc_ids), 500):
            batch = doc_ids[start:start + 500]
            placeholders = ", ".join("?" for _ in batch)
            rows = self.manager.query(
                f"SELECT * FROM documents WHERE doc_id IN ({placeholders})",
                tuple(batch)
            )
            for row in rows:
                result[row["doc_id"]] = self._row_to_document(row)
        return result

    def exists(self, doc_id: str) -> bool:
        row = self.manager.query_one("SELECT 1 FROM documents WHERE doc_id = ? LIMIT 1", (doc_id,))
        return row is not None

    def count(self) -> int:
        row = self.manager.query_one("SELECT COUNT(*) AS count FROM documents")
        return row["count"]

    def document_ids(self) -> List[str]:
        """Return every document identifier in ascending order."""
        rows = self.manager.query("SELECT doc_id FROM documents ORDER BY doc_id")
        return [row["doc_id"] for row in rows]

    def field_statistics(self, field: str) -> FieldStatistics:
        row = self.manager.query_one(
            "SELECT COUNT(*) AS docs, AVG(length) AS avg_length FROM field_lengths WHERE field = ?",
            (field,)
        )
        return FieldStatistics(doc_count=row["docs"], average_length=row["avg_length"] or 0.0)

    def postings(self, term: str, fields: Optional[List[str]] = None) -> List[Posting]:
        """
        Look up the postings of a term.

        Args:
            term: Normalized term.
            fields: Restrict to these fields; all fields when None.

        Returns:
            Postings ordered by field and document identifier.
        """
        sql = """
            SELECT p.field, p.term, p.doc_id, p.frequency, p.positions, l.length
            FROM postings p
            JOIN field_lengths l ON l.doc_id = p.doc_id AND l.field = p.field
            WHERE p.term = ?
        """
        params: list = [term]

        if fields is not None:
            if not fields:
                return []
            sql += f" AND p.field IN ({', '.join('?' for _ in fields)})"
            params.extend(fields)

        sql += " ORDER BY p.field, p.doc_id"

        return [
            Posting(
                field=row["field"],
                term=row["term"],
                doc_id=row["doc_id"],
                frequency=row["frequency"],
                positions=tuple(_decode(row["positions"], "positions")),
                field_length=row["length"]
            )
            for row in self.manager.query(sql, tuple(params))
        ]

    def terms(
        self,
        fields: Optional[List[str]] = None,
        glob: str = None,
        min_length: int = None,
        max_length: int = None
    ) -> List[str]:
        """
        List distinct terms of the term dictionary.

        Args:
            fields: Restrict to these fields; all fields when None.
            glob: Optional SQLite GLOB pattern the term must match.
            min_length: Shortest term length to include.
            max_length: Longest term length to include.

        Returns:
            Sorted distinct terms.
        """
        clauses = []
        params: list = []

        if fields is not None:
            if not fields:
                return []
            clauses.append(f"field IN ({', '.join('?' for _ in fields)})")
            params.extend(fields)

        if glob is not None:
            clauses.append("term GLOB ?")
            params.append(glob)

        if min_length is not None:
            clauses.append("length(term) >= ?")
            params.append(min_length)
        if max_length is not None:
            clauses.append("length(term) <= ?")
            params.append(max_length)

        sql = "SELECT DISTINCT term FROM postings"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY term"

        return [row["term"] for row in self.manager.query(sql, tuple(params))]

    @staticmethod
    def _row_to_document(row) -> Document:
        """Convert a database row to a Document object."""
        metadata = None
        if row["metadata"]:
            metadata = ReferenceMetadata.from_dict(_decode(row["metadata"], "metadata"))

        return Document(
            doc_id=row["doc_id"],
            text=row["body"],
            metadata=metadata,
            page_count=row["page_count"],
            file_hash=row["file_hash"],
            file_size=row["file_size"],
            extraction_backend=row["extraction_backend"],
            indexed_at=row["indexed_at"]
        )
