"""
Shared data models for refman.

A Document is one ingested PDF keyed by its absolute path, with the
extracted body text and an optional ReferenceMetadata parsed from a
BibTeX entry.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


# BibTeX fields that name where a work was published, in priority order.
VENUE_FIELDS = ("journal", "booktitle", "publisher", "school", "institution")


@dataclass
class ReferenceMetadata:
    """
    Structured bibliographic record for a document.

    Attributes:
        citation_key: BibTeX entry key (e.g. "lamport1998").
        entry_type: BibTeX entry type, lower-cased (e.g. "article").
        title: Work title.
        authors: Author names in entry order.
        year: Publication year as written in the entry.
        venue: Journal, proceedings, or publisher.
        fields: Every raw field of the entry, lower-cased key to value.
    """
    citation_key: Optional[str] = None
    entry_type: Optional[str] = None
    title: Optional[str] = None
    authors: List[str] = field(default_factory=list)
    year: Optional[str] = None
    venue: Optional[str] = None
    fields: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "citation_key": self.citation_key,
            "entry_type": self.entry_type,
            "title": self.title,
            "authors": list(self.authors),
            "year": self.year,
            "venue": self.venue,
            "fields": dict(self.fields),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReferenceMetadata":
        return cls(
            citation_key=data.get("citation_key"),
            entry_type=data.get("entry_type"),
            title=data.get("title"),
            authors=list(data.get("authors") or []),
            year=data.get("year"),
            venue=data.get("venue"),
            fields=dict(data.get("fields") or {}),
        )

    def indexable_fields(self) -> Dict[str, str]:
        """
        Return the text of every field to index, keyed by field name.

        Raw entry fields are indexed under their own names; the derived
        title, author, year, venue, entrytype, and key fields are added on
        top so field-qualified queries work regardless of entry style.
        """
        result = {name: value for name, value in self.fields.items() if value}

        derived = {
            "title": self.title,
            "author": " ".join(self.authors) if self.authors else None,
            "year": self.year,
            "venue": self.venue,
            "entrytype": self.entry_type,
            "key": self.citation_key,
        }
        for name, value in derived.items():
            if value:
                result[name] = value

        return result


@dataclass
class Document:
    """
    A single ingested document.

    Attributes:
        doc_id: Absolute path of the source file, the unique key.
        text: Extracted plain text body.
        metadata: Optional bibliographic metadata.
        page_count: Number of pages in the source PDF.
        file_hash: MD5 of the first bytes of the file, for change detection.
        file_size: Source file size in bytes.
        extraction_backend: Name of the backend that produced the text.
        indexed_at: Timestamp assigned by the store on insertion.
    """
    doc_id: str
    text: str
    metadata: Optional[ReferenceMetadata] = None
    page_count: int = 0
    file_hash: Optional[str] = None
    file_size: Optional[int] = None
    extraction_backend: Optional[str] = None
    indexed_at: Optional[str] = None

    @property
    def title(self) -> Optional[str]:
        return self.metadata.title if self.metadata else None
