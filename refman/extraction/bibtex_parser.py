"""
BibTeX metadata parser.

Reads a bibliography file holding exactly one entry and turns it into
ReferenceMetadata. Raw field values are kept verbatim; the derived
title, author list, and venue are cleaned of LaTeX markup.
"""

import re
from pathlib import Path
from typing import Dict, List, Union

import bibtexparser
from bibtexparser.bparser import BibTexParser
from bibtexparser.latexenc import latex_to_unicode

from ..core import get_logger, MetadataError, ReferenceMetadata
from ..core.models import VENUE_FIELDS

logger = get_logger(__name__)


AUTHOR_SEPARATOR = re.compile(r"\s+and\s+", re.IGNORECASE)


def clean_latex(value: str) -> str:
    """Convert LaTeX escapes to Unicode and drop grouping braces."""
    if not value:
        return ""
    text = latex_to_unicode(value)
    text = text.replace("{", "").replace("}", "")
    return " ".join(text.split())


def split_authors(value: str) -> List[str]:
    """Split a BibTeX author list ("A and B and C") into names."""
    if not value:
        return []
    return [clean_latex(name) for name in AUTHOR_SEPARATOR.split(value.strip()) if name.strip()]


class MetadataParser:
    """
    Parses a single-entry BibTeX file into ReferenceMetadata.

    Any failure (unreadable file, syntax error, no entry, several
    entries) raises MetadataError so ingestion can abort before writing.
    """

    def _make_parser(self) -> BibTexParser:
        parser = BibTexParser(common_strings=True)
        parser.ignore_nonstandard_types = False
        return parser

    def parse(self, filepath: Union[str, Path]) -> ReferenceMetadata:
        """
        Parse a bibliography file.

        Args:
            filepath: Path to the .bib file.

        Returns:
            ReferenceMetadata for the file's single entry.

        Raises:
            MetadataError: If the file cannot be read or parsed, or does
                           not contain exactly one entry.
        """
        filepath = Path(filepath)

        try:
            content = filepath.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise MetadataError(
                f"Bibliography is not valid UTF-8: {e}",
                filepath=str(filepath)
            )
        except OSError as e:
            raise MetadataError(
                f"Cannot read bibliography: {e}",
                filepath=str(filepath)
            )

        return self.parse_string(content, source=str(filepath))

    def parse_string(self, content: str, source: str = None) -> ReferenceMetadata:
        """
        Parse BibTeX source text.

        Args:
            content: BibTeX text.
            source: Name used in error messages.

        Returns:
            ReferenceMetadata for the single entry.

        Raises:
            MetadataError: On syntax errors or an entry count other than one.
        """
        try:
            database = bibtexparser.loads(content, parser=self._make_parser())
        except Exception as e:
            raise MetadataError(f"Malformed BibTeX: {e}", filepath=source)

        entries = database.entries
        if not entries:
            raise MetadataError("No BibTeX entry found", filepath=source)
        if len(entries) > 1:
            raise MetadataError(
                f"Expected a single BibTeX entry, found {len(entries)}",
                filepath=source,
                details={"keys": [entry.get("ID") for entry in entries]}
            )

        metadata = self._entry_to_metadata(entries[0])
        logger.debug(f"Parsed BibTeX entry {metadata.citation_key} ({metadata.entry_type})")
        return metadata

    @staticmethod
    def _entry_to_metadata(entry: Dict[str, str]) -> ReferenceMetadata:
        fields = {
            key.lower(): str(value)
            for key, value in entry.items()
            if key not in ("ID", "ENTRYTYPE")
        }

        venue = next((fields[name] for name in VENUE_FIELDS if fields.get(name)), None)

        return ReferenceMetadata(
            citation_key=entry.get("ID"),
            entry_type=(entry.get("ENTRYTYPE") or "").lower() or None,
            title=clean_latex(fields.get("title", "")) or None,
            authors=split_authors(fields.get("author", "")),
            year=fields.get("year", "").strip() or None,
            venue=clean_latex(venue) if venue else None,
            fields=fields
        )
