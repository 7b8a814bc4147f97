"""
Tests for the BibTeX metadata parser.

Tests single-entry parsing, derived fields, LaTeX cleanup, and the
errors that abort ingestion.
"""

import pytest
from pathlib import Path

from refman.core import MetadataError
from refman.extraction.bibtex_parser import MetadataParser, clean_latex, split_authors


class TestHelpers:
    """Tests for the LaTeX helpers."""

    def test_clean_latex_removes_braces(self):
        """Test that grouping braces are dropped."""
        assert clean_latex("The {P}arliament of {C}onsensus") == "The Parliament of Consensus"

    def test_clean_latex_collapses_whitespace(self):
        """Test that line breaks inside a field value collapse."""
        assert clean_latex("Paxos\n   Made  Simple") == "Paxos Made Simple"

    def test_split_authors(self):
        """Test splitting an author list on 'and'."""
        assert split_authors("Diego Ongaro and John Ousterhout") == ["Diego Ongaro", "John Ousterhout"]

    def test_split_authors_keeps_names_containing_and(self):
        """Test that 'and' inside a name is not a separator."""
        assert split_authors("Alexander Anderson") == ["Alexander Anderson"]

    def test_split_authors_empty(self):
        assert split_authors("") == []


class TestMetadataParser:
    """Tests for MetadataParser."""

    def test_parse_file(self, sample_bibtex: Path):
        """Test parsing a single-entry file."""
        metadata = MetadataParser().parse(sample_bibtex)

        assert metadata.citation_key == "pease1980"
        assert metadata.entry_type == "article"
        assert metadata.title == "Reaching Agreement in the Presence of Faults"
        assert metadata.authors == ["Marshall Pease", "Robert Shostak", "Leslie Lamport"]
        assert metadata.year == "1980"
        assert metadata.venue == "Journal of the ACM"

    def test_raw_fields_kept_verbatim(self, sample_bibtex: Path):
        """Test that raw fields keep their literal values."""
        metadata = MetadataParser().parse(sample_bibtex)

        assert metadata.fields["volume"] == "27"
        assert metadata.fields["title"] == "Reaching {A}greement in the Presence of Faults"
        assert "ID" not in metadata.fields

    def test_booktitle_is_venue(self):
        """Test that proceedings use the booktitle as venue."""
        metadata = MetadataParser().parse_string(
            "@inproceedings{raft, title={In Search of an Understandable Consensus Algorithm},"
            " booktitle={USENIX ATC}, year={2014}}"
        )

        assert metadata.entry_type == "inproceedings"
        assert metadata.venue == "USENIX ATC"
        assert metadata.authors == []

    def test_indexable_fields(self, sample_bibtex: Path):
        """Test the derived fields offered to the index."""
        fields = MetadataParser().parse(sample_bibtex).indexable_fields()

        assert fields["author"] == "Marshall Pease Robert Shostak Leslie Lamport"
        assert fields["key"] == "pease1980"
        assert fields["entrytype"] == "article"
        assert fields["journal"] == "Journal of the ACM"

    def test_no_entry_raises(self, temp_dir: Path):
        """Test that a file without entries raises MetadataError."""
        path = temp_dir / "empty.bib"
        path.write_text("% just a comment\n", encoding="utf-8")

        with pytest.raises(MetadataError) as exc_info:
            MetadataParser().parse(path)

        assert exc_info.value.filepath == str(path)

    def test_several_entries_raise(self):
        """Test that more than one entry is rejected."""
        content = "@misc{a, title={A}}\n@misc{b, title={B}}\n"

        with pytest.raises(MetadataError) as exc_info:
            MetadataParser().parse_string(content)

        assert exc_info.value.details["keys"] == ["a", "b"]

    def test_invalid_utf8_raises(self, temp_dir: Path):
        """Test that undecodable bytes raise MetadataError."""
        path = temp_dir / "latin1.bib"
        path.write_bytes(b"@misc{x, title={Caf\xe9}}")

        with pytest.raises(MetadataError):
            MetadataParser().parse(path)

    def test_missing_file_raises(self, temp_dir: Path):
        """Test that an unreadable file raises MetadataError."""
        with pytest.raises(MetadataError):
            MetadataParser().parse(temp_dir / "missing.bib")
