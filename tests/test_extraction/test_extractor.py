"""
Tests for the PDF extractor module.

Tests backend selection and fallback handling with real PDFs and
mocked backends.
"""

import pytest
from pathlib import Path
from unittest.mock import MagicMock

from refman.core import ExtractionConfig, ExtractionError
from refman.extraction.extractor import PDFExtractor, ExtractionResult


def mock_backend(name: str, pages=None, error: Exception = None) -> MagicMock:
    backend = MagicMock()
    backend.name = name
    if error is not None:
        backend.extract.side_effect = error
    else:
        backend.extract.return_value = pages
    return backend


class TestPDFExtractorCreation:
    """Tests for backend selection."""

    def test_default_backends(self):
        """Test creating extractor with default backends."""
        extractor = PDFExtractor()

        assert extractor.primary.name == "pypdf"
        assert extractor.fallback.name == "pdfplumber"

    def test_config_backends(self):
        """Test that configured backends are used."""
        extractor = PDFExtractor(ExtractionConfig(primary_backend="pdfplumber", fallback_backend=None))

        assert extractor.primary.name == "pdfplumber"
        assert extractor.fallback is None

    def test_same_fallback_is_dropped(self):
        """Test that a fallback equal to the primary is not tried twice."""
        extractor = PDFExtractor(primary_backend="pypdf", fallback_backend="pypdf")

        assert extractor.fallback is None

    def test_unknown_backend_raises(self):
        """Test that an unknown backend name is rejected."""
        with pytest.raises(ExtractionError):
            PDFExtractor(primary_backend="ocr")


class TestPDFExtractorWithRealPDF:
    """Tests with generated PDF files."""

    def test_extracts_text(self, sample_pdf: Path):
        """Test that text of a generated PDF is extracted."""
        result = PDFExtractor().extract(sample_pdf)

        assert isinstance(result, ExtractionResult)
        assert result.backend == "pypdf"
        assert result.page_count == 1
        assert "consensus" in result.pages[0][1]

    def test_page_numbers_are_sequential(self, make_pdf):
        """Test that page numbers start at 1 and are sequential."""
        path = make_pdf("three.pdf", "alpha page", "beta page", "gamma page")

        result = PDFExtractor().extract(path)

        assert [num for num, _ in result.pages] == [1, 2, 3]
        assert "beta" in result.pages[1][1]

    def test_blank_pages_are_kept(self, make_pdf):
        """Test that pages without text still count."""
        path = make_pdf("gap.pdf", "first", "", "third")

        result = PDFExtractor().extract(path)

        assert result.page_count == 3
        assert [num for num, _ in result.text_pages] == [1, 3]

    def test_extract_with_string_path(self, sample_pdf: Path):
        """Test extraction with string path."""
        result = PDFExtractor().extract(str(sample_pdf))

        assert result.page_count == 1

    def test_no_text_raises(self, make_pdf):
        """Test that a PDF without any text is an extraction failure."""
        path = make_pdf("blank.pdf", "", "")

        with pytest.raises(ExtractionError) as exc_info:
            PDFExtractor().extract(path)

        assert "no extractable text" in exc_info.value.message.lower()

    def test_invalid_file_raises(self, temp_dir: Path):
        """Test that a non-PDF file raises ExtractionError."""
        invalid_pdf = temp_dir / "invalid.pdf"
        invalid_pdf.write_bytes(b"Not a valid PDF content")

        with pytest.raises(ExtractionError):
            PDFExtractor().extract(invalid_pdf)

    def test_empty_file_raises(self, temp_dir: Path):
        """Test that a zero-byte file raises ExtractionError."""
        empty_pdf = temp_dir / "empty.pdf"
        empty_pdf.write_bytes(b"")

        with pytest.raises(ExtractionError):
            PDFExtractor().extract(empty_pdf)


class TestFallback:
    """Tests for fallback between backends."""

    def make_extractor(self, primary, fallback) -> PDFExtractor:
        extractor = PDFExtractor()
        extractor.primary = primary
        extractor.fallback = fallback
        return extractor

    def test_primary_success_skips_fallback(self):
        """Test that the fallback is not called when the primary has text."""
        primary = mock_backend("one", pages=[(1, "text")])
        fallback = mock_backend("two", pages=[(1, "other")])

        result = self.make_extractor(primary, fallback).extract("x.pdf")

        assert result.backend == "one"
        fallback.extract.assert_not_called()

    def test_fallback_after_primary_error(self):
        """Test that a failing primary falls back."""
        primary = mock_backend("one", error=ExtractionError("broken"))
        fallback = mock_backend("two", pages=[(1, "recovered")])

        result = self.make_extractor(primary, fallback).extract("x.pdf")

        assert result.backend == "two"
        assert result.pages == [(1, "recovered")]

    def test_fallback_after_empty_text(self):
        """Test that a primary without text falls back."""
        primary = mock_backend("one", pages=[(1, "   ")])
        fallback = mock_backend("two", pages=[(1, "words")])

        assert self.make_extractor(primary, fallback).extract("x.pdf").backend == "two"

    def test_both_fail_raises_primary_error(self):
        """Test that the primary's error is reported when every backend fails."""
        primary_error = ExtractionError("primary broke")
        primary = mock_backend("one", error=primary_error)
        fallback = mock_backend("two", error=ExtractionError("fallback broke"))

        with pytest.raises(ExtractionError) as exc_info:
            self.make_extractor(primary, fallback).extract("x.pdf")

        assert exc_info.value is primary_error

    def test_zero_pages_raises(self):
        """Test that a PDF without pages is an extraction failure."""
        primary = mock_backend("one", pages=[])

        with pytest.raises(ExtractionError) as exc_info:
            self.make_extractor(primary, None).extract("x.pdf")

        assert "no pages" in exc_info.value.message.lower()
