"""
Extraction module for refman.

Provides PDF text extraction with two backends (pypdf and pdfplumber)
and automatic fallback, plus the BibTeX metadata parser.
"""

from .pypdf_backend import PyPDFBackend
from .pdfplumber_backend import PDFPlumberBackend
from .extractor import PDFExtractor, ExtractionResult
from .bibtex_parser import MetadataParser

__all__ = [
    "PyPDFBackend",
    "PDFPlumberBackend",
    "PDFExtractor",
    "ExtractionResult",
    "MetadataParser"
]
