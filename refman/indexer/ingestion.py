"""
Ingestion pipeline for refman.

Turns one PDF, optionally paired with a BibTeX entry, into a Document
and submits it to the index store. Every check and parse happens
before the store is touched, so a failed ingestion writes nothing.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ..core import get_logger, Config, Document, ExtractionError, ReferenceMetadata, StoreError
from ..extraction import MetadataParser, PDFExtractor
from ..store import IndexStore
from ..utils import (
    canonical_path,
    clean_text,
    ensure_readable_file,
    get_file_hash,
    get_file_size_mb
)

logger = get_logger(__name__)


PAGE_SEPARATOR = "\n\n"


@dataclass
class IngestionResult:
    """Outcome of ingesting one document."""
    doc_id: str
    replaced: bool
    page_count: int
    backend: str
    has_metadata: bool = False
    characters: int = 0


class IngestionPipeline:
    """
    Orchestrates extraction, metadata parsing, and storage of one PDF.

    prepare() does all the work that can fail on bad input and returns
    the Document; commit() writes it. Callers that must not create a
    store for input that turns out to be unusable open the store only
    between the two steps.

    Args:
        config: Application configuration.
        store: Index store receiving documents when commit() is not
               given one.
        extractor: PDF extractor; built from config when omitted.
        metadata_parser: BibTeX parser; a default one when omitted.
    """

    def __init__(
        self,
        config: Config,
        store: IndexStore = None,
        extractor: PDFExtractor = None,
        metadata_parser: MetadataParser = None
    ):
        self.config = config
        self.store = store
        self.extractor = extractor or PDFExtractor(config.extraction)
        self.metadata_parser = metadata_parser or MetadataParser()
        self.max_file_size_mb = config.extraction.max_file_size_mb

    def ingest(
        self,
        pdf_path: Union[str, Path],
        bibtex_path: Union[str, Path, None] = None
    ) -> IngestionResult:
        """
        Index a PDF, replacing any previous version under the same path.

        Args:
            pdf_path: Path of the PDF; its absolute form becomes the
                      document identifier.
            bibtex_path: Optional BibTeX file holding one entry.

        Returns:
            IngestionResult describing the stored document.

        Raises:
            SourceFileError: If either input file is missing or unreadable.
            ExtractionError: If no text can be extracted from the PDF.
            MetadataError: If the bibliography cannot be parsed.
            StoreError: If the document cannot be written.
        """
        return self.commit(self.prepare(pdf_path, bibtex_path))

    def prepare(
        self,
        pdf_path: Union[str, Path],
        bibtex_path: Union[str, Path, None] = None
    ) -> Document:
        """
        Extract and parse the inputs into a Document without touching a store.

        Raises:
            SourceFileError: If either input file is missing or unreadable.
            ExtractionError: If the PDF is too large or has no text.
            MetadataError: If the bibliography cannot be parsed.
        """
        doc_id = canonical_path(pdf_path)
        pdf_file = ensure_readable_file(doc_id)
        bib_file = ensure_readable_file(canonical_path(bibtex_path)) if bibtex_path else None

        file_size = pdf_file.stat().st_size
        if file_size > self.max_file_size_mb * 1024 * 1024:
            raise ExtractionError(
                f"File too large: {get_file_size_mb(pdf_file)}MB > {self.max_file_size_mb}MB",
                filepath=doc_id
            )

        logger.info(f"Extracting text: {pdf_file.name}")
        extraction = self.extractor.extract(pdf_file)

        metadata: Optional[ReferenceMetadata] = None
        if bib_file is not None:
            logger.info(f"Parsing bibliography: {bib_file.name}")
            metadata = self.metadata_parser.parse(bib_file)

        pages = [clean_text(text) for _, text in extraction.pages]
        body = PAGE_SEPARATOR.join(page for page in pages if page)

        return Document(
            doc_id=doc_id,
            text=body,
            metadata=metadata,
            page_count=extraction.page_count,
            file_hash=get_file_hash(pdf_file),
            file_size=file_size,
            extraction_backend=extraction.backend
        )

    def commit(self, document: Document, store: IndexStore = None) -> IngestionResult:
        """
        Write a prepared Document to the store.

        Args:
            document: Document returned by prepare().
            store: Target store; the pipeline's store when omitted.

        Returns:
            IngestionResult describing the stored document.

        Raises:
            StoreError: If no store is available or the write fails.
        """
        store = store if store is not None else self.store
        if store is None:
            raise StoreError("No index store to write to", details={"doc_id": document.doc_id})

        replaced = store.insert(document)

        logger.info(
            f"Indexed {document.doc_id}: {document.page_count} pages via {document.extraction_backend}"
            f"{' with metadata' if document.metadata else ''}"
            f"{' (replaced previous version)' if replaced else ''}"
        )

        return IngestionResult(
            doc_id=document.doc_id,
            replaced=replaced,
            page_count=document.page_count,
            backend=document.extraction_backend,
            has_metadata=document.metadata is not None,
            characters=len(document.text or "")
        )
