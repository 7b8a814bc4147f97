"""
Unified PDF extraction interface with automatic fallback.

Wraps the extraction backends and attempts the fallback when the
primary backend fails or returns no text at all.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

from ..core import get_logger, ExtractionConfig, ExtractionError
from .pypdf_backend import PyPDFBackend
from .pdfplumber_backend import PDFPlumberBackend

logger = get_logger(__name__)


BACKENDS = {
    "pypdf": PyPDFBackend,
    "pdfplumber": PDFPlumberBackend
}


@dataclass
class ExtractionResult:
    """Text of a PDF as produced by one backend."""
    pages: List[Tuple[int, str]]
    backend: str

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def text_pages(self) -> List[Tuple[int, str]]:
        """Pages that carry any non-whitespace text."""
        return [(num, text) for num, text in self.pages if text.strip()]


class PDFExtractor:
    """
    Unified PDF extraction with automatic backend fallback.

    Tries the primary backend first, falls back to secondary
    if extraction fails or produces no text.
    """

    def __init__(
        self,
        config: ExtractionConfig = None,
        primary_backend: str = None,
        fallback_backend: str = None
    ):
        """
        Initialize the extractor with configured backends.

        Args:
            config: Extraction settings; defaults apply when omitted.
            primary_backend: Overrides the configured primary backend.
            fallback_backend: Overrides the configured fallback backend.
        """
        config = config or ExtractionConfig()

        primary_name = primary_backend or config.primary_backend
        fallback_name = fallback_backend or config.fallback_backend

        if primary_name not in BACKENDS:
            raise ExtractionError(f"Unknown backend: {primary_name}")
        if fallback_name is not None and fallback_name not in BACKENDS:
            raise ExtractionError(f"Unknown backend: {fallback_name}")

        self.primary = BACKENDS[primary_name]()
        self.fallback = BACKENDS[fallback_name]() if fallback_name and fallback_name != primary_name else None

        logger.debug(
            f"Initialized extractor: primary={primary_name}, fallback={fallback_name}"
        )

    def extract(self, filepath: Union[str, Path]) -> ExtractionResult:
        """
        Extract text from a PDF using available backends.

        Args:
            filepath: Path to the PDF file.

        Returns:
            ExtractionResult from the first backend that produced text.

        Raises:
            ExtractionError: If the PDF has no pages, or no backend
                             produced any text.
        """
        filepath = Path(filepath)
        primary_error: Optional[ExtractionError] = None
        saw_pages = False

        for backend in (self.primary, self.fallback):
            if backend is None:
                continue

            try:
                pages = backend.extract(filepath)
            except ExtractionError as e:
                if primary_error is None:
                    primary_error = e
                logger.debug(f"Backend {backend.name} failed: {e.message}")
                continue

            saw_pages = saw_pages or bool(pages)
            result = ExtractionResult(pages=pages, backend=backend.name)

            if result.text_pages:
                return result

            logger.debug(f"Backend {backend.name} returned no text: {filepath.name}")

        if primary_error and not saw_pages:
            raise primary_error

        if not saw_pages:
            raise ExtractionError("PDF has no pages", filepath=str(filepath))

        raise ExtractionError(
            "No extractable text in any backend",
            filepath=str(filepath)
        )
