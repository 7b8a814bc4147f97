"""
Exception hierarchy for refman.

Every failure surfaced by the package derives from RefmanError so the
command line dispatcher can report it with a single handler. Store
failures are split by category: I/O, corruption, and schema mismatch.
"""


class RefmanError(Exception):
    """Base exception for all refman errors."""

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(RefmanError):
    """Raised when configuration is invalid."""
    pass


class SourceFileError(RefmanError):
    """Raised when an input file is missing or cannot be read."""

    def __init__(self, message: str, filepath: str = None, details: dict = None):
        super().__init__(message, details)
        self.filepath = filepath


class ExtractionError(RefmanError):
    """Raised when PDF text extraction fails."""

    def __init__(self, message: str, filepath: str = None, details: dict = None):
        """
        Initialize extraction error.

        Args:
            message: Error description.
            filepath: Path to the problematic PDF file.
            details: Additional context.
        """
        super().__init__(message, details)
        self.filepath = filepath


class MetadataError(RefmanError):
    """Raised when a bibliography file cannot be parsed."""

    def __init__(self, message: str, filepath: str = None, details: dict = None):
        super().__init__(message, details)
        self.filepath = filepath


class StoreError(RefmanError):
    """Base class for index store failures."""
    pass


class StoreIOError(StoreError):
    """Raised when the index store cannot be read or written."""
    pass


class StoreCorruptionError(StoreError):
    """Raised when the index store exists but is not a readable store."""
    pass


class SchemaMismatchError(StoreError):
    """Raised when the index store was written with an incompatible schema."""
    pass


class SearchError(RefmanError):
    """Raised when search query execution fails."""

    def __init__(self, message: str, query: str = None, details: dict = None):
        """
        Initialize search error.

        Args:
            message: Error description.
            query: The problematic search query.
            details: Additional context.
        """
        super().__init__(message, details)
        self.query = query


class QueryParseError(SearchError):
    """Raised when a query string is malformed."""

    def __init__(self, message: str, query: str = None, position: int = None):
        super().__init__(message, query=query, details={"position": position})
        self.position = position
