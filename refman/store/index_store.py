"""
Persistent full-text index store.

IndexStore owns one on-disk store file. Opening a location that does
not exist creates an empty store; opening an existing location
validates it and fails with a distinct error when it is corrupt or was
written with another schema. Insertion analyzes a document's body and
metadata into per-field postings and commits them atomically.
"""

from collections import defaultdict
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Union

from ..core import (
    get_logger,
    Document,
    SearchConfig,
    StoreCorruptionError,
    StoreError,
    StoreIOError
)
from ..utils import analyze
from .connection import ConnectionManager
from .repository import DocumentRepository, FieldPostings
from .schema import get_statistics, init_schema, verify_schema

if TYPE_CHECKING:
    from ..search.models import ResultSet, SearchQuery

logger = get_logger(__name__)


TEXT_FIELD = "text"

SIDECAR_SUFFIXES = ("-wal", "-shm", "-journal")


def analyze_document(document: Document) -> FieldPostings:
    """
    Analyze a document into field -> term -> positions.

    The body goes to the default "text" field; each metadata field is
    analyzed on its own. Fields without tokens are omitted.

    Args:
        document: Document to analyze.

    Returns:
        Postings per field.
    """
    sources: Dict[str, str] = {TEXT_FIELD: document.text or ""}

    if document.metadata is not None:
        for name, value in document.metadata.indexable_fields().items():
            if name == TEXT_FIELD:
                logger.debug("Ignoring metadata field that shadows the body field")
                continue
            sources[name] = value

    result: FieldPostings = {}
    for field, value in sources.items():
        terms: Dict[str, List[int]] = defaultdict(list)
        for term, position in analyze(value):
            terms[term].append(position)
        if terms:
            result[field] = dict(terms)

    return result


class IndexStore:
    """
    Handle on an open index store.

    Use IndexStore.open() to obtain one, and close it (or use it as a
    context manager) when the operation finishes.
    """

    def __init__(self, location: Path, manager: ConnectionManager, search_config: SearchConfig = None):
        self.location = Path(location)
        self.manager = manager
        self.repository = DocumentRepository(manager)
        self.search_config = search_config or SearchConfig()

    @classmethod
    def open(
        cls,
        location: Union[str, Path],
        search_config: SearchConfig = None
    ) -> "IndexStore":
        """
        Open the store at a location, creating it when absent.

        Args:
            location: Path of the store file.
            search_config: Settings used by search().

        Returns:
            Open IndexStore.

        Raises:
            StoreIOError: If the location cannot be accessed or created.
            StoreCorruptionError: If the file is not a readable store.
            SchemaMismatchError: If the store has an incompatible schema.
        """
        location = Path(location)
        manager = ConnectionManager(location)

        if cls._exists(location):
            logger.info(f"Opening index store: {location}")
            cls._check_existing_file(location)

            manager.connect(create=False)
            try:
                verify_schema(manager)
            except StoreError:
                manager.close()
                raise
        else:
            logger.info(f"Index store not found, creating: {location}")
            try:
                location.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StoreIOError(f"Cannot create store directory {location.parent}: {e}")

            manager.connect(create=True)
            try:
                init_schema(manager)
            except StoreError:
                manager.close()
                cls._remove_files(location)
                raise

        logger.info("Index store loaded successfully")
        return cls(location, manager, search_config)

    @staticmethod
    def _exists(location: Path) -> bool:
        try:
            return location.exists()
        except OSError as e:
            raise StoreIOError(f"Cannot access index store {location}: {e}")

    @staticmethod
    def _check_existing_file(location: Path) -> None:
        if not location.is_file():
            raise StoreIOError(f"Index store location is not a file: {location}")

        try:
            size = location.stat().st_size
        except OSError as e:
            raise StoreIOError(f"Cannot access index store {location}: {e}")

        wal = location.with_name(location.name + "-wal")
        if size == 0 and not wal.exists():
            raise StoreCorruptionError(f"Index store file is empty: {location}")

    @staticmethod
    def _remove_files(location: Path) -> None:
        """Delete a store file created by a failed initialization."""
        for path in [location] + [location.with_name(location.name + s) for s in SIDECAR_SUFFIXES]:
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"Could not remove {path}: {e}")

    def insert(self, document: Document) -> bool:
        """
        Insert a document, replacing any prior version under the same id.

        Analysis happens before the write transaction opens, so a
        failure at any point leaves the store as it was.

        Args:
            document: Document to index.

        Returns:
            True if an existing document was replaced.
        """
        field_postings = analyze_document(document)
        logger.info(f"Updating index with entry: {document.doc_id}")
        return self.repository.replace(document, field_postings)

    def search(self, query: Union[str, "SearchQuery"], **options) -> "ResultSet":
        """
        Run a query against the store.

        Args:
            query: Query string or SearchQuery.
            **options: limit, offset, highlight when query is a string.

        Returns:
            ResultSet ordered by descending score.
        """
        from ..search.engine import QueryEngine
        from ..search.models import SearchQuery

        if isinstance(query, str):
            query = SearchQuery(text=query, **options)

        return QueryEngine(self, self.search_config).search(query)

    def get_document(self, doc_id: str) -> Optional[Document]:
        return self.repository.get(doc_id)

    def contains(self, doc_id: str) -> bool:
        return self.repository.exists(doc_id)

    def count(self) -> int:
        return self.repository.count()

    def document_ids(self) -> List[str]:
        return self.repository.document_ids()

    def statistics(self) -> dict:
        return get_statistics(self.manager)

    @property
    def is_open(self) -> bool:
        return self.manager.is_open

    def close(self) -> None:
        """Release the store. Safe to call more than once."""
        self.manager.close()

    def __enter__(self) -> "IndexStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
