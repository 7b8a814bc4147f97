"""
Core module providing foundational components.

This module contains the configuration loader, centralized logging setup,
the exception hierarchy, and the shared document models. It has no
internal dependencies.
"""

from .config_loader import (
    Config,
    PathsConfig,
    ExtractionConfig,
    SearchConfig,
    LoggingConfig,
    load_config,
    resolve_work_directory
)
from .logger import setup_logging, teardown_logging, get_logger
from .exceptions import (
    RefmanError,
    ConfigurationError,
    SourceFileError,
    ExtractionError,
    MetadataError,
    StoreError,
    StoreIOError,
    StoreCorruptionError,
    SchemaMismatchError,
    SearchError,
    QueryParseError
)
from .models import Document, ReferenceMetadata

__all__ = [
    "Config",
    "PathsConfig",
    "ExtractionConfig",
    "SearchConfig",
    "LoggingConfig",
    "load_config",
    "resolve_work_directory",
    "setup_logging",
    "teardown_logging",
    "get_logger",
    "RefmanError",
    "ConfigurationError",
    "SourceFileError",
    "ExtractionError",
    "MetadataError",
    "StoreError",
    "StoreIOError",
    "StoreCorruptionError",
    "SchemaMismatchError",
    "SearchError",
    "QueryParseError",
    "Document",
    "ReferenceMetadata"
]
