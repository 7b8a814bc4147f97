"""
Utility module providing shared helper functions.

Contains file operations and the text analyzer used across the
application. Depends only on the core module.
"""

from .file_utils import (
    canonical_path,
    ensure_readable_file,
    get_file_hash,
    get_file_size_mb
)
from .text_utils import (
    Token,
    clean_text,
    fold_diacritics,
    normalize_term,
    tokenize,
    analyze
)

__all__ = [
    "canonical_path",
    "ensure_readable_file",
    "get_file_hash",
    "get_file_size_mb",
    "Token",
    "clean_text",
    "fold_diacritics",
    "normalize_term",
    "tokenize",
    "analyze"
]
