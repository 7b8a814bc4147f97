"""
File utility functions for refman.

Provides path canonicalization for document identifiers, hashing for
change detection, readability checks, and size calculations.
"""

import hashlib
import os
from pathlib import Path
from typing import Union

from ..core.exceptions import SourceFileError


def canonical_path(filepath: Union[str, Path]) -> str:
    """
    Return the canonical identifier for a document path.

    The path is made absolute and normalized. Symbolic links are kept
    as given so the identifier matches what the user passed.

    Args:
        filepath: Absolute or relative path.

    Returns:
        Absolute, normalized path string.
    """
    return os.path.abspath(os.path.expanduser(str(filepath)))


def ensure_readable_file(filepath: Union[str, Path]) -> Path:
    """
    Check that a path names an existing, readable regular file.

    Args:
        filepath: Path to check.

    Returns:
        The path as a Path object.

    Raises:
        SourceFileError: If the file is missing, not a file, or unreadable.
    """
    filepath = Path(filepath)

    if not filepath.exists():
        raise SourceFileError(f"File not found: {filepath}", filepath=str(filepath))

    if not filepath.is_file():
        raise SourceFileError(f"Not a regular file: {filepath}", filepath=str(filepath))

    if not os.access(filepath, os.R_OK):
        raise SourceFileError(f"Permission denied: {filepath}", filepath=str(filepath))

    return filepath


def get_file_hash(filepath: Union[str, Path], chunk_size: int = 8192) -> str:
    """
    Compute MD5 hash of the first chunk of a file for fast change detection.

    Args:
        filepath: Path to the file.
        chunk_size: Number of bytes to read (default 8KB).

    Returns:
        Hexadecimal MD5 hash string.
    """
    hasher = hashlib.md5()

    with open(filepath, "rb") as f:
        hasher.update(f.read(chunk_size))

    return hasher.hexdigest()


def get_file_size_mb(filepath: Union[str, Path]) -> float:
    """
    Get file size in megabytes.

    Args:
        filepath: Path to the file.

    Returns:
        File size in MB, rounded to 2 decimal places.
    """
    size_bytes = Path(filepath).stat().st_size
    return round(size_bytes / (1024 * 1024), 2)
