"""
Indexer module orchestrating document ingestion.

Coordinates text extraction, metadata parsing, and index storage.
"""

from .ingestion import IngestionPipeline, IngestionResult

__all__ = [
    "IngestionPipeline",
    "IngestionResult"
]
