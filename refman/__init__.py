"""
refman: index PDF references and search them from the command line.

Ingests PDFs, optionally with BibTeX metadata, into a local full-text
index stored in a single SQLite file, and answers ranked queries over
their text and metadata.
"""

__version__ = "0.1.0"
