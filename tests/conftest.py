"""
Pytest fixtures and configuration for the test suite.

Provides temporary directories, a builder for real PDF files with
given page texts, a sample BibTeX entry, and an opened index store
rooted in a temporary working directory.
"""

import pytest
import tempfile
import shutil
from pathlib import Path
from typing import Callable, Generator, List

from refman.core import Config, Document, ReferenceMetadata
from refman.store import IndexStore


CONSENSUS_TEXT = (
    "A distributed consensus protocol lets a cluster of servers agree\n"
    "on a single value even when some of them fail. Leader election\n"
    "and log replication keep every replica consistent."
)

SAMPLE_BIBTEX = """@article{pease1980,
  author = {Marshall Pease and Robert Shostak and Leslie Lamport},
  title = {Reaching {A}greement in the Presence of Faults},
  journal = {Journal of the ACM},
  year = {1980},
  volume = {27}
}
"""


def _escape(line: str) -> str:
    return line.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_pdf(pages: List[str]) -> bytes:
    """
    Build a PDF with one page per string, using Helvetica text.

    Newlines in a page string start a new text line. An empty string
    gives a page without any text.
    """
    kids = " ".join(f"{4 + 2 * i} 0 R" for i in range(len(pages)))
    bodies = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {len(pages)} >>".encode("latin-1"),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica /Encoding /WinAnsiEncoding >>",
    ]

    for i, text in enumerate(pages):
        operations = []
        if text:
            operations = ["BT", "/F1 12 Tf", "14 TL", "72 720 Td"]
            operations += [f"({_escape(line)}) Tj T*" for line in text.split("\n")]
            operations.append("ET")
        stream = "\n".join(operations).encode("latin-1")

        bodies.append(
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            f"/Contents {5 + 2 * i} 0 R /Resources << /Font << /F1 3 0 R >> >> >>".encode("latin-1")
        )
        bodies.append(
            f"<< /Length {len(stream)} >>\nstream\n".encode("latin-1") + stream + b"\nendstream"
        )

    output = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(bodies, start=1):
        offsets.append(len(output))
        output += f"{number} 0 obj\n".encode("latin-1") + body + b"\nendobj\n"

    xref_offset = len(output)
    output += f"xref\n0 {len(bodies) + 1}\n".encode("latin-1")
    output += b"0000000000 65535 f \n"
    for offset in offsets:
        output += f"{offset:010d} 00000 n \n".encode("latin-1")
    output += (
        f"trailer\n<< /Size {len(bodies) + 1} /Root 1 0 R >>\n"
        f"startxref\n{xref_offset}\n%%EOF\n"
    ).encode("latin-1")

    return bytes(output)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    Create a temporary directory for test files.

    Yields:
        Path to temporary directory, cleaned up after test.
    """
    tmp = tempfile.mkdtemp(prefix="refman_test_")
    yield Path(tmp)
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def make_pdf(temp_dir: Path) -> Callable[..., Path]:
    """
    Factory writing PDFs into the temporary directory.

    Usage:
        make_pdf("paper.pdf", "first page text", "second page text")
    """
    def _make(name: str, *pages: str) -> Path:
        path = temp_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(build_pdf(list(pages) or [""]))
        return path

    return _make


@pytest.fixture
def sample_pdf(make_pdf) -> Path:
    """A single-page PDF about distributed consensus."""
    return make_pdf("consensus.pdf", CONSENSUS_TEXT)


@pytest.fixture
def sample_bibtex(temp_dir: Path) -> Path:
    """A BibTeX file holding one article entry."""
    path = temp_dir / "pease1980.bib"
    path.write_text(SAMPLE_BIBTEX, encoding="utf-8")
    return path


@pytest.fixture
def config(temp_dir: Path) -> Config:
    """Default configuration rooted at a temporary working directory."""
    work_directory = temp_dir / "work"
    work_directory.mkdir()
    return Config.for_work_directory(work_directory)


@pytest.fixture
def store(config: Config) -> Generator[IndexStore, None, None]:
    """An opened, empty index store."""
    index_store = IndexStore.open(config.paths.index_path, config.search)
    yield index_store
    index_store.close()


@pytest.fixture
def sample_metadata() -> ReferenceMetadata:
    return ReferenceMetadata(
        citation_key="pease1980",
        entry_type="article",
        title="Reaching Agreement in the Presence of Faults",
        authors=["Marshall Pease", "Robert Shostak", "Leslie Lamport"],
        year="1980",
        venue="Journal of the ACM",
        fields={
            "author": "Marshall Pease and Robert Shostak and Leslie Lamport",
            "title": "Reaching {A}greement in the Presence of Faults",
            "journal": "Journal of the ACM",
            "year": "1980",
            "volume": "27",
        }
    )


@pytest.fixture
def populated_store(store: IndexStore, sample_metadata: ReferenceMetadata) -> IndexStore:
    """A store holding a few small documents with known content."""
    store.insert(Document(doc_id="/docs/consensus.pdf", text=CONSENSUS_TEXT, metadata=sample_metadata))
    store.insert(Document(
        doc_id="/docs/storage.pdf",
        text="Log structured storage engines append writes to a log and compact it later."
    ))
    store.insert(Document(
        doc_id="/docs/networks.pdf",
        text="Packet switched networks route packets between servers. "
             "Consensus is not required for routing."
    ))
    return store


@pytest.fixture
def clean_logging() -> Generator[None, None, None]:
    """Remove refman's logging handlers after the test."""
    from refman.core.logger import teardown_logging

    teardown_logging()
    yield
    teardown_logging()
