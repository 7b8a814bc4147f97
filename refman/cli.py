"""
Command line interface for refman.

Usage:
    refman --pdf paper.pdf                      # Index a PDF
    refman --pdf paper.pdf --bibtex paper.bib   # Index a PDF with its reference
    refman distributed consensus                # Query the index
    refman -vv 'title:raft +consensus'          # Query with debug logs and snippets
"""

import argparse
import sys
from typing import List, Optional, TextIO

from .core import (
    get_logger,
    setup_logging,
    load_config,
    Config,
    RefmanError
)
from .indexer import IngestionPipeline
from .search import QueryEngine, QueryParser, ResultSet, SearchQuery
from .store import IndexStore

logger = get_logger(__name__)


EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130

VERBOSITY_LEVELS = {1: "INFO", 2: "DEBUG"}


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="refman",
        description="Index PDF references and search them from the command line"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Log progress to stderr; repeat (-vv) for debug output and highlighted snippets"
    )

    parser.add_argument(
        "--pdf",
        metavar="PATH",
        help="PDF file to add to the index"
    )

    parser.add_argument(
        "--bibtex",
        metavar="PATH",
        help="BibTeX file with the reference of the PDF given by --pdf"
    )

    parser.add_argument(
        "--limit",
        type=int,
        metavar="N",
        help="Maximum number of results to show"
    )

    parser.add_argument(
        "--offset",
        type=int,
        default=0,
        metavar="N",
        help="Number of results to skip"
    )

    parser.add_argument(
        "--highlight",
        action="store_true",
        help="Show highlighted snippets"
    )

    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Path to a config.json file"
    )

    parser.add_argument(
        "terms",
        nargs="*",
        help="Query terms, joined with spaces into one query"
    )

    return parser


def parse_args(argv: List[str] = None) -> argparse.Namespace:
    """Parse command line arguments, rejecting invalid combinations."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.bibtex and not args.pdf:
        parser.error("--bibtex requires --pdf")
    if args.limit is not None and args.limit < 1:
        parser.error("--limit must be at least 1")
    if args.offset < 0:
        parser.error("--offset must not be negative")

    return args


def configure_logging(config: Config, verbosity: int) -> None:
    """Map -v/-vv onto log levels; otherwise use the configured level."""
    level = VERBOSITY_LEVELS.get(min(verbosity, 2), config.logging.level)
    setup_logging(
        log_level=level,
        log_format=config.logging.format,
        logs_directory=config.paths.logs_directory,
        max_file_size_mb=config.logging.max_file_size_mb,
        backup_count=config.logging.backup_count
    )


def render_results(result_set: ResultSet, out: TextIO) -> None:
    """
    Print a result set in human-readable form.

    Args:
        result_set: Ranked results of a query.
        out: Stream to write to.
    """
    stats = result_set.stats
    took = f"took {stats.execution_time_ms:.2f} ms" if stats else ""

    if not result_set.results:
        if result_set.total:
            out.write(f"{result_set.total} matches, none at offset {stats.offset}, {took}\n")
        else:
            out.write(f"No matches, {took}\n")
        return

    first = (stats.offset if stats else 0) + 1
    last = first + len(result_set) - 1
    out.write(f"{result_set.total} matches, showing {first} through {last}, {took}\n")

    for rank, result in enumerate(result_set, start=first):
        out.write(f"{rank:>4}. {result.doc_id} ({result.score:.4f})\n")

        metadata = result.metadata
        if metadata is not None:
            details = []
            if metadata.title:
                details.append(metadata.title)
            if metadata.authors:
                details.append(", ".join(metadata.authors))
            line = ". ".join(details)
            if metadata.year:
                line = f"{line} ({metadata.year})" if line else metadata.year
            if line:
                out.write(f"      {line}\n")

        if result.snippet:
            field = "" if result.snippet_field == "text" else f"[{result.snippet_field}] "
            out.write(f"      {field}{result.snippet}\n")


def run_ingest(config: Config, pdf_path: str, bibtex_path: Optional[str]) -> None:
    """
    Index one PDF into the store of the working directory.

    The store is opened, and created if absent, only once the document
    has been extracted, so bad input leaves the working directory as it was.
    """
    pipeline = IngestionPipeline(config)
    document = pipeline.prepare(pdf_path, bibtex_path)
    with IndexStore.open(config.paths.index_path, config.search) as store:
        pipeline.commit(document, store)


def run_query(config: Config, query: SearchQuery, out: TextIO) -> None:
    """
    Run one query against the store of the working directory.

    The query is parsed first; a malformed query or one with nothing
    searchable never opens the store.
    """
    expression = QueryParser().parse(query.text)
    if expression is None:
        logger.info(f"Query {query.text!r} has no searchable terms")
        render_results(ResultSet.empty(query.text), out)
        return

    with IndexStore.open(config.paths.index_path, config.search) as store:
        engine = QueryEngine(store, config.search)
        result_set = engine.evaluate(
            expression,
            limit=query.limit,
            offset=query.offset,
            highlight=query.highlight,
            query_text=query.text
        )
    render_results(result_set, out)


def main(argv: List[str] = None) -> int:
    """
    Main entry point for the refman command.

    Args:
        argv: Arguments without the program name; sys.argv when None.

    Returns:
        Process exit code.
    """
    try:
        args = parse_args(argv)
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else EXIT_USAGE

    try:
        config = load_config(config_path=args.config)
        configure_logging(config, args.verbose)

        logger.debug(f"Working directory: {config.paths.work_directory}")

        if args.pdf:
            if args.terms:
                logger.warning("Ignoring query terms while indexing")
            run_ingest(config, args.pdf, args.bibtex)
            return EXIT_OK

        text = " ".join(args.terms)
        if not text.strip():
            logger.info("No query given")
            return EXIT_OK

        query = SearchQuery(
            text=text,
            limit=args.limit,
            offset=args.offset,
            highlight=args.highlight or args.verbose >= 2
        )
        run_query(config, query, sys.stdout)
        return EXIT_OK

    except RefmanError as e:
        logger.debug("Command failed", exc_info=True)
        sys.stderr.write(f"refman: {e.message}\n")
        return EXIT_ERROR

    except KeyboardInterrupt:
        sys.stderr.write("refman: interrupted\n")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
