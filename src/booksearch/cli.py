"""Command line entry point: build, query and validate book search indexes.

Exit codes: 0 on success, 1 when the input cannot be read or is malformed,
2 when ``validate`` finds inconsistencies.
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence
import json
import logging
from pathlib import Path
import sys

from pydantic import ValidationError

from booksearch import __version__
from booksearch.book.builder import BookIndexBuilder
from booksearch.config import Settings
from booksearch.errors import BookSearchError
from booksearch.observability.logging import configure_logging
from booksearch.search.serialization import load_payload, write_index
from booksearch.search.validation import IndexAuditReport, audit_payload
from booksearch.service_layer.search_service import BookSearchService


logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = "book"
INDEX_BASENAME = "searchindex"


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="booksearch",
        description="Build, query and validate static full-text search indexes for documentation books",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        help="Override BOOKSEARCH_LOG_LEVEL (debug, info, warning, error)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Index a book source tree")
    build.add_argument("book_dir", type=Path, help="Directory holding book.toml and the source folder")
    build.add_argument(
        "-o",
        "--output",
        type=Path,
        help=f"Index file to write (default: BOOK_DIR/{DEFAULT_OUTPUT_DIR}/{INDEX_BASENAME}.<format>)",
    )
    build.add_argument(
        "--format",
        choices=("js", "json"),
        help="Output format (default: from the output suffix, else BOOKSEARCH_OUTPUT_FORMAT)",
    )
    build.add_argument(
        "--skip-missing",
        action="store_true",
        help="Skip chapters whose file is missing instead of failing",
    )

    search = subparsers.add_parser("search", help="Query an index and print one JSON hit per line")
    search.add_argument("index", type=Path, help="searchindex.js or searchindex.json")
    search.add_argument("query", help="Query string")
    search.add_argument("--limit", type=int, help="Maximum hits (default: the index's limit_results)")
    search.add_argument("--and", dest="use_and", action="store_true", help="Require every term to match")
    search.add_argument("--no-expand", action="store_true", help="Disable prefix expansion of query terms")

    validate = subparsers.add_parser("validate", help="Audit an index for internal consistency")
    validate.add_argument("index", type=Path, help="searchindex.js or searchindex.json")
    return parser


def _run_build(args: argparse.Namespace, settings: Settings) -> int:
    builder = BookIndexBuilder(settings, strict=not args.skip_missing)
    book_index = builder.build(args.book_dir)
    output: Path | None = args.output
    file_format = args.format
    if output is None:
        file_format = file_format or settings.output_format
        output = args.book_dir / DEFAULT_OUTPUT_DIR / f"{INDEX_BASENAME}.{file_format}"
    written = write_index(book_index, output, file_format=file_format)
    _emit({"output": str(written), "documents": len(book_index.index), "urls": len(book_index.doc_urls)})
    return 0


def _run_search(args: argparse.Namespace) -> int:
    if args.limit is not None and args.limit < 1:
        raise ValueError("--limit must be >= 1")
    service = BookSearchService.from_path(args.index)
    response = service.search(
        args.query,
        limit=args.limit,
        bool_mode="AND" if args.use_and else None,
        expand=False if args.no_expand else None,
    )
    for hit in response.hits:
        _emit(hit.model_dump())
    logger.info("%d of %d matches shown", len(response.hits), response.total_matches)
    return 0


def _run_validate(args: argparse.Namespace) -> int:
    report = audit_payload(load_payload(args.index))
    _emit(report.to_dict())
    return _determine_exit_code(report)


def _determine_exit_code(report: IndexAuditReport) -> int:
    if report.ok:
        logger.info("Index is consistent: %d documents, %d terms", report.document_count, report.term_count)
        return 0
    logger.warning("Index has %d consistency issue(s)", len(report.issues))
    return 2


def _emit(payload: dict[str, object]) -> None:
    sys.stdout.write(json.dumps(payload, sort_keys=True, ensure_ascii=False) + "\n")


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_argument_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings()
    except ValidationError as exc:
        configure_logging("INFO", json_output=False)
        logger.error("Invalid settings: %s", exc)
        return 1
    try:
        configure_logging(args.log_level or settings.log_level, json_output=settings.log_json)
    except ValueError as exc:
        configure_logging("INFO", json_output=settings.log_json)
        logger.error("Invalid log level: %s", exc)
        return 1

    try:
        if args.command == "build":
            return _run_build(args, settings)
        if args.command == "search":
            return _run_search(args)
        return _run_validate(args)
    except BookSearchError as exc:
        logger.error("%s", exc)
        return 1
    except ValueError as exc:
        logger.error("Invalid arguments: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
