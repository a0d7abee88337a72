"""Build a :class:`BookSearchIndex` from an mdBook-style source tree.

Layout read by the builder::

    book_root/
        book.toml          optional; [book] src, [output.html.search]
        src/SUMMARY.md     chapter order
        src/*.md           chapters
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import logging
from pathlib import Path
import tomllib
from typing import Any

from pydantic import ValidationError

from booksearch.book.sections import Section, split_sections
from booksearch.book.summary import Chapter, parse_summary
from booksearch.config import Settings
from booksearch.errors import BookLoadError
from booksearch.search.book_index import BookSearchIndex
from booksearch.search.search_index import SearchIndex


logger = logging.getLogger(__name__)

BOOK_CONFIG_FILE = "book.toml"
SUMMARY_FILE = "SUMMARY.md"
DEFAULT_SOURCE_DIR = "src"


class BookIndexBuilder:
    """Turns chapters into sections and sections into a search index.

    Args:
        settings: Search and indexing settings; ``book.toml`` values override them.
        strict: Raise on a missing chapter file instead of skipping it.
    """

    def __init__(self, settings: Settings | None = None, *, strict: bool = True) -> None:
        self.settings = settings or Settings()
        self.strict = strict

    def build(self, book_root: Path) -> BookSearchIndex:
        """Index every enabled chapter listed in the book's ``SUMMARY.md``."""

        book_root = Path(book_root)
        if not book_root.is_dir():
            raise BookLoadError(f"Book directory not found: {book_root}")

        book_config = load_book_config(book_root)
        search_config = _search_config(book_config)
        try:
            settings = self.settings.merged_with_book_config(search_config)
        except ValidationError as exc:
            raise BookLoadError(f"Invalid search settings in {BOOK_CONFIG_FILE}: {exc}") from exc
        source_dir = book_root / str(book_config.get("book", {}).get("src", DEFAULT_SOURCE_DIR))

        summary_path = source_dir / SUMMARY_FILE
        try:
            summary_text = summary_path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise BookLoadError(f"{SUMMARY_FILE} not found in {source_dir}") from exc

        chapters = parse_summary(summary_text)
        chapter_switches = _chapter_switches(search_config)
        sections: list[Section] = []
        indexed_chapters = 0
        for chapter in chapters:
            if not chapter_enabled(chapter.path, chapter_switches):
                logger.debug("Search disabled for chapter", extra={"chapter": chapter.path})
                continue
            markdown = self._read_chapter(source_dir, chapter)
            if markdown is None:
                continue
            indexed_chapters += 1
            sections.extend(
                split_sections(
                    markdown,
                    chapter,
                    split_level=settings.heading_split_level,
                    max_word_length=settings.max_word_length,
                )
            )

        book_index = self.build_from_sections(sections, settings=settings)
        logger.info(
            "Built search index",
            extra={
                "book": str(book_root),
                "chapters": indexed_chapters,
                "sections": len(sections),
            },
        )
        return book_index

    def build_from_sections(self, sections: Iterable[Section], *, settings: Settings | None = None) -> BookSearchIndex:
        """Index already extracted sections; refs are their positions as strings."""

        settings = settings or self.settings
        schema = settings.book_schema()
        index = SearchIndex(
            schema.field_names,
            ref=schema.ref,
            save_documents=settings.save_documents,
        )
        doc_urls: list[str] = []
        for position, section in enumerate(sections):
            index.add_document(
                {
                    schema.ref: str(position),
                    "title": section.title,
                    "body": section.body,
                    "breadcrumbs": section.breadcrumb_text,
                }
            )
            doc_urls.append(section.url)

        return BookSearchIndex(
            doc_urls=doc_urls,
            index=index,
            results_options=settings.results_options(),
            search_options=settings.search_options(),
        )

    def _read_chapter(self, source_dir: Path, chapter: Chapter) -> str | None:
        path = source_dir / chapter.path
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            if self.strict:
                raise BookLoadError(f"Chapter '{chapter.name}' points at missing file {path}") from exc
            logger.warning("Skipping missing chapter file", extra={"chapter": chapter.name, "path": str(path)})
            return None


def load_book_config(book_root: Path) -> dict[str, Any]:
    """Parse ``book.toml``; a book without one uses the defaults."""

    config_path = book_root / BOOK_CONFIG_FILE
    if not config_path.exists():
        return {}
    try:
        with config_path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise BookLoadError(f"Invalid {BOOK_CONFIG_FILE}: {exc}") from exc


def chapter_enabled(chapter_path: str, switches: Mapping[str, bool]) -> bool:
    """Return whether search covers ``chapter_path``.

    The longest matching path prefix decides; ``""`` matches every chapter.
    """

    best_length = -1
    enabled = True
    for prefix, switch in switches.items():
        if _path_matches(chapter_path, prefix) and len(prefix) > best_length:
            best_length = len(prefix)
            enabled = switch
    return enabled


def _path_matches(chapter_path: str, prefix: str) -> bool:
    prefix = prefix.strip("/")
    if not prefix:
        return True
    return chapter_path == prefix or chapter_path.startswith(prefix.rstrip("/") + "/")


def _search_config(book_config: Mapping[str, Any]) -> dict[str, Any]:
    output = book_config.get("output", {})
    html = output.get("html", {}) if isinstance(output, Mapping) else {}
    search = html.get("search", {}) if isinstance(html, Mapping) else {}
    if not isinstance(search, Mapping):
        raise BookLoadError("[output.html.search] must be a table")
    return dict(search)


def _chapter_switches(search_config: Mapping[str, Any]) -> dict[str, bool]:
    chapters = search_config.get("chapter", {})
    if not isinstance(chapters, Mapping):
        raise BookLoadError("[output.html.search.chapter] must be a table")
    switches: dict[str, bool] = {}
    for prefix, options in chapters.items():
        if not isinstance(options, Mapping) or not isinstance(options.get("enable", True), bool):
            raise BookLoadError(f"Chapter search setting for '{prefix}' must be a table with a boolean 'enable'")
        switches[prefix] = options.get("enable", True)
    return switches
