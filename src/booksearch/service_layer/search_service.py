"""Search service orchestration layer.

Runs a query against a loaded :class:`BookSearchIndex` the way a book's search
widget does: rank with the stored search options, cut to the configured result
limit, then attach a teaser and a highlight link to every hit.
"""

from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import quote

from booksearch.search.book_index import BookSearchIndex
from booksearch.search.models import BoolMode, SearchHit, SearchResponse
from booksearch.search.serialization import load_index
from booksearch.search.snippet import build_teaser


logger = logging.getLogger(__name__)

HIGHLIGHT_PARAM = "highlight"
# Characters encodeURIComponent leaves alone besides alphanumerics and "-_.~"
_URI_COMPONENT_SAFE = "!*()"


def highlight_href(url: str, terms: list[str]) -> str:
    """Append the highlight query parameter to ``url``, keeping its anchor last."""

    page, _, anchor = url.partition("#")
    href = f"{page}?{HIGHLIGHT_PARAM}={quote(' '.join(terms), safe=_URI_COMPONENT_SAFE)}"
    if anchor:
        href = f"{href}#{anchor}"
    return href


class BookSearchService:
    """High-level search API over one book index."""

    def __init__(self, book_index: BookSearchIndex):
        self.book_index = book_index

    @classmethod
    def from_path(cls, path: Path) -> BookSearchService:
        return cls(load_index(Path(path)))

    def search(
        self,
        query: str,
        *,
        limit: int | None = None,
        bool_mode: BoolMode | None = None,
        expand: bool | None = None,
    ) -> SearchResponse:
        """Execute ``query`` and build display-ready hits.

        Args:
            query: Raw query string as typed by the reader
            limit: Maximum number of hits (defaults to ``results_options.limit_results``)
            bool_mode: Override the stored ``OR``/``AND`` combination mode
            expand: Override the stored prefix expansion setting

        Returns:
            SearchResponse with hits in descending score order
        """
        query = query.strip()
        terms = query.split(" ") if query else []
        options = self.book_index.search_options.with_overrides(bool_mode=bool_mode, expand=expand)
        ranked = self.book_index.index.search(query, options)

        results_options = self.book_index.results_options
        max_hits = results_options.limit_results if limit is None else max(limit, 0)
        hits = [self._build_hit(item.ref, item.score, terms) for item in ranked[:max_hits]]

        logger.debug(
            "Search completed: %d matches, %d returned for %r",
            len(ranked),
            len(hits),
            query,
        )
        return SearchResponse(query=query, terms=terms, hits=hits, total_matches=len(ranked))

    def _build_hit(self, ref: str, score: float, terms: list[str]) -> SearchHit:
        doc = self.book_index.index.document_store.get_doc(ref) or {}
        url = self.book_index.url_for(ref) or ""
        body = str(doc.get("body") or "")
        return SearchHit(
            ref=ref,
            score=score,
            title=str(doc.get("title") or ""),
            breadcrumbs=str(doc.get("breadcrumbs") or ""),
            url=url,
            href=highlight_href(url, terms),
            teaser=build_teaser(body, terms, self.book_index.results_options.teaser_word_count),
        )
