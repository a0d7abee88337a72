"""The complete search payload shipped with a rendered book."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from booksearch.errors import IndexFormatError
from booksearch.search.models import ResultsOptions, SearchOptions
from booksearch.search.search_index import SearchIndex


@dataclass
class BookSearchIndex:
    """Index plus the URLs and display/query options that accompany it.

    ``doc_urls[i]`` is the URL of the section whose ref is ``str(i)``.
    """

    doc_urls: list[str]
    index: SearchIndex
    results_options: ResultsOptions = field(default_factory=ResultsOptions)
    search_options: SearchOptions = field(default_factory=SearchOptions)

    def url_for(self, ref: str) -> str | None:
        if not isinstance(ref, str) or not (ref.isascii() and ref.isdigit()) or str(int(ref)) != ref:
            return None
        position = int(ref)
        if position < len(self.doc_urls):
            return self.doc_urls[position]
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "doc_urls": list(self.doc_urls),
            "index": self.index.to_dict(),
            "results_options": self.results_options.model_dump(),
            "search_options": self.search_options.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BookSearchIndex:
        if not isinstance(data, Mapping):
            raise IndexFormatError("Search payload must be an object")
        doc_urls = data.get("doc_urls")
        if not isinstance(doc_urls, list) or not all(isinstance(url, str) for url in doc_urls):
            raise IndexFormatError("doc_urls must be a list of strings")
        if "index" not in data:
            raise IndexFormatError("Search payload is missing 'index'")
        try:
            results_options = ResultsOptions.model_validate(data.get("results_options") or {})
            search_options = SearchOptions.model_validate(data.get("search_options") or {})
        except ValidationError as exc:
            raise IndexFormatError(f"Invalid search configuration: {exc}") from exc
        return cls(
            doc_urls=list(doc_urls),
            index=SearchIndex.from_dict(data["index"]),
            results_options=results_options,
            search_options=search_options,
        )
