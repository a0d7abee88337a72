"""Read and write search payloads as ``searchindex.json`` or ``searchindex.js``.

The ``.js`` form wraps the JSON payload so that a page can load it with a plain
``<script>`` tag::

    Object.assign(window.search, {"doc_urls": [...], ...});
"""

from __future__ import annotations

import logging
from pathlib import Path
import re
from typing import Any, Literal

import orjson

from booksearch.errors import IndexFormatError
from booksearch.search.book_index import BookSearchIndex


logger = logging.getLogger(__name__)

IndexFileFormat = Literal["js", "json"]

JS_PREFIX = "Object.assign(window.search, "
JS_SUFFIX = ");"

_JS_WRAPPERS = (
    re.compile(r"^\s*Object\.assign\(\s*window\.search\s*,\s*(?P<body>.*)\)\s*;?\s*$", re.DOTALL),
    re.compile(r"^\s*window\.search\s*=\s*(?P<body>.*?)\s*;?\s*$", re.DOTALL),
)


def dump_index_json(book_index: BookSearchIndex) -> bytes:
    """Serialize ``book_index`` to compact JSON with sorted keys."""

    return orjson.dumps(book_index.to_dict(), option=orjson.OPT_SORT_KEYS)


def dump_index_js(book_index: BookSearchIndex) -> bytes:
    """Serialize ``book_index`` wrapped in a ``window.search`` assignment."""

    return JS_PREFIX.encode("utf-8") + dump_index_json(book_index) + JS_SUFFIX.encode("utf-8")


def format_for_path(path: Path) -> IndexFileFormat:
    return "js" if path.suffix.lower() == ".js" else "json"


def write_index(book_index: BookSearchIndex, path: Path, *, file_format: IndexFileFormat | None = None) -> Path:
    """Write ``book_index`` to ``path``; the format follows the suffix unless given."""

    resolved_format = file_format or format_for_path(path)
    payload = dump_index_js(book_index) if resolved_format == "js" else dump_index_json(book_index)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(payload)
    logger.info(
        "Wrote search index",
        extra={"path": str(path), "format": resolved_format, "bytes": len(payload), "documents": len(book_index.index)},
    )
    return path


def loads_payload(text: str | bytes) -> dict[str, Any]:
    """Parse either form of the payload into a plain mapping."""

    if isinstance(text, bytes):
        try:
            raw = text.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise IndexFormatError(f"Search index is not valid UTF-8: {exc}") from exc
    else:
        raw = text
    body = raw.strip()
    if not body:
        raise IndexFormatError("Search index is empty")
    if not body.startswith("{"):
        for wrapper in _JS_WRAPPERS:
            match = wrapper.match(body)
            if match:
                body = match.group("body")
                break
        else:
            raise IndexFormatError("Search index is neither JSON nor a window.search script")
    try:
        payload = orjson.loads(body)
    except orjson.JSONDecodeError as exc:
        raise IndexFormatError(f"Search index is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise IndexFormatError("Search index payload must be a JSON object")
    return payload


def loads_index(text: str | bytes) -> BookSearchIndex:
    return BookSearchIndex.from_dict(loads_payload(text))


def load_payload(path: Path) -> dict[str, Any]:
    try:
        raw = path.read_bytes()
    except FileNotFoundError as exc:
        raise IndexFormatError(f"Search index not found: {path}") from exc
    return loads_payload(raw)


def load_index(path: Path) -> BookSearchIndex:
    """Load a ``searchindex.js`` or ``searchindex.json`` file."""

    book_index = BookSearchIndex.from_dict(load_payload(path))
    logger.debug("Loaded search index", extra={"path": str(path), "documents": len(book_index.index)})
    return book_index
