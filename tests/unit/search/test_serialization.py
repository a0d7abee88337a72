"""Unit tests for reading and writing searchindex.js / searchindex.json."""

import logging

import orjson
import pytest

from booksearch.errors import IndexFormatError
from booksearch.search.book_index import BookSearchIndex
from booksearch.search.models import ResultsOptions
from booksearch.search.search_index import SearchIndex
from booksearch.search.serialization import (
    JS_PREFIX,
    JS_SUFFIX,
    dump_index_js,
    dump_index_json,
    format_for_path,
    load_index,
    load_payload,
    loads_index,
    loads_payload,
    write_index,
)


pytestmark = pytest.mark.unit


@pytest.fixture
def small_index():
    index = SearchIndex(["title", "body"])
    index.add_document({"id": "0", "title": "Why Templates?", "body": "Skip the initial setup."})
    return BookSearchIndex(
        doc_urls=["introduction.html#why-templates"],
        index=index,
        results_options=ResultsOptions(limit_results=10, teaser_word_count=20),
    )


class TestDump:
    def test_json_has_the_four_top_level_keys(self, small_index):
        payload = orjson.loads(dump_index_json(small_index))

        assert list(payload) == ["doc_urls", "index", "results_options", "search_options"]
        assert payload["results_options"] == {"limit_results": 10, "teaser_word_count": 20}

    def test_js_wraps_json_payload(self, small_index):
        script = dump_index_js(small_index).decode("utf-8")

        assert script.startswith(JS_PREFIX)
        assert script.endswith(JS_SUFFIX)
        assert script[len(JS_PREFIX) : -len(JS_SUFFIX)] == dump_index_json(small_index).decode("utf-8")

    @pytest.mark.parametrize(("name", "expected"), [("searchindex.js", "js"), ("searchindex.JSON", "json"), ("x", "json")])
    def test_format_follows_suffix(self, tmp_path, name, expected):
        assert format_for_path(tmp_path / name) == expected


class TestWriteAndLoad:
    def test_write_then_load_js(self, small_index, tmp_path, caplog):
        target = tmp_path / "book" / "searchindex.js"

        with caplog.at_level(logging.INFO, logger="booksearch.search.serialization"):
            write_index(small_index, target)

        assert target.read_bytes().startswith(JS_PREFIX.encode("utf-8"))
        assert "Wrote search index" in caplog.text
        loaded = load_index(target)
        assert loaded.doc_urls == small_index.doc_urls
        assert loaded.to_dict() == small_index.to_dict()
        assert loaded.index.read_only is True

    def test_explicit_format_overrides_suffix(self, small_index, tmp_path):
        target = write_index(small_index, tmp_path / "index.txt", file_format="json")

        assert target.read_bytes().startswith(b"{")

    def test_loads_sample_index(self, sample_index_path):
        book_index = load_index(sample_index_path)

        assert len(book_index.doc_urls) == 7
        assert book_index.index.fields == ["title", "body", "breadcrumbs"]
        assert book_index.search_options.fields["title"].boost == 2.0
        assert book_index.url_for("4") == "chapter_1.html#chapter-1"
        assert book_index.url_for("7") is None
        assert book_index.url_for("x") is None
        assert book_index.url_for("04") is None
        assert book_index.url_for(" 4") is None
        assert book_index.url_for("\u00b2") is None

    def test_sample_round_trip_is_lossless(self, sample_index_path):
        raw = load_payload(sample_index_path)

        assert load_index(sample_index_path).to_dict() == raw


class TestLoadsPayload:
    def test_accepts_window_search_assignment(self):
        assert loads_payload('window.search = {"doc_urls": []};') == {"doc_urls": []}

    def test_accepts_bytes(self):
        assert loads_payload(b'Object.assign(window.search, {"a": 1});') == {"a": 1}

    @pytest.mark.parametrize("text", ["", "var x = 1;", "{not json", "[1, 2]"])
    def test_rejects_other_content(self, text):
        with pytest.raises(IndexFormatError):
            loads_payload(text)

    def test_rejects_invalid_utf8(self, tmp_path):
        with pytest.raises(IndexFormatError, match="UTF-8"):
            loads_index(b'{"doc_urls": ["\xff"]}')

        broken = tmp_path / "searchindex.json"
        broken.write_bytes(b'{"doc_urls": ["\xff"]}')
        with pytest.raises(IndexFormatError):
            load_payload(broken)

    def test_missing_file(self, tmp_path):
        with pytest.raises(IndexFormatError, match="not found"):
            load_payload(tmp_path / "searchindex.js")

    @pytest.mark.parametrize(
        "payload",
        [
            {"index": {}},
            {"doc_urls": [1], "index": {}},
            {"doc_urls": []},
            {"doc_urls": [], "index": {"fields": []}},
        ],
    )
    def test_loads_index_rejects_incomplete_payloads(self, payload):
        with pytest.raises(IndexFormatError):
            loads_index(orjson.dumps(payload))

    def test_invalid_options_are_format_errors(self, small_index):
        payload = small_index.to_dict()
        payload["results_options"] = {"limit_results": 0}

        with pytest.raises(IndexFormatError, match="search configuration"):
            BookSearchIndex.from_dict(payload)
