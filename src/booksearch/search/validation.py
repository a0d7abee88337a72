"""Consistency audit for serialized search payloads.

The audit runs on the raw mapping rather than on a loaded
:class:`BookSearchIndex`, so that payloads too broken to load still produce a
useful report instead of the first exception.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import asdict, dataclass, field
import math
from typing import Any

from booksearch.search.analyzers import PIPELINE_FUNCTIONS
from booksearch.search.book_index import BookSearchIndex


_RESERVED_KEYS = frozenset({"df", "docs"})


@dataclass(slots=True, frozen=True)
class AuditIssue:
    """A single consistency problem."""

    code: str
    message: str
    field: str | None = None
    ref: str | None = None
    term: str | None = None


@dataclass(slots=True)
class IndexAuditReport:
    """Structured result of an index audit."""

    document_count: int = 0
    term_count: int = 0
    issues: list[AuditIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues

    @property
    def status(self) -> str:
        return "ok" if self.ok else "inconsistent"

    def add(self, code: str, message: str, **context: str | None) -> None:
        self.issues.append(AuditIssue(code=code, message=message, **context))

    def to_dict(self) -> dict[str, object]:
        return {
            "status": self.status,
            "document_count": self.document_count,
            "term_count": self.term_count,
            "issues": [asdict(issue) for issue in self.issues],
        }


def audit_index(book_index: BookSearchIndex) -> IndexAuditReport:
    """Audit an in-memory payload."""

    return audit_payload(book_index.to_dict())


def audit_payload(payload: Mapping[str, Any]) -> IndexAuditReport:
    """Check that every part of a serialized payload agrees with the rest."""

    report = IndexAuditReport()

    doc_urls = payload.get("doc_urls")
    if not isinstance(doc_urls, list):
        report.add("missing_doc_urls", "doc_urls must be a list")
        doc_urls = []
    index = payload.get("index")
    if not isinstance(index, Mapping):
        report.add("missing_index", "index must be an object")
        return report

    fields = index.get("fields")
    if not isinstance(fields, list) or not fields:
        report.add("missing_fields", "index.fields must be a non-empty list")
        fields = []
    fields = [name for name in fields if isinstance(name, str)]

    _audit_pipeline(index, report)
    doc_info, stored_docs = _audit_document_store(index, fields, len(doc_urls), report)
    report.document_count = len(doc_info)
    _audit_field_tries(index, fields, doc_info, len(doc_urls), report)
    _audit_search_options(payload, fields, report)
    _audit_results_options(payload, report)

    ref_key = index.get("ref", "id")
    for ref, doc in stored_docs.items():
        if isinstance(doc, Mapping) and ref_key in doc and str(doc[ref_key]) != ref:
            report.add(
                "ref_mismatch",
                f"Stored doc {ref} has {ref_key}={doc[ref_key]!r}",
                ref=ref,
            )
    return report


def _audit_pipeline(index: Mapping[str, Any], report: IndexAuditReport) -> None:
    pipeline = index.get("pipeline", [])
    if not isinstance(pipeline, list):
        report.add("invalid_pipeline", "index.pipeline must be a list")
        return
    for name in pipeline:
        if name not in PIPELINE_FUNCTIONS:
            report.add("unknown_pipeline_function", f"Pipeline function {name!r} is not registered")


def _audit_document_store(
    index: Mapping[str, Any],
    fields: list[str],
    url_count: int,
    report: IndexAuditReport,
) -> tuple[dict[str, Any], dict[str, Any]]:
    store = index.get("documentStore")
    if not isinstance(store, Mapping):
        report.add("missing_document_store", "index.documentStore must be an object")
        return {}, {}

    doc_info = store.get("docInfo")
    if not isinstance(doc_info, Mapping):
        report.add("missing_doc_info", "documentStore.docInfo must be an object")
        doc_info = {}
    docs = store.get("docs", {})
    if not isinstance(docs, Mapping):
        report.add("invalid_docs", "documentStore.docs must be an object")
        docs = {}

    length = store.get("length")
    if length != len(doc_info):
        report.add("length_mismatch", f"documentStore.length is {length!r} but docInfo has {len(doc_info)} entries")
    if len(doc_info) != url_count:
        report.add("url_count_mismatch", f"docInfo has {len(doc_info)} entries but doc_urls has {url_count}")

    for ref, info in doc_info.items():
        if not _ref_in_range(ref, url_count):
            report.add("ref_without_url", f"Document {ref} has no doc_urls entry", ref=ref)
        if not isinstance(info, Mapping):
            report.add("invalid_doc_info", f"docInfo for {ref} must be an object", ref=ref)
            continue
        for field_name in fields:
            count = info.get(field_name)
            if count is None:
                report.add("missing_field_length", f"docInfo for {ref} has no {field_name} count", field=field_name, ref=ref)
            elif isinstance(count, bool) or not isinstance(count, (int, float)) or count < 0:
                report.add(
                    "invalid_field_length",
                    f"docInfo[{ref}][{field_name}] must be a non-negative number, got {count!r}",
                    field=field_name,
                    ref=ref,
                )

    if store.get("save", True):
        for ref in doc_info:
            if ref not in docs:
                report.add("missing_stored_doc", f"Document {ref} is not in documentStore.docs", ref=ref)
    for ref in docs:
        if ref not in doc_info:
            report.add("stored_doc_without_info", f"Stored doc {ref} has no docInfo entry", ref=ref)
    return dict(doc_info), dict(docs)


def _audit_field_tries(
    index: Mapping[str, Any],
    fields: list[str],
    doc_info: Mapping[str, Any],
    url_count: int,
    report: IndexAuditReport,
) -> None:
    tries = index.get("index")
    if not isinstance(tries, Mapping):
        report.add("missing_field_index", "index.index must be an object")
        return
    for field_name in fields:
        field_trie = tries.get(field_name)
        if not isinstance(field_trie, Mapping) or not isinstance(field_trie.get("root"), Mapping):
            report.add("missing_field_index", f"No trie for field {field_name}", field=field_name)
            continue
        for term, node in _walk(field_trie["root"]):
            _audit_node(field_name, term, node, doc_info, url_count, report)
    for extra in tries:
        if extra not in fields:
            report.add("unexpected_field_index", f"Trie for {extra} is not listed in index.fields", field=extra)


def _audit_node(
    field_name: str,
    term: str,
    node: Mapping[str, Any],
    doc_info: Mapping[str, Any],
    url_count: int,
    report: IndexAuditReport,
) -> None:
    docs = node.get("docs", {})
    df = node.get("df", 0)
    if not isinstance(docs, Mapping):
        report.add("invalid_postings", f"Postings for {term!r} must be an object", field=field_name, term=term)
        return
    if docs:
        report.term_count += 1
    if df != len(docs):
        report.add(
            "df_mismatch",
            f"Term {term!r} in {field_name} has df={df!r} but {len(docs)} postings",
            field=field_name,
            term=term,
        )
    for ref, posting in docs.items():
        if ref not in doc_info:
            report.add("unknown_ref", f"Term {term!r} references unknown doc {ref}", field=field_name, ref=ref, term=term)
        elif not _ref_in_range(ref, url_count):
            report.add("ref_without_url", f"Term {term!r} references doc {ref} without a URL", field=field_name, ref=ref)
        tf = posting.get("tf") if isinstance(posting, Mapping) else None
        if isinstance(tf, bool) or not isinstance(tf, (int, float)) or not math.isfinite(tf):
            report.add("invalid_tf", f"Term {term!r} has a non-numeric tf for doc {ref}", field=field_name, ref=ref, term=term)
        elif tf < 0:
            report.add("negative_tf", f"Term {term!r} has tf={tf} for doc {ref}", field=field_name, ref=ref, term=term)


def _audit_search_options(payload: Mapping[str, Any], fields: list[str], report: IndexAuditReport) -> None:
    options = payload.get("search_options") or {}
    if not isinstance(options, Mapping):
        report.add("invalid_search_options", "search_options must be an object")
        return
    bool_mode = options.get("bool", "OR")
    if not isinstance(bool_mode, str) or bool_mode.upper() not in {"OR", "AND"}:
        report.add("invalid_bool_mode", f"search_options.bool must be OR or AND, got {bool_mode!r}")
    field_options = options.get("fields") or {}
    if not isinstance(field_options, Mapping):
        report.add("invalid_search_options", "search_options.fields must be an object")
        return
    for name, config in field_options.items():
        if name not in fields:
            report.add("unknown_search_field", f"search_options names field {name} which is not indexed", field=name)
        boost = config.get("boost", 1) if isinstance(config, Mapping) else None
        if isinstance(boost, bool) or not isinstance(boost, (int, float)) or boost < 0:
            report.add("invalid_boost", f"Boost for {name} must be a non-negative number, got {boost!r}", field=name)


def _audit_results_options(payload: Mapping[str, Any], report: IndexAuditReport) -> None:
    options = payload.get("results_options") or {}
    if not isinstance(options, Mapping):
        report.add("invalid_results_options", "results_options must be an object")
        return
    for key in ("limit_results", "teaser_word_count"):
        value = options.get(key, 1)
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            report.add("invalid_results_options", f"results_options.{key} must be a positive integer, got {value!r}")


def _walk(root: Mapping[str, Any]) -> Iterator[tuple[str, Mapping[str, Any]]]:
    stack: list[tuple[str, Mapping[str, Any]]] = [("", root)]
    while stack:
        prefix, node = stack.pop()
        yield prefix, node
        for key, child in node.items():
            if key in _RESERVED_KEYS or not isinstance(child, Mapping):
                continue
            stack.append((prefix + key, child))


def _ref_in_range(ref: object, url_count: int) -> bool:
    # refs are canonical decimal strings: no sign, padding or leading zeros
    if not isinstance(ref, str) or not (ref.isascii() and ref.isdigit()) or str(int(ref)) != ref:
        return False
    return int(ref) < url_count
