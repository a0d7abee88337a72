"""Field-aware full-text index with term-frequency/IDF ranking.

The index keeps one :class:`InvertedIndex` per text field plus a
:class:`DocumentStore`, and serializes to the ``index`` object consumed by
client-side search widgets (``documentStore``, ``fields``, ``index``,
``lang``, ``pipeline``, ``ref``, ``version``).

Scoring for a single field, for each analyzed query token:

* candidate keys are the token itself or, with prefix expansion, every indexed
  term starting with it;
* each key contributes ``tf * idf * norm * penalty`` to every document that
  contains it, where ``idf = 1 + ln(N / (df + 1))``, ``norm`` is
  ``1 / sqrt(field_length)`` (1 for empty fields) and ``penalty`` discounts
  expanded keys by ``0.15 * len(token) / len(key)``;
* token scores merge by union (``OR``) or intersection (``AND``);
* the field total is scaled by the fraction of query tokens that matched the
  document exactly.

Field totals are multiplied by the field boost and summed.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
import logging
import math
from typing import Any

from booksearch.errors import DuplicateDocumentError, IndexFormatError, ReadOnlyIndexError
from booksearch.search.analyzers import DEFAULT_PIPELINE, AnalyzerPipeline, build_pipeline
from booksearch.search.document_store import DocumentStore
from booksearch.search.inverted_index import InvertedIndex
from booksearch.search.models import BoolMode, ResolvedFieldOptions, SearchOptions


logger = logging.getLogger(__name__)

INDEX_FORMAT_VERSION = "0.9.5"
_EXPANSION_PENALTY = 0.15


@dataclass(frozen=True)
class ScoredRef:
    """A document ref and its accumulated score."""

    ref: str
    score: float


class SearchIndex:
    """Inverted index over a fixed set of text fields."""

    def __init__(
        self,
        fields: Sequence[str],
        *,
        ref: str = "id",
        pipeline: Sequence[str] = DEFAULT_PIPELINE,
        lang: str = "English",
        version: str = INDEX_FORMAT_VERSION,
        save_documents: bool = True,
    ) -> None:
        if not fields:
            raise ValueError("An index needs at least one field")
        self.fields: list[str] = list(fields)
        self.ref = ref
        self.lang = lang
        self.version = version
        self.pipeline: AnalyzerPipeline = build_pipeline(pipeline)
        self.document_store = DocumentStore(save=save_documents)
        self.index: dict[str, InvertedIndex] = {name: InvertedIndex() for name in self.fields}
        self.read_only = False
        self._idf_cache: dict[tuple[str, str], float] = {}

    @property
    def pipeline_names(self) -> list[str]:
        return list(self.pipeline.names)

    def __len__(self) -> int:
        return self.document_store.length

    def add_document(self, doc: Mapping[str, Any]) -> None:
        """Analyze and index every field of ``doc`` under its ref."""

        if self.read_only:
            raise ReadOnlyIndexError("Loaded indexes are read-only; build a new index instead")
        raw_ref = doc.get(self.ref)
        if raw_ref is None or raw_ref == "":
            raise ValueError(f"Document is missing its ref field '{self.ref}'")
        doc_ref = str(raw_ref)
        if self.document_store.has_doc(doc_ref):
            raise DuplicateDocumentError(f"Document '{doc_ref}' is already indexed")

        self.document_store.add_doc(doc_ref, doc)
        for field_name in self.fields:
            terms = self.pipeline.terms(_field_text(doc.get(field_name)))
            self.document_store.add_field_length(doc_ref, field_name, len(terms))
            counts: dict[str, int] = {}
            for term in terms:
                counts[term] = counts.get(term, 0) + 1
            for term, count in counts.items():
                self.index[field_name].add_token(term, doc_ref, math.sqrt(count))
        self._idf_cache.clear()

    def analyze(self, text: str) -> list[str]:
        """Run ``text`` through the index pipeline."""

        return self.pipeline.terms(text)

    def idf(self, term: str, field_name: str) -> float:
        key = (field_name, term)
        cached = self._idf_cache.get(key)
        if cached is not None:
            return cached
        df = self.index[field_name].get_doc_frequency(term)
        value = 1 + math.log(self.document_store.length / (df + 1)) if self.document_store.length else 0.0
        self._idf_cache[key] = value
        return value

    def search(self, query: str, options: SearchOptions | None = None) -> list[ScoredRef]:
        """Return refs matching ``query`` ordered by descending score."""

        if not query or not query.strip():
            return []
        options = options or SearchOptions()
        query_tokens = self.analyze(query)
        if not query_tokens:
            return []

        for unknown in options.unknown_fields(self.fields):
            logger.warning("Search field '%s' is not part of the index; skipping it", unknown)

        totals: dict[str, float] = {}
        for field_name, field_options in options.resolve(self.fields).items():
            if field_options.boost == 0:
                continue
            field_scores = self.field_search(query_tokens, field_name, field_options)
            for doc_ref, score in field_scores.items():
                totals[doc_ref] = totals.get(doc_ref, 0.0) + score * field_options.boost

        ranked = [ScoredRef(ref=doc_ref, score=score) for doc_ref, score in totals.items()]
        ranked.sort(key=lambda item: item.score, reverse=True)
        return ranked

    def field_search(
        self,
        query_tokens: Sequence[str],
        field_name: str,
        field_options: ResolvedFieldOptions,
    ) -> dict[str, float]:
        """Score documents for one field before the field boost is applied."""

        field_index = self.index[field_name]
        scores: dict[str, float] | None = None
        matched_tokens: dict[str, list[str]] = {}

        for token in query_tokens:
            keys = field_index.expand_token(token) if field_options.expand else [token]
            token_scores: dict[str, float] = {}
            for key in keys:
                docs = field_index.get_docs(key)
                idf = self.idf(key, field_name)
                if scores is not None and field_options.bool_mode == "AND":
                    docs = {doc_ref: tf for doc_ref, tf in docs.items() if doc_ref in scores}
                if key == token:
                    for doc_ref in docs:
                        matched_tokens.setdefault(doc_ref, []).append(key)
                penalty = 1.0
                if key != token:
                    penalty = (1 - (len(key) - len(token)) / len(key)) * _EXPANSION_PENALTY
                for doc_ref, tf in docs.items():
                    field_length = self.document_store.get_field_length(doc_ref, field_name)
                    length_norm = 1 / math.sqrt(field_length) if field_length else 1.0
                    score = tf * idf * length_norm * penalty
                    token_scores[doc_ref] = token_scores.get(doc_ref, 0.0) + score
            scores = _merge_scores(scores, token_scores, field_options.bool_mode)

        return _coordinate(scores or {}, matched_tokens, len(query_tokens))

    def to_dict(self) -> dict[str, Any]:
        return {
            "documentStore": self.document_store.to_dict(),
            "fields": list(self.fields),
            "index": {name: self.index[name].to_dict() for name in self.fields},
            "lang": self.lang,
            "pipeline": self.pipeline_names,
            "ref": self.ref,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SearchIndex:
        """Load a serialized index; the result rejects further additions."""

        if not isinstance(data, Mapping):
            raise IndexFormatError("index must be an object")
        for key in ("documentStore", "fields", "index"):
            if key not in data:
                raise IndexFormatError(f"index is missing '{key}'")
        fields = data["fields"]
        if not isinstance(fields, list) or not fields or not all(isinstance(name, str) for name in fields):
            raise IndexFormatError("index.fields must be a non-empty list of field names")
        field_indexes = data["index"]
        if not isinstance(field_indexes, Mapping):
            raise IndexFormatError("index.index must be an object")
        missing = [name for name in fields if name not in field_indexes]
        if missing:
            raise IndexFormatError(f"index.index has no trie for field(s) {missing}")
        pipeline = data.get("pipeline", list(DEFAULT_PIPELINE))
        if not isinstance(pipeline, list):
            raise IndexFormatError("index.pipeline must be a list of function names")

        index = cls(
            fields,
            ref=str(data.get("ref", "id")),
            pipeline=pipeline,
            lang=str(data.get("lang", "English")),
            version=str(data.get("version", INDEX_FORMAT_VERSION)),
        )
        index.document_store = DocumentStore.from_dict(data["documentStore"])
        index.index = {name: InvertedIndex.from_dict(field_indexes[name]) for name in fields}
        index.read_only = True
        return index


def _field_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(str(item) for item in value)
    return str(value)


def _merge_scores(
    accumulated: dict[str, float] | None,
    token_scores: dict[str, float],
    bool_mode: BoolMode,
) -> dict[str, float]:
    if accumulated is None:
        return token_scores
    if bool_mode == "AND":
        return {
            doc_ref: accumulated[doc_ref] + score for doc_ref, score in token_scores.items() if doc_ref in accumulated
        }
    merged = dict(accumulated)
    for doc_ref, score in token_scores.items():
        merged[doc_ref] = merged.get(doc_ref, 0.0) + score
    return merged


def _coordinate(scores: dict[str, float], matched_tokens: Mapping[str, list[str]], token_count: int) -> dict[str, float]:
    for doc_ref in scores:
        matched = matched_tokens.get(doc_ref)
        if not matched:
            continue
        scores[doc_ref] = scores[doc_ref] * len(matched) / token_count
    return scores
