"""Document store holding stored section fields and per-field token counts."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from booksearch.errors import IndexFormatError


class DocumentStore:
    """Stored documents plus the field lengths used for length normalization.

    ``doc_info`` is always kept because scoring needs field lengths. The
    documents themselves are only serialized when ``save`` is true.
    """

    def __init__(self, save: bool = True) -> None:
        self.save = save
        self.docs: dict[str, dict[str, Any]] = {}
        self.doc_info: dict[str, dict[str, int]] = {}
        self.length = 0

    def add_doc(self, ref: str, doc: Mapping[str, Any]) -> None:
        if ref not in self.docs and ref not in self.doc_info:
            self.length += 1
        self.docs[ref] = dict(doc) if self.save else {}
        self.doc_info.setdefault(ref, {})

    def get_doc(self, ref: str) -> dict[str, Any] | None:
        return self.docs.get(ref)

    def has_doc(self, ref: str) -> bool:
        return ref in self.doc_info or ref in self.docs

    def add_field_length(self, ref: str, field_name: str, length: int) -> None:
        if length < 0:
            raise ValueError(f"Field length must be non-negative, got {length}")
        self.doc_info.setdefault(ref, {})[field_name] = length

    def get_field_length(self, ref: str, field_name: str) -> int:
        return self.doc_info.get(ref, {}).get(field_name, 0)

    def refs(self) -> list[str]:
        """Document refs in insertion order."""
        return list(self.doc_info)

    def to_dict(self) -> dict[str, Any]:
        return {
            "docInfo": {ref: dict(info) for ref, info in self.doc_info.items()},
            "docs": {ref: dict(doc) for ref, doc in self.docs.items()} if self.save else {},
            "length": self.length,
            "save": self.save,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DocumentStore:
        if not isinstance(data, Mapping):
            raise IndexFormatError("documentStore must be an object")
        store = cls(save=bool(data.get("save", True)))
        doc_info = data.get("docInfo", {})
        docs = data.get("docs", {})
        if not isinstance(doc_info, Mapping) or not isinstance(docs, Mapping):
            raise IndexFormatError("documentStore.docInfo and documentStore.docs must be objects")
        for ref, info in doc_info.items():
            if not isinstance(info, Mapping):
                raise IndexFormatError(f"docInfo for doc {ref} must be an object")
            store.doc_info[str(ref)] = {str(name): _coerce_length(ref, name, value) for name, value in info.items()}
        for ref, doc in docs.items():
            if not isinstance(doc, Mapping):
                raise IndexFormatError(f"Stored doc {ref} must be an object")
            store.docs[str(ref)] = dict(doc)
        length = data.get("length", len(store.doc_info))
        if isinstance(length, bool) or not isinstance(length, int):
            raise IndexFormatError(f"documentStore.length must be an integer, got {length!r}")
        store.length = length
        return store


def _coerce_length(ref: object, field_name: object, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise IndexFormatError(f"docInfo[{ref}][{field_name}] must be a number")
    return int(value)
