"""Per-field inverted index stored as a character trie.

Terms are spelled out one character per level. Every node carries a document
frequency (``df``) and a ``docs`` mapping; both stay empty on interior nodes
and are filled on the node that terminates an indexed term::

    {"root": {"df": 0, "docs": {}, "t": {"df": 0, "docs": {}, "o": {...}}}}

Term frequencies stored in ``docs`` are already normalized by the index
(square root of the raw count), so lookups return them unchanged.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
import math
from typing import Any

from booksearch.errors import IndexFormatError


_RESERVED_KEYS = frozenset({"df", "docs"})


class TrieNode:
    """A single trie node: per-term statistics plus child characters."""

    __slots__ = ("children", "df", "docs")

    def __init__(self) -> None:
        self.df = 0
        self.docs: dict[str, float] = {}
        self.children: dict[str, TrieNode] = {}

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "df": self.df,
            "docs": {ref: {"tf": tf} for ref, tf in self.docs.items()},
        }
        for char, child in self.children.items():
            payload[char] = child.to_dict()
        return payload

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, path: str = "") -> TrieNode:
        if not isinstance(data, Mapping):
            raise IndexFormatError(f"Trie node for '{path}' must be an object")
        node = cls()
        df = data.get("df", 0)
        if isinstance(df, bool) or not isinstance(df, int):
            raise IndexFormatError(f"Trie node for '{path}' has a non-integer df: {df!r}")
        node.df = df
        docs = data.get("docs", {})
        if not isinstance(docs, Mapping):
            raise IndexFormatError(f"Trie node for '{path}' has malformed docs")
        for ref, entry in docs.items():
            if not isinstance(entry, Mapping) or "tf" not in entry:
                raise IndexFormatError(f"Posting for '{path}' in doc {ref} is missing tf")
            tf = entry["tf"]
            if isinstance(tf, bool) or not isinstance(tf, (int, float)):
                raise IndexFormatError(f"Posting for '{path}' in doc {ref} has a non-numeric tf")
            node.docs[str(ref)] = float(tf)
        for key, value in data.items():
            if key in _RESERVED_KEYS:
                continue
            node.children[key] = cls.from_dict(value, path=path + key)
        return node


class InvertedIndex:
    """Character trie mapping terms to the documents that contain them."""

    def __init__(self) -> None:
        self.root = TrieNode()

    def add_token(self, token: str, ref: str, tf: float) -> None:
        """Record ``tf`` for ``ref`` under ``token``.

        A ref seen for the first time increments the term's document frequency;
        re-adding an existing ref only replaces its term frequency.
        """

        if not token:
            return
        if not math.isfinite(tf) or tf < 0:
            raise ValueError(f"Term frequency must be a finite non-negative number, got {tf!r}")
        node = self.root
        for char in token:
            child = node.children.get(char)
            if child is None:
                child = TrieNode()
                node.children[char] = child
            node = child
        if ref not in node.docs:
            node.df += 1
        node.docs[ref] = tf

    def get_node(self, token: str) -> TrieNode | None:
        if not token:
            return None
        node = self.root
        for char in token:
            node = node.children.get(char)
            if node is None:
                return None
        return node

    def has_token(self, token: str) -> bool:
        return self.get_node(token) is not None

    def get_docs(self, token: str) -> dict[str, float]:
        """Return ``ref -> tf`` for an exact term (empty when absent)."""

        node = self.get_node(token)
        if node is None:
            return {}
        return dict(node.docs)

    def get_term_frequency(self, token: str, ref: str) -> float:
        node = self.get_node(token)
        if node is None:
            return 0.0
        return node.docs.get(ref, 0.0)

    def get_doc_frequency(self, token: str) -> int:
        node = self.get_node(token)
        if node is None:
            return 0
        return node.df

    def expand_token(self, token: str) -> list[str]:
        """Return every indexed term that starts with ``token``, including itself."""

        node = self.get_node(token)
        if node is None:
            return []
        expanded: list[str] = []
        stack: list[tuple[str, TrieNode]] = [(token, node)]
        while stack:
            prefix, current = stack.pop()
            if current.df > 0:
                expanded.append(prefix)
            # reversed so that children are visited in insertion order
            for char, child in reversed(list(current.children.items())):
                stack.append((prefix + char, child))
        return expanded

    def iter_terms(self) -> Iterator[tuple[str, TrieNode]]:
        """Yield ``(term, node)`` for every node that terminates an indexed term."""

        stack: list[tuple[str, TrieNode]] = [("", self.root)]
        while stack:
            prefix, node = stack.pop()
            if node.df > 0 or node.docs:
                yield prefix, node
            for char, child in node.children.items():
                stack.append((prefix + char, child))

    def term_count(self) -> int:
        return sum(1 for _ in self.iter_terms())

    def to_dict(self) -> dict[str, Any]:
        return {"root": self.root.to_dict()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> InvertedIndex:
        if not isinstance(data, Mapping) or "root" not in data:
            raise IndexFormatError("Field index must be an object with a 'root' node")
        index = cls()
        index.root = TrieNode.from_dict(data["root"])
        return index
