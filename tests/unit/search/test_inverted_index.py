"""Unit tests for the per-field character trie."""

import math

import pytest

from booksearch.errors import IndexFormatError
from booksearch.search.inverted_index import InvertedIndex, TrieNode


pytestmark = pytest.mark.unit


@pytest.fixture
def trie():
    index = InvertedIndex()
    index.add_token("templat", "0", math.sqrt(3))
    index.add_token("templat", "1", 1.0)
    index.add_token("temp", "2", 1.0)
    index.add_token("test", "2", 2.0)
    return index


class TestAddToken:
    def test_df_counts_distinct_documents(self, trie):
        assert trie.get_doc_frequency("templat") == 2
        assert trie.get_docs("templat") == {"0": math.sqrt(3), "1": 1.0}

    def test_re_adding_a_ref_replaces_tf_without_bumping_df(self, trie):
        trie.add_token("templat", "0", 2.0)

        assert trie.get_doc_frequency("templat") == 2
        assert trie.get_term_frequency("templat", "0") == 2.0

    def test_interior_nodes_carry_no_postings(self, trie):
        node = trie.get_node("tem")

        assert node is not None
        assert node.df == 0
        assert node.docs == {}

    @pytest.mark.parametrize("tf", [-1.0, math.inf, math.nan])
    def test_rejects_invalid_term_frequency(self, trie, tf):
        with pytest.raises(ValueError):
            trie.add_token("cairo", "3", tf)

    def test_empty_token_is_ignored(self, trie):
        trie.add_token("", "9", 1.0)

        assert trie.root.docs == {}


class TestLookups:
    def test_missing_terms(self, trie):
        assert trie.get_docs("cairo") == {}
        assert trie.get_doc_frequency("cairo") == 0
        assert trie.get_term_frequency("templat", "9") == 0.0
        assert trie.has_token("cairo") is False
        assert trie.get_node("") is None

    def test_get_docs_returns_a_copy(self, trie):
        trie.get_docs("templat")["5"] = 1.0

        assert "5" not in trie.get_docs("templat")

    def test_expand_token_lists_prefix_matches_in_insertion_order(self, trie):
        assert trie.expand_token("te") == ["temp", "templat", "test"]

    def test_expand_token_includes_exact_term(self, trie):
        assert trie.expand_token("templat") == ["templat"]

    def test_expand_token_unknown_prefix(self, trie):
        assert trie.expand_token("x") == []

    def test_iter_terms_and_count(self, trie):
        terms = {term for term, _ in trie.iter_terms()}

        assert terms == {"templat", "temp", "test"}
        assert trie.term_count() == 3


class TestSerialization:
    def test_to_dict_nests_one_character_per_level(self):
        index = InvertedIndex()
        index.add_token("ab", "0", 1.0)

        assert index.to_dict() == {
            "root": {
                "df": 0,
                "docs": {},
                "a": {"df": 0, "docs": {}, "b": {"df": 1, "docs": {"0": {"tf": 1.0}}}},
            }
        }

    def test_from_dict_restores_postings(self, trie):
        restored = InvertedIndex.from_dict(trie.to_dict())

        assert restored.get_docs("templat") == trie.get_docs("templat")
        assert restored.expand_token("te") == trie.expand_token("te")

    def test_from_dict_accepts_integer_tf(self):
        restored = InvertedIndex.from_dict({"root": {"df": 0, "docs": {}, "a": {"df": 1, "docs": {"4": {"tf": 1}}}}})

        assert restored.get_term_frequency("a", "4") == 1.0

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"root": []},
            {"root": {"df": "1", "docs": {}}},
            {"root": {"df": 0, "docs": {}, "a": {"df": 1, "docs": {"0": {}}}}},
            {"root": {"df": 0, "docs": {}, "a": {"df": 1, "docs": {"0": {"tf": "high"}}}}},
        ],
    )
    def test_from_dict_rejects_malformed_tries(self, payload):
        with pytest.raises(IndexFormatError):
            InvertedIndex.from_dict(payload)

    def test_node_from_dict_reports_path(self):
        with pytest.raises(IndexFormatError, match="'ab'"):
            TrieNode.from_dict({"df": 0, "docs": {}, "a": {"df": 0, "docs": {}, "b": {"df": True, "docs": {}}}})
