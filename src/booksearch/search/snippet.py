"""Teaser extraction for search results.

A teaser is a fixed-size window of words taken from a section body. Words are
weighted and the heaviest window wins:

- words whose stem starts with a stemmed search term: 40
- the first word of a sentence: 8
- any other word: 2

When several windows tie for the maximum, the last one is used. Without any
matching word the teaser is the beginning of the body. Matching words are
wrapped in ``<em>`` tags. Everything copied from the body is HTML-escaped, so
the only markup in a teaser is the ``<em>`` highlighting.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import NamedTuple

from markupsafe import escape

from booksearch.search.analyzers import stem


SEARCH_TERM_WEIGHT = 40
SENTENCE_START_WEIGHT = 8
WORD_WEIGHT = 2


class WeightedWord(NamedTuple):
    text: str
    weight: int
    offset: int


def weigh_words(body: str, terms: Sequence[str]) -> tuple[list[WeightedWord], bool]:
    """Split ``body`` into weighted words with their character offsets.

    Returns the words and whether any of them matched a search term.
    """

    stemmed_terms = [stem(term.lower()) for term in terms if term and term.strip()]
    weighted: list[WeightedWord] = []
    found = False
    offset = 0
    for sentence in body.split(". "):
        weight = SENTENCE_START_WEIGHT
        for word in sentence.split(" "):
            if word:
                word_stem = stem(word.lower())
                if any(word_stem.startswith(term) for term in stemmed_terms):
                    weight = SEARCH_TERM_WEIGHT
                    found = True
                weighted.append(WeightedWord(word, weight, offset))
                weight = WORD_WEIGHT
            offset += len(word) + 1  # the following space, or the '.' ending the sentence
        offset += 1  # the space after '. '
    return weighted, found


def _best_window(weighted: Sequence[WeightedWord], window_size: int, found: bool) -> int:
    if not found:
        return 0
    current = sum(word.weight for word in weighted[:window_size])
    window_sums = [current]
    for start in range(len(weighted) - window_size):
        current += weighted[start + window_size].weight - weighted[start].weight
        window_sums.append(current)
    best_index = 0
    best_sum = 0
    for index in range(len(window_sums) - 1, -1, -1):
        if window_sums[index] > best_sum:
            best_sum = window_sums[index]
            best_index = index
    return best_index


def build_teaser(body: str, terms: Sequence[str], teaser_word_count: int = 30) -> str:
    """Return the ``teaser_word_count``-word excerpt of ``body`` that best covers ``terms``."""

    if not body:
        return body
    weighted, found = weigh_words(body, terms)
    if not weighted:
        return str(escape(body))

    window_size = min(len(weighted), max(teaser_word_count, 1))
    start = _best_window(weighted, window_size, found)

    parts: list[str] = []
    cursor = weighted[start].offset
    for word in weighted[start : start + window_size]:
        if cursor < word.offset:
            parts.append(escape(body[cursor : word.offset]))
        highlighted = word.weight == SEARCH_TERM_WEIGHT
        if highlighted:
            parts.append("<em>")
        cursor = word.offset + len(word.text)
        parts.append(escape(body[word.offset : cursor]))
        if highlighted:
            parts.append("</em>")
    return "".join(parts)
