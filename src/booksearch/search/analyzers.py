"""Analyzer utilities for book search indexes.

Indexes record their text pipeline as a list of function names
(``["trimmer", "stopWordFilter", "stemmer"]``). The filters registered here
implement those stages so that the same pipeline is applied when documents are
indexed and when queries are analyzed.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
import re
from typing import Protocol

from booksearch.errors import UnknownPipelineFunctionError


@dataclass
class Token:
    """Represents a token emitted by analyzers."""

    text: str
    position: int
    start_char: int
    end_char: int

    def copy_with(self, **updates: object) -> Token:
        data: dict[str, object] = {
            "text": self.text,
            "position": self.position,
            "start_char": self.start_char,
            "end_char": self.end_char,
        }
        data.update(updates)
        return Token(**data)  # type: ignore[arg-type]


class Tokenizer(Protocol):
    """Protocol implemented by tokenizers."""

    def __call__(self, text: str) -> Iterator[Token]:  # pragma: no cover - interface definition
        ...


class TokenFilter(Protocol):
    """Protocol implemented by token filters."""

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:  # pragma: no cover - interface definition
        ...


class SeparatorTokenizer:
    """Lowercases the input and splits it on whitespace and hyphens."""

    def __init__(self, pattern: str = r"[^\s\-]+") -> None:
        self.pattern = re.compile(pattern, re.UNICODE)

    def __call__(self, text: str | None) -> Iterator[Token]:
        if not text:
            return
        for position, match in enumerate(self.pattern.finditer(text.lower())):
            yield Token(
                text=match.group(0),
                position=position,
                start_char=match.start(),
                end_char=match.end(),
            )


class TrimmerFilter:
    """Strips leading and trailing non-word characters, dropping empty tokens."""

    _LEADING = re.compile(r"^\W+", re.UNICODE)
    _TRAILING = re.compile(r"\W+$", re.UNICODE)

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            text = self._TRAILING.sub("", self._LEADING.sub("", token.text))
            if not text:
                continue
            if text == token.text:
                yield token
            else:
                offset = token.text.find(text)
                yield token.copy_with(
                    text=text,
                    start_char=token.start_char + offset,
                    end_char=token.start_char + offset + len(text),
                )


DEFAULT_STOPWORDS = [
    "a",
    "able",
    "about",
    "across",
    "after",
    "all",
    "almost",
    "also",
    "am",
    "among",
    "an",
    "and",
    "any",
    "are",
    "as",
    "at",
    "be",
    "because",
    "been",
    "but",
    "by",
    "can",
    "cannot",
    "could",
    "dear",
    "did",
    "do",
    "does",
    "either",
    "else",
    "ever",
    "every",
    "for",
    "from",
    "get",
    "got",
    "had",
    "has",
    "have",
    "he",
    "her",
    "hers",
    "him",
    "his",
    "how",
    "however",
    "i",
    "if",
    "in",
    "into",
    "is",
    "it",
    "its",
    "just",
    "least",
    "let",
    "like",
    "likely",
    "may",
    "me",
    "might",
    "most",
    "must",
    "my",
    "neither",
    "no",
    "nor",
    "not",
    "of",
    "off",
    "often",
    "on",
    "only",
    "or",
    "other",
    "our",
    "own",
    "rather",
    "said",
    "say",
    "says",
    "she",
    "should",
    "since",
    "so",
    "some",
    "than",
    "that",
    "the",
    "their",
    "them",
    "then",
    "there",
    "these",
    "they",
    "this",
    "tis",
    "to",
    "too",
    "twas",
    "us",
    "wants",
    "was",
    "we",
    "were",
    "what",
    "when",
    "where",
    "which",
    "while",
    "who",
    "whom",
    "why",
    "will",
    "with",
    "would",
    "yet",
    "you",
    "your",
]


class StopWordFilter:
    """Removes stopwords from the stream."""

    def __init__(self, stopwords: Sequence[str] | None = None) -> None:
        vocab = stopwords if stopwords is not None else DEFAULT_STOPWORDS
        self.stopwords = {word.lower() for word in vocab}

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            if token.text and token.text not in self.stopwords:
                yield token


class PorterStemFilter:
    """Reduces every token to its Porter stem."""

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            stemmed = stem(token.text)
            yield token if stemmed == token.text else token.copy_with(text=stemmed)


# Porter's measure m of a stem is the n in [C](VC){n}[V].
_CONSONANTS = "[^aeiou][^aeiouy]*"
_VOWELS = "[aeiouy][aeiou]*"
_M_GT_0 = re.compile(f"^({_CONSONANTS})?{_VOWELS}{_CONSONANTS}")
_M_EQ_1 = re.compile(f"^({_CONSONANTS})?{_VOWELS}{_CONSONANTS}({_VOWELS})?$")
_M_GT_1 = re.compile(f"^({_CONSONANTS})?{_VOWELS}{_CONSONANTS}{_VOWELS}{_CONSONANTS}")
_HAS_VOWEL = re.compile(f"^({_CONSONANTS})?[aeiouy]")
# consonant-vowel-consonant ending, the last consonant not w, x or y
_CVC = re.compile(f"^{_CONSONANTS}[aeiouy][^aeiouwxy]$")

_STEP1A_SSES_IES = re.compile(r"^(.+?)(ss|i)es$")
_STEP1A_S = re.compile(r"^(.+?)([^s])s$")
_STEP1B_EED = re.compile(r"^(.+?)eed$")
_STEP1B_ED_ING = re.compile(r"^(.+?)(ed|ing)$")
_STEP1B_ADD_E = re.compile(r"(at|bl|iz)$")
_DOUBLE_CONSONANT = re.compile(r"([^aeiouylsz])\1$")
_STEP1C = re.compile(r"^(.+?[^aeiou])y$")

_STEP2_SUFFIXES: dict[str, str] = {
    "ational": "ate",
    "tional": "tion",
    "enci": "ence",
    "anci": "ance",
    "izer": "ize",
    "bli": "ble",
    "alli": "al",
    "entli": "ent",
    "eli": "e",
    "ousli": "ous",
    "ization": "ize",
    "ation": "ate",
    "ator": "ate",
    "alism": "al",
    "iveness": "ive",
    "fulness": "ful",
    "ousness": "ous",
    "aliti": "al",
    "iviti": "ive",
    "biliti": "ble",
    "logi": "log",
}
_STEP3_SUFFIXES: dict[str, str] = {
    "icate": "ic",
    "ative": "",
    "alize": "al",
    "iciti": "ic",
    "ical": "ic",
    "ful": "",
    "ness": "",
}
_STEP2 = re.compile(f"^(.+?)({'|'.join(_STEP2_SUFFIXES)})$")
_STEP3 = re.compile(f"^(.+?)({'|'.join(_STEP3_SUFFIXES)})$")
_STEP4 = re.compile(r"^(.+?)(al|ance|ence|er|ic|able|ible|ant|ement|ment|ent|ou|ism|ate|iti|ous|ive|ize)$")
_STEP4_ION = re.compile(r"^(.+?)(s|t)(ion)$")
_STEP5_E = re.compile(r"^(.+?)e$")


def stem(word: str) -> str:
    """Return the Porter stem of ``word``.

    Follows the stemmer bundled with client-side search widgets, so stems
    match those already stored in published indexes: ``introduction`` ->
    ``introduct``, ``applications`` -> ``applic``, ``journey`` stays as is.
    """

    word = word.lower()
    if len(word) < 3:
        return word
    leading_y = word.startswith("y")
    if leading_y:
        # a leading y is a consonant; upper case keeps it out of the vowel classes
        word = "Y" + word[1:]

    match = _STEP1A_SSES_IES.match(word) or _STEP1A_S.match(word)
    if match:
        word = match.group(1) + match.group(2)

    match = _STEP1B_EED.match(word)
    if match:
        if _M_GT_0.match(match.group(1)):
            word = word[:-1]
    else:
        match = _STEP1B_ED_ING.match(word)
        if match and _HAS_VOWEL.match(match.group(1)):
            word = match.group(1)
            if _STEP1B_ADD_E.search(word):
                word += "e"
            elif _DOUBLE_CONSONANT.search(word):
                word = word[:-1]
            elif _CVC.match(word):
                word += "e"

    match = _STEP1C.match(word)
    if match:
        word = match.group(1) + "i"

    for pattern, replacements in ((_STEP2, _STEP2_SUFFIXES), (_STEP3, _STEP3_SUFFIXES)):
        match = pattern.match(word)
        if match and _M_GT_0.match(match.group(1)):
            word = match.group(1) + replacements[match.group(2)]

    match = _STEP4.match(word)
    if match:
        if _M_GT_1.match(match.group(1)):
            word = match.group(1)
    else:
        match = _STEP4_ION.match(word)
        if match and _M_GT_1.match(match.group(1) + match.group(2)):
            word = match.group(1) + match.group(2)

    match = _STEP5_E.match(word)
    if match:
        base = match.group(1)
        if _M_GT_1.match(base) or (_M_EQ_1.match(base) and not _CVC.match(base)):
            word = base
    if word.endswith("ll") and _M_GT_1.match(word):
        word = word[:-1]

    if leading_y:
        word = "y" + word[1:]
    return word


class AnalyzerPipeline:
    """Composable analyzer pipeline (tokenizer + filters)."""

    def __init__(
        self,
        tokenizer: Tokenizer,
        filters: Sequence[TokenFilter] | None = None,
        *,
        names: Sequence[str] = (),
    ) -> None:
        self.tokenizer = tokenizer
        self.filters = list(filters or [])
        self.names = tuple(names)

    def __call__(self, text: str | None) -> list[Token]:
        stream: Iterable[Token] = self.tokenizer(text or "")
        for token_filter in self.filters:
            stream = token_filter(stream)
        tokens = list(stream)
        for idx, token in enumerate(tokens):  # normalize positions post-filtering
            token.position = idx
        return tokens

    def terms(self, text: str | None) -> list[str]:
        """Return only the token texts produced for ``text``."""

        return [token.text for token in self(text)]


DEFAULT_PIPELINE: tuple[str, ...] = ("trimmer", "stopWordFilter", "stemmer")

PIPELINE_FUNCTIONS: dict[str, Callable[[], TokenFilter]] = {
    "trimmer": TrimmerFilter,
    "stopWordFilter": StopWordFilter,
    "stemmer": PorterStemFilter,
}


def build_pipeline(names: Sequence[str] | None = None) -> AnalyzerPipeline:
    """Return the analyzer pipeline described by a serialized pipeline descriptor."""

    resolved = tuple(DEFAULT_PIPELINE if names is None else names)
    unknown = [name for name in resolved if name not in PIPELINE_FUNCTIONS]
    if unknown:
        msg = f"Unknown pipeline function(s) {unknown}. Available: {sorted(PIPELINE_FUNCTIONS)}"
        raise UnknownPipelineFunctionError(msg)
    filters = [PIPELINE_FUNCTIONS[name]() for name in resolved]
    return AnalyzerPipeline(SeparatorTokenizer(), filters, names=resolved)
