"""Split a markdown chapter into searchable sections.

Headings up to the configured split level start a new section; deeper headings
stay inside the current section's body. Each section records the heading, a
plain-text body, its breadcrumb trail and the anchor of its heading so that a
result can link straight to it.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
import re

from bs4 import BeautifulSoup

from booksearch.book.summary import Chapter


BREADCRUMB_SEPARATOR = " » "

_HEADING_PATTERN = re.compile(r"^ {0,3}(#{1,6})\s+(.*?)(?:\s+#+)?\s*$")
_CUSTOM_ID_PATTERN = re.compile(r"\s*\{#(?P<id>[\w\-]+)(?:\s+[^}]*)?\}\s*$")
_FENCE_PATTERN = re.compile(r"^\s*(```+|~~~+)")
_DIRECTIVE_PATTERN = re.compile(r"\{\{#[^}]*\}\}")
_REFERENCE_DEFINITION = re.compile(r"^\s{0,3}\[[^\]]+\]:\s+\S+.*$")
_HTML_TAG_PATTERN = re.compile(r"</?[A-Za-z!][^>]*>")
_HTML_COMMENT_PATTERN = re.compile(r"<!--.*?-->", re.DOTALL)
_IMAGE_PATTERN = re.compile(r"!\[([^\]]*)\]\([^)]*\)")
_INLINE_LINK_PATTERN = re.compile(r"\[([^\]]*)\]\([^)]*\)")
_REFERENCE_LINK_PATTERN = re.compile(r"\[([^\]]+)\]\[[^\]]*\]")
_AUTOLINK_PATTERN = re.compile(r"<((?:https?|mailto):[^>\s]+)>")
_INLINE_CODE_PATTERN = re.compile(r"`+([^`]*)`+")
_STRONG_PATTERN = re.compile(r"(\*\*|__)(?=\S)(.+?)(?<=\S)\1")
_EMPHASIS_PATTERN = re.compile(r"(?<![\w*])([*_])(?=\S)(.+?)(?<=\S)\1(?![\w*])")
_STRIKE_PATTERN = re.compile(r"~~(.+?)~~")
_BLOCK_PREFIX_PATTERN = re.compile(r"^\s*(?:>\s?)+|^\s*(?:[-*+]|\d+[.)])\s+(?:\[[ xX]\]\s+)?")
_TABLE_RULE_PATTERN = re.compile(r"^\s*\|?\s*:?-{3,}:?\s*(?:\|\s*:?-{3,}:?\s*)*\|?\s*$")
_HORIZONTAL_RULE_PATTERN = re.compile(r"^\s*(?:-{3,}|\*{3,}|_{3,})\s*$")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class Section:
    """One searchable unit of a chapter."""

    title: str
    body: str
    breadcrumbs: tuple[str, ...]
    page: str
    anchor: str | None = None

    @property
    def url(self) -> str:
        if self.anchor:
            return f"{self.page}#{self.anchor}"
        return self.page

    @property
    def breadcrumb_text(self) -> str:
        return BREADCRUMB_SEPARATOR.join(self.breadcrumbs)


@dataclass
class _SectionDraft:
    title: str
    anchor: str | None
    lines: list[str] = field(default_factory=list)


def normalize_id(content: str) -> str:
    """Turn heading text into an anchor id.

    Alphanumerics, ``_`` and ``-`` are kept (ASCII letters lowercased),
    whitespace becomes ``-`` and everything else is dropped.
    """

    chars: list[str] = []
    for char in content:
        if char.isalnum() or char in "_-":
            chars.append(char.lower() if char.isascii() else char)
        elif char.isspace():
            chars.append("-")
    return "".join(chars)


class AnchorRegistry:
    """Hands out unique anchors per page, suffixing repeats with ``-1``, ``-2``..."""

    def __init__(self) -> None:
        self._counts: dict[str, int] = {}

    def unique(self, anchor: str) -> str:
        count = self._counts.get(anchor)
        if count is None:
            self._counts[anchor] = 0
            return anchor
        while True:
            count += 1
            candidate = f"{anchor}-{count}"
            if candidate not in self._counts:
                break
        self._counts[anchor] = count
        self._counts[candidate] = 0
        return candidate


def split_sections(
    markdown: str,
    chapter: Chapter,
    *,
    split_level: int = 3,
    max_word_length: int = 80,
) -> list[Section]:
    """Split one chapter's markdown into sections."""

    breadcrumb_base = (*chapter.parents, chapter.name)
    anchors = AnchorRegistry()
    drafts: list[_SectionDraft] = []
    current: _SectionDraft | None = None

    for line, in_code in _iter_lines(markdown):
        heading = None if in_code else _HEADING_PATTERN.match(line)
        if heading and len(heading.group(1)) <= split_level:
            raw_title = heading.group(2)
            custom = _CUSTOM_ID_PATTERN.search(raw_title)
            if custom:
                raw_title = raw_title[: custom.start()]
            title = _inline_text(raw_title)
            anchor = anchors.unique(custom.group("id") if custom else normalize_id(title))
            current = _SectionDraft(title=title, anchor=anchor)
            drafts.append(current)
            continue
        if current is None:
            if not line.strip():
                continue
            current = _SectionDraft(title=chapter.name, anchor=None)
            drafts.append(current)
        if heading:
            line = heading.group(2)
        current.lines.append(line if in_code else _line_text(line))

    sections: list[Section] = []
    for draft in drafts:
        body = _clean_body(draft.lines, max_word_length)
        if draft.anchor is None and not body:
            continue
        breadcrumbs = breadcrumb_base if draft.anchor is None else (*breadcrumb_base, draft.title)
        sections.append(
            Section(
                title=draft.title,
                body=body,
                breadcrumbs=breadcrumbs,
                page=chapter.html_path,
                anchor=draft.anchor,
            )
        )
    return sections


def _iter_lines(markdown: str) -> Iterator[tuple[str, bool]]:
    """Yield ``(line, inside_fenced_code)``; fence lines themselves are dropped."""

    text = _HTML_COMMENT_PATTERN.sub("", markdown)
    fence: str | None = None
    for line in text.splitlines():
        marker = _FENCE_PATTERN.match(line)
        if marker:
            token = marker.group(1)
            if fence is None:
                fence = token[:3]
                continue
            if token.startswith(fence):
                fence = None
                continue
        if fence is None and (_REFERENCE_DEFINITION.match(line) or _DIRECTIVE_PATTERN.fullmatch(line.strip())):
            continue
        yield line, fence is not None


def _line_text(line: str) -> str:
    if _TABLE_RULE_PATTERN.match(line) or _HORIZONTAL_RULE_PATTERN.match(line):
        return ""
    text = _BLOCK_PREFIX_PATTERN.sub("", line)
    if "|" in text:
        text = text.strip().strip("|").replace("|", " ")
    return _inline_text(text)


def _inline_text(text: str) -> str:
    text = _DIRECTIVE_PATTERN.sub("", text)
    text = _AUTOLINK_PATTERN.sub(r"\1", text)
    text = _IMAGE_PATTERN.sub(r"\1", text)
    text = _INLINE_LINK_PATTERN.sub(r"\1", text)
    text = _REFERENCE_LINK_PATTERN.sub(r"\1", text)
    text = _INLINE_CODE_PATTERN.sub(r"\1", text)
    text = _STRONG_PATTERN.sub(r"\2", text)
    text = _EMPHASIS_PATTERN.sub(r"\2", text)
    text = _STRIKE_PATTERN.sub(r"\1", text)
    if _HTML_TAG_PATTERN.search(text) or "&" in text:
        text = strip_html(text)
    return _WHITESPACE.sub(" ", text).strip()


def strip_html(fragment: str) -> str:
    """Return the text content of an HTML fragment, entities decoded."""

    return BeautifulSoup(fragment, "html.parser").get_text(" ")


def _clean_body(lines: Sequence[str], max_word_length: int) -> str:
    words = _WHITESPACE.split(" ".join(lines).strip())
    return " ".join(_bounded_words(words, max_word_length))


def _bounded_words(words: Iterable[str], max_word_length: int) -> Iterator[str]:
    for word in words:
        if word and len(word) <= max_word_length:
            yield word
