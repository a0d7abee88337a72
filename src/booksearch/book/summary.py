"""Parse a book's ``SUMMARY.md`` into an ordered list of chapters.

Supported structure::

    # Summary

    [Introduction](README.md)          <- prefix chapter (unnumbered)

    # Guide                            <- part title (ignored for breadcrumbs)

    - [Installation](guide/install.md) <- numbered chapter "1."
        - [Linux](guide/linux.md)      <- nested chapter "1.1."
    - [Draft chapter]()                <- draft: no file, kept only as a parent

    ---                                <- separator

    [Contributors](contributors.md)    <- suffix chapter (unnumbered)
"""

from __future__ import annotations

from dataclasses import dataclass
import re


_LINK_PATTERN = re.compile(r"^\[(?P<name>(?:[^\]\\]|\\.)*)\]\((?P<path>[^)]*)\)\s*$")
_LIST_ITEM_PATTERN = re.compile(r"^(?P<indent>[ \t]*)[-*+]\s+(?P<rest>.*)$")
_SEPARATOR_PATTERN = re.compile(r"^\s*(?:-{3,}|\*{3,}|_{3,})\s*$")
_TAB_WIDTH = 4


@dataclass(frozen=True)
class Chapter:
    """A chapter entry; ``path`` is relative to the book's source directory."""

    name: str
    path: str
    parents: tuple[str, ...] = ()
    number: str | None = None

    @property
    def html_path(self) -> str:
        """Rendered page path, ``README.md`` files becoming ``index.html``."""
        stem, _, _ = self.path.rpartition(".")
        stem = stem or self.path
        if stem == "README" or stem.endswith("/README"):
            stem = stem[: -len("README")] + "index"
        return f"{stem}.html"


def parse_summary(text: str) -> list[Chapter]:
    """Return the chapters of ``text`` in reading order, drafts excluded."""

    chapters: list[Chapter] = []
    # (indent, name) of the open list items that can parent the next item
    stack: list[tuple[int, str]] = []
    counters: list[int] = []
    seen_title = False

    for raw_line in text.splitlines():
        line = raw_line.rstrip()
        if not line.strip():
            continue
        stripped = line.strip()

        if stripped.startswith("#"):
            if seen_title:
                stack.clear()  # part titles close any open nesting
            seen_title = True
            continue
        if _SEPARATOR_PATTERN.match(line):
            stack.clear()
            continue

        item = _LIST_ITEM_PATTERN.match(line)
        if item:
            indent = len(item.group("indent").expandtabs(_TAB_WIDTH))
            link = _LINK_PATTERN.match(item.group("rest").strip())
            if not link:
                continue
            while stack and stack[-1][0] >= indent:
                stack.pop()
            depth = len(stack)
            del counters[depth + 1 :]
            while len(counters) <= depth:
                counters.append(0)
            counters[depth] += 1
            name = _unescape(link.group("name"))
            path = link.group("path").strip()
            parents = tuple(entry_name for _, entry_name in stack)
            stack.append((indent, name))
            if path:
                number = ".".join(str(count) for count in counters[: depth + 1]) + "."
                chapters.append(Chapter(name=name, path=path, parents=parents, number=number))
            continue

        link = _LINK_PATTERN.match(stripped)
        if link and link.group("path").strip():
            stack.clear()
            chapters.append(Chapter(name=_unescape(link.group("name")), path=link.group("path").strip()))

    return chapters


def _unescape(name: str) -> str:
    return re.sub(r"\\(.)", r"\1", name).strip()
