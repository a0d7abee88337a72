"""Unit tests for splitting markdown chapters into sections."""

import pytest

from booksearch.book.sections import AnchorRegistry, Section, normalize_id, split_sections, strip_html
from booksearch.book.summary import Chapter


pytestmark = pytest.mark.unit


@pytest.fixture
def chapter():
    return Chapter(name="Introduction", path="introduction.md", parents=("Guide",))


class TestNormalizeId:
    @pytest.mark.parametrize(
        ("heading", "expected"),
        [
            ("Why Templates?", "why-templates"),
            ("What You'll Find", "what-youll-find"),
            ("Welcome to Cairo Academy: Jumpstart", "welcome-to-cairo-academy-jumpstart"),
            ("snake_case and-dashes", "snake_case-and-dashes"),
            ("Déjà Vu", "déjà-vu"),
        ],
    )
    def test_normalize_id(self, heading, expected):
        assert normalize_id(heading) == expected

    def test_registry_suffixes_repeats(self):
        anchors = AnchorRegistry()

        assert [anchors.unique("usage") for _ in range(3)] == ["usage", "usage-1", "usage-2"]

    def test_registry_skips_taken_suffixes(self):
        anchors = AnchorRegistry()

        assert anchors.unique("usage-1") == "usage-1"
        assert anchors.unique("usage") == "usage"
        assert anchors.unique("usage") == "usage-2"


class TestSplitSections:
    def test_headings_start_sections(self, chapter):
        markdown = "# Introduction\n\nWelcome aboard.\n\n## Why Templates?\n\nSkip the setup.\n"

        sections = split_sections(markdown, chapter)

        assert sections == [
            Section(
                title="Introduction",
                body="Welcome aboard.",
                breadcrumbs=("Guide", "Introduction", "Introduction"),
                page="introduction.html",
                anchor="introduction",
            ),
            Section(
                title="Why Templates?",
                body="Skip the setup.",
                breadcrumbs=("Guide", "Introduction", "Why Templates?"),
                page="introduction.html",
                anchor="why-templates",
            ),
        ]
        assert sections[1].url == "introduction.html#why-templates"
        assert sections[1].breadcrumb_text == "Guide » Introduction » Why Templates?"

    def test_deeper_headings_stay_in_the_body(self, chapter):
        markdown = "# Top\n\nIntro.\n\n#### Detail\n\nMore text.\n"

        (section,) = split_sections(markdown, chapter, split_level=3)

        assert section.body == "Intro. Detail More text."

    def test_split_level_controls_granularity(self, chapter):
        markdown = "# Top\n\n## Second\n\n### Third\n"

        assert len(split_sections(markdown, chapter, split_level=1)) == 1
        assert len(split_sections(markdown, chapter, split_level=2)) == 2
        assert len(split_sections(markdown, chapter, split_level=3)) == 3

    def test_text_before_first_heading_uses_chapter_page(self, chapter):
        sections = split_sections("Preface text.\n\n# First\n\nBody.\n", chapter)

        assert sections[0].title == "Introduction"
        assert sections[0].anchor is None
        assert sections[0].url == "introduction.html"
        assert sections[0].breadcrumbs == ("Guide", "Introduction")
        assert sections[1].anchor == "first"

    def test_empty_heading_section_is_kept(self):
        (section,) = split_sections("# Chapter 1\n", Chapter(name="Chapter 1", path="chapter_1.md"))

        assert section.body == ""
        assert section.url == "chapter_1.html#chapter-1"
        assert section.breadcrumb_text == "Chapter 1 » Chapter 1"

    def test_duplicate_headings_get_unique_anchors(self, chapter):
        markdown = "## Usage\n\nOne.\n\n## Usage\n\nTwo.\n"

        assert [section.anchor for section in split_sections(markdown, chapter)] == ["usage", "usage-1"]

    def test_custom_heading_id(self, chapter):
        (section,) = split_sections("## Install the CLI {#install}\n", chapter)

        assert section.title == "Install the CLI"
        assert section.anchor == "install"

    def test_closing_hashes_are_dropped(self, chapter):
        (section,) = split_sections("## Setup ##\n", chapter)

        assert section.title == "Setup"

    def test_markdown_markup_is_removed(self, chapter):
        markdown = (
            "# Links\n\n"
            "- **Bold** and *italic* with `code` and ~~strike~~.\n"
            "1. See the [docs](https://example.com) and ![logo](logo.png).\n"
            "> Quoted [reference][ref] text.\n\n"
            "[ref]: https://example.com/ref\n"
            "| Name | Value |\n"
            "|------|-------|\n"
            "| a | b |\n"
            "---\n"
        )

        (section,) = split_sections(markdown, chapter)

        assert section.body == (
            "Bold and italic with code and strike. See the docs and logo. Quoted reference text. Name Value a b"
        )

    def test_snake_case_words_are_not_emphasis(self, chapter):
        (section,) = split_sections("# T\n\nCall my_function_name now.\n", chapter)

        assert section.body == "Call my_function_name now."

    def test_code_blocks_keep_content_but_not_headings(self, chapter):
        markdown = "# Build\n\n```sh\n# not a heading\nscarb build\n```\n\nDone.\n"

        (section,) = split_sections(markdown, chapter)

        assert section.body == "# not a heading scarb build Done."

    def test_inline_html_and_comments_are_stripped(self, chapter):
        markdown = "# Notes\n\n<!-- hidden\ncomment -->\n<div class=\"warning\">Careful &amp; <b>slow</b></div>\n"

        (section,) = split_sections(markdown, chapter)

        assert section.body == "Careful & slow"

    def test_preprocessor_directives_are_removed(self, chapter):
        markdown = "# Code\n\n{{#include ../listings/main.cairo}}\nSee {{#rustdoc_include x.rs}} above.\n"

        (section,) = split_sections(markdown, chapter)

        assert section.body == "See above."

    def test_long_words_are_dropped(self, chapter):
        long_word = "x" * 81

        (section,) = split_sections(f"# T\n\nshort {long_word} words\n", chapter, max_word_length=80)

        assert section.body == "short words"

    def test_headings_with_markup(self, chapter):
        (section,) = split_sections("## The `scarb` [tool](https://scarb.dev)\n", chapter)

        assert section.title == "The scarb tool"
        assert section.anchor == "the-scarb-tool"


def test_strip_html_decodes_entities():
    assert strip_html("<p>a &lt; b</p>").strip() == "a < b"
