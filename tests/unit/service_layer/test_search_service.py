"""Unit tests for the book search service."""

import pytest

from booksearch.book.builder import BookIndexBuilder
from booksearch.book.sections import Section
from booksearch.search.models import ResultsOptions
from booksearch.service_layer.search_service import BookSearchService, highlight_href


pytestmark = pytest.mark.unit


@pytest.fixture
def service(sample_index_path):
    return BookSearchService.from_path(sample_index_path)


class TestHighlightHref:
    def test_encodes_terms_like_a_uri_component(self):
        href = highlight_href("introduction.html#why-templates", ["why", "templates?", "you'll", "a&b"])

        assert href == "introduction.html?highlight=why%20templates%3F%20you%27ll%20a%26b#why-templates"

    def test_page_without_anchor(self):
        assert highlight_href("index.html", ["cairo"]) == "index.html?highlight=cairo"

    def test_keeps_uri_component_safe_characters(self):
        assert highlight_href("a.html", ["(x)!*-_.~"]) == "a.html?highlight=(x)!*-_.~"


class TestBookSearchService:
    def test_ranked_hits_with_display_fields(self, service):
        response = service.search("templates")

        assert [hit.ref for hit in response.hits] == ["1", "3", "5", "2", "6", "0"]
        assert response.total_matches == 6
        first = response.hits[0]
        assert first.title == "Why Templates?"
        assert first.breadcrumbs == "Introduction » Why Templates?"
        assert first.url == "introduction.html#why-templates"
        assert first.href == "introduction.html?highlight=templates#why-templates"
        assert "<em>templates</em>" in first.teaser

    def test_limit_argument(self, service):
        response = service.search("templates", limit=2)

        assert len(response.hits) == 2
        assert response.total_matches == 6

    def test_results_options_limit_applies_by_default(self, sample_index):
        sample_index.results_options = ResultsOptions(limit_results=3, teaser_word_count=5)

        response = BookSearchService(sample_index).search("templates")

        assert len(response.hits) == 3
        assert all(len(hit.teaser.split()) <= 5 for hit in response.hits)

    def test_and_mode_override(self, service):
        or_hits = service.search("welcome templates").hits
        and_hits = service.search("welcome templates", bool_mode="AND").hits

        assert len(and_hits) < len(or_hits)
        assert [hit.ref for hit in and_hits] == ["0"]

    def test_query_terms_are_split_on_spaces(self, service):
        response = service.search("  Starknet  ecosystem ")

        assert response.query == "Starknet  ecosystem"
        assert response.terms == ["Starknet", "", "ecosystem"]
        assert response.hits[0].ref == "6"

    def test_empty_section_has_empty_teaser(self, service):
        (hit,) = [hit for hit in service.search("chapter").hits if hit.ref == "4"]

        assert hit.teaser == ""
        assert hit.href == "chapter_1.html?highlight=chapter#chapter-1"

    @pytest.mark.parametrize("query", ["", "   ", "the"])
    def test_no_terms_no_hits(self, service, query):
        response = service.search(query)

        assert response.hits == []
        assert response.total_matches == 0

    def test_expand_override(self):
        book_index = BookIndexBuilder().build_from_sections(
            [Section(title="Deploy", body="Deploying contracts", breadcrumbs=("Deploy",), page="deploy.html")]
        )
        service = BookSearchService(book_index)

        assert [hit.ref for hit in service.search("contr").hits] == ["0"]
        assert service.search("contr", expand=False).hits == []

    def test_teaser_escapes_code_from_the_section_body(self):
        section = Section(
            title="Arrays",
            body="let x: Array<felt252> = <script>alert(1)</script>;",
            breadcrumbs=("Arrays",),
            page="arrays.html",
            anchor="arrays",
        )
        service = BookSearchService(BookIndexBuilder().build_from_sections([section]))

        (hit,) = service.search("arrays").hits

        assert "<script>" not in hit.teaser
        assert hit.teaser == "let x: <em>Array&lt;felt252&gt;</em> = &lt;script&gt;alert(1)&lt;/script&gt;;"
