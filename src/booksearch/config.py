"""Centralized configuration for booksearch using Pydantic Settings."""

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from booksearch.search.models import ResultsOptions, SearchOptions
from booksearch.search.schema import Schema, create_book_schema


# book.toml [output.html.search] keys -> Settings attribute names
BOOK_CONFIG_KEYS: dict[str, str] = {
    "limit-results": "limit_results",
    "teaser-word-count": "teaser_word_count",
    "use-boolean-and": "use_boolean_and",
    "boost-title": "boost_title",
    "boost-hierarchy": "boost_hierarchy",
    "boost-paragraph": "boost_paragraph",
    "expand": "expand",
    "heading-split-level": "heading_split_level",
}


class Settings(BaseSettings):
    """Strictly typed configuration loaded from environment variables.

    Every value can be set with a ``BOOKSEARCH_`` prefixed environment variable
    (``BOOKSEARCH_LIMIT_RESULTS=10``) or a ``.env`` file. Search keys found in a
    book's ``book.toml`` are overlaid with :meth:`merged_with_book_config`.
    """

    model_config = SettingsConfigDict(
        env_prefix="BOOKSEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",  # Ignore extra env vars not defined in model
    )

    # Result presentation
    limit_results: int = Field(default=30, ge=1, description="Maximum number of search results")
    teaser_word_count: int = Field(default=30, ge=1, description="Number of words in a result teaser")

    # Query behaviour
    use_boolean_and: bool = Field(default=False, description="Require every query term to match (AND)")
    expand: bool = Field(default=True, description="Match indexed terms that start with a query term")

    # Field boosts
    boost_title: float = Field(default=2.0, ge=0.0, description="Boost for section titles")
    boost_hierarchy: float = Field(default=1.0, ge=0.0, description="Boost for breadcrumbs")
    boost_paragraph: float = Field(default=1.0, ge=0.0, description="Boost for section bodies")

    # Indexing
    heading_split_level: int = Field(
        default=3, ge=1, le=6, description="Headings at or above this level start a new searchable section"
    )
    max_word_length: int = Field(default=80, ge=1, description="Words longer than this are not indexed")
    save_documents: bool = Field(default=True, description="Store section text in the index for teasers")
    output_format: Literal["js", "json"] = Field(default="js", description="Default index file format")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=False, description="Emit structured JSON logs")

    @model_validator(mode="after")
    def _check_boosts(self) -> "Settings":
        if self.boost_title == 0 and self.boost_hierarchy == 0 and self.boost_paragraph == 0:
            raise ValueError("At least one of the title, hierarchy or paragraph boosts must be non-zero")
        return self

    def results_options(self) -> ResultsOptions:
        return ResultsOptions(limit_results=self.limit_results, teaser_word_count=self.teaser_word_count)

    def book_schema(self) -> Schema:
        return create_book_schema(
            boost_title=self.boost_title,
            boost_hierarchy=self.boost_hierarchy,
            boost_paragraph=self.boost_paragraph,
        )

    def search_options(self) -> SearchOptions:
        """Query options written next to the index, one entry per schema field."""
        return SearchOptions(
            bool_mode="AND" if self.use_boolean_and else "OR",
            expand=self.expand,
            fields=self.book_schema().field_options(),
        )

    def merged_with_book_config(self, search_config: Mapping[str, Any]) -> "Settings":
        """Return a copy with ``[output.html.search]`` values from ``book.toml`` applied."""

        overrides = {
            attribute: search_config[key] for key, attribute in BOOK_CONFIG_KEYS.items() if key in search_config
        }
        if not overrides:
            return self
        merged = self.model_dump()
        merged.update(overrides)
        return type(self).model_validate(merged)
