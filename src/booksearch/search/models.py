"""Search option and result models.

``ResultsOptions`` and ``SearchOptions`` mirror the ``results_options`` and
``search_options`` objects serialized next to the index; ``SearchHit`` and
``SearchResponse`` are the value objects returned by the search service.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


BoolMode = Literal["OR", "AND"]


def _normalize_bool_mode(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().upper()
    return value


class ResultsOptions(BaseModel):
    """How many results to show and how long their teasers are."""

    model_config = ConfigDict(extra="ignore")

    limit_results: int = Field(default=30, ge=1, description="Maximum number of results returned")
    teaser_word_count: int = Field(default=30, ge=1, description="Number of words in a result teaser")


class FieldOptions(BaseModel):
    """Per-field query configuration; unset values inherit the global options."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    boost: float = Field(default=1.0, ge=0.0)
    bool_mode: BoolMode | None = Field(default=None, alias="bool")
    expand: bool | None = None

    @field_validator("bool_mode", mode="before")
    @classmethod
    def _upper_bool_mode(cls, value: Any) -> Any:
        return _normalize_bool_mode(value)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class SearchOptions(BaseModel):
    """Boolean combination mode, prefix expansion and per-field boosts."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    bool_mode: BoolMode = Field(default="OR", alias="bool")
    expand: bool = True
    fields: dict[str, FieldOptions] = Field(default_factory=dict)

    @field_validator("bool_mode", mode="before")
    @classmethod
    def _upper_bool_mode(cls, value: Any) -> Any:
        return _normalize_bool_mode(value)

    def resolve(self, index_fields: list[str]) -> dict[str, ResolvedFieldOptions]:
        """Return the effective configuration of every field that will be searched.

        With no explicit fields every index field is searched with boost 1.
        Fields that the index does not define are left out.
        """

        if not self.fields:
            return {
                name: ResolvedFieldOptions(boost=1.0, bool_mode=self.bool_mode, expand=self.expand)
                for name in index_fields
            }
        resolved: dict[str, ResolvedFieldOptions] = {}
        for name, options in self.fields.items():
            if name not in index_fields:
                continue
            resolved[name] = ResolvedFieldOptions(
                boost=options.boost,
                bool_mode=options.bool_mode or self.bool_mode,
                expand=self.expand if options.expand is None else options.expand,
            )
        return resolved

    def unknown_fields(self, index_fields: list[str]) -> list[str]:
        return [name for name in self.fields if name not in index_fields]

    def with_overrides(self, *, bool_mode: BoolMode | None = None, expand: bool | None = None) -> SearchOptions:
        updates: dict[str, Any] = {}
        if bool_mode is not None:
            updates["bool_mode"] = _normalize_bool_mode(bool_mode)
        if expand is not None:
            updates["expand"] = expand
        return self.model_copy(update=updates) if updates else self

    def to_dict(self) -> dict[str, Any]:
        return {
            "bool": self.bool_mode,
            "expand": self.expand,
            "fields": {name: options.to_dict() for name, options in self.fields.items()},
        }


class ResolvedFieldOptions(BaseModel):
    """Fully resolved options for one searched field."""

    model_config = ConfigDict(frozen=True)

    boost: float
    bool_mode: BoolMode
    expand: bool


class SearchHit(BaseModel):
    """A single ranked section with everything a result list needs to render it."""

    model_config = ConfigDict(frozen=True)

    ref: str
    score: float
    title: str = ""
    breadcrumbs: str = ""
    url: str
    href: str
    teaser: str = ""


class SearchResponse(BaseModel):
    """Ranked hits for one query."""

    model_config = ConfigDict(frozen=True)

    query: str
    terms: list[str] = Field(default_factory=list)
    hits: list[SearchHit] = Field(default_factory=list)
    total_matches: int = 0
