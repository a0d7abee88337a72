"""
Schema definition for book search indexes.

A book index searches three text fields per section:
- title: the section heading
- body: the section's plain text
- breadcrumbs: the chapter hierarchy leading to the section

Each text field carries a boost that is written into the index's
``search_options`` and applied when scores from several fields are summed.
The ``id`` ref is stored with each document but never analyzed.
"""

from __future__ import annotations

from dataclasses import dataclass

from booksearch.search.models import FieldOptions


BOOK_REF_FIELD = "id"


@dataclass(frozen=True)
class TextField:
    """Analyzed text field; its terms go through the index pipeline."""

    name: str
    boost: float = 1.0

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Field name must not be empty")
        if self.boost < 0:
            raise ValueError(f"Boost for field '{self.name}' must be >= 0, got {self.boost}")


@dataclass(frozen=True)
class Schema:
    """Ordered text fields plus the name of the ref key."""

    fields: tuple[TextField, ...]
    ref: str = BOOK_REF_FIELD

    def __post_init__(self) -> None:
        if not self.fields:
            raise ValueError("Schema must define at least one text field")
        names = [f.name for f in self.fields]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate field(s) in schema: {duplicates}")
        if self.ref in names:
            raise ValueError(f"Ref key '{self.ref}' cannot also be a text field")

    def __contains__(self, name: str) -> bool:
        return any(f.name == name for f in self.fields)

    @property
    def field_names(self) -> list[str]:
        """Names of the text fields in declaration (serialization) order."""
        return [f.name for f in self.fields]

    def get_boost(self, field_name: str) -> float:
        for text_field in self.fields:
            if text_field.name == field_name:
                return text_field.boost
        return 1.0

    def field_options(self) -> dict[str, FieldOptions]:
        """Per-field ``search_options`` entries, keyed in sorted field order."""
        return {name: FieldOptions(boost=self.get_boost(name)) for name in sorted(self.field_names)}


def create_book_schema(
    *,
    boost_title: float = 2.0,
    boost_hierarchy: float = 1.0,
    boost_paragraph: float = 1.0,
) -> Schema:
    """
    Create the schema used for book section indexes.

    Fields are declared in the order they appear in the serialized index
    (``title``, ``body``, ``breadcrumbs``).
    """
    return Schema(
        fields=(
            TextField("title", boost=boost_title),
            TextField("body", boost=boost_paragraph),
            TextField("breadcrumbs", boost=boost_hierarchy),
        ),
    )
