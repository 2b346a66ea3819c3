"""
Pydantic models for requests and canonical records.

Records are value objects built fresh from each endpoint response; nothing
here holds state across calls.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "ClassNode",
    "Element",
    "FilterRequest",
    "LinkCount",
    "LinkDirection",
    "LinkInstance",
    "LinkTypeInfo",
    "LocalizedText",
    "PropertyInfo",
    "PropertyValue",
    "RdfTerm",
    "RdfTriple",
    "SearchType",
]

DEFAULT_PAGE_SIZE = 100

LinkDirection = Literal["in", "out"]


class SearchType:
    """Search modes understood by dialects with extended full-text search."""

    EXACT = "exact"
    CONTAIN = "contain"
    FUZZY = "fuzzy"
    BOOLEAN = "boolean"

    ALL = (EXACT, CONTAIN, FUZZY, BOOLEAN)


# ── Requests ──────────────────────────────────────────────────────


class FilterRequest(BaseModel):
    """Parameters of a filtered, paginated element search."""

    element_type_id: Optional[str] = Field(None, description="Restrict to instances of this class")
    ref_element_id: Optional[str] = Field(None, description="Restrict to neighbours of this element")
    ref_element_link_id: Optional[str] = Field(
        None, description="Only follow this link type from the reference element"
    )
    link_direction: Optional[LinkDirection] = Field(
        None, description="Direction of the reference link; both when unset"
    )
    text: Optional[str] = Field(None, description="Free-text search string")
    search_type: Optional[str] = Field(None, description="Dialect-specific search mode")
    limit: int = Field(DEFAULT_PAGE_SIZE, ge=0, description="Page size, 0 means default")
    offset: int = Field(0, ge=0, description="Number of matches to skip")
    language_code: str = Field("en", description="Preferred label language")

    def has_criteria(self) -> bool:
        """True if the request restricts the search in any way."""
        return bool(
            self.text
            or self.element_type_id
            or self.ref_element_id
            or self.ref_element_link_id
        )


# ── Canonical records ─────────────────────────────────────────────


class LocalizedText(BaseModel):
    """One label value with its language tag ("" when untagged)."""

    model_config = ConfigDict(frozen=True)

    text: str
    lang: str = ""


class PropertyValue(BaseModel):
    """One literal value of an element property."""

    model_config = ConfigDict(frozen=True)

    value: str
    type: str = "literal"
    lang: Optional[str] = None
    datatype: Optional[str] = None


class Element(BaseModel):
    """An instance with its classes, labels, literal properties and image."""

    id: str
    types: list[str] = Field(default_factory=list, description="Class IRIs, first-seen order")
    labels: list[LocalizedText] = Field(default_factory=list)
    properties: dict[str, list[PropertyValue]] = Field(default_factory=dict)
    image: Optional[str] = None


class ClassNode(BaseModel):
    """A class of the class hierarchy."""

    id: str
    labels: list[LocalizedText] = Field(default_factory=list)
    parent: Optional[str] = None
    count: Optional[int] = Field(None, description="Instance count, None when unknown")
    children: list[ClassNode] = Field(default_factory=list)


class LinkTypeInfo(BaseModel):
    """A link type (object property) with optional usage count."""

    id: str
    labels: list[LocalizedText] = Field(default_factory=list)
    count: Optional[int] = None


class PropertyInfo(BaseModel):
    """A datatype property with its labels."""

    id: str
    labels: list[LocalizedText] = Field(default_factory=list)


class LinkInstance(BaseModel):
    """A single link between two elements."""

    model_config = ConfigDict(frozen=True)

    source_id: str
    type_id: str
    target_id: str


class LinkCount(BaseModel):
    """Number of outgoing and incoming links of one type for an element."""

    id: str
    out_count: int = 0
    in_count: int = 0


class RdfTerm(BaseModel):
    """Subject, predicate or object of a triple."""

    model_config = ConfigDict(frozen=True)

    type: Literal["uri", "literal"]
    value: str


class RdfTriple(BaseModel):
    """A triple as read from a Turtle response."""

    model_config = ConfigDict(frozen=True)

    subject: RdfTerm
    predicate: RdfTerm
    object: RdfTerm
