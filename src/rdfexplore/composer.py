"""SPARQL query composition: pure functions, no I/O.

One function per data provider operation.  Each takes resolved
:class:`~rdfexplore.settings.DialectSettings` plus the operation's
parameters and returns one complete query string, PREFIX block included.

The filter query is built from independent optional fragments:

* type restriction: when an element type is requested,
* reference element: when a reference element is requested; a specific
  link type or any link, one direction or both joined with ``UNION``,
* full-text search: when text is given; for the extended variant the
  clause is picked by search mode,
* the dialect's additional restriction: always (may be empty),
* IRI label extraction: when the dialect's full-text search needs it.

They are placed inside a ``SELECT DISTINCT ?inst ?score`` sub-query that
applies ordering and pagination, and the outer query joins label / class
information onto each selected instance.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from rdfexplore.errors import CompositionError
from rdfexplore.models import DEFAULT_PAGE_SIZE, FilterRequest
from rdfexplore.settings import DialectSettings
from rdfexplore.templates import fill, iri, string_literal, values_block

logger = logging.getLogger(__name__)

__all__ = [
    "class_info_query",
    "class_tree_query",
    "concepts_query",
    "element_info_query",
    "extract_label_fragment",
    "filter_extended_query",
    "filter_query",
    "image_query",
    "link_types_info_query",
    "link_types_of_query",
    "link_types_query",
    "links_info_query",
    "normalize_filter_request",
    "property_info_query",
    "ref_element_fragment",
    "search_mode_fragment",
    "text_search_fragment",
    "type_restriction_fragment",
]


def _label_values(settings: DialectSettings, label_property: str | None) -> dict[str, str]:
    return {"dataLabelProperty": label_property or settings.data_label_property}


def _require_ids(ids: Iterable[str], what: str) -> list[str]:
    id_list = list(ids)
    if not id_list:
        raise CompositionError(f"At least one {what} id is required")
    return id_list


# ── Schema queries ────────────────────────────────────────────────


def class_tree_query(settings: DialectSettings) -> str:
    """Query returning ``?class ?label ?parent`` and optionally ``?instcount``."""
    return settings.default_prefix + fill(settings.class_tree_query)


def class_info_query(settings: DialectSettings, class_ids: Iterable[str]) -> str:
    ids = values_block(_require_ids(class_ids, "class"))
    return settings.default_prefix + f"""
SELECT ?class ?label ?instcount
WHERE {{
    ?class {settings.schema_label_property} ?label.
    VALUES (?class) {{{ids}}}.
    BIND("" as ?instcount)
}}
"""


def property_info_query(settings: DialectSettings, property_ids: Iterable[str]) -> str:
    ids = values_block(_require_ids(property_ids, "property"))
    return settings.default_prefix + f"""
SELECT ?prop ?label
WHERE {{
    ?prop {settings.schema_label_property} ?label.
    VALUES (?prop) {{{ids}}}.
}}
"""


def link_types_query(settings: DialectSettings) -> str:
    return settings.default_prefix + f"""
SELECT ?link ?instcount ?label
WHERE {{
    {fill(settings.link_types_pattern)}
    OPTIONAL {{ ?link {settings.schema_label_property} ?label. }}
}}
"""


def link_types_info_query(settings: DialectSettings, link_type_ids: Iterable[str]) -> str:
    ids = values_block(_require_ids(link_type_ids, "link type"))
    return settings.default_prefix + f"""
SELECT ?link ?label ?instcount
WHERE {{
    ?link {settings.schema_label_property} ?label.
    VALUES (?link) {{{ids}}}.
    BIND("" as ?instcount)
}}
"""


# ── Element queries ───────────────────────────────────────────────


def element_info_query(
    settings: DialectSettings,
    element_ids: Iterable[str],
    label_property: str | None = None,
) -> str:
    """Query returning ``?inst ?class ?label ?propType ?propValue`` rows."""
    ids = values_block(_require_ids(element_ids, "element"))
    return settings.default_prefix + fill(
        settings.element_info_query,
        {"ids": ids},
        _label_values(settings, label_property),
    )


def image_query(
    settings: DialectSettings,
    element_ids: Iterable[str],
    image_property_ids: Iterable[str],
) -> str:
    """Query returning ``?inst ?linkType ?image`` for the image properties."""
    ids = values_block(_require_ids(element_ids, "element"))
    types = values_block(_require_ids(image_property_ids, "image property"))
    return settings.default_prefix + f"""
SELECT ?inst ?linkType ?image
WHERE {{{{
    VALUES (?inst) {{{ids}}}
    VALUES (?linkType) {{{types}}}
    {fill(settings.image_query_pattern)}
}}}}
"""


def links_info_query(
    settings: DialectSettings,
    element_ids: Iterable[str],
    link_type_ids: Iterable[str] | None = None,
) -> str:
    """Links whose source and target are both in *element_ids*."""
    ids = values_block(_require_ids(element_ids, "element"))
    type_filter = ""
    link_types = list(link_type_ids or [])
    if link_types:
        type_filter = f"\n    VALUES (?type) {{{values_block(link_types)}}}"
    return settings.default_prefix + f"""
SELECT ?source ?type ?target
WHERE {{
    ?source ?type ?target.
    VALUES (?source) {{{ids}}}
    VALUES (?target) {{{ids}}}{type_filter}
}}
"""


def link_types_of_query(settings: DialectSettings, element_id: str) -> str:
    """Link types around *element_id* with ``?outCount`` / ``?inCount``."""
    if not element_id:
        raise CompositionError("An element id is required")
    return settings.default_prefix + fill(
        settings.link_types_of_query, {"elementIri": iri(element_id)}
    )


def concepts_query(settings: DialectSettings, concept_class_id: str) -> str:
    """All instances of *concept_class_id* with their classes and labels."""
    return settings.default_prefix + f"""
SELECT ?inst ?class ?label
WHERE {{
    ?inst rdf:type {iri(concept_class_id)} .
    OPTIONAL {{
        ?inst rdf:type ?class.
        ?inst {settings.schema_label_property} ?label.
    }}
}}
"""


# ── Filter fragments ──────────────────────────────────────────────


def type_restriction_fragment(settings: DialectSettings, element_type_id: str | None) -> str:
    if not element_type_id:
        return ""
    return fill(settings.filter_type_pattern, {"elementTypeIri": iri(element_type_id)})


def ref_element_fragment(
    settings: DialectSettings,
    element_id: str | None,
    link_id: str | None = None,
    direction: str | None = None,
) -> str:
    """
    Restrict ``?inst`` to neighbours of *element_id*.

    Without *direction* both the outgoing and the incoming pattern are
    emitted and joined with ``UNION``.  ``FILTER ISIRI`` keeps blank nodes
    out of the results.
    """
    if not element_id:
        if link_id:
            raise CompositionError(
                "Can't filter by reference link without a reference element"
            )
        return ""
    if direction not in (None, "in", "out"):
        raise CompositionError(f"Unknown link direction: {direction!r}")

    element = iri(element_id)
    link = iri(link_id) if link_id else "?link"
    link_restriction = "" if link_id else fill(settings.filter_ref_element_link_pattern).strip()
    if link_restriction:
        link_restriction = " " + link_restriction

    outgoing = f"{{ {element} {link} ?inst . FILTER ISIRI(?inst){link_restriction} }}"
    incoming = f"{{ ?inst {link} {element} . FILTER ISIRI(?inst){link_restriction} }}"

    if direction == "out":
        return outgoing
    if direction == "in":
        return incoming
    return f"{outgoing} UNION {incoming}"


def text_search_fragment(
    settings: DialectSettings,
    text: str | None,
    label_property: str | None = None,
) -> str:
    """The dialect's generic full-text clause for *text*."""
    if not text:
        return ""
    return fill(
        settings.full_text_search.query_pattern,
        {"text": string_literal(text)},
        _label_values(settings, label_property),
    )


def search_mode_fragment(
    settings: DialectSettings,
    text: str | None,
    search_type: str | None,
    label_property: str | None = None,
) -> str:
    """
    Full-text clause for *search_type*.

    A mode the dialect does not define falls back to the generic
    full-text clause.
    """
    if not text:
        return ""
    pattern = settings.search_pattern(search_type)
    if pattern is None:
        logger.debug(
            f"Search mode {search_type!r} not defined by dialect "
            f"{settings.name!r}, using generic full-text clause"
        )
        return text_search_fragment(settings, text, label_property)
    return fill(
        pattern,
        {"text": string_literal(text)},
        _label_values(settings, label_property),
    )


def extract_label_fragment(subject: str = "?inst", label: str = "?extractedLabel") -> str:
    """Bind *label* to the last path segment or fragment of *subject*."""
    return f"""
    BIND ( str( {subject} ) as ?uriStr)
    BIND ( strafter(?uriStr, "#") as ?label3)
    BIND ( strafter(strafter(?uriStr, "//"), "/") as ?label6)
    BIND ( strafter(?label6, "/") as ?label5)
    BIND ( strafter(?label5, "/") as ?label4)
    BIND (if (?label3 != "", ?label3,
        if (?label4 != "", ?label4,
        if (?label5 != "", ?label5, ?label6))) as {label})
"""


# ── Filter queries ────────────────────────────────────────────────


def normalize_filter_request(request: FilterRequest) -> FilterRequest:
    """
    Validate *request* and apply the default page size.

    Raises:
        CompositionError: If a reference link is given without a
            reference element
    """
    if request.ref_element_link_id and not request.ref_element_id:
        raise CompositionError(
            "Can't execute refElementLink filter without refElement"
        )
    if request.limit == 0:
        return request.model_copy(update={"limit": DEFAULT_PAGE_SIZE})
    return request


def _filter_query(
    settings: DialectSettings,
    request: FilterRequest,
    text_part: str,
    label_property: str | None,
    extra_prefix: str = "",
) -> str:
    type_part = type_restriction_fragment(settings, request.element_type_id)
    ref_part = ref_element_fragment(
        settings,
        request.ref_element_id,
        request.ref_element_link_id,
        request.link_direction,
    )
    label_part = (
        extract_label_fragment() if settings.full_text_search.extract_label else ""
    )
    element_info = fill(
        settings.filter_element_info_pattern,
        _label_values(settings, label_property),
    )
    restriction = fill(settings.filter_additional_restriction)

    return f"""{settings.default_prefix}{settings.full_text_search.prefix}{extra_prefix}
SELECT ?inst ?class ?label ?score
WHERE {{
    {{
        SELECT DISTINCT ?inst ?score WHERE {{
            {type_part}
            {ref_part}
            {text_part}
            {restriction}
            {label_part}
        }} ORDER BY DESC(?score) LIMIT {request.limit} OFFSET {request.offset}
    }}
    {element_info}
}} ORDER BY DESC(?score)
"""


def filter_query(
    settings: DialectSettings,
    request: FilterRequest,
    label_property: str | None = None,
) -> str:
    """Filtered, paginated element search using the generic full-text clause."""
    request = normalize_filter_request(request)
    text_part = text_search_fragment(settings, request.text, label_property)
    return _filter_query(settings, request, text_part, label_property)


def filter_extended_query(
    settings: DialectSettings,
    request: FilterRequest,
    label_property: str | None = None,
    search_settings: DialectSettings | None = None,
) -> str:
    """
    Filtered search whose full-text clause depends on ``request.search_type``.

    *search_settings* supplies the search-mode clauses and their PREFIX
    lines when they come from another dialect than *settings*; by default
    *settings* itself is used.  The instance label property always comes
    from *settings* unless *label_property* is given.
    """
    request = normalize_filter_request(request)
    label_property = label_property or settings.data_label_property
    search_settings = search_settings or settings

    extra_prefix = ""
    if search_settings is not settings:
        extra_prefix = search_settings.full_text_search.prefix

    # Modes the search dialect does not know use the main dialect's clause.
    if search_settings.search_pattern(request.search_type) is None:
        search_settings = settings
    text_part = search_mode_fragment(
        search_settings, request.text, request.search_type, label_property
    )

    return _filter_query(settings, request, text_part, label_property, extra_prefix)
