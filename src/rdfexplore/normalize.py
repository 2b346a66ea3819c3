"""Response normalization: endpoint responses to canonical records.

Two independent decode paths:

* SPARQL JSON bindings (``head.vars`` + ``results.bindings``): rows are
  grouped by their subject variable in first-seen order and repeated rows
  are merged into the record already built for that subject.  An optional
  column that is not bound leaves the matching field unset.
* Turtle: statements are collected in the order the parser emits them and
  each term is classified as ``literal`` or ``uri``.

Every function builds fresh records; calling one twice on the same
response gives equal results.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from rdflib import BNode, Graph, Literal
from rdflib.term import Node

from rdfexplore.errors import ParseError
from rdfexplore.models import (
    ClassNode,
    Element,
    LinkCount,
    LinkInstance,
    LinkTypeInfo,
    LocalizedText,
    PropertyInfo,
    PropertyValue,
    RdfTerm,
    RdfTriple,
)

logger = logging.getLogger(__name__)

__all__ = [
    "apply_image_bindings",
    "bindings",
    "class_info",
    "class_tree",
    "elements_info",
    "filtered_elements",
    "link_counts",
    "link_types",
    "link_types_info",
    "links_info",
    "merge_images",
    "more_items_available",
    "parse_turtle",
    "property_info",
]

Binding = Mapping[str, Mapping[str, Any]]


# ── Helpers ───────────────────────────────────────────────────────


def bindings(response: Mapping[str, Any]) -> list[Binding]:
    """
    Return the rows of a SPARQL JSON response.

    Raises:
        ParseError: If the response does not have the
            ``results.bindings`` list shape
    """
    if not isinstance(response, Mapping):
        raise ParseError("SPARQL JSON response is not an object")
    results = response.get("results")
    if not isinstance(results, Mapping):
        raise ParseError("SPARQL JSON response has no 'results' object")
    rows = results.get("bindings")
    if not isinstance(rows, list):
        raise ParseError("SPARQL JSON response has no 'results.bindings' list")
    for row in rows:
        if not isinstance(row, Mapping):
            raise ParseError("SPARQL JSON binding is not an object")
    return rows


def _value(row: Binding, var: str) -> str | None:
    cell = row.get(var)
    if not cell or "value" not in cell:
        return None
    return str(cell["value"])


def _iri(row: Binding, var: str) -> str | None:
    """Value of *var* if it is bound to an IRI."""
    cell = row.get(var)
    if not cell or cell.get("type") != "uri":
        return None
    return _value(row, var)


def _label(row: Binding, var: str = "label") -> LocalizedText | None:
    cell = row.get(var)
    if not cell or "value" not in cell:
        return None
    return LocalizedText(text=str(cell["value"]), lang=cell.get("xml:lang", ""))


def _add_label(labels: list[LocalizedText], label: LocalizedText | None) -> None:
    if label is not None and label not in labels:
        labels.append(label)


def _count(row: Binding, var: str) -> int | None:
    raw = _value(row, var)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(float(raw))
    except ValueError:
        return None


# ── Schema records ────────────────────────────────────────────────


def class_tree(response: Mapping[str, Any]) -> list[ClassNode]:
    """
    Build the class hierarchy from ``?class ?label ?parent ?instcount`` rows.

    Returns:
        Root classes; every other class hangs in its parent's
        ``children``.  A class whose parent is not part of the result is a
        root.  Only the first parent seen for a class is used.
    """
    nodes: dict[str, ClassNode] = {}
    for row in bindings(response):
        class_id = _iri(row, "class")
        if class_id is None:
            continue

        node = nodes.get(class_id)
        if node is None:
            node = ClassNode(id=class_id)
            nodes[class_id] = node

        _add_label(node.labels, _label(row))

        parent = _iri(row, "parent")
        if node.parent is None and parent and parent != class_id:
            node.parent = parent

        count = _count(row, "instcount")
        if count is not None:
            node.count = count if node.count is None else max(node.count, count)

    def creates_cycle(node: ClassNode) -> bool:
        seen = {node.id}
        current = node.parent
        while current is not None and current in nodes:
            if current in seen:
                return True
            seen.add(current)
            current = nodes[current].parent
        return False

    roots: list[ClassNode] = []
    for node in nodes.values():
        if node.parent in nodes and not creates_cycle(node):
            nodes[node.parent].children.append(node)
        else:
            roots.append(node)
    return roots


def class_info(response: Mapping[str, Any]) -> list[ClassNode]:
    """Flat class records from ``?class ?label ?instcount`` rows."""
    nodes: dict[str, ClassNode] = {}
    for row in bindings(response):
        class_id = _iri(row, "class")
        if class_id is None:
            continue
        node = nodes.setdefault(class_id, ClassNode(id=class_id))
        _add_label(node.labels, _label(row))
        count = _count(row, "instcount")
        if count is not None:
            node.count = count
    return list(nodes.values())


def property_info(response: Mapping[str, Any]) -> dict[str, PropertyInfo]:
    properties: dict[str, PropertyInfo] = {}
    for row in bindings(response):
        prop_id = _iri(row, "prop")
        if prop_id is None:
            continue
        prop = properties.setdefault(prop_id, PropertyInfo(id=prop_id))
        _add_label(prop.labels, _label(row))
    return properties


def link_types(response: Mapping[str, Any]) -> list[LinkTypeInfo]:
    """Link type records from ``?link ?label ?instcount`` rows."""
    links: dict[str, LinkTypeInfo] = {}
    for row in bindings(response):
        link_id = _iri(row, "link")
        if link_id is None:
            continue
        link = links.setdefault(link_id, LinkTypeInfo(id=link_id))
        _add_label(link.labels, _label(row))
        count = _count(row, "instcount")
        if count is not None:
            link.count = count
    return list(links.values())


link_types_info = link_types


# ── Element records ───────────────────────────────────────────────


def _merge_element_row(elements: dict[str, Element], row: Binding) -> None:
    inst = _iri(row, "inst")
    if inst is None:
        return

    element = elements.get(inst)
    if element is None:
        element = Element(id=inst)
        elements[inst] = element

    class_id = _iri(row, "class")
    if class_id and class_id not in element.types:
        element.types.append(class_id)

    _add_label(element.labels, _label(row))

    prop_type = _iri(row, "propType")
    prop_cell = row.get("propValue")
    if prop_type and prop_cell and "value" in prop_cell:
        value = PropertyValue(
            value=str(prop_cell["value"]),
            type=prop_cell.get("type", "literal"),
            lang=prop_cell.get("xml:lang"),
            datatype=prop_cell.get("datatype"),
        )
        values = element.properties.setdefault(prop_type, [])
        if value not in values:
            values.append(value)


def elements_info(
    response: Mapping[str, Any],
    element_ids: Iterable[str] = (),
) -> dict[str, Element]:
    """
    Element records from ``?inst ?class ?label ?propType ?propValue`` rows.

    Every id in *element_ids* gets a record, in request order, even when
    the endpoint returned nothing for it.
    """
    elements: dict[str, Element] = {i: Element(id=i) for i in element_ids}
    for row in bindings(response):
        _merge_element_row(elements, row)
    return elements


def filtered_elements(response: Mapping[str, Any]) -> dict[str, Element]:
    """Element records of a filter query, in result (score) order."""
    elements: dict[str, Element] = {}
    for row in bindings(response):
        _merge_element_row(elements, row)
    return elements


def apply_image_bindings(
    response: Mapping[str, Any],
    elements: dict[str, Element],
) -> dict[str, Element]:
    """Set ``image`` from ``?inst ?image`` rows; the first image per element wins."""
    images: dict[str, str] = {}
    for row in bindings(response):
        inst = _value(row, "inst")
        image = _value(row, "image")
        if inst and image:
            images.setdefault(inst, image)
    return merge_images(elements, images)


def merge_images(
    elements: dict[str, Element],
    images: Mapping[str, str],
) -> dict[str, Element]:
    """Copy image URLs onto the elements they belong to; unknown ids are ignored."""
    for element_id, image in images.items():
        element = elements.get(element_id)
        if element is not None and image:
            element.image = image
    return elements


# ── Links ─────────────────────────────────────────────────────────


def links_info(response: Mapping[str, Any]) -> list[LinkInstance]:
    links: list[LinkInstance] = []
    seen: set[LinkInstance] = set()
    for row in bindings(response):
        source = _iri(row, "source")
        link_type = _iri(row, "type")
        target = _iri(row, "target")
        if not (source and link_type and target):
            continue
        link = LinkInstance(source_id=source, type_id=link_type, target_id=target)
        if link not in seen:
            seen.add(link)
            links.append(link)
    return links


def link_counts(response: Mapping[str, Any]) -> list[LinkCount]:
    """Link statistics from ``?link ?outCount ?inCount`` rows."""
    counts: dict[str, LinkCount] = {}
    for row in bindings(response):
        link_id = _iri(row, "link")
        if link_id is None:
            continue
        count = counts.setdefault(link_id, LinkCount(id=link_id))
        count.out_count += _count(row, "outCount") or 0
        count.in_count += _count(row, "inCount") or 0
    return list(counts.values())


# ── Pagination ────────────────────────────────────────────────────


def more_items_available(results: Sequence[Any] | Mapping[str, Any], limit: int) -> bool:
    """True when a page of *results* filled the requested *limit*."""
    return limit > 0 and len(results) >= limit


# ── Turtle ────────────────────────────────────────────────────────


class _TripleCollector(Graph):
    """Graph that also records statements in the order they are parsed."""

    def __init__(self) -> None:
        super().__init__()
        self.statements: list[tuple[Node, Node, Node]] = []

    def add(self, triple):  # type: ignore[override]
        self.statements.append(triple)
        return super().add(triple)


def _term(node: Node) -> RdfTerm:
    if isinstance(node, Literal):
        return RdfTerm(type="literal", value=str(node))
    if isinstance(node, BNode):
        return RdfTerm(type="uri", value=f"_:{node}")
    return RdfTerm(type="uri", value=str(node))


def parse_turtle(text: str) -> list[RdfTriple]:
    """
    Parse a Turtle document into triples, in document order.

    Raises:
        ParseError: If the document is not valid Turtle; no triples are
            returned in that case
    """
    if not text.strip():
        return []

    collector = _TripleCollector()
    try:
        collector.parse(data=text, format="turtle")
    except Exception as e:
        raise ParseError(f"Malformed Turtle response: {e}") from e

    return [
        RdfTriple(subject=_term(s), predicate=_term(p), object=_term(o))
        for s, p, o in collector.statements
    ]
