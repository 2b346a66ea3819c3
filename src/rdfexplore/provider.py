"""SPARQL data provider, the public surface of rdfexplore.

Every operation runs the same pipeline:

1. compose the query from the dialect settings (:mod:`rdfexplore.composer`),
2. send it with :class:`~rdfexplore.sparql_client.SparqlClient`,
3. normalize the response (:mod:`rdfexplore.normalize`),
4. for element operations, attach images.

Operations are coroutines.  Composition and normalization are synchronous;
the blocking HTTP round-trip runs in a worker thread and is the only await
point, so any number of operations may be in flight at once.  The provider
keeps no per-request state: a caller that issues a newer request of the same
kind is responsible for ignoring the older result
(see :class:`rdfexplore.search.SearchSession`).
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Iterable, Mapping
from typing import Any, Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rdfexplore import composer, normalize
from rdfexplore.models import (
    ClassNode,
    Element,
    FilterRequest,
    LinkCount,
    LinkDirection,
    LinkInstance,
    LinkTypeInfo,
    PropertyInfo,
    RdfTriple,
)
from rdfexplore.settings import DEFAULT_DIALECT, DialectSettings, resolve
from rdfexplore.sparql_client import QueryMethod, SparqlClient

logger = logging.getLogger(__name__)

__all__ = [
    "ImageResolver",
    "ProviderOptions",
    "SparqlDataProvider",
]

SKOS_CONCEPT = "http://www.w3.org/2004/02/skos/core#Concept"

ImageResolver = Callable[
    [dict[str, Element]],
    Union[Mapping[str, str], Awaitable[Mapping[str, str]]],
]


class ProviderOptions(BaseModel):
    """Runtime options of :class:`SparqlDataProvider`."""

    model_config = ConfigDict(frozen=True)

    endpoint_url: str = Field(..., description="SPARQL endpoint URL")
    query_method: QueryMethod = Field(
        "GET",
        description="GET is more widely supported, POST handles large queries",
    )
    image_property_uris: list[str] = Field(
        default_factory=list, description="Properties whose values are image URLs"
    )
    prepare_images: Optional[ImageResolver] = Field(
        None, description="Callback mapping element records to image URLs"
    )
    label_property: Optional[str] = Field(
        None, description="Instance label property, overrides the dialect's"
    )
    concept_class: str = Field(
        SKOS_CONCEPT, description="Class whose instances concepts() lists"
    )
    timeout: Optional[float] = Field(None, description="Request timeout in seconds")

    @field_validator("query_method", mode="before")
    @classmethod
    def upper_method(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class SparqlDataProvider:
    """
    Graph-exploration operations over one SPARQL endpoint.

    Example:
        >>> provider = SparqlDataProvider(
        ...     ProviderOptions(endpoint_url="https://dbpedia.org/sparql"),
        ...     resolve("dbpedia"),
        ... )
        >>> elements = asyncio.run(provider.filter(FilterRequest(text="Berlin")))
    """

    def __init__(
        self,
        options: ProviderOptions,
        settings: DialectSettings | None = None,
        *,
        search_settings: DialectSettings | None = None,
    ) -> None:
        """
        Create a provider for one endpoint and dialect.

        Args:
            options: Endpoint and enrichment options
            settings: Dialect to phrase queries in (default: ``owl_stats``)
            search_settings: Dialect supplying the search-mode clauses of
                :meth:`filter_extended` (default: *settings*)
        """
        self.options = options
        self.settings = settings if settings is not None else resolve(DEFAULT_DIALECT)
        self.search_settings = search_settings
        self.data_label_property = (
            options.label_property or self.settings.data_label_property
        )

    def __repr__(self) -> str:
        return (
            f"SparqlDataProvider({self.options.endpoint_url!r}, "
            f"dialect={self.settings.name!r})"
        )

    # ── Transport ─────────────────────────────────────────────────

    def _client(self) -> SparqlClient:
        return SparqlClient(
            self.options.endpoint_url,
            method=self.options.query_method,
            timeout=self.options.timeout,
        )

    def _run_select(self, query: str) -> dict[str, Any]:
        with self._client() as client:
            return client.select(query)

    def _run_construct(self, query: str) -> str:
        with self._client() as client:
            return client.construct(query)

    async def select(self, query: str) -> dict[str, Any]:
        """Run a SELECT query and return the raw SPARQL JSON results."""
        logger.debug(f"SELECT against {self.options.endpoint_url}:\n{query}")
        return await asyncio.to_thread(self._run_select, query)

    async def construct(self, query: str) -> list[RdfTriple]:
        """Run a CONSTRUCT / DESCRIBE query and return its triples in order."""
        logger.debug(f"CONSTRUCT against {self.options.endpoint_url}:\n{query}")
        turtle = await asyncio.to_thread(self._run_construct, query)
        return normalize.parse_turtle(turtle)

    # ── Schema ────────────────────────────────────────────────────

    async def class_tree(self) -> list[ClassNode]:
        query = composer.class_tree_query(self.settings)
        return normalize.class_tree(await self.select(query))

    async def class_info(self, class_ids: Iterable[str]) -> list[ClassNode]:
        query = composer.class_info_query(self.settings, class_ids)
        return normalize.class_info(await self.select(query))

    async def property_info(self, property_ids: Iterable[str]) -> dict[str, PropertyInfo]:
        query = composer.property_info_query(self.settings, property_ids)
        return normalize.property_info(await self.select(query))

    async def link_types(self) -> list[LinkTypeInfo]:
        query = composer.link_types_query(self.settings)
        return normalize.link_types(await self.select(query))

    async def link_types_info(self, link_type_ids: Iterable[str]) -> list[LinkTypeInfo]:
        query = composer.link_types_info_query(self.settings, link_type_ids)
        return normalize.link_types_info(await self.select(query))

    # ── Elements ──────────────────────────────────────────────────

    async def concepts(self) -> dict[str, Element]:
        """All instances of the configured concept class."""
        query = composer.concepts_query(self.settings, self.options.concept_class)
        return normalize.filtered_elements(await self.select(query))

    async def element_info(self, element_ids: Iterable[str]) -> dict[str, Element]:
        """Classes, labels and literal properties of each requested element."""
        ids = list(element_ids)
        query = composer.element_info_query(self.settings, ids, self.data_label_property)
        elements = normalize.elements_info(await self.select(query), ids)
        return await self._attach_images(elements)

    async def links_info(
        self,
        element_ids: Iterable[str],
        link_type_ids: Iterable[str] | None = None,
    ) -> list[LinkInstance]:
        """Links between the given elements, optionally of the given types only."""
        query = composer.links_info_query(self.settings, element_ids, link_type_ids)
        return normalize.links_info(await self.select(query))

    async def link_types_of(self, element_id: str) -> list[LinkCount]:
        """Outgoing / incoming link counts per link type around one element."""
        query = composer.link_types_of_query(self.settings, element_id)
        return normalize.link_counts(await self.select(query))

    async def link_elements(
        self,
        element_id: str,
        link_id: str | None,
        limit: int,
        offset: int,
        direction: LinkDirection | None = None,
    ) -> dict[str, Element]:
        """Elements connected to *element_id*, paged; a thin use of :meth:`filter`."""
        return await self.filter(
            FilterRequest(
                ref_element_id=element_id,
                ref_element_link_id=link_id,
                link_direction=direction,
                limit=limit,
                offset=offset,
                language_code="",
            )
        )

    async def filter(self, request: FilterRequest) -> dict[str, Element]:
        """Filtered, paginated search with the dialect's generic full-text clause."""
        query = composer.filter_query(self.settings, request, self.data_label_property)
        elements = normalize.filtered_elements(await self.select(query))
        return await self._attach_images(elements)

    async def filter_extended(self, request: FilterRequest) -> dict[str, Element]:
        """Like :meth:`filter`, with the full-text clause chosen by ``request.search_type``."""
        query = composer.filter_extended_query(
            self.settings,
            request,
            self.data_label_property,
            search_settings=self.search_settings,
        )
        elements = normalize.filtered_elements(await self.select(query))
        return await self._attach_images(elements)

    # ── Images ────────────────────────────────────────────────────

    async def _attach_images(self, elements: dict[str, Element]) -> dict[str, Element]:
        """
        Attach image URLs to *elements*.

        Uses the ``prepare_images`` callback if configured, otherwise the
        image query over ``image_property_uris``.  Any failure leaves the
        elements without images; it never fails the operation.
        """
        if not elements:
            return elements

        if self.options.prepare_images is not None:
            try:
                images = self.options.prepare_images(elements)
                if inspect.isawaitable(images):
                    images = await images
                return normalize.merge_images(elements, images or {})
            except Exception as e:
                logger.warning(f"Image callback failed, returning elements without images: {e}")
                return self._without_images(elements)

        if self.options.image_property_uris:
            query = composer.image_query(
                self.settings, list(elements), self.options.image_property_uris
            )
            try:
                response = await self.select(query)
                return normalize.apply_image_bindings(response, elements)
            except Exception as e:
                logger.warning(f"Image query failed, returning elements without images: {e}")
                return self._without_images(elements)

        return elements

    @staticmethod
    def _without_images(elements: dict[str, Element]) -> dict[str, Element]:
        for element in elements.values():
            element.image = None
        return elements
