"""Caller-side search session with stale-response discard.

A live search box fires a new filter request while the previous one may
still be running.  The data provider does not cancel in-flight requests, so
the session remembers which request is current and drops any response that
belongs to an older one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from rdfexplore.models import DEFAULT_PAGE_SIZE, Element, FilterRequest
from rdfexplore.normalize import more_items_available
from rdfexplore.provider import SparqlDataProvider

logger = logging.getLogger(__name__)

__all__ = [
    "SearchPage",
    "SearchSession",
]


@dataclass
class SearchPage:
    """Accumulated results of the current search."""

    request: FilterRequest
    items: list[Element] = field(default_factory=list)
    more_items_available: bool = False


class SearchSession:
    """
    Issue filter requests and keep only the results of the latest one.

    Args:
        provider: Data provider the searches run against
        extended: Use :meth:`SparqlDataProvider.filter_extended` (search
            modes) instead of :meth:`SparqlDataProvider.filter`
    """

    def __init__(self, provider: SparqlDataProvider, *, extended: bool = False) -> None:
        self.provider = provider
        self.extended = extended
        self.current_request: Optional[FilterRequest] = None
        self.page: Optional[SearchPage] = None

    async def search(self, request: FilterRequest) -> Optional[SearchPage]:
        """
        Start a new search with *request* (first page).

        Returns:
            The updated page, or None when the response arrived after a
            newer request was issued, or when *request* has no criteria
            (the session is cleared)
        """
        if not request.has_criteria():
            self.current_request = None
            self.page = None
            return None
        if request.limit == 0:
            request = request.model_copy(update={"limit": DEFAULT_PAGE_SIZE})
        return await self._run(request, append=False)

    async def load_more(self) -> Optional[SearchPage]:
        """Fetch the next page of the current search and append it."""
        if self.page is None or not self.page.more_items_available:
            return self.page
        previous = self.page.request
        request = previous.model_copy(update={"offset": previous.offset + previous.limit})
        return await self._run(request, append=True)

    async def _run(self, request: FilterRequest, *, append: bool) -> Optional[SearchPage]:
        self.current_request = request
        try:
            if self.extended:
                elements = await self.provider.filter_extended(request)
            else:
                elements = await self.provider.filter(request)
        except Exception:
            if self.current_request is not request:
                logger.debug("Discarding failure of a superseded search request")
                return None
            raise

        # Identity, not equality: a repeated identical search is still newer.
        if self.current_request is not request:
            logger.debug("Discarding response of a superseded search request")
            return None

        items = list(elements.values())
        if append and self.page is not None:
            items = self.page.items + items
        self.page = SearchPage(
            request=request,
            items=items,
            more_items_available=more_items_available(elements, request.limit),
        )
        return self.page
