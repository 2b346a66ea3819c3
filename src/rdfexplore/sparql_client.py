"""
SPARQL Client - HTTP transport for composed queries.

This module sends one query per call and hands back the raw response:
- GET with the query URL-encoded into ``?query=``, or POST with the raw
  query as body (``application/sparql-query``)
- Content negotiation for SPARQL JSON results or Turtle
- Non-2xx statuses raised as ProtocolError (status and body attached)
- Network failures raised as TransportError
- No retries; retry policy belongs to the caller

Usage:
    from rdfexplore.sparql_client import SparqlClient

    with SparqlClient("https://sparql.example.org/", method="POST") as client:
        results = client.select("SELECT ?s WHERE { ?s ?p ?o } LIMIT 10")
        turtle = client.construct("CONSTRUCT { ?s ?p ?o } WHERE { ?s ?p ?o } LIMIT 10")
"""

from __future__ import annotations

import json
import logging
from typing import Any, Literal

import requests

from rdfexplore.errors import ParseError, ProtocolError, TransportError
from rdfexplore.version import VERSION

logger = logging.getLogger(__name__)

__all__ = [
    "MimeTypes",
    "QueryMethod",
    "SparqlClient",
]

QueryMethod = Literal["GET", "POST"]


class MimeTypes:
    """Media types used on the wire."""

    SPARQL_JSON = "application/sparql-results+json"
    TURTLE = "text/turtle"
    SPARQL_QUERY = "application/sparql-query"


class SparqlClient:
    """
    One endpoint, one HTTP method, one ``requests.Session``.

    Attributes:
        endpoint_url: The SPARQL endpoint URL
        method: "GET" (default) or "POST"
        timeout: Request timeout in seconds, None for no timeout

    Example:
        >>> client = SparqlClient("https://query.wikidata.org/sparql")
        >>> results = client.select("SELECT ?s { ?s ?p ?o } LIMIT 1")
        >>> for binding in results["results"]["bindings"]:
        ...     print(binding["s"]["value"])
    """

    USER_AGENT = f"rdfexplore/{VERSION} (SPARQL client)"

    def __init__(
        self,
        endpoint_url: str,
        *,
        method: QueryMethod = "GET",
        timeout: float | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            endpoint_url: SPARQL endpoint URL
            method: HTTP method used for every query
            timeout: Request timeout in seconds (default: none)
        """
        method = method.upper()  # type: ignore[assignment]
        if method not in ("GET", "POST"):
            raise ValueError(f"Unsupported query method: {method}")

        self.endpoint_url = endpoint_url
        self.method: QueryMethod = method
        self.timeout = timeout

        # Session for connection pooling
        self._session = requests.Session()

        logger.debug(f"SparqlClient initialized for {self.endpoint_url} ({self.method})")

    def select(self, query: str) -> dict[str, Any]:
        """
        Execute a SELECT query and return the parsed JSON results.

        Returns:
            Dictionary in SPARQL JSON results format:
            {
                "head": {"vars": ["s", "p", "o"]},
                "results": {"bindings": [...]}
            }

        Raises:
            TransportError: If the endpoint cannot be reached
            ProtocolError: If the endpoint answers with a non-2xx status
            ParseError: If the body is not SPARQL JSON
        """
        body = self.execute(query, accept=MimeTypes.SPARQL_JSON)
        try:
            result = json.loads(body)
        except json.JSONDecodeError as e:
            raise ParseError(f"Malformed SPARQL JSON response: {e}") from e

        if not isinstance(result, dict):
            raise ParseError("SPARQL JSON response is not an object")
        return result

    def construct(self, query: str) -> str:
        """
        Execute a CONSTRUCT / DESCRIBE query and return the Turtle text.

        Raises:
            TransportError: If the endpoint cannot be reached
            ProtocolError: If the endpoint answers with a non-2xx status
        """
        return self.execute(query, accept=MimeTypes.TURTLE)

    def execute(self, query: str, accept: str) -> str:
        """
        Send *query* with the configured method and return the response body.

        Args:
            query: SPARQL query string
            accept: Accept header for content negotiation

        Returns:
            Response body as string
        """
        headers = {
            "Accept": accept,
            "User-Agent": self.USER_AGENT,
        }

        try:
            if self.method == "POST":
                headers["Content-Type"] = MimeTypes.SPARQL_QUERY
                response = self._session.post(
                    self.endpoint_url,
                    data=query.encode("utf-8"),
                    headers=headers,
                    timeout=self.timeout,
                )
            else:
                response = self._session.get(
                    self.endpoint_url,
                    params={"query": query},
                    headers=headers,
                    timeout=self.timeout,
                )
        except requests.exceptions.RequestException as e:
            logger.debug(f"{self.method} {self.endpoint_url} failed: {e}")
            raise TransportError(f"Cannot reach {self.endpoint_url}: {e}") from e

        if not response.ok:
            logger.debug(f"{self.method} {self.endpoint_url} returned HTTP {response.status_code}")
            raise ProtocolError(
                response.status_code,
                body=response.text or "",
                reason=response.reason or "",
            )

        logger.debug(f"{self.method} {self.endpoint_url} -> {len(response.text)} chars")
        return response.text

    def close(self) -> None:
        """Close the underlying requests session."""
        self._session.close()

    def __enter__(self) -> SparqlClient:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit - close session."""
        self.close()

    def __repr__(self) -> str:
        return f"SparqlClient({self.endpoint_url!r}, method={self.method!r})"
