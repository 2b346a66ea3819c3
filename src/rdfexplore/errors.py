"""Exception hierarchy for rdfexplore.

Every failure surfaced by a data provider operation is one of the classes
below.  Composition errors are raised locally before anything is sent over
the wire; transport, protocol and parse errors come from the round-trip to
the endpoint and are never retried here.
"""

from __future__ import annotations


class RdfExploreError(Exception):
    """Base exception for rdfexplore errors."""

    pass


class CompositionError(RdfExploreError, ValueError):
    """Raised when a request or template cannot be turned into a query."""

    pass


class TransportError(RdfExploreError):
    """Raised when the endpoint cannot be reached (DNS, timeout, reset)."""

    pass


class ProtocolError(RdfExploreError):
    """Raised when the endpoint answers with a non-2xx HTTP status."""

    def __init__(self, status_code: int, body: str = "", reason: str = "") -> None:
        self.status_code = status_code
        self.body = body
        self.reason = reason
        message = f"HTTP {status_code}"
        if reason:
            message += f" {reason}"
        super().__init__(message)


class ParseError(RdfExploreError):
    """Raised when a JSON or Turtle response cannot be parsed."""

    pass


class DialectConfigError(RdfExploreError):
    """Raised when a dialect definition or override set is malformed."""

    pass


class DialectNotFoundError(RdfExploreError, LookupError):
    """Raised when no dialect is registered under the requested name."""

    pass
