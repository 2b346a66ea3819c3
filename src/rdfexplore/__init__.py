"""rdfexplore: a SPARQL data provider for graph exploration.

Main modules:
- provider: SparqlDataProvider, the async operation surface
- settings: dialect presets and override composition
- composer: query composition from dialect templates
- sparql_client: HTTP transport (GET / POST, JSON / Turtle)
- normalize: responses to canonical records
- search: caller-side search session with stale-response discard
"""

from .errors import (
    CompositionError,
    DialectConfigError,
    DialectNotFoundError,
    ParseError,
    ProtocolError,
    RdfExploreError,
    TransportError,
)
from .models import (
    ClassNode,
    Element,
    FilterRequest,
    LinkCount,
    LinkInstance,
    LinkTypeInfo,
    LocalizedText,
    PropertyInfo,
    PropertyValue,
    RdfTerm,
    RdfTriple,
    SearchType,
)
from .provider import ProviderOptions, SparqlDataProvider
from .search import SearchPage, SearchSession
from .settings import DialectSettings, FullTextSearchSettings, available_dialects, compose, resolve
from .sparql_client import SparqlClient

# Import version information
from .version import VERSION

__all__ = [
    "VERSION",
    "ClassNode",
    "CompositionError",
    "DialectConfigError",
    "DialectNotFoundError",
    "DialectSettings",
    "Element",
    "FilterRequest",
    "FullTextSearchSettings",
    "LinkCount",
    "LinkInstance",
    "LinkTypeInfo",
    "LocalizedText",
    "ParseError",
    "PropertyInfo",
    "PropertyValue",
    "ProtocolError",
    "ProviderOptions",
    "RdfExploreError",
    "RdfTerm",
    "RdfTriple",
    "SearchPage",
    "SearchSession",
    "SearchType",
    "SparqlClient",
    "SparqlDataProvider",
    "TransportError",
    "available_dialects",
    "compose",
    "resolve",
]
