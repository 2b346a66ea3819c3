"""Runtime configuration loaded from environment variables."""

from __future__ import annotations

import os
from typing import Optional

from rdfexplore.provider import ProviderOptions, SparqlDataProvider
from rdfexplore.settings import DEFAULT_DIALECT, load_dialect_file, resolve


class Config:
    """Default provider configuration, overridable through the environment."""

    # SPARQL endpoint
    ENDPOINT = os.getenv("RDFEXPLORE_ENDPOINT", "")
    QUERY_METHOD = os.getenv("RDFEXPLORE_QUERY_METHOD", "GET").upper()

    # Request timeout in seconds (empty = no timeout)
    TIMEOUT = os.getenv("RDFEXPLORE_TIMEOUT", "")

    # Dialect preset, and an optional extra YAML preset to register first
    DIALECT = os.getenv("RDFEXPLORE_DIALECT", DEFAULT_DIALECT)
    DIALECT_FILE = os.getenv("RDFEXPLORE_DIALECT_FILE", "")

    # Instance label property overriding the dialect's
    LABEL_PROPERTY = os.getenv("RDFEXPLORE_LABEL_PROPERTY", "")

    # Comma-separated image property IRIs
    IMAGE_PROPERTIES = os.getenv("RDFEXPLORE_IMAGE_PROPERTIES", "")


class TestConfig(Config):
    """Configuration overrides for testing."""

    __test__ = False

    ENDPOINT = "http://example.org/sparql"
    QUERY_METHOD = "GET"
    TIMEOUT = "5"
    DIALECT = DEFAULT_DIALECT
    DIALECT_FILE = ""
    LABEL_PROPERTY = ""
    IMAGE_PROPERTIES = ""


def split_csv(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


def options_from_config(
    config_class: type[Config] = Config,
    endpoint: Optional[str] = None,
) -> ProviderOptions:
    """Build :class:`ProviderOptions` from *config_class*; *endpoint* wins if given."""
    endpoint_url = endpoint or config_class.ENDPOINT
    if not endpoint_url:
        raise ValueError("No SPARQL endpoint configured (set RDFEXPLORE_ENDPOINT)")
    return ProviderOptions(
        endpoint_url=endpoint_url,
        query_method=config_class.QUERY_METHOD,
        timeout=float(config_class.TIMEOUT) if config_class.TIMEOUT else None,
        label_property=config_class.LABEL_PROPERTY or None,
        image_property_uris=split_csv(config_class.IMAGE_PROPERTIES),
    )


def provider_from_config(
    config_class: type[Config] = Config,
    endpoint: Optional[str] = None,
) -> SparqlDataProvider:
    """Create a :class:`SparqlDataProvider` from *config_class*."""
    if config_class.DIALECT_FILE:
        load_dialect_file(config_class.DIALECT_FILE)
    return SparqlDataProvider(
        options_from_config(config_class, endpoint),
        resolve(config_class.DIALECT),
    )
