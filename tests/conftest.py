"""Shared fixtures: a mocked HTTP session and provider construction."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from rdfexplore.provider import ProviderOptions, SparqlDataProvider
from rdfexplore.settings import resolve

ENDPOINT = "http://example.org/sparql"


def _response(body: Any, status: int = 200, reason: str = "OK") -> MagicMock:
    resp = MagicMock()
    resp.ok = 200 <= status < 300
    resp.status_code = status
    resp.reason = reason
    resp.text = body if isinstance(body, str) else json.dumps(body)
    return resp


@pytest.fixture()
def make_response():
    """Build a mocked ``requests.Response`` from a JSON-able body or text."""
    return _response


@pytest.fixture()
def mock_session():
    """Patch ``requests.Session`` in the transport and yield the session mock."""
    with patch("rdfexplore.sparql_client.requests.Session") as mock_session_cls:
        session = MagicMock()
        mock_session_cls.return_value = session
        yield session


@pytest.fixture()
def provider_factory():
    """Create a provider for ``ENDPOINT`` with a shipped dialect."""

    def factory(dialect: str = "owl_stats", **options: Any) -> SparqlDataProvider:
        options.setdefault("endpoint_url", ENDPOINT)
        return SparqlDataProvider(ProviderOptions(**options), resolve(dialect))

    return factory
