"""Tests for SparqlDataProvider operations (transport mocked)."""

from __future__ import annotations

import asyncio

import pytest

from rdfexplore.errors import CompositionError, ProtocolError
from rdfexplore.models import FilterRequest, LocalizedText, RdfTerm
from rdfexplore.normalize import more_items_available
from rdfexplore.provider import ProviderOptions, SparqlDataProvider
from rdfexplore.settings import resolve

IMAGE_PROP = "http://ex/depiction"


def _uri(value):
    return {"type": "uri", "value": value}


def _lit(value, lang=None):
    cell = {"type": "literal", "value": value}
    if lang:
        cell["xml:lang"] = lang
    return cell


def _results(*rows):
    return {"head": {"vars": []}, "results": {"bindings": list(rows)}}


ELEMENT_ROWS = _results(
    {"inst": _uri("http://ex/1"), "class": _uri("http://ex/Person"), "label": _lit("Alice", "en")},
    {"inst": _uri("http://ex/1"), "class": _uri("http://ex/Agent"), "label": _lit("Alice", "en")},
)


def _sent_query(mock_session, call=-1):
    return mock_session.get.call_args_list[call].kwargs["params"]["query"]


class TestOptions:
    def test_query_method_normalized(self):
        assert ProviderOptions(endpoint_url="http://x", query_method="post").query_method == "POST"

    def test_default_dialect(self):
        provider = SparqlDataProvider(ProviderOptions(endpoint_url="http://x"))
        assert provider.settings.name == "owl_stats"

    def test_label_property_override(self, provider_factory):
        provider = provider_factory(label_property="skos:prefLabel")
        assert provider.data_label_property == "skos:prefLabel"

    def test_repr(self, provider_factory):
        assert "owl_stats" in repr(provider_factory())


class TestSchemaOperations:
    def test_class_tree(self, mock_session, make_response, provider_factory):
        mock_session.get.return_value = make_response(
            _results(
                {"class": _uri("http://ex/A"), "instcount": _lit("4")},
                {"class": _uri("http://ex/B"), "parent": _uri("http://ex/A")},
            )
        )

        roots = asyncio.run(provider_factory().class_tree())

        assert [r.id for r in roots] == ["http://ex/A"]
        assert roots[0].count == 4
        assert roots[0].children[0].id == "http://ex/B"
        assert "?instcount" in _sent_query(mock_session)

    def test_link_types(self, mock_session, make_response, provider_factory):
        mock_session.get.return_value = make_response(
            _results({"link": _uri("http://ex/knows"), "label": _lit("knows"), "instcount": _lit("")})
        )
        [link] = asyncio.run(provider_factory().link_types())
        assert link.id == "http://ex/knows"
        assert link.labels == [LocalizedText(text="knows")]

    def test_protocol_error_propagates(self, mock_session, make_response, provider_factory):
        mock_session.get.return_value = make_response("bad query", status=400, reason="Bad Request")

        with pytest.raises(ProtocolError) as exc_info:
            asyncio.run(provider_factory().class_tree())

        assert exc_info.value.status_code == 400
        assert exc_info.value.body == "bad query"
        assert mock_session.get.call_count == 1


class TestElementInfo:
    def test_rows_merged(self, mock_session, make_response, provider_factory):
        mock_session.get.return_value = make_response(ELEMENT_ROWS)

        elements = asyncio.run(provider_factory().element_info(["http://ex/1"]))

        assert list(elements) == ["http://ex/1"]
        element = elements["http://ex/1"]
        assert element.types == ["http://ex/Person", "http://ex/Agent"]
        assert element.labels == [LocalizedText(text="Alice", lang="en")]
        assert element.image is None

    def test_label_property_in_query(self, mock_session, make_response, provider_factory):
        mock_session.get.return_value = make_response(_results())
        asyncio.run(provider_factory(label_property="skos:prefLabel").element_info(["http://ex/1"]))
        assert "?inst skos:prefLabel ?label" in _sent_query(mock_session)

    def test_post_method(self, mock_session, make_response, provider_factory):
        mock_session.post.return_value = make_response(ELEMENT_ROWS)

        asyncio.run(provider_factory(query_method="POST").element_info(["http://ex/1"]))

        mock_session.get.assert_not_called()
        body = mock_session.post.call_args.kwargs["data"].decode("utf-8")
        assert "VALUES (?inst) { (<http://ex/1>) }" in body


class TestImages:
    def test_image_query(self, mock_session, make_response, provider_factory):
        mock_session.get.side_effect = [
            make_response(ELEMENT_ROWS),
            make_response(
                _results({"inst": _uri("http://ex/1"), "linkType": _uri(IMAGE_PROP), "image": _uri("http://img/a.png")})
            ),
        ]

        elements = asyncio.run(
            provider_factory(image_property_uris=[IMAGE_PROP]).element_info(["http://ex/1"])
        )

        assert elements["http://ex/1"].image == "http://img/a.png"
        assert f"VALUES (?linkType) {{(<{IMAGE_PROP}>)}}" in _sent_query(mock_session, 1)

    def test_failing_image_query_degrades(self, mock_session, make_response, provider_factory):
        mock_session.get.side_effect = [
            make_response(ELEMENT_ROWS),
            make_response("timeout", status=504, reason="Gateway Timeout"),
        ]

        elements = asyncio.run(
            provider_factory(image_property_uris=[IMAGE_PROP]).element_info(["http://ex/1"])
        )

        assert elements["http://ex/1"].image is None
        assert elements["http://ex/1"].types == ["http://ex/Person", "http://ex/Agent"]

    def test_image_callback(self, mock_session, make_response, provider_factory):
        mock_session.get.return_value = make_response(ELEMENT_ROWS)

        def prepare(elements):
            return {element_id: f"http://img/{i}.png" for i, element_id in enumerate(elements)}

        elements = asyncio.run(provider_factory(prepare_images=prepare).element_info(["http://ex/1"]))

        assert elements["http://ex/1"].image == "http://img/0.png"
        assert mock_session.get.call_count == 1

    def test_async_image_callback(self, mock_session, make_response, provider_factory):
        mock_session.get.return_value = make_response(ELEMENT_ROWS)

        async def prepare(elements):
            return {"http://ex/1": "http://img/async.png"}

        elements = asyncio.run(provider_factory(prepare_images=prepare).element_info(["http://ex/1"]))
        assert elements["http://ex/1"].image == "http://img/async.png"

    def test_failing_image_callback_degrades(self, mock_session, make_response, provider_factory):
        mock_session.get.return_value = make_response(ELEMENT_ROWS)

        def prepare(elements):
            raise RuntimeError("image service down")

        elements = asyncio.run(provider_factory(prepare_images=prepare).element_info(["http://ex/1"]))

        assert elements["http://ex/1"].image is None
        assert elements["http://ex/1"].labels == [LocalizedText(text="Alice", lang="en")]

    def test_failing_async_image_callback_degrades(self, mock_session, make_response, provider_factory):
        mock_session.get.return_value = make_response(ELEMENT_ROWS)

        async def prepare(elements):
            raise RuntimeError("image service down")

        elements = asyncio.run(provider_factory(prepare_images=prepare).element_info(["http://ex/1"]))

        assert elements["http://ex/1"].image is None
        assert mock_session.get.call_count == 1


class TestFilter:
    def test_filter_by_text(self, mock_session, make_response, provider_factory):
        mock_session.get.return_value = make_response(
            _results(
                {"inst": _uri("http://ex/b"), "class": _uri("http://ex/C"), "label": _lit("Berlin")},
                {"inst": _uri("http://ex/a"), "class": _uri("http://ex/C"), "label": _lit("Berliner")},
            )
        )

        elements = asyncio.run(provider_factory("owl_rdfs").filter(FilterRequest(text="berlin")))

        assert list(elements) == ["http://ex/b", "http://ex/a"]
        assert '"berlin", "i"' in _sent_query(mock_session)

    def test_ref_link_without_element_fails_before_sending(self, mock_session, provider_factory):
        request = FilterRequest(ref_element_link_id="http://ex/knows")

        with pytest.raises(CompositionError):
            asyncio.run(provider_factory().filter(request))

        mock_session.get.assert_not_called()
        mock_session.post.assert_not_called()

    def test_filter_extended_search_mode(self, mock_session, make_response, provider_factory):
        mock_session.get.return_value = make_response(_results())

        asyncio.run(
            provider_factory("stardog").filter_extended(FilterRequest(text="berlin", search_type="fuzzy"))
        )

        assert 'textMatch "berlin~"' in _sent_query(mock_session)

    def test_search_settings_from_other_dialect(self, mock_session, make_response):
        provider = SparqlDataProvider(
            ProviderOptions(endpoint_url="http://x"),
            resolve("owl_rdfs"),
            search_settings=resolve("stardog"),
        )
        mock_session.get.return_value = make_response(_results())

        asyncio.run(provider.filter_extended(FilterRequest(text="berlin", search_type="exact")))

        query = _sent_query(mock_session)
        assert "PREFIX stardog:" in query
        assert '= "berlin")' in query

    def test_link_elements(self, mock_session, make_response, provider_factory):
        mock_session.get.return_value = make_response(_results({"inst": _uri("http://ex/2")}))

        elements = asyncio.run(
            provider_factory().link_elements("http://ex/1", "http://ex/knows", 10, 20, "out")
        )

        assert list(elements) == ["http://ex/2"]
        query = _sent_query(mock_session)
        assert "{ <http://ex/1> <http://ex/knows> ?inst . FILTER ISIRI(?inst) }" in query
        assert "LIMIT 10 OFFSET 20" in query


class TestLinks:
    def test_links_info(self, mock_session, make_response, provider_factory):
        mock_session.get.return_value = make_response(
            _results({"source": _uri("http://ex/1"), "type": _uri("http://ex/knows"), "target": _uri("http://ex/2")})
        )
        [link] = asyncio.run(provider_factory().links_info(["http://ex/1", "http://ex/2"]))
        assert (link.source_id, link.type_id, link.target_id) == (
            "http://ex/1",
            "http://ex/knows",
            "http://ex/2",
        )

    def test_link_types_of(self, mock_session, make_response, provider_factory):
        mock_session.get.return_value = make_response(
            _results({"link": _uri("http://ex/knows"), "outCount": _lit("3"), "inCount": _lit("1")})
        )
        [count] = asyncio.run(provider_factory().link_types_of("http://ex/1"))
        assert (count.out_count, count.in_count) == (3, 1)


class TestConstruct:
    def test_triples(self, mock_session, make_response, provider_factory):
        mock_session.get.return_value = make_response('<http://ex/a> <http://ex/b> "c" .')

        [triple] = asyncio.run(provider_factory().construct("CONSTRUCT WHERE { ?s ?p ?o }"))

        assert triple.subject == RdfTerm(type="uri", value="http://ex/a")
        assert triple.object == RdfTerm(type="literal", value="c")


class TestConcurrency:
    def test_operations_run_concurrently(self, mock_session, make_response, provider_factory):
        mock_session.get.return_value = make_response(ELEMENT_ROWS)
        provider = provider_factory()

        async def both():
            return await asyncio.gather(
                provider.element_info(["http://ex/1"]),
                provider.filter(FilterRequest(text="alice")),
            )

        info, found = asyncio.run(both())

        assert list(info) == ["http://ex/1"]
        assert list(found) == ["http://ex/1"]
        assert mock_session.get.call_count == 2


class TestScenarios:
    def test_rows_differing_in_optional_label(self, mock_session, make_response, provider_factory):
        mock_session.get.return_value = make_response(
            _results(
                {"inst": _uri("http://ex/1"), "class": _uri("http://ex/C1")},
                {"inst": _uri("http://ex/1"), "label": _lit("Foo")},
            )
        )

        elements = asyncio.run(provider_factory().element_info(["http://ex/1"]))

        assert list(elements) == ["http://ex/1"]
        assert elements["http://ex/1"].types == ["http://ex/C1"]
        assert elements["http://ex/1"].labels == [LocalizedText(text="Foo")]

    @pytest.mark.parametrize("rows, expected", [(100, True), (99, False)])
    def test_full_page_means_more_items(self, mock_session, make_response, provider_factory, rows, expected):
        mock_session.get.return_value = make_response(
            _results(*({"inst": _uri(f"http://ex/{i}")} for i in range(rows)))
        )
        request = FilterRequest(text="x", limit=100, offset=0)

        elements = asyncio.run(provider_factory().filter(request))

        assert len(elements) == rows
        assert more_items_available(elements, request.limit) is expected
