"""Tests for environment-driven configuration."""

import pytest

from rdfexplore.config import TestConfig, options_from_config, provider_from_config, split_csv


class TestSplitCsv:
    def test_strips_and_drops_empty(self):
        assert split_csv(" a, b ,,c ") == ["a", "b", "c"]

    def test_empty(self):
        assert split_csv("") == []


class TestOptions:
    def test_from_test_config(self):
        options = options_from_config(TestConfig)
        assert options.endpoint_url == "http://example.org/sparql"
        assert options.query_method == "GET"
        assert options.timeout == 5.0
        assert options.label_property is None
        assert options.image_property_uris == []

    def test_endpoint_argument_wins(self):
        options = options_from_config(TestConfig, endpoint="http://other/sparql")
        assert options.endpoint_url == "http://other/sparql"

    def test_image_properties_and_method(self):
        class ImageConfig(TestConfig):
            QUERY_METHOD = "post"
            IMAGE_PROPERTIES = "http://ex/img, http://ex/thumb"
            TIMEOUT = ""

        options = options_from_config(ImageConfig)
        assert options.query_method == "POST"
        assert options.image_property_uris == ["http://ex/img", "http://ex/thumb"]
        assert options.timeout is None

    def test_missing_endpoint(self):
        class NoEndpoint(TestConfig):
            ENDPOINT = ""

        with pytest.raises(ValueError, match="RDFEXPLORE_ENDPOINT"):
            options_from_config(NoEndpoint)


class TestProvider:
    def test_default_dialect(self):
        provider = provider_from_config(TestConfig)
        assert provider.settings.name == "owl_stats"
        assert provider.options.endpoint_url == "http://example.org/sparql"

    def test_extra_dialect_file(self, tmp_path):
        path = tmp_path / "config_skos.yaml"
        path.write_text("extends: owl_rdfs\ndata_label_property: skos:prefLabel\n", encoding="utf-8")

        class SkosConfig(TestConfig):
            DIALECT = "config_skos"
            DIALECT_FILE = str(path)

        provider = provider_from_config(SkosConfig)

        assert provider.settings.name == "config_skos"
        assert provider.data_label_property == "skos:prefLabel"
