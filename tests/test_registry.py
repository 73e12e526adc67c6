"""Tests for the runtime document registry."""

import json

import pytest

from pyswag import registry
from pyswag.registry import SwaggerInfo

_DOC = json.dumps({"swagger": "2.0", "info": {"title": "API", "version": "1.0"}, "host": "localhost", "paths": {}})


@pytest.fixture
def registered():
    info = SwaggerInfo(title="API", version="1.0", instance_name="test-api", swagger_template=_DOC)
    registry.register("test-api", info)
    yield info
    registry.unregister("test-api")


class TestRegistry:
    def test_read_registered(self, registered):
        doc = json.loads(registry.read_doc("test-api"))
        assert doc["info"]["title"] == "API"

    def test_duplicate_name(self, registered):
        with pytest.raises(ValueError):
            registry.register("test-api", SwaggerInfo())

    def test_missing_name(self):
        assert registry.get("nobody") is None
        with pytest.raises(LookupError):
            registry.read_doc("nobody")


class TestSwaggerInfo:
    def test_runtime_overrides(self, registered):
        registered.host = "api.example.com"
        registered.base_path = "/v2"
        registered.schemes = ["https"]
        doc = json.loads(registered.read_doc())
        assert doc["host"] == "api.example.com"
        assert doc["basePath"] == "/v2"
        assert doc["schemes"] == ["https"]

    def test_empty_fields_keep_document_values(self):
        doc = json.loads(SwaggerInfo(swagger_template=_DOC).read_doc())
        assert doc["host"] == "localhost"
        assert doc["info"]["title"] == "API"
