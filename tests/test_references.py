"""
Tests for batched value reference resolution.
"""

from unittest.mock import MagicMock

import pytest

from meridian.domain.document import Document
from meridian.framework.configuration.models import ResolverSettings
from meridian.framework.references import (
    ConnectorRegistry,
    DocumentReferenceResolver,
    ValueReferenceResolver,
    parse_reference,
)
from meridian.infrastructure.connectors import EnvironmentValueConnector
from meridian.infrastructure.exceptions import (
    ConnectorError,
    InvalidReferenceError,
    MissingTargetError,
    TransientFetchError,
)

from tests.fixtures.mock_objects import FailingConnector, StaticValueConnector


class TestValueReferenceResolver:
    """Test batching, dedup and missing-name handling."""

    def test_allow_missing_omits_unknown_names(self, connector):
        resolver = ValueReferenceResolver(connector, ResolverSettings(allow_missing=True))
        assert resolver.resolve(["p1", "p2", "missing"]) == {"p1": "v1", "p2": "v2"}

    def test_missing_names_fail_by_default(self, connector):
        resolver = ValueReferenceResolver(connector, ResolverSettings())
        with pytest.raises(MissingTargetError) as exc_info:
            resolver.resolve(["p1", "p2", "missing"])
        assert exc_info.value.targets == ["missing"]

    def test_empty_input_makes_no_calls(self, connector):
        resolver = ValueReferenceResolver(connector)
        assert resolver.resolve([]) == {}
        assert resolver.resolve(["", "  "]) == {}
        assert connector.batches == []

    def test_dedup_and_batching(self):
        connector = StaticValueConnector({f"n{i}": i for i in range(25)})
        resolver = ValueReferenceResolver(connector, ResolverSettings(batch_size=10))
        names = [f"n{i}" for i in range(25)] + ["n0", "n3"]

        result = resolver.resolve(names)

        assert len(result) == 25
        assert [len(b) for b in connector.batches] == [10, 10, 5]
        assert connector.batches[0][0] == "n0"

    def test_parallel_batches(self):
        connector = StaticValueConnector({f"n{i}": i for i in range(25)})
        resolver = ValueReferenceResolver(connector, ResolverSettings(batch_size=5, parallel=True, max_workers=3))
        result = resolver.resolve([f"n{i}" for i in range(25)])
        assert result == {f"n{i}": i for i in range(25)}
        assert len(connector.batches) == 5

    def test_extra_returned_names_are_ignored(self):
        connector = StaticValueConnector({"a": 1}, extra={"unrequested": 2})
        assert ValueReferenceResolver(connector).resolve(["a"]) == {"a": 1}

    def test_connector_failure_is_wrapped(self):
        resolver = ValueReferenceResolver(FailingConnector())
        with pytest.raises(TransientFetchError) as exc_info:
            resolver.resolve(["a"])
        assert isinstance(exc_info.value.cause, ConnectionError)

    def test_list_and_supports(self, connector):
        resolver = ValueReferenceResolver(connector)
        assert resolver.list() == ["db.password", "p1", "p2"]
        assert resolver.supports("static")
        assert resolver.supports("fixed")
        assert not resolver.supports("env")

    def test_list_not_supported(self):
        with pytest.raises(NotImplementedError):
            ValueReferenceResolver(FailingConnector()).list()


class TestConnectorRegistry:
    """Test the explicit connector table."""

    def test_register_and_lookup(self):
        registry = ConnectorRegistry().register(StaticValueConnector)
        assert registry.types() == ["static"]
        assert registry.lookup("fixed") is StaticValueConnector
        assert registry.primary_type("fixed") == "static"
        assert "static" in registry
        assert isinstance(registry.create("static"), StaticValueConnector)

    def test_explicit_tags(self):
        factory = MagicMock(return_value=StaticValueConnector())
        registry = ConnectorRegistry().register(factory, type_tag="secrets", aliases=["vault"])
        registry.create("vault", token="abc")
        factory.assert_called_once_with(token="abc")

    def test_duplicate_tag_rejected(self):
        registry = ConnectorRegistry().register(StaticValueConnector)
        with pytest.raises(ConnectorError):
            registry.register(StaticValueConnector)
        with pytest.raises(ConnectorError):
            registry.register(EnvironmentValueConnector, type_tag="other", aliases=["fixed"])

    def test_missing_type_tag_rejected(self):
        with pytest.raises(ConnectorError):
            ConnectorRegistry().register(lambda: None)

    def test_unknown_type(self):
        with pytest.raises(InvalidReferenceError):
            ConnectorRegistry().lookup("nope")

    def test_factory_failure(self):
        def broken():
            raise OSError("no credentials")

        registry = ConnectorRegistry().register(broken, type_tag="broken")
        with pytest.raises(ConnectorError):
            registry.create("broken")

    def test_registries_are_independent(self):
        ConnectorRegistry().register(StaticValueConnector)
        assert ConnectorRegistry().types() == []


class TestDocumentReferenceResolver:
    """Test substitution of %{type:name} leaves."""

    def make_resolver(self, values, allow_missing=False):
        connector = StaticValueConnector(values)
        registry = ConnectorRegistry().register(lambda: connector, type_tag="static", aliases=["fixed"])
        return DocumentReferenceResolver(registry, ResolverSettings(allow_missing=allow_missing)), connector

    def test_parse_reference(self):
        assert parse_reference("%{env:HOME}") == ("env", "HOME")
        assert parse_reference("plain") is None
        assert parse_reference(42) is None
        with pytest.raises(InvalidReferenceError):
            parse_reference("%{env}")
        with pytest.raises(InvalidReferenceError):
            parse_reference("%{:HOME}")

    def test_substitution(self):
        resolver, connector = self.make_resolver({"db.password": "s3cret", "port": 5432})
        doc = Document({
            "db": {"password": "%{static:db.password}", "port": "%{fixed:port}", "host": "localhost"},
            "again": "%{static:db.password}",
        })

        resolved = resolver.resolve_document(doc)

        assert resolved == {"db": {"password": "s3cret", "port": 5432, "host": "localhost"}, "again": "s3cret"}
        assert doc.get("db.password") == "%{static:db.password}"
        # aliases share one connector and one deduplicated batch
        assert connector.batches == [["db.password", "port"]]

    def test_document_without_references_is_returned_as_is(self):
        resolver, connector = self.make_resolver({})
        doc = Document({"a": 1})
        assert resolver.resolve_document(doc) is doc
        assert connector.batches == []

    def test_missing_reference_removes_key_when_allowed(self):
        resolver, _ = self.make_resolver({"a": 1}, allow_missing=True)
        resolved = resolver.resolve_document(Document({"x": "%{static:a}", "y": "%{static:b}"}))
        assert resolved == {"x": 1}

    def test_missing_reference_fails(self):
        resolver, _ = self.make_resolver({"a": 1})
        with pytest.raises(MissingTargetError):
            resolver.resolve_document(Document({"y": "%{static:b}"}))

    def test_unknown_type(self):
        resolver, _ = self.make_resolver({})
        with pytest.raises(InvalidReferenceError):
            resolver.resolve_document(Document({"y": "%{vault:b}"}))

    def test_connector_reused_and_closed(self):
        resolver, connector = self.make_resolver({"a": 1})
        resolver.resolve_document(Document({"x": "%{static:a}"}))
        resolver.resolve_document(Document({"x": "%{fixed:a}"}))
        assert len(connector.batches) == 2
        resolver.close()
        assert connector.closed

    def test_environment_references(self):
        registry = ConnectorRegistry().register(EnvironmentValueConnector)
        resolver = DocumentReferenceResolver(
            registry,
            connector_options={"env": {"environ": {"DB_PORT": "5432", "DEBUG": "true"}}}
        )
        resolved = resolver.resolve_document(Document({"port": "%{env:DB_PORT}", "debug": "%{environ:DEBUG}"}))
        assert resolved == {"port": 5432, "debug": True}

    def test_references_inside_lists(self):
        resolver, connector = self.make_resolver({"a": "x", "b": "y"})
        doc = Document({"items": ["%{static:a}", "plain", {"key": "%{fixed:b}"}]})

        resolved = resolver.resolve_document(doc)

        assert resolved == {"items": ["x", "plain", {"key": "y"}]}
        assert connector.batches == [["a", "b"]]

    def test_missing_list_references_removed_when_allowed(self):
        resolver, _ = self.make_resolver({"b": "y"}, allow_missing=True)
        doc = Document({"items": ["%{static:a}", "%{static:b}", "%{static:c}", "keep"]})
        assert resolver.resolve_document(doc) == {"items": ["y", "keep"]}
