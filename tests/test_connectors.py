"""
Tests for the bundled backing stores and value connectors.
"""

import os

import pytest

from meridian.domain.models import Query
from meridian.infrastructure.connectors import EnvironmentValueConnector, parse_value
from meridian.infrastructure.exceptions import TransientFetchError
from meridian.infrastructure.stores import FilesystemBackingStore, InMemoryBackingStore


class TestFilesystemBackingStore:
    """Test the local filesystem store."""

    def make_tree(self, root):
        (root / "app" / "conf.d").mkdir(parents=True)
        (root / "app" / "application.yaml").write_text("a: 1\n")
        (root / "app" / "conf.d" / "01.yaml").write_text("b: 1\n")
        (root / "other.yaml").write_text("c: 1\n")

    def test_listing_under_prefixes(self, tmp_path):
        self.make_tree(tmp_path)
        store = FilesystemBackingStore(tmp_path)

        listing = store.listing(Query(), ["app"])

        assert list(listing) == ["app/application.yaml", "app/conf.d/01.yaml"]
        assert all("-" in revision for revision in listing.values())

    def test_listing_everything(self, tmp_path):
        self.make_tree(tmp_path)
        listing = FilesystemBackingStore(tmp_path).listing(Query())
        assert list(listing) == ["app/application.yaml", "app/conf.d/01.yaml", "other.yaml"]

    def test_listing_file_prefix_and_missing_prefix(self, tmp_path):
        self.make_tree(tmp_path)
        listing = FilesystemBackingStore(tmp_path).listing(Query(), ["other.yaml", "missing"])
        assert list(listing) == ["other.yaml"]

    def test_listing_without_root_needs_prefixes(self):
        with pytest.raises(TransientFetchError):
            FilesystemBackingStore().listing(Query())

    def test_absolute_paths_without_root(self, tmp_path):
        self.make_tree(tmp_path)
        store = FilesystemBackingStore()
        target = (tmp_path / "other.yaml").as_posix()
        assert list(store.listing(Query(), [target])) == [target]
        assert store.content(target) == "c: 1\n"

    def test_normalize(self, tmp_path):
        store = FilesystemBackingStore(tmp_path)
        assert store.normalize("app") == "app"
        assert store.normalize("./app/") == "app"
        assert store.normalize((tmp_path / "app").as_posix()) == "app"
        assert store.normalize("app/conf.d/../application.yaml") == "app/application.yaml"
        assert FilesystemBackingStore().normalize("./config/app") == "config/app"

    def test_content(self, tmp_path):
        self.make_tree(tmp_path)
        store = FilesystemBackingStore(tmp_path)
        assert store.content("app/application.yaml") == "a: 1\n"
        assert store.content("app/missing.yaml") is None
        assert store.content("app") is None

    def test_revision_changes_on_rewrite(self, tmp_path):
        self.make_tree(tmp_path)
        store = FilesystemBackingStore(tmp_path)
        before = store.listing(Query(), ["other.yaml"])["other.yaml"]

        path = tmp_path / "other.yaml"
        path.write_text("c: 1\nd: 2\n")
        stat = path.stat()
        os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000))

        after = store.listing(Query(), ["other.yaml"])["other.yaml"]
        assert before != after

    def test_context_manager(self, tmp_path):
        with FilesystemBackingStore(tmp_path) as store:
            assert store.listing(Query()) == {}


class TestInMemoryBackingStore:
    """Test the dictionary backed store."""

    def test_put_bumps_revision(self):
        store = InMemoryBackingStore()
        assert store.put("a", "x: 1") == "1"
        assert store.put("a", "x: 2") == "2"
        assert store.put("b", "y: 1", revision="etag-1") == "etag-1"
        assert store.listing(Query()) == {"a": "2", "b": "etag-1"}

    def test_prefix_filter(self):
        store = InMemoryBackingStore({"app/a.yaml": "", "application.yaml": "", "app": ""})
        assert list(store.listing(Query(), ["app"])) == ["app", "app/a.yaml"]

    def test_delete_and_content(self):
        store = InMemoryBackingStore({"a": "x: 1"})
        assert store.content("a") == "x: 1"
        assert store.delete("a") is True
        assert store.delete("a") is False
        assert store.content("a") is None
        assert store.content_calls == 2


class TestEnvironmentValueConnector:
    """Test environment variable references."""

    def test_resolve_with_coercion(self):
        connector = EnvironmentValueConnector(environ={
            "PORT": "8080", "RATIO": "0.5", "DEBUG": "False", "HOSTS": "a, b", "NAME": "svc"
        })
        assert connector.resolve_batch(["PORT", "RATIO", "DEBUG", "HOSTS", "NAME", "MISSING"]) == {
            "PORT": 8080, "RATIO": 0.5, "DEBUG": False, "HOSTS": ["a", "b"], "NAME": "svc"
        }

    def test_prefix_and_list(self):
        connector = EnvironmentValueConnector(prefix="APP_", environ={"APP_A": "1", "APP_B": "x", "OTHER": "2", "APP_": "z"})
        assert connector.resolve_batch(["A", "OTHER"]) == {"A": 1}
        assert connector.list() == ["A", "B"]

    def test_raw_values(self):
        connector = EnvironmentValueConnector(environ={"PORT": "8080"}, coerce=False)
        assert connector.resolve_batch(["PORT"]) == {"PORT": "8080"}

    def test_tags(self):
        connector = EnvironmentValueConnector(environ={})
        assert connector.supports("env")
        assert connector.supports("environment")
        assert not connector.supports("ssm")

    def test_defaults_to_process_environment(self, monkeypatch):
        monkeypatch.setenv("MERIDIAN_TEST_VALUE", "42")
        assert EnvironmentValueConnector().resolve_batch(["MERIDIAN_TEST_VALUE"]) == {"MERIDIAN_TEST_VALUE": 42}

    @pytest.mark.parametrize("raw,expected", [
        ("true", True),
        ("TRUE", True),
        ("-3", -3),
        ("1e3", 1000.0),
        ("x,y", ["x", "y"]),
        ("plain", "plain"),
    ])
    def test_parse_value(self, raw, expected):
        assert parse_value(raw) == expected
