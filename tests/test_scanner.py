"""
Tests for the directory scanner and listing snapshots.
"""

from meridian.domain.document import Document
from meridian.domain.models import FetchTarget, Query
from meridian.framework.scanner import DirectoryScanner, ListingSnapshot, join_path
from meridian.infrastructure.stores import InMemoryBackingStore


class TestListingSnapshot:
    """Test snapshot primitives."""

    def setup_method(self):
        self.snapshot = ListingSnapshot({
            "base/application.yaml": "1",
            "base/conf.d/01-x.conf": "2",
            "base/conf.d/02-y.conf": "3",
            "base/conf.d/nested/deep.yaml": "4",
        })

    def test_is_directory(self):
        assert self.snapshot.is_directory("base")
        assert self.snapshot.is_directory("base/conf.d/")
        assert not self.snapshot.is_directory("base/application.yaml")
        assert not self.snapshot.is_directory("other")

    def test_path_exists(self):
        assert self.snapshot.path_exists("base/application.yaml")
        assert self.snapshot.path_exists("base/conf.d")
        assert not self.snapshot.path_exists("base/missing.yaml")

    def test_list_directory_is_lazy_and_restartable(self):
        listing = self.snapshot.list_directory("base/conf.d")
        assert not isinstance(listing, list)
        assert list(listing) == ["01-x.conf", "02-y.conf", "nested"]
        assert list(listing) == []
        assert list(self.snapshot.list_directory("base/conf.d")) == ["01-x.conf", "02-y.conf", "nested"]

    def test_revision(self):
        assert self.snapshot.revision("base/conf.d/01-x.conf") == "2"
        assert self.snapshot.revision("missing") == ""

    def test_join_path(self):
        assert join_path("", "a") == "a"
        assert join_path("a/", "/b") == "a/b"


class TestDirectoryScanner:
    """Test the primary document + overlay directory convention."""

    def make_store(self):
        return InMemoryBackingStore({
            "base/application.yaml": "a: 1\nb: 1\n",
            "base/conf.d/02-y.conf": "c: 3\n",
            "base/conf.d/01-x.conf": "b: 2\n",
            "base/conf.d/.hidden.conf": "b: 99\n",
            "base/conf.d/notes.txt": "b: 98\n",
            "single.yaml": "x: 1\n",
        })

    def test_expand_primary_then_sorted_overlays(self):
        store = self.make_store()
        scanner = DirectoryScanner(store)
        snapshot = scanner.snapshot(Query(), ["base"])

        targets = scanner.expand("base", snapshot)

        assert [t.target_id for t in targets] == [
            "base/application.yaml",
            "base/conf.d/01-x.conf",
            "base/conf.d/02-y.conf",
        ]
        assert all(t.revision for t in targets)

    def test_expand_file_base_path(self):
        store = self.make_store()
        scanner = DirectoryScanner(store)
        snapshot = scanner.snapshot(Query(), ["single.yaml"])
        assert scanner.expand("single.yaml", snapshot) == [FetchTarget("single.yaml", "6")]

    def test_expand_missing_base_path(self):
        store = self.make_store()
        scanner = DirectoryScanner(store)
        snapshot = scanner.snapshot(Query(), ["nowhere"])
        assert scanner.expand("nowhere", snapshot) == []

    def test_overlay_disabled(self):
        store = self.make_store()
        scanner = DirectoryScanner(store, overlay_enabled=False)
        targets = scanner.expand("base", scanner.snapshot(Query(), ["base"]))
        assert [t.target_id for t in targets] == ["base/application.yaml"]

    def test_overlay_only_without_primary(self):
        store = InMemoryBackingStore({"base/conf.d/01.yaml": "a: 1\n"})
        scanner = DirectoryScanner(store)
        targets = scanner.expand("base", scanner.snapshot(Query(), ["base"]))
        assert [t.target_id for t in targets] == ["base/conf.d/01.yaml"]

    def test_single_listing_call_per_snapshot(self):
        store = self.make_store()
        scanner = DirectoryScanner(store)
        snapshot = scanner.snapshot(Query(), ["base", "single.yaml"])
        scanner.expand("base", snapshot)
        scanner.expand("single.yaml", snapshot)
        scanner.expand("base", snapshot)
        assert store.listing_calls == 1

    def test_merge_overlays_over_primary(self):
        """Primary {a:1,b:1} + 01-x {b:2} + 02-y {c:3} merges to {a:1,b:2,c:3}."""
        merged = DirectoryScanner.merge([
            (FetchTarget("base/application.yaml"), Document({"a": 1, "b": 1})),
            (FetchTarget("base/conf.d/01-x.conf"), Document({"b": 2})),
            (FetchTarget("base/conf.d/02-y.conf"), Document({"c": 3})),
        ])
        assert merged == {"a": 1, "b": 2, "c": 3}

    def test_later_overlay_wins(self):
        merged = DirectoryScanner.merge([
            (FetchTarget("base/conf.d/01.conf"), Document({"b": 2})),
            (FetchTarget("base/conf.d/02.conf"), Document({"b": 3})),
            (FetchTarget("base/conf.d/03.conf"), None),
        ])
        assert merged == {"b": 3}
