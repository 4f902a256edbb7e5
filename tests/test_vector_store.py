"""Tests for VectorStore, its persisted container and the blob stores"""

import json

import pytest

from vaultrag.indexing.storage import JsonFileBlobStore, MemoryBlobStore
from vaultrag.indexing.vector_store import VECTOR_STORE_VERSION, StoredVector, VectorStore, cosine_similarity
from vaultrag.retrieval.filters import make_filter


def add(store, path, ordinal, vector, content="text"):
    store.upsert(f"{path}::{ordinal}", vector, "h", content, path, f"[[{path}]]")


class StaticTags:
    def __init__(self, tags):
        self.tags = tags

    def get_tags(self, path):
        return self.tags.get(path, set())


class FailingBlobStore(MemoryBlobStore):
    def save(self, data):
        raise OSError("disk full")


class TestCosineSimilarity:

    def test_identical(self):
        assert cosine_similarity([1.0, 2.0], [1.0, 2.0]) == pytest.approx(1.0)

    def test_orthogonal(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite(self):
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)

    def test_length_mismatch_is_zero(self):
        assert cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0]) == 0.0

    def test_zero_norm_is_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0


class TestPersistence:

    def test_missing_data_loads_empty(self, store):
        assert store.load() == 0
        assert store.count() == 0

    def test_round_trip(self, blob_store):
        store = VectorStore(blob_store)
        store.upsert("a.md::0", [0.5, 0.5], "abc", "alpha", "a.md", "[[a]]")
        assert store.has_unsaved_changes()
        assert store.save() is True
        assert not store.has_unsaved_changes()

        assert blob_store.data == {
            "version": VECTOR_STORE_VERSION,
            "vectors": {
                "a.md::0": {
                    "vector": [0.5, 0.5],
                    "contentHash": "abc",
                    "content": "alpha",
                    "filePath": "a.md",
                    "fileLink": "[[a]]",
                }
            },
        }

        reloaded = VectorStore(blob_store)
        assert reloaded.load() == 1
        assert reloaded.get("a.md::0") == StoredVector([0.5, 0.5], "abc", "alpha", "a.md", "[[a]]")

    def test_save_without_changes_is_noop(self, store, blob_store):
        assert store.save() is False
        assert blob_store.save_count == 0

    def test_version_mismatch_loads_empty(self):
        store = VectorStore(MemoryBlobStore({"version": 2, "vectors": {"a::0": {"vector": [1], "contentHash": "x"}}}))
        assert store.load() == 0

    @pytest.mark.parametrize("version", [True, 1.0, "1"])
    def test_version_must_be_the_integer_one(self, version):
        """Values that merely compare equal to 1 are not the supported version"""
        store = VectorStore(MemoryBlobStore({"version": version, "vectors": {"a::0": {"vector": [1.0], "contentHash": "x"}}}))
        assert store.load() == 0
        assert store.count() == 0

    def test_non_dict_payload_loads_empty(self):
        assert VectorStore(MemoryBlobStore(["not", "a", "dict"])).load() == 0

    def test_malformed_records_dropped(self):
        store = VectorStore(MemoryBlobStore({
            "version": 1,
            "vectors": {
                "good::0": {"vector": [1.0], "contentHash": "x"},
                "bad::0": {"contentHash": "x"},
                "worse::0": "nonsense",
            },
        }))
        assert store.load() == 1
        assert store.get("good::0").is_legacy

    def test_save_failure_keeps_store_dirty(self):
        store = VectorStore(FailingBlobStore())
        add(store, "a.md", 0, [1.0])
        assert store.save() is False
        assert store.has_unsaved_changes()

    def test_json_file_store(self, tmp_path):
        path = tmp_path / "nested" / "embeddings.json"
        blob = JsonFileBlobStore(path)
        assert blob.load() is None

        blob.save({"version": 1, "vectors": {}})
        assert json.loads(path.read_text()) == {"version": 1, "vectors": {}}
        assert blob.load() == {"version": 1, "vectors": {}}
        assert [p.name for p in path.parent.iterdir()] == ["embeddings.json"]

    def test_corrupt_json_file_loads_empty(self, tmp_path):
        path = tmp_path / "embeddings.json"
        path.write_text("{not json")
        store = VectorStore(JsonFileBlobStore(path))
        assert store.load() == 0


class TestRecords:

    def test_is_valid(self, store):
        store.upsert("a.md::0", [1.0], "hash1", "alpha", "a.md", "[[a]]")
        assert store.is_valid("a.md::0", "hash1")
        assert not store.is_valid("a.md::0", "hash2")
        assert not store.is_valid("b.md::0", "hash1")

    def test_ids_for_document_uses_exact_prefix(self, store):
        add(store, "a.md", 0, [1.0])
        add(store, "a.md", 1, [1.0])
        add(store, "a.md.bak", 0, [1.0])
        assert sorted(store.ids_for_document("a.md")) == ["a.md::0", "a.md::1"]

    def test_delete(self, store):
        add(store, "a.md", 0, [1.0])
        add(store, "a.md", 1, [1.0])
        add(store, "b.md", 0, [1.0])

        assert store.delete_by_document("a.md") == 2
        assert store.delete_by_ids(["b.md::0", "missing::0"]) == 1
        assert store.count() == 0

    def test_legacy_detection(self):
        store = VectorStore(MemoryBlobStore({
            "version": 1,
            "vectors": {
                "a.md::0": {"vector": [1.0], "contentHash": "x"},
                "b.md::0": {"vector": [1.0], "contentHash": "y", "content": "c", "filePath": "b.md"},
            },
        }))
        store.load()
        assert store.has_legacy_vectors()
        assert store.legacy_count() == 1

    def test_clear(self, store):
        add(store, "a.md", 0, [1.0])
        store.save()
        store.clear()
        assert store.count() == 0
        assert store.has_unsaved_changes()


class TestSearch:

    def test_empty_store_returns_nothing(self, store):
        assert store.search([0.1, 0.2, 0.3], 5) == []

    def test_orders_by_similarity_and_limits(self, store):
        add(store, "far.md", 0, [0.0, 1.0])
        add(store, "near.md", 0, [1.0, 0.1])
        add(store, "mid.md", 0, [1.0, 1.0])

        results = store.search([1.0, 0.0], 2)
        assert [r.document_path for r in results] == ["near.md", "mid.md"]
        assert results[0].score > results[1].score
        assert results[0].chunk_id == "near.md::0"
        assert results[0].display_link == "[[near.md]]"

    def test_equal_scores_keep_insertion_order(self, store):
        add(store, "first.md", 0, [1.0, 0.0])
        add(store, "second.md", 0, [2.0, 0.0])
        assert [r.document_path for r in store.search([1.0, 0.0], 5)] == ["first.md", "second.md"]

    def test_legacy_records_are_skipped(self):
        store = VectorStore(MemoryBlobStore({
            "version": 1,
            "vectors": {"old.md::0": {"vector": [1.0, 0.0], "contentHash": "x"}},
        }))
        store.load()
        add(store, "new.md", 0, [0.0, 1.0])

        assert [r.document_path for r in store.search([1.0, 0.0], 5)] == ["new.md"]

    def test_folder_filter(self, store):
        add(store, "Projects/x.md", 0, [1.0])
        add(store, "Projects", 0, [1.0])
        add(store, "ProjectsArchive/x.md", 0, [1.0])

        results = store.search([1.0], 10, make_filter(folders=["Projects"]))
        assert sorted(r.document_path for r in results) == ["Projects", "Projects/x.md"]

    def test_file_filter(self, store):
        add(store, "a.md", 0, [1.0])
        add(store, "b.md", 0, [1.0])
        results = store.search([1.0], 10, make_filter(files=["b.md"]))
        assert [r.document_path for r in results] == ["b.md"]

    def test_tag_filter_uses_metadata_source(self):
        store = VectorStore(MemoryBlobStore(), metadata_source=StaticTags({
            "a.md": {"work/meetings"},
            "b.md": {"personal"},
        }))
        add(store, "a.md", 0, [1.0])
        add(store, "b.md", 0, [1.0])

        results = store.search([1.0], 10, make_filter(tags=["#Work"]))
        assert [r.document_path for r in results] == ["a.md"]

    def test_excluded_folders_are_never_returned(self):
        store = VectorStore(MemoryBlobStore(), excluded_folders=["Private"])
        add(store, "Private/diary.md", 0, [1.0])
        add(store, "Public/post.md", 0, [1.0])

        assert [r.document_path for r in store.search([1.0], 10)] == ["Public/post.md"]


class TestPurgeExcluded:

    def test_purges_only_the_exact_folder(self, store):
        add(store, "Archive/a.md", 0, [1.0])
        add(store, "Archive2/b.md", 0, [1.0])
        add(store, "Notes/c.md", 0, [1.0])

        assert store.purge_excluded(["Archive"]) == 1
        assert sorted(store.all_ids()) == ["Archive2/b.md::0", "Notes/c.md::0"]

    def test_uses_configured_folders_by_default(self):
        store = VectorStore(MemoryBlobStore(), excluded_folders=["/Old/"])
        add(store, "Old/x.md", 0, [1.0])
        add(store, "Old/x.md", 1, [1.0])
        assert store.purge_excluded() == 2

    def test_nothing_configured(self, store):
        add(store, "a.md", 0, [1.0])
        assert store.purge_excluded() == 0
        assert store.count() == 1

    def test_stats(self, store):
        add(store, "a.md", 0, [1.0])
        stats = store.get_stats()
        assert stats['total_vectors'] == 1
        assert stats['legacy_vectors'] == 0
        assert stats['unsaved_changes'] is True
