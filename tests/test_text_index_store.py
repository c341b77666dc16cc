"""
Tests for the text index store
"""

import json

from conftest import make_chunk

from saber.src.database.schemas import TextIndex
from saber.src.database.text_index_store import TextIndexStore


class TestLoad:
    def test_missing_file_is_empty(self, tmp_path):
        store = TextIndexStore(index_path=tmp_path / "absent.json")
        assert store.is_empty
        assert store.count() == 0

    def test_malformed_json_is_empty(self, tmp_path):
        path = tmp_path / "vector_index.json"
        path.write_text("{not json", encoding="utf-8")
        assert TextIndexStore(index_path=path).is_empty

    def test_wrong_shape_is_empty(self, tmp_path):
        path = tmp_path / "vector_index.json"
        path.write_text(json.dumps([{"id": "a"}]), encoding="utf-8")
        assert TextIndexStore(index_path=path).is_empty

    def test_empty_docs_is_empty(self, tmp_path):
        path = tmp_path / "vector_index.json"
        path.write_text(json.dumps({"docs": []}), encoding="utf-8")
        assert TextIndexStore(index_path=path).is_empty


class TestDimensions:
    def test_consistent_index(self, text_store):
        text_store.save(TextIndex(docs=[make_chunk("faq.md", i, "t", [0.1, 0.2, 0.3]) for i in range(3)]))
        assert text_store.index.dimensions == {3}

    def test_empty_index(self, text_store):
        assert text_store.index.dimensions == set()

    def test_mixed_sizes_warn_on_load(self, tmp_path, saber_logs):
        path = tmp_path / "vector_index.json"
        TextIndexStore(index_path=path).save(TextIndex(docs=[make_chunk("a.md", 0, "um", [1.0, 0.0]), make_chunk("b.md", 0, "dois", [1.0, 0.0, 0.0])]))
        saber_logs.clear()

        reloaded = TextIndexStore(index_path=path)

        assert reloaded.index.dimensions == {2, 3}
        assert any(r.levelname == "WARNING" and "mixes embedding sizes" in r.getMessage() for r in saber_logs.records)

    def test_consistent_index_loads_quietly(self, tmp_path, saber_logs):
        path = tmp_path / "vector_index.json"
        TextIndexStore(index_path=path).save(TextIndex(docs=[make_chunk("a.md", 0, "um", [1.0, 0.0])]))
        saber_logs.clear()

        TextIndexStore(index_path=path)

        assert not [r for r in saber_logs.records if r.levelname == "WARNING"]


class TestSave:
    def test_file_format(self, text_store):
        text_store.save(TextIndex(docs=[make_chunk("faq.md", 0, "Olá mundo", [0.1, 0.2])]))

        payload = json.loads(text_store.path.read_text(encoding="utf-8"))
        assert payload == {"docs": [{"id": "faq.md#0", "file": "faq.md", "text": "Olá mundo", "embedding": [0.1, 0.2]}]}

    def test_save_replaces_resident_index(self, text_store):
        index = TextIndex(docs=[make_chunk("a.txt", 0, "um", [1.0])])
        text_store.save(index)
        assert text_store.index is index
        assert text_store.count() == 1

    def test_round_trip(self, tmp_path):
        path = tmp_path / "vector_index.json"
        docs = [make_chunk("faq.md", i, f"trecho {i}", [i * 0.5, -1.25, 3.0e-4]) for i in range(5)]
        TextIndexStore(index_path=path).save(TextIndex(docs=docs))

        reloaded = TextIndexStore(index_path=path)

        assert reloaded.count() == 5
        assert [c.id for c in reloaded.docs] == [c.id for c in docs]
        assert [c.text for c in reloaded.docs] == [c.text for c in docs]
        assert [c.embedding for c in reloaded.docs] == [c.embedding for c in docs]

    def test_overwrite_leaves_no_temp_files(self, text_store):
        text_store.save(TextIndex(docs=[make_chunk("a.txt", 0, "um", [1.0])]))
        text_store.save(TextIndex(docs=[make_chunk("b.txt", 0, "dois", [2.0])]))

        assert [p.name for p in text_store.path.parent.iterdir() if p.name.endswith(".tmp")] == []
        assert TextIndexStore(index_path=text_store.path).docs[0].id == "b.txt#0"

    def test_repr(self, text_store):
        assert "chunks=0" in repr(text_store)
