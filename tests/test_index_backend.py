"""Phonetic index storage: idempotent merges, build flag, graceful lookups."""

import asyncio
import json

import pytest

from engine import IndexStore, JsonIndexBackend, SqliteIndexBackend, StorageUnavailable
from engine.index_backend import SCHEMA_VERSION, PhoneticIndex


def test_sqlite_merge_is_idempotent_union(tmp_path):
    backend = SqliteIndexBackend(tmp_path / "idx.db")
    backend.merge("X1", ["chat"])
    backend.merge("X1", ["chat"])
    backend.merge("X1", ["chatte", "chat"])
    assert backend.lookup("X1") == ["chat", "chatte"]
    backend.close()


def test_sqlite_dedupes_case_insensitively_first_casing_wins(tmp_path):
    backend = SqliteIndexBackend(tmp_path / "idx.db")
    backend.merge("P1", ["Paris", "paris"])
    backend.merge("P1", ["PARIS"])
    assert backend.lookup("P1") == ["Paris"]
    backend.close()


def test_sqlite_empty_code_is_a_bucket(tmp_path):
    backend = SqliteIndexBackend(tmp_path / "idx.db")
    backend.merge("", ["123", "--"])
    assert backend.lookup("") == ["123", "--"]
    assert backend.lookup("missing") == []
    backend.close()


def test_sqlite_build_flag_survives_reopen(tmp_path):
    path = tmp_path / "idx.db"
    backend = SqliteIndexBackend(path)
    assert not backend.is_built()
    backend.merge("X1", ["chat"])
    backend.mark_built(1)
    backend.close()

    reopened = SqliteIndexBackend(path)
    assert reopened.is_built()
    assert reopened.lookup("X1") == ["chat"]
    assert reopened.stats() == {"buckets": 1, "words": 1, "word_count": 1}
    reopened.close()


def test_sqlite_merge_batch_reports_no_failures(tmp_path):
    backend = SqliteIndexBackend(tmp_path / "idx.db")
    failed = backend.merge_batch({"X1": ["chat", "shat"], "X2": ["cat"]})
    assert failed == []
    assert backend.lookup("X1") == ["chat", "shat"]
    assert backend.lookup("X2") == ["cat"]
    backend.close()


def test_sqlite_unopenable_path_raises(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    with pytest.raises(StorageUnavailable):
        SqliteIndexBackend(blocker / "idx.db")


def test_json_backend_persists(tmp_path):
    path = tmp_path / "idx.json"
    backend = JsonIndexBackend(path)
    backend.merge_batch({"X1": ["chat", "Chat"], "": ["42"]})
    backend.mark_built(3)

    reopened = JsonIndexBackend(path)
    assert reopened.is_built()
    assert reopened.lookup("X1") == ["chat"]
    assert reopened.lookup("") == ["42"]
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["schema"] == SCHEMA_VERSION


def test_json_backend_truncated_file_opens_unbuilt(tmp_path):
    path = tmp_path / "idx.json"
    path.write_text('{"schema": 1, "built": true, "entries": {"X1": ["ch', encoding="utf-8")
    backend = JsonIndexBackend(path)
    assert not backend.is_built()
    assert backend.lookup("X1") == []


def test_json_backend_malformed_payload_opens_unbuilt(tmp_path):
    path = tmp_path / "idx.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")
    assert not JsonIndexBackend(path).is_built()


def test_json_backend_save_leaves_no_temp_file(tmp_path):
    path = tmp_path / "idx.json"
    backend = JsonIndexBackend(path)
    backend.merge("X1", ["chat"])
    backend.mark_built(1)
    assert [p.name for p in tmp_path.iterdir()] == ["idx.json"]


def test_memory_backend_has_no_file():
    backend = JsonIndexBackend()
    backend.merge("X1", ["chat"])
    assert backend.lookup("X1") == ["chat"]


def test_lookup_on_unbuilt_index_is_empty(sqlite_store):
    async def run():
        index = await sqlite_store.open("chat")
        await index.merge_words("X1", {"chat"})
        before = await index.lookup("X1")
        await index.mark_built(1)
        after = await index.lookup("X1")
        await index.close()
        return before, after

    before, after = asyncio.run(run())
    assert before == []
    assert after == ["chat"]


class _BrokenBackend(JsonIndexBackend):
    def is_built(self):
        return True

    def lookup(self, code):
        raise StorageUnavailable("disk gone")


def test_lookup_degrades_to_empty_on_storage_error():
    index = PhoneticIndex("broken", _BrokenBackend())
    assert asyncio.run(index.lookup("X1")) == []


def test_store_names_carry_schema_and_word_list_version(tmp_path):
    store = IndexStore(tmp_path, backend="sqlite", word_list_version="abc123")
    assert store.index_name("metaphone") == f"metaphone_s{SCHEMA_VERSION}_abc123"
    assert store.index_path("metaphone") == tmp_path / f"metaphone_s{SCHEMA_VERSION}_abc123.db"
    other = IndexStore(tmp_path, backend="json", word_list_version="def456")
    assert other.index_path("metaphone").suffix == ".json"


def test_store_validates_backend(tmp_path):
    with pytest.raises(ValueError):
        IndexStore(tmp_path, backend="redis")
    with pytest.raises(ValueError):
        IndexStore(None, backend="sqlite")
    assert IndexStore(None, backend="memory").index_path("soundex") is None


def test_store_open_keeps_indexes_separate(sqlite_store):
    async def run():
        a = await sqlite_store.open("alpha")
        b = await sqlite_store.open("beta")
        await a.merge_words("K", ["one"])
        await a.mark_built(1)
        await b.mark_built(0)
        result = await a.lookup("K"), await b.lookup("K")
        await a.close()
        await b.close()
        return result

    assert asyncio.run(run()) == (["one"], [])
