"""
Collection store: whole-collection load/save, corrupt data, repositories,
preferences.
"""

import json

import pytest

from logbook_errors import StorageReadError
from logbook_store import COLLECTIONS, GEAR, OUTINGS, SPOTS, KeyValueStore


def test_empty_store_loads_empty_lists(store):
    for name in COLLECTIONS:
        assert store.load(name) == []


def test_save_replaces_whole_collection(store):
    store.save(GEAR, [{"id": "a"}, {"id": "b"}])
    store.save(GEAR, [{"id": "c"}])
    assert store.load(GEAR) == [{"id": "c"}]


def test_save_keeps_order(store):
    records = [{"id": str(i)} for i in range(10, 0, -1)]
    store.save(OUTINGS, records)
    assert [r["id"] for r in store.load(OUTINGS)] == [str(i) for i in range(10, 0, -1)]


def test_corrupt_json_loads_as_empty(store):
    path = store.kv.path_for(SPOTS)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("{not json", encoding="utf-8")
    assert store.load(SPOTS) == []


def test_non_list_value_loads_as_empty(store):
    store.kv.set(SPOTS, {"id": "x"})
    assert store.load(SPOTS) == []


def test_kv_get_raises_on_corrupt_file(tmp_path):
    kv = KeyValueStore(tmp_path)
    (tmp_path / "broken.json").write_text("[1, 2", encoding="utf-8")
    with pytest.raises(StorageReadError):
        kv.get("broken")


def test_kv_set_leaves_no_temp_files(tmp_path):
    kv = KeyValueStore(tmp_path)
    kv.set("gear", [{"id": "a"}])
    assert sorted(p.name for p in tmp_path.iterdir()) == ["gear.json"]
    assert json.loads((tmp_path / "gear.json").read_text(encoding="utf-8")) == [{"id": "a"}]


def test_unknown_collection(store):
    with pytest.raises(KeyError):
        store.load("fish")


def test_repository_add_delete_sequence(store):
    repo = store.repository(GEAR)
    for rid in ("a", "b", "c", "d"):
        repo.add({"id": rid, "name": rid.upper()})
    assert repo.delete("b") is True
    assert repo.delete("b") is False
    repo.add({"id": "e", "name": "E"})
    assert repo.delete("a") is True

    ids = [r["id"] for r in store.load(GEAR)]
    assert ids == ["c", "d", "e"]
    assert len(ids) == len(set(ids))


def test_repository_rejects_duplicate_id(store):
    repo = store.repository(GEAR)
    repo.add({"id": "a"})
    with pytest.raises(ValueError):
        repo.add({"id": "a"})
    assert len(repo) == 1


def test_repository_get(store):
    repo = store.repository(SPOTS)
    repo.add({"id": "s1", "name": "Pier"})
    assert repo.get("s1")["name"] == "Pier"
    assert repo.get("nope") is None


def test_theme_defaults_and_validates(store):
    assert store.get_theme() == "dark"
    store.set_theme("light")
    assert store.get_theme() == "light"
    with pytest.raises(ValueError):
        store.set_theme("neon")


def test_autosave_flag(store):
    assert store.autosave_enabled() is False
    store.set_autosave(True)
    assert store.autosave_enabled() is True
