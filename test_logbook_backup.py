"""
Backup export / import: round trip, best-effort validation, full replace.
"""

import datetime as dt
import json

import pytest

from logbook_backup import (
    SCHEMA_VERSION,
    apply_document,
    backup_filename,
    export_document,
    parse_document,
    preview,
    upgrade_legacy_record,
    validate_document,
    write_backup,
)
from logbook_errors import EmptyDocument, MalformedDocument
from logbook_store import CATCHES, GEAR, OUTINGS, SPOTS


def _seed(store):
    store.save(GEAR, [{"id": "g2", "name": "Reel"}, {"id": "g1", "name": "Rod"}])
    store.save(SPOTS, [{"id": "s1", "name": "Pier", "latitude": 44.1, "longitude": 9.8}])
    store.save(OUTINGS, [{"id": "o1", "date": "2024-01-05", "spotId": "s1", "gearIds": ["g1"]}])
    store.save(CATCHES, [{"id": "c1", "date": "2024-01-05", "species": "Bass", "weight": None}])


def test_export_shape(store):
    _seed(store)
    now = dt.datetime(2024, 2, 1, 12, 0, tzinfo=dt.timezone.utc)
    doc = export_document(store, now)
    assert doc["version"] == SCHEMA_VERSION
    assert doc["exportDate"].startswith("2024-02-01T12:00")
    assert doc[GEAR] == store.load(GEAR)
    assert doc[CATCHES][0]["weight"] is None


def test_export_validate_round_trip(store):
    _seed(store)
    validated = validate_document(export_document(store))
    for name in (GEAR, SPOTS, OUTINGS, CATCHES):
        assert validated[name] == store.load(name)


def test_round_trip_through_json_text(store, tmp_path):
    _seed(store)
    path = write_backup(tmp_path / "out" / "backup.json", export_document(store))
    validated = validate_document(parse_document(path.read_bytes()))
    assert [g["id"] for g in validated[GEAR]] == ["g2", "g1"]


def test_all_empty_is_rejected():
    with pytest.raises(EmptyDocument):
        validate_document({"gear": [], "spots": [], "outings": [], "catches": []})


def test_one_non_empty_collection_is_accepted():
    validated = validate_document({"gear": [{"id": "g"}], "spots": [], "outings": [], "catches": []})
    assert validated[GEAR] == [{"id": "g"}]
    assert validated[SPOTS] == []


def test_missing_and_bad_fields_become_empty():
    validated = validate_document({"gear": "nope", "outings": [{"id": "o"}]})
    assert validated[GEAR] == []
    assert validated[SPOTS] == []
    assert validated[CATCHES] == []
    assert validated[OUTINGS] == [{"id": "o"}]


@pytest.mark.parametrize("doc", [None, [], "text", 3])
def test_non_object_is_malformed(doc):
    with pytest.raises(MalformedDocument):
        validate_document(doc)


def test_invalid_json_is_malformed():
    with pytest.raises(MalformedDocument):
        parse_document(b"{oops")


LEGACY_DOC = {
    "version": "2.0",
    "attrezzatura": [
        {"id": "g1", "tipo": "canna", "nome": "Surf rod", "tipologia": "4.2m", "note": "",
         "ambiente": "mare", "tecnica": "Surfcasting", "quantita": 2},
    ],
    "spot": [
        {"id": "s1", "nome": "Pier", "note": "north side", "categoria": "porto",
         "lat": 44.1, "lng": 9.8},
    ],
    "diario": [
        {"id": "o1", "data": "2024-01-05", "ora": "06:30", "spotId": "s1",
         "attIds": ["g1"], "note": "calm"},
    ],
}


def test_legacy_keys_are_understood():
    doc = LEGACY_DOC
    validated = validate_document(doc)
    assert [g["id"] for g in validated[GEAR]] == ["g1"]
    assert [o["id"] for o in validated[OUTINGS]] == ["o1"]
    info = preview(doc, validated)
    assert info["version"] == "2.0"
    assert info["versionMatches"] is False
    assert info["counts"] == {"gear": 1, "spots": 1, "outings": 1, "catches": 0}


def test_legacy_records_get_current_field_names():
    validated = validate_document(LEGACY_DOC)
    assert validated[GEAR] == [{
        "id": "g1", "category": "rod", "name": "Surf rod", "subtype": "4.2m", "notes": "",
        "environment": "sea", "technique": "Surfcasting", "quantity": 2,
    }]
    assert validated[SPOTS] == [{
        "id": "s1", "name": "Pier", "notes": "north side", "category": "harbour",
        "latitude": 44.1, "longitude": 9.8,
    }]
    assert validated[OUTINGS] == [{
        "id": "o1", "date": "2024-01-05", "time": "06:30", "spotId": "s1",
        "gearIds": ["g1"], "notes": "calm",
    }]


def test_legacy_field_does_not_override_current_one():
    assert upgrade_legacy_record(SPOTS, {"id": "s", "name": "New", "nome": "Old"}) == {"id": "s", "name": "New"}
    assert upgrade_legacy_record(SPOTS, {"id": "s", "categoria": "somewhere"})["category"] == "somewhere"


def test_current_records_are_kept_verbatim():
    doc = {"spots": [{"id": "s1", "nome": "stays", "lat": 1}], "diario": [{"id": "o", "data": "2024-01-01"}]}
    validated = validate_document(doc)
    assert validated[SPOTS] == [{"id": "s1", "nome": "stays", "lat": 1}]
    assert validated[OUTINGS] == [{"id": "o", "date": "2024-01-01"}]


def test_apply_replaces_everything(store):
    _seed(store)
    apply_document(store, validate_document({"spots": [{"id": "new"}]}))
    assert store.load(GEAR) == []
    assert store.load(SPOTS) == [{"id": "new"}]
    assert store.load(OUTINGS) == []
    assert store.load(CATCHES) == []


def test_backup_filename():
    name = backup_filename(dt.datetime(2024, 3, 9, tzinfo=dt.timezone.utc))
    assert name == "fishing-log-backup-2024-03-09.json"


def test_written_backup_is_pretty_json(store, tmp_path):
    _seed(store)
    path = write_backup(tmp_path / "b.json", export_document(store))
    text = path.read_text(encoding="utf-8")
    assert "\n  " in text
    assert json.loads(text)["version"] == SCHEMA_VERSION
