# logbook_backup.py
#
# Backup document export / import:
# - export_document: all four collections verbatim + exportDate + version
# - parse_document / validate_document: accept a foreign file best-effort
# - apply_document: full, unconditional replace of local data (no merge)

import datetime as dt
import json
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional, Union

from logbook_errors import EmptyDocument, MalformedDocument
from logbook_store import CATCHES, COLLECTIONS, GEAR, OUTINGS, SPOTS, CollectionStore

logger = logging.getLogger("fishlog.backup")

SCHEMA_VERSION = "3.0"

# Older backups (v2.0) used these top-level keys
LEGACY_KEYS: Dict[str, str] = {
    "attrezzatura": GEAR,
    "spot": SPOTS,
    "diario": OUTINGS,
}

# ... and these field names inside each record
LEGACY_FIELDS: Dict[str, Dict[str, str]] = {
    GEAR: {
        "tipo": "category",
        "nome": "name",
        "tipologia": "subtype",
        "note": "notes",
        "ambiente": "environment",
        "tecnica": "technique",
        "quantita": "quantity",
    },
    SPOTS: {
        "nome": "name",
        "note": "notes",
        "categoria": "category",
        "lat": "latitude",
        "lng": "longitude",
        "foto": "photo",
    },
    OUTINGS: {
        "data": "date",
        "ora": "time",
        "attIds": "gearIds",
        "note": "notes",
    },
}

# Label values that changed with the field names
LEGACY_VALUES: Dict[str, Dict[str, str]] = {
    "category": {
        "canna": "rod",
        "mulinello": "reel",
        "minuteria": "terminal_tackle",
        "spiaggia": "beach",
        "scogliera": "cliff",
        "porto": "harbour",
        "diga": "breakwater",
        "mare-aperto": "open_sea",
        "laguna": "lagoon",
        "lago": "lake",
        "fiume": "river",
        "torrente": "stream",
        "canale": "canal",
        "diga-invaso": "reservoir",
    },
    "environment": {
        "mare": "sea",
        "barca": "boat",
        "dolce": "freshwater",
    },
}


def export_document(store: CollectionStore, now: Optional[dt.datetime] = None) -> Dict[str, Any]:
    """
    Snapshot every collection into one backup document.

    Records are copied exactly as stored: no filtering, no reordering.
    """
    now = now or dt.datetime.now(dt.timezone.utc)
    doc: Dict[str, Any] = {
        "exportDate": now.isoformat(),
        "version": SCHEMA_VERSION,
    }
    for name in COLLECTIONS:
        doc[name] = store.load(name)
    return doc


def backup_filename(now: Optional[dt.datetime] = None) -> str:
    now = now or dt.datetime.now(dt.timezone.utc)
    return f"fishing-log-backup-{now.date().isoformat()}.json"


def write_backup(path: Union[str, Path], document: Dict[str, Any]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(document, f, indent=2, ensure_ascii=False)
    return path


def parse_document(raw: Union[str, bytes]) -> Any:
    """Decode the text of a backup file. Anything that isn't JSON is malformed."""
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8-sig")
        return json.loads(raw)
    except (UnicodeDecodeError, ValueError) as exc:
        raise MalformedDocument("File is not valid JSON") from exc


def upgrade_legacy_record(name: str, record: Any) -> Any:
    """
    Rename the v2.0 fields of one record to their current names.

    Category and environment values are mapped onto the current label sets;
    values that aren't known are kept. A current field already on the record
    wins over its legacy twin. Non-dict records pass through untouched.
    """
    if not isinstance(record, dict):
        return record
    renames = LEGACY_FIELDS.get(name, {})
    out: Dict[str, Any] = {}
    for key, value in record.items():
        target = renames.get(key, key)
        if target != key and target in record:
            continue
        if target in LEGACY_VALUES and isinstance(value, str):
            value = LEGACY_VALUES[target].get(value, value)
        out[target] = value
    return out


def _pick_list(doc: Dict[str, Any], name: str) -> List[Any]:
    value = doc.get(name)
    if isinstance(value, list):
        return value
    for legacy, target in LEGACY_KEYS.items():
        if target == name and isinstance(doc.get(legacy), list):
            return [upgrade_legacy_record(name, r) for r in doc[legacy]]
    return []


def validate_document(doc: Any) -> Dict[str, List[Any]]:
    """
    Reduce a parsed document to its four collections.

    Missing or non-list collections become empty lists. The document is only
    refused when it isn't an object at all, or when every collection ends up
    empty. The version field is never checked.
    """
    if not isinstance(doc, dict):
        raise MalformedDocument("Backup must be a JSON object")

    collections = {name: _pick_list(doc, name) for name in COLLECTIONS}

    if not any(collections.values()):
        raise EmptyDocument("Backup is empty or holds no recognisable data")

    return collections


def preview(doc: Dict[str, Any], validated: Dict[str, List[Any]]) -> Dict[str, Any]:
    """What the user sees before confirming an import."""
    version = doc.get("version")
    export_date = doc.get("exportDate")
    return {
        "exportDate": export_date if isinstance(export_date, str) else None,
        "version": str(version) if version is not None else None,
        "versionMatches": version == SCHEMA_VERSION,
        "counts": {name: len(validated[name]) for name in COLLECTIONS},
    }


def apply_document(store: CollectionStore, validated: Dict[str, List[Any]]) -> None:
    """
    Replace all local data with the validated collections.

    Not reversible: whatever was stored before is gone. Callers must have
    the user's confirmation before getting here.
    """
    logger.warning(
        "Replacing local data from backup: %d gear, %d spots, %d outings, %d catches",
        len(validated.get(GEAR, [])),
        len(validated.get(SPOTS, [])),
        len(validated.get(OUTINGS, [])),
        len(validated.get(CATCHES, [])),
    )
    for name in COLLECTIONS:
        store.save(name, list(validated.get(name, [])))
