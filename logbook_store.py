"""
Local persistence for the fishing log.

Three layers, bottom up:

  - KeyValueStore: one JSON file per key under a data directory. Writes go
    through a temp file + os.replace so a reader never sees half a file.
  - CollectionStore: load/save for the four named collections. Loading
    never fails; anything unreadable comes back as an empty list.
  - Repository: typed facade over one collection (all / get / add / delete /
    replace_all). The caller always hands over full records, never deltas.

Theme and autosave preferences sit next to the collections as independent
keys. There is no cross-key transaction: last write wins.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from threading import Lock
from typing import Dict, Any, List, Optional, Union

from logbook_errors import StorageReadError

logger = logging.getLogger("fishlog.store")

GEAR = "gear"
SPOTS = "spots"
OUTINGS = "outings"
CATCHES = "catches"

COLLECTIONS = (GEAR, SPOTS, OUTINGS, CATCHES)

THEME_KEY = "theme"
AUTOSAVE_KEY = "autosave"
THEMES = ("dark", "light")
DEFAULT_THEME = "dark"

_MISSING = object()


class KeyValueStore:
    """
    Minimal get/set-by-key store backed by JSON files.

    Parameters
    ----------
    data_dir : path
        Directory holding one <key>.json file per key. Created lazily on the
        first write.
    """

    def __init__(self, data_dir: Union[str, Path]) -> None:
        self.data_dir = Path(data_dir)
        self._lock = Lock()

    def path_for(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    def get(self, key: str, default: Any = None) -> Any:
        """
        Return the decoded value for key, or default if it was never written.

        Raises StorageReadError when the file exists but can't be decoded.
        """
        path = self.path_for(key)
        with self._lock:
            if not path.exists():
                return default
            try:
                with path.open("r", encoding="utf-8") as f:
                    return json.load(f)
            except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
                raise StorageReadError(key, str(exc)) from exc

    def set(self, key: str, value: Any) -> None:
        path = self.path_for(key)
        with self._lock:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{key}.", suffix=".tmp", dir=str(self.data_dir))
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(value, f, ensure_ascii=False)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.remove(tmp_name)
                raise


class CollectionStore:
    """Whole-collection access to gear / spots / outings / catches."""

    def __init__(self, kv: KeyValueStore) -> None:
        self.kv = kv

    @staticmethod
    def _check_name(name: str) -> None:
        if name not in COLLECTIONS:
            raise KeyError(f"Unknown collection '{name}'")

    def load(self, name: str) -> List[Dict[str, Any]]:
        """
        Return the stored records for a collection, in stored order.

        Missing, corrupt or non-list data all load as an empty list.
        """
        self._check_name(name)
        try:
            value = self.kv.get(name, _MISSING)
        except StorageReadError as exc:
            logger.warning("Treating '%s' as empty: %s", name, exc.reason)
            return []

        if value is _MISSING:
            return []
        if not isinstance(value, list):
            logger.warning("Treating '%s' as empty: stored value is %s, not a list",
                           name, type(value).__name__)
            return []
        return value

    def save(self, name: str, records: List[Dict[str, Any]]) -> None:
        """Replace the entire collection with records."""
        self._check_name(name)
        self.kv.set(name, list(records))
        logger.debug("Saved %d record(s) to '%s'", len(records), name)

    def repository(self, name: str) -> "Repository":
        self._check_name(name)
        return Repository(self, name)

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    def get_theme(self) -> str:
        try:
            value = self.kv.get(THEME_KEY, DEFAULT_THEME)
        except StorageReadError:
            return DEFAULT_THEME
        return value if value in THEMES else DEFAULT_THEME

    def set_theme(self, theme: str) -> None:
        if theme not in THEMES:
            raise ValueError(f"theme must be one of: {', '.join(THEMES)}")
        self.kv.set(THEME_KEY, theme)

    def autosave_enabled(self) -> bool:
        try:
            return self.kv.get(AUTOSAVE_KEY, False) is True
        except StorageReadError:
            return False

    def set_autosave(self, enabled: bool) -> None:
        self.kv.set(AUTOSAVE_KEY, bool(enabled))


class Repository:
    """
    Typed view over a single collection.

    Every mutating call loads the full list, changes it, and saves the full
    list back.
    """

    def __init__(self, store: CollectionStore, name: str) -> None:
        self.store = store
        self.name = name

    def all(self) -> List[Dict[str, Any]]:
        return self.store.load(self.name)

    def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        for record in self.all():
            if isinstance(record, dict) and record.get("id") == record_id:
                return record
        return None

    def add(self, record: Dict[str, Any]) -> Dict[str, Any]:
        records = self.all()
        record_id = record.get("id")
        if not record_id:
            raise ValueError("record has no id")
        if any(isinstance(r, dict) and r.get("id") == record_id for r in records):
            raise ValueError(f"duplicate id '{record_id}' in {self.name}")
        records.append(record)
        self.store.save(self.name, records)
        return record

    def delete(self, record_id: str) -> bool:
        records = self.all()
        kept = [r for r in records if not (isinstance(r, dict) and r.get("id") == record_id)]
        if len(kept) == len(records):
            return False
        self.store.save(self.name, kept)
        return True

    def replace_all(self, records: List[Dict[str, Any]]) -> None:
        self.store.save(self.name, records)

    def __len__(self) -> int:
        return len(self.all())
