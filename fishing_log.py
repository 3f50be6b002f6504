"""
fishing_log.py – the fishing log controller.

FishingLog is the single object the API talks to. It owns:

  - AppState: what used to be loose globals in the browser app (current
    section, gear filter, statistics year, the map marker placed before a
    spot is saved, the backup waiting for import confirmation).
  - The entity lifecycle: validated add, confirmed delete, no edits in place.
  - Glue between the store, resolver, statistics, backup codec, autosave and
    weather board.

Deletes never cascade. An outing pointing at a deleted spot or gear keeps
its ids and the readers show it as deleted.
"""

import datetime as dt
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, List, Optional, Union

from logbook_autosave import Autosaver
from logbook_backup import (
    apply_document,
    backup_filename,
    export_document,
    parse_document,
    preview,
    validate_document,
)
from logbook_config import get_autosave_delay, get_autosave_filename, get_top_n, get_weather_settings
from logbook_errors import ConfirmationRequired, EntryValidationError, NothingToImport, UnknownRecord
from logbook_models import (
    GEAR_CATEGORIES,
    CatchIn,
    GearIn,
    OutingIn,
    SpotIn,
    build_record,
    parse_entry,
)
from logbook_resolver import OutingView, diary
from logbook_stats import Statistics, build_statistics, latest_outing
from logbook_store import CATCHES, GEAR, OUTINGS, SPOTS, CollectionStore, KeyValueStore
from logbook_weather import WeatherBoard

logger = logging.getLogger("fishlog.logbook")

SECTIONS = ("home", "gear", "spots", "diary", "catches", "stats", "backup")
ALL_GEAR = "all"


@dataclass
class AppState:
    section: str = "home"
    gear_filter: str = ALL_GEAR
    stats_year: int = field(default_factory=lambda: dt.date.today().year)
    pending_marker: Optional[Dict[str, float]] = None
    pending_import: Optional[Dict[str, Any]] = None


class FishingLog:
    """
    Parameters
    ----------
    data_dir : path
        Directory for the collection files and the autosave file.
    config : dict
        Loaded settings (see logbook_config.load_config).
    """

    def __init__(self, data_dir: Union[str, Path], config: Optional[Dict[str, Any]] = None,
                 autosaver: Optional[Autosaver] = None,
                 weather: Optional[WeatherBoard] = None) -> None:
        config = config or {}
        self.data_dir = Path(data_dir)
        self.store = CollectionStore(KeyValueStore(self.data_dir))
        self.state = AppState()
        self.top_n = get_top_n(config)
        self.autosaver = autosaver or Autosaver(
            self.store,
            self.data_dir / "autosave",
            delay=get_autosave_delay(config),
            filename=get_autosave_filename(config),
        )
        self.weather = weather or WeatherBoard(get_weather_settings(config))

    # ------------------------------------------------------------------
    # Navigation state
    # ------------------------------------------------------------------

    def show_section(self, name: str) -> str:
        if name not in SECTIONS:
            raise ValueError(f"Unknown section '{name}'")
        self.state.section = name
        return name

    def set_gear_filter(self, category: Optional[str]) -> str:
        category = category or ALL_GEAR
        if category != ALL_GEAR and category not in GEAR_CATEGORIES:
            raise EntryValidationError(f"Unknown gear category '{category}'", field="category")
        self.state.gear_filter = category
        return category

    def set_stats_year(self, year: int) -> int:
        self.state.stats_year = int(year)
        return self.state.stats_year

    # ------------------------------------------------------------------
    # Entity lifecycle
    # ------------------------------------------------------------------

    def _add(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        self.store.repository(collection).add(record)
        logger.info("Added %s %s", collection, record["id"])
        self.autosaver.touch()
        return record

    def _delete(self, collection: str, record_id: str, confirmed: bool) -> None:
        if not confirmed:
            raise ConfirmationRequired(f"Deleting from {collection} needs confirmation")
        if not self.store.repository(collection).delete(record_id):
            raise UnknownRecord(collection, record_id)
        logger.info("Deleted %s %s", collection, record_id)
        self.autosaver.touch()

    def add_gear(self, data: Any) -> Dict[str, Any]:
        entry = parse_entry(GearIn, data)
        return self._add(GEAR, build_record(entry))

    def add_spot(self, data: Any) -> Dict[str, Any]:
        """
        Save a spot. Without explicit coordinates the marker placed on the
        map (click or geolocation) is used, and then cleared.
        """
        if isinstance(data, dict):
            data = dict(data)
            marker = self.state.pending_marker
            if marker and data.get("latitude") is None and data.get("longitude") is None:
                data["latitude"] = marker["lat"]
                data["longitude"] = marker["lng"]
            if data.get("latitude") is None or data.get("longitude") is None:
                raise EntryValidationError("Pick a position on the map first", field="latitude")

        entry = parse_entry(SpotIn, data)
        record = self._add(SPOTS, build_record(entry))
        self.state.pending_marker = None
        return record

    def add_outing(self, data: Any) -> Dict[str, Any]:
        entry = parse_entry(OutingIn, data)
        return self._add(OUTINGS, build_record(entry))

    def add_catch(self, data: Any) -> Dict[str, Any]:
        entry = parse_entry(CatchIn, data)
        return self._add(CATCHES, build_record(entry))

    def delete_gear(self, record_id: str, confirmed: bool = False) -> None:
        self._delete(GEAR, record_id, confirmed)

    def delete_spot(self, record_id: str, confirmed: bool = False) -> str:
        """Returns the id of the map marker to take down."""
        self._delete(SPOTS, record_id, confirmed)
        return record_id

    def delete_outing(self, record_id: str, confirmed: bool = False) -> None:
        self._delete(OUTINGS, record_id, confirmed)

    def delete_catch(self, record_id: str, confirmed: bool = False) -> None:
        self._delete(CATCHES, record_id, confirmed)

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def list_gear(self) -> List[Dict[str, Any]]:
        records = self.store.load(GEAR)
        if self.state.gear_filter == ALL_GEAR:
            return records
        return [g for g in records if isinstance(g, dict) and g.get("category") == self.state.gear_filter]

    def list_spots(self) -> List[Dict[str, Any]]:
        return self.store.load(SPOTS)

    def list_catches(self) -> List[Dict[str, Any]]:
        rows = [c for c in self.store.load(CATCHES) if isinstance(c, dict)]
        rows.sort(key=lambda c: str(c.get("date") or ""), reverse=True)
        return rows

    def diary(self) -> List[OutingView]:
        return diary(self.store.load(OUTINGS), self.store.load(SPOTS), self.store.load(GEAR))

    def latest_outing(self) -> Optional[OutingView]:
        return latest_outing(self.store.load(OUTINGS), self.store.load(SPOTS), self.store.load(GEAR))

    # ------------------------------------------------------------------
    # Map
    # ------------------------------------------------------------------

    def place_marker(self, lat: float, lng: float) -> Dict[str, float]:
        if not (-90 <= lat <= 90) or not (-180 <= lng <= 180):
            raise EntryValidationError("Coordinates out of range", field="latitude")
        self.state.pending_marker = {"lat": float(lat), "lng": float(lng)}
        return self.state.pending_marker

    def markers(self) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        for spot in self.store.load(SPOTS):
            if not isinstance(spot, dict):
                continue
            lat, lng = spot.get("latitude"), spot.get("longitude")
            if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
                continue
            out.append({
                "id": spot.get("id"),
                "name": spot.get("name", ""),
                "lat": lat,
                "lng": lng,
                "notes": spot.get("notes", ""),
                "createdAt": spot.get("createdAt"),
            })
        return out

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def statistics(self, year: Optional[int] = None) -> Statistics:
        if year is not None:
            self.set_stats_year(year)
        return build_statistics(
            self.state.stats_year,
            self.store.load(GEAR),
            self.store.load(SPOTS),
            self.store.load(OUTINGS),
            self.store.load(CATCHES),
            n=self.top_n,
        )

    # ------------------------------------------------------------------
    # Backup
    # ------------------------------------------------------------------

    def export(self, now: Optional[dt.datetime] = None) -> Dict[str, Any]:
        return export_document(self.store, now)

    def export_filename(self, now: Optional[dt.datetime] = None) -> str:
        return backup_filename(now)

    def preview_import(self, raw: Union[str, bytes]) -> Dict[str, Any]:
        """
        Parse and check a backup file, and hold it until confirm_import().

        A rejected file clears anything held from an earlier preview.
        """
        self.state.pending_import = None
        doc = parse_document(raw)
        validated = validate_document(doc)
        self.state.pending_import = validated
        return preview(doc, validated)

    def confirm_import(self) -> Dict[str, int]:
        pending = self.state.pending_import
        if pending is None:
            raise NothingToImport("No backup waiting to be imported")
        apply_document(self.store, pending)
        self.state.pending_import = None
        self.autosaver.touch()
        return {name: len(records) for name, records in pending.items()}

    def cancel_import(self) -> None:
        self.state.pending_import = None

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def settings(self) -> Dict[str, Any]:
        return {
            "theme": self.store.get_theme(),
            "autosave": self.store.autosave_enabled(),
        }

    def toggle_theme(self) -> str:
        theme = "light" if self.store.get_theme() == "dark" else "dark"
        self.store.set_theme(theme)
        return theme

    def set_autosave(self, enabled: bool) -> bool:
        self.store.set_autosave(enabled)
        if not enabled:
            self.autosaver.cancel()
        return self.store.autosave_enabled()
