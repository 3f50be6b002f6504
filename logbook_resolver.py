# logbook_resolver.py
#
# Turns the ids stored on an outing into display names.
# - spotId: name, DELETED_SPOT if the spot is gone, None if no spot was picked
# - gearIds: names in order, ids that no longer resolve are dropped
#   (the count of dropped ids is kept on the view as missing_gear)

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional

DELETED_SPOT = "Deleted spot"
DELETED_GEAR = "Deleted gear"


@dataclass
class OutingView:
    id: str
    date: str
    time: Optional[str]
    spot: Optional[str]
    gear: List[str] = field(default_factory=list)
    missing_gear: int = 0
    notes: str = ""


def index_by_id(records: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """id -> record. Later duplicates win; records without an id are skipped."""
    out: Dict[str, Dict[str, Any]] = {}
    for r in records:
        if isinstance(r, dict) and r.get("id"):
            out[r["id"]] = r
    return out


def display_name(record: Dict[str, Any]) -> str:
    return str(record.get("name") or "")


def resolve_spot_name(spot_id: Optional[str], spots_by_id: Dict[str, Dict[str, Any]]) -> Optional[str]:
    if not spot_id:
        return None
    spot = spots_by_id.get(spot_id)
    if spot is None:
        return DELETED_SPOT
    return display_name(spot)


def resolve_gear_names(gear_ids: Any, gear_by_id: Dict[str, Dict[str, Any]]) -> List[str]:
    names: List[str] = []
    for gid in id_list(gear_ids):
        gear = gear_by_id.get(gid)
        if gear is not None:
            names.append(display_name(gear))
    return names


def id_list(value: Any) -> List[str]:
    # Imported files can carry anything in gearIds
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str) and v]


def outing_date(outing: Dict[str, Any]) -> Optional[dt.date]:
    """Calendar date of an outing, or None if it can't be read."""
    raw = outing.get("date")
    if not isinstance(raw, str) or len(raw) < 10:
        return None
    try:
        return dt.date.fromisoformat(raw[:10])
    except ValueError:
        return None


def describe_outing(
    outing: Dict[str, Any],
    spots_by_id: Dict[str, Dict[str, Any]],
    gear_by_id: Dict[str, Dict[str, Any]],
) -> OutingView:
    gear_ids = id_list(outing.get("gearIds"))
    gear_names = resolve_gear_names(gear_ids, gear_by_id)
    return OutingView(
        id=str(outing.get("id", "")),
        date=str(outing.get("date", "")),
        time=outing.get("time") or None,
        spot=resolve_spot_name(outing.get("spotId"), spots_by_id),
        gear=gear_names,
        missing_gear=len(gear_ids) - len(gear_names),
        notes=str(outing.get("notes") or ""),
    )


def _sort_key(outing: Dict[str, Any]) -> dt.date:
    return outing_date(outing) or dt.date.min


def diary(
    outings: List[Dict[str, Any]],
    spots: List[Dict[str, Any]],
    gear: List[Dict[str, Any]],
) -> List[OutingView]:
    """All outings as views, newest first. Same-day outings keep stored order."""
    spots_by_id = index_by_id(spots)
    gear_by_id = index_by_id(gear)
    rows = [o for o in outings if isinstance(o, dict)]
    rows.sort(key=_sort_key, reverse=True)
    return [describe_outing(o, spots_by_id, gear_by_id) for o in rows]
