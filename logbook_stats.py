"""
Statistics over the local collections.

Everything here is a pure function of the records passed in. Nothing is
cached: the API reloads the collections and recomputes on every call.

Tie-breaking rules rely on stored list order, which the JSON store and
backup round trip both keep as-is:
- latest outing: among outings on the newest date, the last one stored wins
- top-N: equal counts keep the order in which ids were first seen
- top month: equal counts go to the earlier month
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Tuple

from logbook_resolver import (
    DELETED_GEAR,
    DELETED_SPOT,
    OutingView,
    id_list,
    describe_outing,
    display_name,
    index_by_id,
    outing_date,
)

SPOT_FIELD = "spotId"
GEAR_FIELD = "gearIds"

DEFAULT_TOP_N = 5

MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
                "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


# -----------------------------
# Data structures
# -----------------------------

@dataclass
class CatchSummary:
    total: int
    species: int
    weighed: int
    total_weight: Optional[float]
    heaviest: Optional[Dict[str, Any]]


@dataclass
class Statistics:
    year: int
    histogram: List[int]
    has_data: bool
    total_outings: int
    unique_spots: int
    unique_gear: int
    top_month: Optional[str]
    top_spots: List[Tuple[str, int]] = field(default_factory=list)
    top_gear: List[Tuple[str, int]] = field(default_factory=list)
    totals: Dict[str, int] = field(default_factory=dict)
    catches: Optional[CatchSummary] = None


def _outings(outings: List[Any]) -> List[Dict[str, Any]]:
    return [o for o in outings if isinstance(o, dict)]


# -----------------------------
# Latest outing
# -----------------------------

def latest_outing(
    outings: List[Dict[str, Any]],
    spots: List[Dict[str, Any]],
    gear: List[Dict[str, Any]],
) -> Optional[OutingView]:
    """Newest outing with names resolved, or None when the diary is empty."""
    rows = _outings(outings)
    if not rows:
        return None

    # Position is the last key so the last stored outing wins a tie.
    _, best_idx = max(
        (outing_date(o) or dt.date.min, i) for i, o in enumerate(rows)
    )
    return describe_outing(rows[best_idx], index_by_id(spots), index_by_id(gear))


# -----------------------------
# Monthly histogram
# -----------------------------

def monthly_histogram(outings: List[Dict[str, Any]], year: int) -> List[int]:
    """
    Outings per month for one calendar year. Index 0 is January.

    Dates from other years, or that can't be parsed, don't count.
    """
    counts = [0] * 12
    for o in _outings(outings):
        d = outing_date(o)
        if d is not None and d.year == year:
            counts[d.month - 1] += 1
    return counts


def top_month(outings: List[Dict[str, Any]]) -> Optional[str]:
    """
    Busiest month of the year across every year on record.

    None means there is no data to rank.
    """
    counts = [0] * 12
    for o in _outings(outings):
        d = outing_date(o)
        if d is not None:
            counts[d.month - 1] += 1

    best = max(counts)
    if best == 0:
        return None
    return MONTH_LABELS[counts.index(best)]


# -----------------------------
# Rankings
# -----------------------------

def _referenced_ids(outing: Dict[str, Any], ref_field: str) -> List[str]:
    if ref_field == SPOT_FIELD:
        value = outing.get(SPOT_FIELD)
        return [value] if isinstance(value, str) and value else []
    if ref_field == GEAR_FIELD:
        return id_list(outing.get(GEAR_FIELD))
    raise ValueError(f"Cannot rank by '{ref_field}'")


def count_references(outings: List[Dict[str, Any]], ref_field: str) -> Dict[str, int]:
    """id -> number of references, in first-seen order."""
    counts: Dict[str, int] = {}
    for o in _outings(outings):
        for ref in _referenced_ids(o, ref_field):
            counts[ref] = counts.get(ref, 0) + 1
    return counts


def top_n(
    outings: List[Dict[str, Any]],
    ref_field: str,
    targets_by_id: Dict[str, Dict[str, Any]],
    placeholder: str,
    n: int = DEFAULT_TOP_N,
) -> List[Tuple[str, int]]:
    """
    Most referenced ids as (display name, count), highest count first.

    Ids with no matching record come out as the placeholder name.
    """
    counts = count_references(outings, ref_field)
    # sorted() is stable, so equal counts stay in first-seen order
    ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)[: max(n, 0)]

    out: List[Tuple[str, int]] = []
    for ref, cnt in ranked:
        target = targets_by_id.get(ref)
        name = display_name(target) if target is not None else placeholder
        out.append((name, cnt))
    return out


def top_spots(outings: List[Dict[str, Any]], spots: List[Dict[str, Any]],
              n: int = DEFAULT_TOP_N) -> List[Tuple[str, int]]:
    return top_n(outings, SPOT_FIELD, index_by_id(spots), DELETED_SPOT, n)


def top_gear(outings: List[Dict[str, Any]], gear: List[Dict[str, Any]],
             n: int = DEFAULT_TOP_N) -> List[Tuple[str, int]]:
    return top_n(outings, GEAR_FIELD, index_by_id(gear), DELETED_GEAR, n)


# -----------------------------
# Unique usage / totals
# -----------------------------

def unique_spots_visited(outings: List[Dict[str, Any]]) -> int:
    return len(count_references(outings, SPOT_FIELD))


def unique_gear_used(outings: List[Dict[str, Any]]) -> int:
    return len(count_references(outings, GEAR_FIELD))


def collection_totals(
    gear: List[Any],
    spots: List[Any],
    outings: List[Any],
    catches: List[Any],
) -> Dict[str, int]:
    return {
        "gear": len(gear),
        "spots": len(spots),
        "outings": len(outings),
        "catches": len(catches),
    }


def _weight(catch: Dict[str, Any]) -> Optional[float]:
    # Absent weight is "not weighed", which is not the same as 0.
    value = catch.get("weight")
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def catch_summary(catches: List[Dict[str, Any]]) -> CatchSummary:
    rows = [c for c in catches if isinstance(c, dict)]
    species = {str(c.get("species", "")).strip().lower() for c in rows}
    species.discard("")

    weighed = [(c, w) for c in rows for w in [_weight(c)] if w is not None]
    total_weight = sum(w for _, w in weighed) if weighed else None

    heaviest = None
    if weighed:
        best, best_w = weighed[0]
        for c, w in weighed[1:]:
            if w > best_w:
                best, best_w = c, w
        heaviest = {"id": best.get("id"), "species": best.get("species"),
                    "weight": best_w, "date": best.get("date")}

    return CatchSummary(
        total=len(rows),
        species=len(species),
        weighed=len(weighed),
        total_weight=total_weight,
        heaviest=heaviest,
    )


def build_statistics(
    year: int,
    gear: List[Dict[str, Any]],
    spots: List[Dict[str, Any]],
    outings: List[Dict[str, Any]],
    catches: List[Dict[str, Any]],
    n: int = DEFAULT_TOP_N,
) -> Statistics:
    """Everything the statistics page shows, for one year."""
    histogram = monthly_histogram(outings, year)
    return Statistics(
        year=year,
        histogram=histogram,
        has_data=any(histogram),
        total_outings=len(_outings(outings)),
        unique_spots=unique_spots_visited(outings),
        unique_gear=unique_gear_used(outings),
        top_month=top_month(outings),
        top_spots=top_spots(outings, spots, n),
        top_gear=top_gear(outings, gear, n),
        totals=collection_totals(gear, spots, outings, catches),
        catches=catch_summary(catches),
    )
