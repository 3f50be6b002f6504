# logbook_api.py
#
# JSON endpoints for the fishing log:
# - gear / spots / outings / catches (list, add, confirmed delete)
# - map markers + pending marker
# - statistics, backup export / import preview / confirm
# - weather lookup and settings
#
# Every endpoint goes through the FishingLog bound to app.state.log.
# Domain errors are turned into HTTP responses by the handlers in app.py.

from dataclasses import asdict
from typing import Dict, Any, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from fishing_log import FishingLog
from logbook_models import ENVIRONMENTS, GEAR_CATEGORIES, SPOT_CATEGORIES, TECHNIQUES
from logbook_resolver import OutingView
from logbook_stats import MONTH_LABELS, Statistics

router = APIRouter()


def get_log(request: Request) -> FishingLog:
    return request.app.state.log


# ------------- Request models -------------


class MarkerRequest(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class AutosaveRequest(BaseModel):
    enabled: bool


# ------------- Serialisers -------------


def _serialise_outing(view: Optional[OutingView]) -> Optional[Dict[str, Any]]:
    if view is None:
        return None
    return {
        "id": view.id,
        "date": view.date,
        "time": view.time,
        "spot": view.spot,
        "gear": list(view.gear),
        "missingGear": view.missing_gear,
        "notes": view.notes,
    }


def _serialise_ranking(items) -> List[Dict[str, Any]]:
    return [{"name": name, "count": count} for name, count in items]


def _serialise_stats(stats: Statistics) -> Dict[str, Any]:
    return {
        "year": stats.year,
        "months": MONTH_LABELS,
        "histogram": stats.histogram,
        "hasData": stats.has_data,
        "totalOutings": stats.total_outings,
        "uniqueSpots": stats.unique_spots,
        "uniqueGear": stats.unique_gear,
        "topMonth": stats.top_month,
        "topSpots": _serialise_ranking(stats.top_spots),
        "topGear": _serialise_ranking(stats.top_gear),
        "totals": stats.totals,
        "catches": asdict(stats.catches) if stats.catches is not None else None,
    }


def _confirm_or_409(confirm: bool) -> None:
    if not confirm:
        raise HTTPException(status_code=409, detail="This action needs confirm=true")


# ------------- Catalogue -------------


@router.get("/api/catalogue")
async def catalogue():
    """Label sets the forms need: gear categories, environments, techniques, spot types."""
    return {
        "gearCategories": GEAR_CATEGORIES,
        "environments": ENVIRONMENTS,
        "techniques": TECHNIQUES,
        "spotCategories": SPOT_CATEGORIES,
    }


# ------------- Gear -------------


@router.get("/api/gear")
async def list_gear(category: Optional[str] = None, log: FishingLog = Depends(get_log)):
    if category is not None:
        log.set_gear_filter(category)
    items = log.list_gear()
    return {"filter": log.state.gear_filter, "count": len(items), "items": items}


@router.post("/api/gear", status_code=201)
async def add_gear(payload: Dict[str, Any] = Body(...), log: FishingLog = Depends(get_log)):
    return log.add_gear(payload)


@router.delete("/api/gear/{gear_id}")
async def delete_gear(gear_id: str, confirm: bool = False, log: FishingLog = Depends(get_log)):
    log.delete_gear(gear_id, confirmed=confirm)
    return {"deleted": gear_id}


# ------------- Spots + map -------------


@router.get("/api/spots")
async def list_spots(log: FishingLog = Depends(get_log)):
    items = log.list_spots()
    return {"count": len(items), "items": items}


@router.post("/api/spots", status_code=201)
async def add_spot(payload: Dict[str, Any] = Body(...), log: FishingLog = Depends(get_log)):
    return log.add_spot(payload)


@router.delete("/api/spots/{spot_id}")
async def delete_spot(spot_id: str, confirm: bool = False, log: FishingLog = Depends(get_log)):
    marker_id = log.delete_spot(spot_id, confirmed=confirm)
    return {"deleted": spot_id, "removeMarker": marker_id}


@router.get("/api/map/markers")
async def map_markers(log: FishingLog = Depends(get_log)):
    return {"markers": log.markers(), "pending": log.state.pending_marker}


@router.post("/api/map/pending")
async def place_marker(payload: MarkerRequest, log: FishingLog = Depends(get_log)):
    return {"pending": log.place_marker(payload.lat, payload.lng)}


# ------------- Diary -------------


@router.get("/api/outings")
async def list_outings(log: FishingLog = Depends(get_log)):
    items = [_serialise_outing(v) for v in log.diary()]
    return {"count": len(items), "items": items}


@router.get("/api/outings/latest")
async def latest_outing(log: FishingLog = Depends(get_log)):
    view = log.latest_outing()
    return {"empty": view is None, "outing": _serialise_outing(view)}


@router.post("/api/outings", status_code=201)
async def add_outing(payload: Dict[str, Any] = Body(...), log: FishingLog = Depends(get_log)):
    return log.add_outing(payload)


@router.delete("/api/outings/{outing_id}")
async def delete_outing(outing_id: str, confirm: bool = False, log: FishingLog = Depends(get_log)):
    log.delete_outing(outing_id, confirmed=confirm)
    return {"deleted": outing_id}


# ------------- Catches -------------


@router.get("/api/catches")
async def list_catches(log: FishingLog = Depends(get_log)):
    items = log.list_catches()
    return {"count": len(items), "items": items}


@router.post("/api/catches", status_code=201)
async def add_catch(payload: Dict[str, Any] = Body(...), log: FishingLog = Depends(get_log)):
    return log.add_catch(payload)


@router.delete("/api/catches/{catch_id}")
async def delete_catch(catch_id: str, confirm: bool = False, log: FishingLog = Depends(get_log)):
    log.delete_catch(catch_id, confirmed=confirm)
    return {"deleted": catch_id}


# ------------- Statistics -------------


@router.get("/api/stats")
async def statistics(year: Optional[int] = None, log: FishingLog = Depends(get_log)):
    return _serialise_stats(log.statistics(year))


# ------------- Backup -------------


@router.get("/api/backup/export")
async def export_backup(log: FishingLog = Depends(get_log)):
    doc = log.export()
    filename = log.export_filename()
    return JSONResponse(
        content=doc,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/api/backup/preview")
async def preview_backup(request: Request, log: FishingLog = Depends(get_log)):
    """
    Check an uploaded backup (raw JSON body) and hold it for confirmation.
    Nothing is written yet.
    """
    raw = await request.body()
    return log.preview_import(raw)


@router.post("/api/backup/confirm")
async def confirm_backup(confirm: bool = False, log: FishingLog = Depends(get_log)):
    """
    Replace ALL local data with the previewed backup. Not reversible.
    """
    _confirm_or_409(confirm)
    counts = log.confirm_import()
    return {"imported": True, "counts": counts}


@router.post("/api/backup/cancel")
async def cancel_backup(log: FishingLog = Depends(get_log)):
    log.cancel_import()
    return {"cancelled": True}


# ------------- Weather -------------


@router.get("/api/weather")
async def weather(place: str, log: FishingLog = Depends(get_log)):
    snapshot = await log.weather.search(place)
    if snapshot["status"] == "error":
        raise HTTPException(status_code=502, detail=snapshot["error"])
    report = snapshot["report"]
    return {
        "status": snapshot["status"],
        "report": asdict(report) if report is not None else None,
    }


@router.get("/api/weather/state")
async def weather_state(log: FishingLog = Depends(get_log)):
    snapshot = log.weather.snapshot()
    report = snapshot["report"]
    return {
        "status": snapshot["status"],
        "error": snapshot["error"],
        "report": asdict(report) if report is not None else None,
    }


# ------------- Settings -------------


@router.get("/api/settings")
async def get_settings(log: FishingLog = Depends(get_log)):
    return log.settings()


@router.post("/api/settings/theme/toggle")
async def toggle_theme(log: FishingLog = Depends(get_log)):
    return {"theme": log.toggle_theme()}


@router.put("/api/settings/autosave")
async def set_autosave(payload: AutosaveRequest, log: FishingLog = Depends(get_log)):
    return {"autosave": log.set_autosave(payload.enabled)}
