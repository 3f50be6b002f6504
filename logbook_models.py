# logbook_models.py
#
# Record types for the four collections:
# - pydantic entry models (what a form / API body may contain)
# - build_record() turns a validated entry into the stored dict
# - closed label sets + technique catalogue

import datetime as dt
import secrets
import string
import time
from typing import Dict, Any, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from logbook_errors import EntryValidationError


# ------------- Label sets -------------

GEAR_CATEGORIES: Dict[str, str] = {
    "rod": "🎣 Rod",
    "reel": "⚙️ Reel",
    "terminal_tackle": "🪝 Terminal tackle",
}

ENVIRONMENTS: Dict[str, str] = {
    "sea": "🌊 Sea",
    "boat": "⛵ Boat",
    "freshwater": "🏞️ Freshwater",
}

SPOT_CATEGORIES: Dict[str, str] = {
    "beach": "🏖️ Beach",
    "cliff": "🪨 Rocks / cliff",
    "harbour": "⚓ Harbour / pier",
    "breakwater": "🚧 Breakwater",
    "open_sea": "🌊 Open sea",
    "lagoon": "🐟 Lagoon / estuary",
    "lake": "🏞️ Lake",
    "river": "〰️ River",
    "stream": "💧 Stream",
    "canal": "🌿 Canal",
    "reservoir": "🏔️ Reservoir",
}

# Known techniques per environment, for pickers. Gear.technique stays free text.
TECHNIQUES: Dict[str, List[str]] = {
    "sea": [
        "Surfcasting",
        "Shore spinning",
        "Rock fishing",
        "Bolognese",
        "Waggler",
        "Beach ledgering",
        "Eging",
        "Light game",
        "Bottom fishing",
        "Big game",
    ],
    "boat": [
        "Trolling",
        "Drift bottom fishing",
        "Vertical jigging",
        "Slow pitch jigging",
        "Drifting",
        "Boat spinning",
        "Live baiting",
        "Tataki",
        "Bottom fishing",
    ],
    "freshwater": [
        "Carp fishing",
        "Feeder / method feeder",
        "Spinning",
        "Fly fishing",
        "Bolognese",
        "Pole fishing",
        "Waggler",
        "Ledgering",
        "Street fishing",
        "Trout area",
        "Tenkara",
        "Touch ledgering",
        "Catfishing",
    ],
}

_BASE36 = string.digits + string.ascii_lowercase


# ------------- Ids / timestamps -------------


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits: List[str] = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def new_id() -> str:
    """Millisecond timestamp in base 36 plus a 5-char random suffix."""
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(5))
    return _to_base36(millis) + suffix


def now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ------------- Entry models -------------


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class EntryModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


class GearIn(EntryModel):
    category: str
    name: str = Field(..., min_length=1)
    subtype: str = ""
    notes: str = ""
    environment: Optional[str] = None
    technique: str = ""
    quantity: int = Field(1, ge=1)

    @field_validator("category")
    @classmethod
    def _known_category(cls, value: str) -> str:
        if value not in GEAR_CATEGORIES:
            raise ValueError(f"must be one of: {', '.join(GEAR_CATEGORIES)}")
        return value

    @field_validator("environment", mode="before")
    @classmethod
    def _environment(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        if value is not None and value not in ENVIRONMENTS:
            raise ValueError(f"must be one of: {', '.join(ENVIRONMENTS)}")
        return value

    @field_validator("quantity", mode="before")
    @classmethod
    def _default_quantity(cls, value: Any) -> Any:
        # An empty quantity box means one item.
        return 1 if _blank_to_none(value) is None else value

    @model_validator(mode="after")
    def _technique_needs_environment(self) -> "GearIn":
        if self.environment is None:
            self.technique = ""
        return self


class SpotIn(EntryModel):
    name: str = Field(..., min_length=1)
    notes: str = ""
    category: Optional[str] = None
    latitude: float = Field(..., ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(..., ge=-180, le=180, allow_inf_nan=False)
    photo: Optional[str] = None

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        if value is not None and value not in SPOT_CATEGORIES:
            raise ValueError(f"must be one of: {', '.join(SPOT_CATEGORIES)}")
        return value

    @field_validator("photo", mode="before")
    @classmethod
    def _photo(cls, value: Any) -> Any:
        return _blank_to_none(value)


class OutingIn(EntryModel):
    date: dt.date
    time: Optional[str] = Field(None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    spot_id: Optional[str] = Field(None, alias="spotId")
    gear_ids: List[str] = Field(default_factory=list, alias="gearIds")
    notes: str = ""

    @field_validator("time", "spot_id", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("gear_ids")
    @classmethod
    def _unique_gear(cls, value: List[str]) -> List[str]:
        # Same piece ticked twice still counts once; order is kept.
        return list(dict.fromkeys(v for v in value if v))


class CatchIn(EntryModel):
    date: dt.date
    species: str = Field(..., min_length=1)
    weight: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    notes: str = ""
    photo: Optional[str] = None

    @field_validator("weight", "photo", mode="before")
    @classmethod
    def _optional(cls, value: Any) -> Any:
        return _blank_to_none(value)


# ------------- Helpers -------------

EntryT = TypeVar("EntryT", bound=EntryModel)


def parse_entry(model: Type[EntryT], data: Any) -> EntryT:
    """
    Validate raw form/API data into an entry model.

    pydantic errors become EntryValidationError naming the first bad field,
    so nothing half-built ever reaches the store.
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        loc = first.get("loc") or ()
        field = str(loc[0]) if loc else None
        message = first.get("msg", "invalid value")
        if field:
            message = f"{field}: {message}"
        raise EntryValidationError(message, field=field) from exc


def build_record(entry: EntryModel, record_id: Optional[str] = None,
                 created_at: Optional[str] = None) -> Dict[str, Any]:
    """Stored shape: id first, camelCase keys, createdAt last."""
    record: Dict[str, Any] = {"id": record_id or new_id()}
    record.update(entry.model_dump(by_alias=True, mode="json"))
    record["createdAt"] = created_at or now_iso()
    return record
