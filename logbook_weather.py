# logbook_weather.py
#
# Current conditions for a place name:
# - geocode the name (Nominatim search, no API key)
# - fetch current conditions from Open-Meteo (no API key)
# - map the WMO weather code to an icon + description
#
# WeatherBoard keeps the loading / error / result indicator and drops
# responses that arrive after a newer search was started.

from __future__ import annotations

import itertools
import math
import logging
from dataclasses import dataclass
from typing import Dict, Any, Optional, Tuple

import httpx

from logbook_config import get_weather_settings
from logbook_errors import ExternalServiceError

logger = logging.getLogger("fishlog.weather")

DEFAULT_SETTINGS: Dict[str, Any] = get_weather_settings({})

WMO_CODES: Dict[int, Tuple[str, str]] = {
    0: ("☀️", "Clear sky"),
    1: ("🌤️", "Mainly clear"),
    2: ("⛅", "Partly cloudy"),
    3: ("☁️", "Overcast"),
    45: ("🌫️", "Fog"),
    48: ("🌫️", "Depositing rime fog"),
    51: ("🌦️", "Light drizzle"),
    53: ("🌦️", "Drizzle"),
    55: ("🌧️", "Dense drizzle"),
    61: ("🌧️", "Light rain"),
    63: ("🌧️", "Rain"),
    65: ("🌧️", "Heavy rain"),
    71: ("🌨️", "Light snow"),
    73: ("❄️", "Snow"),
    75: ("❄️", "Heavy snow"),
    80: ("🌦️", "Rain showers"),
    81: ("🌧️", "Moderate rain showers"),
    82: ("⛈️", "Violent rain showers"),
    95: ("⛈️", "Thunderstorm"),
    96: ("⛈️", "Thunderstorm with hail"),
    99: ("⛈️", "Severe thunderstorm"),
}

UNKNOWN_CONDITION: Tuple[str, str] = ("🌡️", "N/A")


@dataclass
class WeatherReport:
    place: str
    latitude: float
    longitude: float
    temperature: Optional[float]
    humidity: Optional[float]
    wind_speed: Optional[float]
    code: Optional[int]
    icon: str
    description: str


def describe_weather_code(code: Any) -> Tuple[str, str]:
    key = _weather_code(code)
    if key is None:
        return UNKNOWN_CONDITION
    return WMO_CODES.get(key, UNKNOWN_CONDITION)


def _number(value: Any) -> Optional[float]:
    """Finite float, or None. NaN and infinities count as missing."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _weather_code(value: Any) -> Optional[int]:
    number = _number(value)
    return int(number) if number is not None else None


async def geocode(place: str, client: httpx.AsyncClient,
                  settings: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Resolve a free-text place name to {lat, lon, name}.

    Only the first match is used; name is the first part of display_name.
    """
    settings = settings or DEFAULT_SETTINGS
    params = {"q": place, "format": "json", "limit": 1}
    headers = {
        "Accept-Language": settings["language"],
        "User-Agent": settings["user_agent"],
    }
    resp = await client.get(settings["geocode_url"], params=params, headers=headers)
    if resp.status_code != 200:
        raise ExternalServiceError(f"Geocoding error ({resp.status_code})")

    try:
        results = resp.json()
    except ValueError as exc:
        raise ExternalServiceError("Geocoding returned invalid JSON") from exc

    if not isinstance(results, list) or not results:
        raise ExternalServiceError(f"No place found for '{place}'")

    first = results[0]
    if not isinstance(first, dict):
        raise ExternalServiceError(f"Geocoding result for '{place}' is not an object")
    lat = _number(first.get("lat"))
    lon = _number(first.get("lon"))
    if lat is None or lon is None:
        raise ExternalServiceError(f"Geocoding result for '{place}' has no coordinates")

    display_name = str(first.get("display_name") or place)
    return {"lat": lat, "lon": lon, "name": display_name.split(",")[0].strip()}


async def fetch_current(lat: float, lon: float, client: httpx.AsyncClient,
                        settings: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Fetch current conditions from Open-Meteo.
    """
    settings = settings or DEFAULT_SETTINGS
    params = {
        "latitude": lat,
        "longitude": lon,
        "current": "temperature_2m,relative_humidity_2m,wind_speed_10m,weathercode",
        "timezone": "auto",
    }
    resp = await client.get(settings["forecast_url"], params=params)
    if resp.status_code != 200:
        raise ExternalServiceError(f"Weather API error ({resp.status_code})")

    try:
        current = resp.json().get("current")
    except (ValueError, AttributeError) as exc:
        raise ExternalServiceError("Weather API returned invalid JSON") from exc

    if not isinstance(current, dict):
        raise ExternalServiceError("Weather API returned no current conditions")
    return current


async def lookup_weather(
    place: str,
    settings: Optional[Dict[str, Any]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> WeatherReport:
    """Geocode place, then fetch and describe its current weather."""
    place = (place or "").strip()
    if not place:
        raise ExternalServiceError("No place given")

    settings = settings or DEFAULT_SETTINGS
    try:
        async with httpx.AsyncClient(timeout=settings["timeout"], transport=transport) as client:
            where = await geocode(place, client, settings)
            current = await fetch_current(where["lat"], where["lon"], client, settings)
    except httpx.HTTPError as exc:
        raise ExternalServiceError(f"Weather lookup failed: {exc}") from exc

    code = current.get("weathercode")
    icon, description = describe_weather_code(code)
    return WeatherReport(
        place=where["name"],
        latitude=where["lat"],
        longitude=where["lon"],
        temperature=_number(current.get("temperature_2m")),
        humidity=_number(current.get("relative_humidity_2m")),
        wind_speed=_number(current.get("wind_speed_10m")),
        code=_weather_code(code),
        icon=icon,
        description=description,
    )


class WeatherBoard:
    """
    The weather panel's state: idle -> loading -> error | result.

    Each search takes the next sequence number. A response only lands if no
    newer search has started since; a failure keeps the last good report on
    screen.
    """

    def __init__(self, settings: Optional[Dict[str, Any]] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.settings = settings or DEFAULT_SETTINGS
        self.transport = transport
        self.status = "idle"
        self.report: Optional[WeatherReport] = None
        self.error: Optional[str] = None
        self._seq = itertools.count(1)
        self._latest = 0

    def begin(self) -> int:
        self._latest = next(self._seq)
        self.status = "loading"
        self.error = None
        return self._latest

    def resolve(self, seq: int, report: WeatherReport) -> bool:
        if seq != self._latest:
            logger.debug("Dropping stale weather result #%d (latest #%d)", seq, self._latest)
            return False
        self.report = report
        self.status = "result"
        return True

    def fail(self, seq: int, message: str) -> bool:
        if seq != self._latest:
            return False
        self.error = message
        self.status = "error"
        return True

    async def search(self, place: str, lookup=lookup_weather) -> Dict[str, Any]:
        seq = self.begin()
        try:
            report = await lookup(place, self.settings, self.transport)
        except ExternalServiceError as exc:
            logger.info("Weather lookup for %r failed: %s", place, exc)
            self.fail(seq, str(exc))
        else:
            self.resolve(seq, report)
        return self.snapshot()

    def snapshot(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "error": self.error,
            "report": self.report,
        }
