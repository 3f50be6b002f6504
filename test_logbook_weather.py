"""
Weather lookup against a mocked transport (no network), plus the
sequence-guarded WeatherBoard.
"""

import asyncio

import httpx
import pytest

from logbook_errors import ExternalServiceError
from logbook_weather import (
    UNKNOWN_CONDITION,
    WeatherBoard,
    WeatherReport,
    describe_weather_code,
    lookup_weather,
)

GEO_OK = [{"lat": "44.10", "lon": "9.82", "display_name": "La Spezia, Liguria, Italia"}]
CURRENT_OK = {
    "current": {
        "temperature_2m": 17.4,
        "relative_humidity_2m": 71,
        "wind_speed_10m": 12.5,
        "weathercode": 2,
    }
}


def _response(status, body):
    # bytes go out as-is, for bodies json.dumps would refuse (NaN)
    if isinstance(body, bytes):
        return httpx.Response(status, content=body, headers={"content-type": "application/json"})
    return httpx.Response(status, json=body)


def _transport(geo=GEO_OK, forecast=CURRENT_OK, geo_status=200, forecast_status=200, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if "nominatim" in request.url.host:
            return _response(geo_status, geo)
        return _response(forecast_status, forecast)

    return httpx.MockTransport(handler)


def test_describe_weather_code():
    assert describe_weather_code(0) == ("☀️", "Clear sky")
    assert describe_weather_code("95") == ("⛈️", "Thunderstorm")
    assert describe_weather_code(42) == UNKNOWN_CONDITION
    assert describe_weather_code(None) == UNKNOWN_CONDITION
    assert describe_weather_code(float("nan")) == UNKNOWN_CONDITION
    assert describe_weather_code("3.0") == ("☁️", "Overcast")


def test_lookup_weather_happy_path():
    seen = []
    report = asyncio.run(lookup_weather("La Spezia", transport=_transport(seen=seen)))
    assert report.place == "La Spezia"
    assert report.latitude == pytest.approx(44.10)
    assert report.temperature == pytest.approx(17.4)
    assert report.humidity == 71
    assert report.code == 2
    assert report.description == "Partly cloudy"

    geo_req, forecast_req = seen
    assert geo_req.url.params["q"] == "La Spezia"
    assert geo_req.url.params["limit"] == "1"
    assert "weathercode" in forecast_req.url.params["current"]


def test_lookup_weather_no_place_found():
    with pytest.raises(ExternalServiceError):
        asyncio.run(lookup_weather("Atlantis", transport=_transport(geo=[])))


def test_lookup_weather_upstream_error():
    with pytest.raises(ExternalServiceError):
        asyncio.run(lookup_weather("La Spezia", transport=_transport(forecast_status=500)))


def test_lookup_weather_missing_current_block():
    with pytest.raises(ExternalServiceError):
        asyncio.run(lookup_weather("La Spezia", transport=_transport(forecast={"hourly": {}})))


def test_lookup_weather_transport_failure():
    def boom(request):
        raise httpx.ConnectError("offline", request=request)

    with pytest.raises(ExternalServiceError):
        asyncio.run(lookup_weather("La Spezia", transport=httpx.MockTransport(boom)))


def _report(place):
    return WeatherReport(place, 0.0, 0.0, 10.0, 50.0, 5.0, 0, "☀️", "Clear sky")


def test_board_drops_stale_response():
    board = WeatherBoard()
    first = board.begin()
    second = board.begin()

    assert board.resolve(second, _report("newer")) is True
    assert board.resolve(first, _report("older")) is False
    assert board.status == "result"
    assert board.report.place == "newer"


def test_board_error_keeps_last_report():
    board = WeatherBoard(transport=_transport())
    asyncio.run(board.search("La Spezia"))
    assert board.status == "result"

    board.transport = _transport(geo=[])
    snapshot = asyncio.run(board.search("Atlantis"))
    assert snapshot["status"] == "error"
    assert snapshot["error"]
    assert snapshot["report"].place == "La Spezia"


def test_lookup_weather_non_finite_values_are_missing():
    body = b'{"current": {"temperature_2m": NaN, "relative_humidity_2m": 70, "weathercode": NaN}}'
    report = asyncio.run(lookup_weather("La Spezia", transport=_transport(forecast=body)))
    assert report.code is None
    assert report.temperature is None
    assert (report.icon, report.description) == UNKNOWN_CONDITION


@pytest.mark.parametrize("geo", [["La Spezia"], [None], [{"lat": "NaN", "lon": "9.8"}]])
def test_lookup_weather_odd_geocode_entries(geo):
    with pytest.raises(ExternalServiceError):
        asyncio.run(lookup_weather("La Spezia", transport=_transport(geo=geo)))


def test_board_reports_odd_upstream_payload_as_error():
    board = WeatherBoard(transport=_transport(geo=[42]))
    snapshot = asyncio.run(board.search("La Spezia"))
    assert snapshot["status"] == "error"
    assert board.status != "loading"
