"""Tests for WeatherTool."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from toolchat.tools.results import ToolFailure, WeatherResult
from toolchat.tools.weather_tool import GENERIC_FAILURE, MISSING_LOCATION, WeatherTool

_CLIENT_PATH = "toolchat.tools.weather_tool.httpx.AsyncClient"

TOKYO_GEOCODE = {
    "results": [
        {
            "latitude": 35.6895,
            "longitude": 139.6917,
            "name": "Tokyo",
            "admin1": "Tokyo",
            "country": "Japan",
        }
    ]
}

TOKYO_FORECAST = {
    "timezone": "Asia/Tokyo",
    "daily": {
        "time": ["2025-01-01", "2025-01-02", "2025-01-03"],
        "temperature_2m_max": [12.4, 14.6, 11.0],
        "temperature_2m_min": [3.2, 5.1, 4.0],
        "precipitation_probability_max": [10, 45, 20],
        "weathercode": [1, 61, 3],
    },
}


def _mock_response(data: object, status_code: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = data
    return resp


def _mock_client(*responses: MagicMock) -> AsyncMock:
    mock_client = AsyncMock()
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client.get = AsyncMock(side_effect=list(responses))
    return mock_client


@pytest.mark.asyncio
async def test_run_geocodes_location_and_returns_days():
    mock_client = _mock_client(_mock_response(TOKYO_GEOCODE), _mock_response(TOKYO_FORECAST))

    with patch(_CLIENT_PATH, return_value=mock_client):
        result = await WeatherTool().run(location="Tokyo")

    assert isinstance(result, WeatherResult)
    assert result.place.name == "Tokyo"
    assert result.place.region == "Tokyo"
    assert result.place.country == "Japan"
    assert result.place.timezone == "Asia/Tokyo"
    assert result.units.temp == "°C"
    assert [d.date for d in result.daily] == ["2025-01-01", "2025-01-02", "2025-01-03"]
    assert result.daily[1].t_max == 14.6
    assert result.daily[1].pop == 45
    assert result.daily[1].code == 61

    geocode_call, forecast_call = mock_client.get.call_args_list
    assert geocode_call.kwargs["params"]["name"] == "Tokyo"
    assert geocode_call.kwargs["params"]["count"] == "1"
    assert forecast_call.kwargs["params"]["latitude"] == "35.6895"
    assert forecast_call.kwargs["params"]["temperature_unit"] == "celsius"


@pytest.mark.asyncio
async def test_run_with_coordinates_skips_geocoding():
    mock_client = _mock_client(_mock_response(TOKYO_FORECAST))

    with patch(_CLIENT_PATH, return_value=mock_client):
        result = await WeatherTool().run(lat=35, lon="139.5")

    assert isinstance(result, WeatherResult)
    assert mock_client.get.call_count == 1
    assert result.place.name == "35.000, 139.500"


@pytest.mark.asyncio
async def test_run_imperial_units():
    mock_client = _mock_client(_mock_response(TOKYO_GEOCODE), _mock_response(TOKYO_FORECAST))

    with patch(_CLIENT_PATH, return_value=mock_client):
        result = await WeatherTool().run(location="Tokyo", units="imperial")

    assert result.units.temp == "°F"
    assert mock_client.get.call_args_list[1].kwargs["params"]["temperature_unit"] == "fahrenheit"


@pytest.mark.asyncio
async def test_run_without_location_asks_for_one():
    mock_client = _mock_client()

    with patch(_CLIENT_PATH, return_value=mock_client):
        result = await WeatherTool().run()

    assert result == ToolFailure(error=MISSING_LOCATION)
    mock_client.get.assert_not_called()


@pytest.mark.asyncio
async def test_run_tolerates_missing_optional_fields():
    forecast = {
        "daily": {
            "time": ["2025-01-01", "2025-01-02", ""],
            "temperature_2m_max": [10.0],
            "temperature_2m_min": [None, 2.0],
            "weathercode": ["x"],
        }
    }
    mock_client = _mock_client(_mock_response(forecast))

    with patch(_CLIENT_PATH, return_value=mock_client):
        result = await WeatherTool().run(lat=1.0, lon=2.0)

    assert isinstance(result, WeatherResult)
    assert result.place.timezone == "UTC"
    assert len(result.daily) == 2
    first, second = result.daily
    assert first.t_max == 10.0 and first.t_min is None
    assert second.t_max is None and second.t_min == 2.0
    assert first.pop == 0 and second.pop == 0
    assert first.code is None


@pytest.mark.asyncio
async def test_run_no_geocode_results_is_generic_failure():
    mock_client = _mock_client(_mock_response({"results": []}))

    with patch(_CLIENT_PATH, return_value=mock_client):
        result = await WeatherTool().run(location="Atlantis")

    assert result == ToolFailure(error=GENERIC_FAILURE)


@pytest.mark.asyncio
async def test_run_non_2xx_is_generic_failure():
    mock_client = _mock_client(_mock_response(TOKYO_GEOCODE), _mock_response({}, status_code=502))

    with patch(_CLIENT_PATH, return_value=mock_client):
        result = await WeatherTool().run(location="Tokyo")

    assert result == ToolFailure(error=GENERIC_FAILURE)
    assert "502" not in result.error


@pytest.mark.asyncio
async def test_run_network_error_is_generic_failure():
    mock_client = _mock_client()
    mock_client.get = AsyncMock(side_effect=httpx.ConnectError("connection refused"))

    with patch(_CLIENT_PATH, return_value=mock_client):
        result = await WeatherTool().run(location="Tokyo")

    assert result == ToolFailure(error=GENERIC_FAILURE)


@pytest.mark.asyncio
async def test_run_timeout_is_generic_failure():
    async def _hang(*args, **kwargs):  # noqa: ANN002, ANN003, ANN202
        await asyncio.sleep(5)

    mock_client = _mock_client()
    mock_client.get = AsyncMock(side_effect=_hang)

    with patch(_CLIENT_PATH, return_value=mock_client):
        result = await WeatherTool(timeout_seconds=0.05).run(location="Tokyo")

    assert result == ToolFailure(error=GENERIC_FAILURE)


@pytest.mark.asyncio
async def test_run_geocode_hit_that_is_not_an_object_is_generic_failure():
    mock_client = _mock_client(_mock_response({"results": ["Tokyo"]}))

    with patch(_CLIENT_PATH, return_value=mock_client):
        result = await WeatherTool().run(location="Tokyo")

    assert result == ToolFailure(error=GENERIC_FAILURE)
    assert mock_client.get.await_count == 1
