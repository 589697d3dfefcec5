"""Open-Meteo forecast tool (geocode + daily forecast)."""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any

import httpx

from toolchat.models import ToolName
from toolchat.tools.base import Tool
from toolchat.tools.results import DailyForecast, Place, ToolFailure, ToolResult, Units, WeatherResult

LOGGER = logging.getLogger(__name__)

GEOCODE_URL = "https://geocoding-api.open-meteo.com/v1/search"
FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
DAILY_FIELDS = "temperature_2m_max,temperature_2m_min,precipitation_probability_max,weathercode"

GENERIC_FAILURE = "Failed to fetch forecast."
MISSING_LOCATION = "Please provide a city/location I can find."


class ForecastFetchError(Exception):
    """Upstream answered with something we cannot use."""


class WeatherTool(Tool):
    """Fetch a multi-day forecast for a place name or coordinates."""

    name = ToolName.WEATHER
    description = (
        "Fetch a 5-7 day weather forecast (daily highs, lows, chance of rain) "
        "for a city or for explicit coordinates."
    )
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "location": {"type": "string", "description": "City name, e.g. 'Vancouver'."},
            "lat": {"type": "number", "description": "Latitude, when known."},
            "lon": {"type": "number", "description": "Longitude, when known."},
            "units": {"type": "string", "enum": ["metric", "imperial"]},
        },
    }
    ack_message = "Sure, I'll check the forecast using get_weather…"
    step_message = "Fetching forecast from Open-Meteo…"
    failure_message = "I couldn't fetch the weather. Please check the location and try again."

    def __init__(self, timeout_seconds: float = 12.0) -> None:
        self._timeout_seconds = timeout_seconds

    async def run(self, **kwargs: Any) -> ToolResult:
        try:
            return await asyncio.wait_for(self._fetch(**kwargs), timeout=self._timeout_seconds)
        except asyncio.TimeoutError:
            LOGGER.warning("Forecast timed out after %.1fs", self._timeout_seconds)
        except (httpx.HTTPError, ForecastFetchError, KeyError, TypeError, ValueError) as exc:
            LOGGER.warning("Forecast failed: %s", exc)
        return ToolFailure(error=GENERIC_FAILURE)

    async def _fetch(self, **kwargs: Any) -> ToolResult:
        imperial = kwargs.get("units") == "imperial"
        location = str(kwargs.get("location") or "").strip()
        lat = _coerce_float(kwargs.get("lat"))
        lon = _coerce_float(kwargs.get("lon"))

        timeout = httpx.Timeout(self._timeout_seconds)
        async with httpx.AsyncClient(timeout=timeout) as client:
            name = ""
            region: str | None = None
            country: str | None = None
            if (lat is None or lon is None) and location:
                LOGGER.info("Geocoding %r", location)
                lat, lon, name, region, country = await _geocode(client, location)

            if lat is None or lon is None:
                return ToolFailure(error=MISSING_LOCATION)

            params = {
                "latitude": str(lat),
                "longitude": str(lon),
                "daily": DAILY_FIELDS,
                "timezone": "auto",
                "temperature_unit": "fahrenheit" if imperial else "celsius",
            }
            LOGGER.info("Fetching forecast for %.3f, %.3f", lat, lon)
            resp = await client.get(FORECAST_URL, params=params)
            if not 200 <= resp.status_code < 300:
                raise ForecastFetchError(f"forecast HTTP {resp.status_code}")
            data = resp.json()

        if not isinstance(data, dict):
            raise ForecastFetchError("forecast body is not an object")

        place = Place(
            name=name or location or f"{lat:.3f}, {lon:.3f}",
            region=region,
            country=country,
            timezone=str(data.get("timezone") or "UTC"),
        )
        return WeatherResult(
            place=place,
            units=Units(temp="°F" if imperial else "°C"),
            daily=_parse_daily(data.get("daily")),
        )


async def _geocode(
    client: httpx.AsyncClient, location: str
) -> tuple[float, float, str, str | None, str | None]:
    resp = await client.get(
        GEOCODE_URL,
        params={"name": location, "count": "1", "language": "en"},
    )
    if not 200 <= resp.status_code < 300:
        raise ForecastFetchError(f"geocode HTTP {resp.status_code}")
    data = resp.json()
    results = data.get("results") if isinstance(data, dict) else None
    if not isinstance(results, list) or not results:
        raise ForecastFetchError(f"no geocode results for {location!r}")

    hit = results[0]
    if not isinstance(hit, dict):
        raise ForecastFetchError("malformed geocode hit")
    lat = _coerce_float(hit.get("latitude"))
    lon = _coerce_float(hit.get("longitude"))
    if lat is None or lon is None:
        raise ForecastFetchError("geocode hit without coordinates")
    return (
        lat,
        lon,
        str(hit.get("name") or location),
        str(hit["admin1"]) if hit.get("admin1") else None,
        str(hit["country"]) if hit.get("country") else None,
    )


def _parse_daily(daily: Any) -> list[DailyForecast]:
    if not isinstance(daily, dict):
        return []
    dates = _as_list(daily.get("time"))
    highs = _as_list(daily.get("temperature_2m_max"))
    lows = _as_list(daily.get("temperature_2m_min"))
    pops = _as_list(daily.get("precipitation_probability_max"))
    codes = _as_list(daily.get("weathercode"))

    days: list[DailyForecast] = []
    for i, date in enumerate(dates):
        if not date:
            continue
        code = _number_at(codes, i)
        days.append(
            DailyForecast(
                date=str(date),
                t_max=_number_at(highs, i),
                t_min=_number_at(lows, i),
                pop=_number_at(pops, i) or 0.0,
                code=int(code) if code is not None else None,
            )
        )
    return days


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _number_at(values: list[Any], index: int) -> float | None:
    if index >= len(values):
        return None
    return _coerce_float(values[index])


def _coerce_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None
