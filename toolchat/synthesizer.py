"""Deterministic, template-based summaries of tool results.

No model is involved here: numbers come straight from the structured result.
"""

from __future__ import annotations

import math
from typing import Callable

from toolchat.models import ToolName
from toolchat.tools.results import IssResult, ToolFailure, ToolResult, WeatherResult, WikiResult

MAX_FORECAST_DAYS = 7
SNIPPET_LIMIT = 480
ELLIPSIS = "…"


def summarize(tool: ToolName, result: ToolResult) -> str:
    """Render ``result`` as a short natural-language paragraph."""

    if isinstance(result, ToolFailure):
        return summarize_failure(result)
    return _SUMMARIZERS[tool](result)


def summarize_failure(result: ToolFailure) -> str:
    if result.error:
        return f"Sorry, I couldn't complete that request: {result.error}"
    return "Sorry, I couldn't complete that request."


def summarize_weather(result: WeatherResult) -> str:
    place = result.place
    label = ", ".join(p for p in (place.name, place.region, place.country) if p) or "that location"
    if not result.daily:
        return f"I couldn't find a daily forecast for {label}."

    hi = -math.inf
    lo = math.inf
    max_pop = -1.0
    for day in result.daily[:MAX_FORECAST_DAYS]:
        if _finite(day.t_max) and day.t_max > hi:
            hi = day.t_max
        if _finite(day.t_min) and day.t_min < lo:
            lo = day.t_min
        if _finite(day.pop) and day.pop > max_pop:
            max_pop = day.pop

    unit = result.units.temp
    hi_r = _round(hi) if math.isfinite(hi) else None
    lo_r = _round(lo) if math.isfinite(lo) else None

    lines: list[str] = []

    if hi_r is not None and lo_r is not None:
        lines.append(f"In {label}, highs reach ~{hi_r}{unit} and lows dip to ~{lo_r}{unit} this week.")
    elif hi_r is not None:
        lines.append(f"In {label}, highs reach ~{hi_r}{unit} this week.")
    elif lo_r is not None:
        lines.append(f"In {label}, lows dip to ~{lo_r}{unit} this week.")
    else:
        lines.append(f"In {label}, typical seasonal temperatures this week.")

    if max_pop >= 70:
        lines.append(
            f"Rain is likely (peak chance ~{_round(max_pop)}%). "
            "Pack rain gear (umbrella or waterproof jacket)."
        )
    elif max_pop >= 40:
        lines.append(f"Some showers possible (peak ~{_round(max_pop)}%). Consider a light rain jacket.")
    else:
        lines.append("Low rain risk overall.")

    if hi_r is not None and hi_r >= 30:
        lines.append("It'll feel hot, so dress light and use sunscreen.")
    elif hi_r is not None and hi_r >= 24 and max_pop < 40:
        lines.append("Warm and mostly dry, so shorts and light layers are fine.")
    elif lo_r is not None and lo_r <= 5:
        lines.append("Chilly at times, so bring warm layers (and gloves/hat if you get cold easily).")
    elif hi_r is not None and lo_r is not None:
        if hi_r - lo_r >= 10:
            lines.append("Temps swing through the day, so pack layers.")
        else:
            lines.append("Mild, steady temps. Simple layers should be fine.")

    if lo_r is not None and lo_r <= 0 and max_pop >= 50:
        lines.append("Freezing conditions possible with precipitation, so wear winter shoes or boots.")

    return " ".join(lines)


def summarize_wiki(result: WikiResult) -> str:
    extract = result.extract or ""
    if not extract:
        return f"{result.title} — Summary unavailable."
    return f"{result.title} — {truncate(extract, SNIPPET_LIMIT)}"


def summarize_iss(result: IssResult) -> str:
    altitude = f"{_round(result.altitude_km)}" if _finite(result.altitude_km) else "unknown"
    velocity = f"{_round(result.velocity_kmh)}" if _finite(result.velocity_kmh) else "unknown"
    return (
        f"The ISS is currently at latitude {result.lat:.2f}, longitude {result.lon:.2f}, "
        f"altitude {altitude} km, moving at {velocity} km/h "
        f"(visibility: {result.visibility or 'n/a'})."
    )


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + ELLIPSIS


def _finite(value: float | None) -> bool:
    return value is not None and math.isfinite(value)


def _round(value: float) -> int:
    # Half-up, so 2.5 -> 3 and -2.5 -> -2.
    return math.floor(value + 0.5)


_SUMMARIZERS: dict[ToolName, Callable[..., str]] = {
    ToolName.WEATHER: summarize_weather,
    ToolName.WIKI: summarize_wiki,
    ToolName.ISS: summarize_iss,
}
