"""International Space Station tracker tool."""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any

import httpx

from toolchat.models import ToolName, now_ms
from toolchat.tools.base import Tool
from toolchat.tools.results import IssResult, ToolFailure, ToolResult

LOGGER = logging.getLogger(__name__)

ISS_URL = "https://api.wheretheiss.at/v1/satellites/25544"


class IssTool(Tool):
    """Current ISS position and basic telemetry."""

    name = ToolName.ISS
    description = (
        "Fetch the International Space Station's current position "
        "(latitude/longitude) and basic telemetry."
    )
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {},
        "additionalProperties": False,
    }
    ack_message = "Checking where the ISS is right now using get_iss…"
    step_message = "Contacting wheretheiss.at…"
    failure_message = "I couldn't fetch the ISS position right now. Please try again shortly."

    def __init__(self, timeout_seconds: float = 12.0) -> None:
        self._timeout_seconds = timeout_seconds

    def validate_arguments(self, arguments: dict[str, Any]) -> dict[str, Any] | None:
        return {}

    async def run(self, **kwargs: Any) -> ToolResult:
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self._timeout_seconds)) as client:
                resp = await asyncio.wait_for(
                    client.get(ISS_URL, headers={"Accept": "application/json"}),
                    timeout=self._timeout_seconds,
                )
                if not 200 <= resp.status_code < 300:
                    LOGGER.warning("ISS API HTTP %s", resp.status_code)
                    return ToolFailure(error="ISS API unavailable.")
                data = resp.json()
        except asyncio.TimeoutError:
            LOGGER.warning("ISS request timed out after %.1fs", self._timeout_seconds)
            return ToolFailure(error="Network error")
        except (httpx.HTTPError, ValueError) as exc:
            LOGGER.warning("ISS request failed: %s", exc)
            return ToolFailure(error="Network error")

        if not isinstance(data, dict):
            return ToolFailure(error="Malformed response")
        lat = _number(data.get("latitude"))
        lon = _number(data.get("longitude"))
        if lat is None or lon is None:
            LOGGER.warning("ISS response missing coordinates: %r", data)
            return ToolFailure(error="Malformed response")

        visibility = data.get("visibility")
        return IssResult(
            lat=lat,
            lon=lon,
            altitude_km=_number(data.get("altitude")),
            velocity_kmh=_number(data.get("velocity")),
            visibility=visibility if isinstance(visibility, str) else None,
            ts=now_ms(),
        )


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    return number if math.isfinite(number) else None
