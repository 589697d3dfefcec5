"""Structured tool results.

Every tool returns either its success model or ``ToolFailure``; both carry an
``ok`` tag so persisted rows can be read back without knowing the Python type.
"""

from __future__ import annotations

import json
from typing import Any, Literal, Union

from pydantic import BaseModel

from toolchat.models import ToolName

TOOL_RESULT_TYPE = "tool_result"


class ToolFailure(BaseModel):
    ok: Literal[False] = False
    error: str


class Place(BaseModel):
    name: str
    region: str | None = None
    country: str | None = None
    timezone: str = "UTC"


class Units(BaseModel):
    temp: Literal["°C", "°F"] = "°C"


class DailyForecast(BaseModel):
    date: str
    t_min: float | None = None
    t_max: float | None = None
    pop: float = 0.0
    code: int | None = None


class WeatherResult(BaseModel):
    ok: Literal[True] = True
    place: Place
    units: Units
    daily: list[DailyForecast]


class WikiResult(BaseModel):
    ok: Literal[True] = True
    title: str
    description: str | None = None
    extract: str
    page_url: str
    thumbnail_url: str | None = None
    lang: str = "en"


class IssResult(BaseModel):
    ok: Literal[True] = True
    lat: float
    lon: float
    altitude_km: float | None = None
    velocity_kmh: float | None = None
    visibility: str | None = None
    ts: int


ToolResult = Union[WeatherResult, WikiResult, IssResult, ToolFailure]

_SUCCESS_MODELS: dict[ToolName, type[BaseModel]] = {
    ToolName.WEATHER: WeatherResult,
    ToolName.WIKI: WikiResult,
    ToolName.ISS: IssResult,
}


def parse_tool_result(tool: ToolName, payload: dict[str, Any]) -> ToolResult:
    """Validate a serialized result back into its model."""

    if payload.get("ok") is False:
        return ToolFailure.model_validate(payload)
    return _SUCCESS_MODELS[tool].model_validate(payload)  # type: ignore[return-value]


def encode_tool_row(tool: ToolName, result: ToolResult) -> str:
    """Serialize the envelope stored as a tool-role message."""

    return json.dumps(
        {
            "type": TOOL_RESULT_TYPE,
            "tool": tool.value,
            "result": result.model_dump(mode="json"),
        }
    )


def decode_tool_row(content: str) -> tuple[ToolName, ToolResult]:
    """Inverse of ``encode_tool_row``.

    Raises:
        ValueError: content is not a tool-result envelope for a known tool.
    """

    envelope = json.loads(content)
    if not isinstance(envelope, dict) or envelope.get("type") != TOOL_RESULT_TYPE:
        raise ValueError("Not a tool result envelope")
    tool = ToolName.resolve(envelope.get("tool"))
    if tool is None:
        raise ValueError(f"Unknown tool in envelope: {envelope.get('tool')!r}")
    return tool, parse_tool_result(tool, envelope.get("result") or {})
