"""Wikipedia lookup tool (opensearch title resolution + REST summary)."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any
from urllib.parse import quote

import httpx

from toolchat.models import ToolName
from toolchat.tools.base import Tool
from toolchat.tools.results import ToolFailure, ToolResult, WikiResult

LOGGER = logging.getLogger(__name__)

USER_AGENT = "toolchat/0.1 (https://github.com/toolchat/toolchat)"
_LANG_RE = re.compile(r"^[a-z]{2}(-[a-z]{2})?$", re.IGNORECASE)


def search_url(lang: str) -> str:
    return f"https://{lang}.wikipedia.org/w/api.php"


def summary_url(lang: str, title: str) -> str:
    return f"https://{lang}.wikipedia.org/api/rest_v1/page/summary/{quote(title, safe='')}"


def page_url(lang: str, title: str) -> str:
    slug = re.sub(r"\s", "_", title)
    return f"https://{lang}.wikipedia.org/wiki/{quote(slug, safe='')}"


class WikiTool(Tool):
    """Look up a topic or person and return a short factual summary."""

    name = ToolName.WIKI
    description = (
        "Look up a topic or person on Wikipedia and return a short, factual "
        "summary with a link and optional thumbnail."
    )
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": "Topic or person to look up."},
            "lang": {"type": "string", "description": "ISO 639-1 language code (default: en)."},
        },
        "required": ["query"],
        "additionalProperties": False,
    }
    ack_message = "Let me look that up on Wikipedia using get_wiki…"
    step_message = "Searching Wikipedia…"
    failure_message = "I couldn't find that on Wikipedia. Try rephrasing the topic."

    def __init__(self, timeout_seconds: float = 12.0) -> None:
        self._timeout_seconds = timeout_seconds

    def validate_arguments(self, arguments: dict[str, Any]) -> dict[str, Any] | None:
        query = arguments.get("query")
        if not isinstance(query, str) or not query.strip():
            return None
        validated = {"query": query.strip()}
        lang = arguments.get("lang")
        if isinstance(lang, str) and lang.strip():
            validated["lang"] = lang.strip()
        return validated

    async def run(self, **kwargs: Any) -> ToolResult:
        query = str(kwargs.get("query") or "").strip()
        lang = str(kwargs.get("lang") or "en").strip().lower()

        if not query:
            return ToolFailure(error="Missing query.")
        if not _LANG_RE.match(lang):
            return ToolFailure(error=f"Invalid language: {lang}")

        try:
            return await asyncio.wait_for(self._lookup(query, lang), timeout=self._timeout_seconds)
        except asyncio.TimeoutError:
            LOGGER.warning("Wiki lookup timed out for %r", query)
        except (httpx.HTTPError, ValueError) as exc:
            LOGGER.warning("Wiki lookup failed for %r: %s", query, exc)
        return ToolFailure(error="Network error.")

    async def _lookup(self, query: str, lang: str) -> ToolResult:
        headers = {"Accept": "application/json", "User-Agent": USER_AGENT}
        async with httpx.AsyncClient(headers=headers, timeout=httpx.Timeout(self._timeout_seconds)) as client:
            title = await _resolve_title(client, query, lang)
            LOGGER.info("Wiki title for %r resolved to %r", query, title)

            resp = await client.get(summary_url(lang, title))
            if resp.status_code == 404:
                return ToolFailure(error="No page found.")
            if not 200 <= resp.status_code < 300:
                LOGGER.warning("Wiki summary HTTP %s for %r", resp.status_code, title)
                return ToolFailure(error="Summary request failed.")
            try:
                data = resp.json()
            except ValueError as exc:
                LOGGER.warning("Wiki summary for %r is not JSON: %s", title, exc)
                return ToolFailure(error="Malformed response.")

        if not isinstance(data, dict):
            return ToolFailure(error="Malformed response.")

        page_title = _get_str(data, "title") or title
        extract = _get_str(data, "extract") or ""
        if not extract:
            return ToolFailure(error="No summary available.")

        return WikiResult(
            title=page_title,
            description=_get_str(data, "description"),
            extract=extract,
            page_url=_extract_page_url(data, lang, page_title),
            thumbnail_url=_extract_thumbnail(data),
            lang=lang,
        )


async def _resolve_title(client: httpx.AsyncClient, query: str, lang: str) -> str:
    """Best-matching title via opensearch; the raw query on any problem."""

    params = {
        "action": "opensearch",
        "format": "json",
        "limit": "1",
        "namespace": "0",
        "search": query,
    }
    try:
        resp = await client.get(search_url(lang), params=params)
        if not 200 <= resp.status_code < 300:
            LOGGER.info("Opensearch HTTP %s, using query as title", resp.status_code)
            return query
        data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        LOGGER.info("Opensearch failed (%s), using query as title", exc)
        return query

    # [searchTerm, titles[], descriptions[], links[]]
    if isinstance(data, list) and len(data) >= 2 and isinstance(data[1], list) and data[1]:
        first = data[1][0]
        if isinstance(first, str) and first:
            return first
    return query


def _get_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    return value if isinstance(value, str) else None


def _extract_page_url(data: dict[str, Any], lang: str, title: str) -> str:
    urls = data.get("content_urls")
    if isinstance(urls, dict) and isinstance(urls.get("desktop"), dict):
        page = urls["desktop"].get("page")
        if isinstance(page, str) and page:
            return page
    return page_url(lang, title)


def _extract_thumbnail(data: dict[str, Any]) -> str | None:
    thumb = data.get("thumbnail")
    if isinstance(thumb, dict) and isinstance(thumb.get("source"), str):
        return thumb["source"]
    return None
