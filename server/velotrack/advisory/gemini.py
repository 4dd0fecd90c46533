"""Gemini implementation of AdvisoryClient over the REST generateContent API."""

from __future__ import annotations

import json
from typing import Sequence, TYPE_CHECKING

import httpx
import structlog

from velotrack.advisory.request import (
    INSIGHT_SCHEMA,
    RECOMMENDATION_COUNT,
    ROUTE_SAMPLE_EVERY,
    build_nearby_prompt,
    build_ride_prompt,
)
from velotrack.core.models import AIInsight, GroundingLink, NearbyStops
from velotrack.errors import AdvisoryNotConfiguredError, AdvisoryServiceError

if TYPE_CHECKING:
    from velotrack.core.models import RideStats, RoutePoint

log = structlog.get_logger()

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-3-flash-preview"


def _response_text(data: dict) -> str:
    """Concatenate the text parts of the first candidate."""
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        raise AdvisoryServiceError("response has no candidate content")
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict))


def _parse_insight(text: str) -> AIInsight:
    try:
        body = json.loads(text)
    except json.JSONDecodeError:
        raise AdvisoryServiceError("insight is not valid JSON")
    if not isinstance(body, dict):
        raise AdvisoryServiceError("insight is not a JSON object")

    title = body.get("title")
    summary = body.get("summary")
    recs = body.get("recommendations")
    if not isinstance(title, str) or not isinstance(summary, str):
        raise AdvisoryServiceError("insight is missing title or summary")
    if not isinstance(recs, list) or not all(isinstance(r, str) for r in recs):
        raise AdvisoryServiceError("insight recommendations must be a list of strings")
    if len(recs) != RECOMMENDATION_COUNT:
        raise AdvisoryServiceError(
            f"expected {RECOMMENDATION_COUNT} recommendations, got {len(recs)}"
        )
    return AIInsight(title=title, summary=summary, recommendations=tuple(recs))


def _grounding_links(data: dict) -> list[GroundingLink]:
    try:
        chunks = data["candidates"][0].get("groundingMetadata", {}).get("groundingChunks", [])
    except (KeyError, IndexError, AttributeError):
        return []
    links = []
    for chunk in chunks or []:
        web = (chunk.get("web") if isinstance(chunk, dict) else None) or {}
        links.append(GroundingLink(
            title=web.get("title") or "Search Result",
            uri=web.get("uri") or "#",
        ))
    return links


class GeminiAdvisoryClient:
    """AdvisoryClient backed by Google's Gemini API."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 30.0,
        route_sample_every: int = ROUTE_SAMPLE_EVERY,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._sample_every = route_sample_every
        self._transport = transport

    async def _generate(self, body: dict) -> dict:
        if not self._api_key:
            raise AdvisoryNotConfiguredError("advisory api_key is not set")

        url = f"{self._base_url}/models/{self._model}:generateContent"
        try:
            async with httpx.AsyncClient(timeout=self._timeout,
                                         transport=self._transport) as client:
                resp = await client.post(
                    url,
                    json=body,
                    headers={"x-goog-api-key": self._api_key},
                )
        except httpx.HTTPError as exc:
            log.error("advisory_request_failed", model=self._model, error=str(exc))
            raise AdvisoryServiceError(f"advisory request failed: {exc}") from exc

        if resp.status_code != 200:
            log.error("advisory_request_failed", model=self._model,
                      status=resp.status_code)
            raise AdvisoryServiceError(f"advisory service returned HTTP {resp.status_code}")

        try:
            return resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise AdvisoryServiceError("advisory response is not JSON") from exc

    async def analyze_ride(self, stats: RideStats, route: Sequence[RoutePoint]) -> AIInsight:
        prompt = build_ride_prompt(stats, route, self._sample_every)
        data = await self._generate({
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": INSIGHT_SCHEMA,
            },
        })
        insight = _parse_insight(_response_text(data))
        log.info("ride_analyzed", model=self._model, title=insight.title)
        return insight

    async def find_nearby_stops(self, latitude: float, longitude: float) -> NearbyStops:
        data = await self._generate({
            "contents": [{"parts": [{"text": build_nearby_prompt(latitude, longitude)}]}],
            "tools": [{"google_search": {}}],
        })
        return NearbyStops(text=_response_text(data), links=_grounding_links(data))
