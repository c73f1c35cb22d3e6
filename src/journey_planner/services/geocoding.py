from __future__ import annotations

import hashlib
import logging
import time
from typing import Any

import httpx
from django.conf import settings
from django.core.cache import cache

from journey_planner.exceptions import NamingFailure, SearchFailure
from journey_planner.services.types import Coordinate, PlaceCandidate

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = "Unknown Location"
MIN_SEARCH_LENGTH = 3


def is_searchable(query: str) -> bool:
    return len(query.strip()) >= MIN_SEARCH_LENGTH


class GeocodingClient:
    """Nominatim client covering reverse lookups and address search.

    Both public entry points degrade instead of raising: place names are
    cosmetic and address search is best-effort.
    """

    def __init__(
        self,
        base_url: str | None = None,
        user_agent: str | None = None,
        timeout: float | None = None,
        retry_count: int | None = None,
        search_limit: int | None = None,
    ) -> None:
        self.base_url = (base_url or settings.GEOCODING_BASE_URL).rstrip("/")
        self.user_agent = user_agent or settings.GEOCODING_USER_AGENT
        self.timeout = timeout if timeout is not None else settings.GEOCODING_TIMEOUT_SECONDS
        self.retry_count = (
            retry_count if retry_count is not None else settings.GEOCODING_RETRY_COUNT
        )
        self.search_limit = search_limit or settings.GEOCODING_SEARCH_LIMIT

    def resolve_name(self, coordinate: Coordinate) -> str:
        try:
            return self.reverse(coordinate)
        except NamingFailure as exc:
            logger.warning(
                "Reverse geocoding failed for %.5f,%.5f: %s",
                coordinate.latitude,
                coordinate.longitude,
                exc,
            )
            return UNKNOWN_LOCATION

    def search(self, query: str) -> list[PlaceCandidate]:
        if not is_searchable(query):
            return []
        try:
            return self.forward(query.strip())
        except SearchFailure as exc:
            logger.warning("Address search failed for %r: %s", query, exc)
            return []

    def reverse(self, coordinate: Coordinate) -> str:
        cache_key = self._cache_key(
            "reverse", f"{coordinate.latitude:.5f}:{coordinate.longitude:.5f}"
        )
        cached = cache.get(cache_key)
        if cached:
            return cached

        params = {
            "lat": coordinate.latitude,
            "lon": coordinate.longitude,
            "format": "jsonv2",
        }
        try:
            payload = self._get("/reverse", params)
        except (httpx.HTTPError, ValueError) as exc:
            raise NamingFailure("Reverse geocoding request failed") from exc

        name = payload.get("display_name") if isinstance(payload, dict) else None
        if name is None or name == "":
            # Nominatim answers unmapped points (open sea) with an error body.
            return UNKNOWN_LOCATION

        name = str(name)
        cache.set(cache_key, name, timeout=settings.GEOCODE_CACHE_TTL_SECONDS)
        return name

    def forward(self, query: str) -> list[PlaceCandidate]:
        cache_key = self._cache_key("search", query.lower())
        cached = cache.get(cache_key)
        if cached is not None:
            return cached

        params = {
            "q": query,
            "format": "jsonv2",
            "limit": self.search_limit,
        }
        try:
            payload = self._get("/search", params)
        except (httpx.HTTPError, ValueError) as exc:
            raise SearchFailure("Address search request failed") from exc

        if not isinstance(payload, list):
            raise SearchFailure("Invalid search response")

        results = self._parse_candidates(payload)
        cache.set(cache_key, results, timeout=settings.GEOCODE_CACHE_TTL_SECONDS)
        return results

    def _get(self, path: str, params: dict[str, Any]) -> Any:
        for attempt in range(self.retry_count + 1):
            try:
                response = httpx.get(
                    f"{self.base_url}{path}",
                    params=params,
                    timeout=self.timeout,
                    headers={
                        "Accept": "application/json",
                        "User-Agent": self.user_agent,
                    },
                )
                response.raise_for_status()
                return response.json()
            except httpx.HTTPError:
                if attempt >= self.retry_count:
                    raise
                time.sleep(0.3 * (attempt + 1))

        raise httpx.HTTPError("Geocoding request failed")

    @staticmethod
    def _cache_key(kind: str, value: str) -> str:
        digest = hashlib.sha256(value.encode()).hexdigest()
        return f"geocode:{kind}:{digest}"

    @staticmethod
    def _parse_candidates(payload: list[Any]) -> list[PlaceCandidate]:
        candidates: list[PlaceCandidate] = []
        for entry in payload:
            try:
                latitude = float(entry["lat"])
                longitude = float(entry["lon"])
            except (KeyError, TypeError, ValueError):
                continue
            candidates.append(
                PlaceCandidate(
                    name=str(entry.get("display_name") or f"{latitude:.5f}, {longitude:.5f}"),
                    coordinate=Coordinate(latitude=latitude, longitude=longitude),
                )
            )
        return candidates
