from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import httpx
from django.conf import settings
from django.core.cache import cache

from journey_planner.exceptions import ConfigurationError, EmptyResultError, RouteFetchError
from journey_planner.services.types import (
    MAX_ROUTE_CANDIDATES,
    Coordinate,
    RouteCandidate,
    RouteSet,
    TravelMode,
)

logger = logging.getLogger(__name__)

ALTERNATIVE_ROUTES = {
    "target_count": MAX_ROUTE_CANDIDATES,
    "weight_factor": 1.4,
    "share_factor": 0.6,
}
TWO_PLACES = Decimal("0.01")


@dataclass(slots=True, frozen=True)
class DirectionsConfig:
    api_key: str
    base_url: str = "https://api.openrouteservice.org"
    timeout_seconds: float = 15.0
    retry_count: int = 1

    @classmethod
    def from_settings(cls) -> DirectionsConfig:
        return cls(
            api_key=settings.ORS_API_KEY,
            base_url=settings.ORS_BASE_URL,
            timeout_seconds=settings.DIRECTIONS_TIMEOUT_SECONDS,
            retry_count=settings.DIRECTIONS_RETRY_COUNT,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


def meters_to_km(meters: float) -> float:
    return float((Decimal(str(meters)) / 1000).quantize(TWO_PLACES, rounding=ROUND_HALF_UP))


def seconds_to_minutes(seconds: float) -> float:
    return float((Decimal(str(seconds)) / 60).quantize(TWO_PLACES, rounding=ROUND_HALF_UP))


class DirectionsClient:
    def __init__(self, config: DirectionsConfig | None = None) -> None:
        self.config = config or DirectionsConfig.from_settings()
        self.base_url = self.config.base_url.rstrip("/")

    def request_routes(
        self,
        origin: Coordinate | None,
        destination: Coordinate | None,
        mode: TravelMode,
    ) -> RouteSet:
        if origin is None or destination is None:
            raise ConfigurationError("Please set both origin and destination.")
        if not self.config.is_configured:
            raise ConfigurationError("API key is missing.")

        cache_key = self._cache_key(origin, destination, mode)
        cached = cache.get(cache_key)
        if cached:
            return cached

        endpoint = f"{self.base_url}/v2/directions/{mode.profile}/geojson"
        body = {
            "coordinates": [
                [origin.longitude, origin.latitude],
                [destination.longitude, destination.latitude],
            ],
            "alternative_routes": ALTERNATIVE_ROUTES,
        }
        headers = {
            "Authorization": self.config.api_key,
            "Content-Type": "application/json",
            "Accept": "application/json, application/geo+json",
        }

        for attempt in range(self.config.retry_count + 1):
            try:
                response = httpx.post(
                    endpoint, json=body, headers=headers, timeout=self.config.timeout_seconds
                )
                response.raise_for_status()
                route_set = self._parse_response(response.json())
                cache.set(cache_key, route_set, timeout=settings.ROUTE_CACHE_TTL_SECONDS)
                return route_set
            except httpx.HTTPStatusError as exc:
                if exc.response.status_code < 500 or attempt >= self.config.retry_count:
                    raise RouteFetchError(self._describe_error(exc)) from exc
            except httpx.HTTPError as exc:
                if attempt >= self.config.retry_count:
                    raise RouteFetchError(str(exc) or "Directions request failed") from exc
            except ValueError as exc:
                raise RouteFetchError("Invalid directions response") from exc
            logger.info("Retrying directions request (attempt %d)", attempt + 2)
            time.sleep(0.3 * (attempt + 1))

        raise RouteFetchError("Directions request failed")

    @staticmethod
    def _cache_key(origin: Coordinate, destination: Coordinate, mode: TravelMode) -> str:
        encoded = (
            f"{origin.latitude:.5f}:{origin.longitude:.5f}|"
            f"{destination.latitude:.5f}:{destination.longitude:.5f}|{mode.value}"
        ).encode()
        digest = hashlib.sha256(encoded).hexdigest()
        return f"directions:{digest}"

    @staticmethod
    def _describe_error(exc: httpx.HTTPStatusError) -> str:
        try:
            payload = exc.response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            error = payload.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
            if isinstance(error, str) and error:
                return error
        return f"Directions service responded with HTTP {exc.response.status_code}"

    @staticmethod
    def _parse_response(payload: Any) -> RouteSet:
        if not isinstance(payload, dict):
            raise RouteFetchError("Invalid directions response")

        features = payload.get("features") or []
        if not features:
            raise EmptyResultError("No routes found.")

        candidates = []
        for feature in features[:MAX_ROUTE_CANDIDATES]:
            try:
                coordinates = tuple(
                    Coordinate(latitude=float(lat), longitude=float(lon))
                    for lon, lat, *_ in feature["geometry"]["coordinates"]
                )
                summary = feature["properties"]["summary"]
                distance = float(summary.get("distance", 0.0))
                duration = float(summary.get("duration", 0.0))
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                raise RouteFetchError("Invalid directions response") from exc

            candidates.append(
                RouteCandidate(
                    coordinates=coordinates,
                    distance_km=meters_to_km(distance),
                    duration_min=seconds_to_minutes(duration),
                )
            )

        return RouteSet(candidates=tuple(candidates))
