from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import pytest
from django.core.cache import cache
from django.test import Client

from journey_planner.services import directions, geocoding


@pytest.fixture(autouse=True)
def _clear_cache() -> None:
    cache.clear()


@pytest.fixture(autouse=True)
def _no_retry_sleep(mocker) -> None:
    # Replace only the adapters' module reference; time.sleep stays real elsewhere.
    mocker.patch.object(directions, "time")
    mocker.patch.object(geocoding, "time")


@pytest.fixture
def api_client() -> Client:
    return Client()


@pytest.fixture
def ors_payload() -> Callable[..., dict[str, Any]]:
    def build(*summaries: tuple[float, float]) -> dict[str, Any]:
        features = []
        for offset, (distance, duration) in enumerate(summaries):
            features.append(
                {
                    "type": "Feature",
                    "geometry": {
                        "type": "LineString",
                        "coordinates": [
                            [-0.10, 51.50],
                            [-0.09 + offset * 0.001, 51.505],
                            [-0.08, 51.51],
                        ],
                    },
                    "properties": {"summary": {"distance": distance, "duration": duration}},
                }
            )
        return {"type": "FeatureCollection", "features": features}

    return build


@pytest.fixture
def json_response() -> Callable[..., httpx.Response]:
    def build(payload: Any, status_code: int = 200, method: str = "GET") -> httpx.Response:
        return httpx.Response(
            status_code,
            json=payload,
            request=httpx.Request(method, "https://example.test"),
        )

    return build
