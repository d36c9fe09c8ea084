"""Google Maps Distance Matrix client with retry and haversine fallback.

Any failure (transport error, non-2xx after retries, non-OK status) is a
ProviderDegradedError internally; the public methods log it and return the
haversine estimate instead of failing the recommendation.
"""

import asyncio
import logging
import math
from typing import Any

import httpx

from dispatch.core.config import DistanceConfig
from dispatch.core.errors import ProviderDegradedError
from dispatch.providers.base import DistanceProvider
from dispatch.providers.haversine import (
    estimate_travel_minutes,
    haversine_miles,
    validate_coordinates,
)

logger = logging.getLogger(__name__)

METERS_TO_MILES = 0.000621371


class GoogleMapsDistanceProvider(DistanceProvider):
    """Driving distance and duration from the Distance Matrix API.

    Usage::

        async with GoogleMapsDistanceProvider(settings.distance) as provider:
            miles = await provider.get_distance(40.7, -74.0, 40.8, -73.9)
    """

    def __init__(
        self,
        config: DistanceConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not config.api_key:
            msg = "GoogleMapsDistanceProvider requires distance.api_key"
            raise ValueError(msg)
        self._config = config
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "GoogleMapsDistanceProvider":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def get_distance(
        self, from_lat: float, from_lng: float, to_lat: float, to_lng: float,
    ) -> float:
        validate_coordinates(from_lat, from_lng)
        validate_coordinates(to_lat, to_lng)
        try:
            miles, _ = await self._lookup(from_lat, from_lng, to_lat, to_lng)
        except ProviderDegradedError as e:
            logger.warning(
                "Distance lookup degraded for (%s,%s)->(%s,%s), using haversine: %s",
                from_lat, from_lng, to_lat, to_lng, e,
            )
            return haversine_miles(from_lat, from_lng, to_lat, to_lng)
        return miles

    async def get_travel_time(
        self, from_lat: float, from_lng: float, to_lat: float, to_lng: float,
    ) -> int:
        validate_coordinates(from_lat, from_lng)
        validate_coordinates(to_lat, to_lng)
        try:
            _, minutes = await self._lookup(from_lat, from_lng, to_lat, to_lng)
        except ProviderDegradedError as e:
            logger.warning(
                "Travel time lookup degraded for (%s,%s)->(%s,%s), using haversine: %s",
                from_lat, from_lng, to_lat, to_lng, e,
            )
            return estimate_travel_minutes(haversine_miles(from_lat, from_lng, to_lat, to_lng))
        return minutes

    async def _lookup(
        self, from_lat: float, from_lng: float, to_lat: float, to_lng: float,
    ) -> tuple[float, int]:
        """Return (miles, minutes) for a single origin/destination pair."""
        data = await self._request_with_retry({
            "origins": f"{from_lat},{from_lng}",
            "destinations": f"{to_lat},{to_lng}",
            "key": self._config.api_key,
            "units": "imperial",
            "mode": "driving",
        })
        return _parse_single_element(data)

    async def _request_with_retry(self, params: dict[str, str]) -> dict[str, Any]:
        client = self._get_client()
        delay = self._config.initial_delay_ms / 1000
        last_error = ""

        for attempt in range(1, self._config.max_retries + 1):
            try:
                resp = await client.get(self._config.base_url, params=params)
                resp.raise_for_status()
                data: dict[str, Any] = resp.json()
                return data
            except httpx.HTTPStatusError as e:
                last_error = f"HTTP {e.response.status_code}"
            except httpx.RequestError as e:
                last_error = f"{type(e).__name__}: {e}"
            except ValueError as e:
                msg = f"Malformed Distance Matrix response: {e}"
                raise ProviderDegradedError(msg) from e

            logger.warning(
                "Distance Matrix request failed (%s), attempt %d/%d",
                last_error, attempt, self._config.max_retries,
            )
            if attempt < self._config.max_retries:
                await asyncio.sleep(delay)
                delay *= 2

        msg = f"Distance Matrix unreachable after {self._config.max_retries} attempts ({last_error})"
        raise ProviderDegradedError(msg)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._config.request_timeout_seconds)
            self._owns_client = True
        return self._client


def _parse_single_element(data: dict[str, Any]) -> tuple[float, int]:
    """Extract (miles, minutes) from a 1x1 Distance Matrix response."""
    status = data.get("status")
    if status != "OK":
        detail = data.get("error_message") or status
        msg = f"Distance Matrix status {detail}"
        raise ProviderDegradedError(msg)

    try:
        element = data["rows"][0]["elements"][0]
    except (KeyError, IndexError, TypeError) as e:
        msg = "Distance Matrix response has no elements"
        raise ProviderDegradedError(msg) from e

    element_status = element.get("status")
    if element_status != "OK":
        msg = f"Distance Matrix element status {element_status}"
        raise ProviderDegradedError(msg)

    distance = element.get("distance") or {}
    duration = element.get("duration") or {}
    if "value" not in distance or "value" not in duration:
        msg = "Distance Matrix element missing distance or duration"
        raise ProviderDegradedError(msg)

    miles = distance["value"] * METERS_TO_MILES
    minutes = math.ceil(duration["value"] / 60)
    return miles, minutes
