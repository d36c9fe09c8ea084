"""Tests for the Distance Matrix client: parsing, retry, and haversine fallback."""

import asyncio
from typing import Any
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from dispatch.core.config import DistanceConfig
from dispatch.core.errors import InvalidArgumentError
from dispatch.providers.google_maps import GoogleMapsDistanceProvider
from dispatch.providers.haversine import estimate_travel_minutes, haversine_miles

ORIGIN = (40.7200, -73.9900)
DEST = (40.7128, -74.0060)


def _ok_body(meters: int = 5633, seconds: int = 725) -> dict[str, Any]:
    return {
        "status": "OK",
        "rows": [{
            "elements": [{
                "status": "OK",
                "distance": {"value": meters, "text": "3.5 mi"},
                "duration": {"value": seconds, "text": "12 mins"},
            }],
        }],
    }


class _Recorder:
    """MockTransport handler that replays a list of responses and records requests."""

    def __init__(self, *responses: httpx.Response | Exception) -> None:
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self._responses[min(len(self.requests), len(self._responses)) - 1]
        if isinstance(item, Exception):
            raise item
        return item


def _provider(
    handler: _Recorder,
    **config: Any,
) -> tuple[GoogleMapsDistanceProvider, httpx.AsyncClient]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    provider = GoogleMapsDistanceProvider(DistanceConfig(api_key="test-key", **config), client)
    return provider, client


class TestConstruction:
    def test_requires_api_key(self) -> None:
        with pytest.raises(ValueError, match="api_key"):
            GoogleMapsDistanceProvider(DistanceConfig())

    async def test_injected_client_not_closed(self) -> None:
        handler = _Recorder(httpx.Response(200, json=_ok_body()))
        provider, client = _provider(handler)
        await provider.close()
        assert client.is_closed is False
        await client.aclose()

    async def test_context_manager_closes_own_client(self) -> None:
        async with GoogleMapsDistanceProvider(DistanceConfig(api_key="k")) as provider:
            client = provider._get_client()
        assert client.is_closed is True


class TestSuccessfulLookup:
    async def test_distance_in_miles(self) -> None:
        provider, client = _provider(_Recorder(httpx.Response(200, json=_ok_body())))
        async with client:
            miles = await provider.get_distance(*ORIGIN, *DEST)
        assert miles == pytest.approx(5633 * 0.000621371)

    async def test_travel_time_rounded_up(self) -> None:
        provider, client = _provider(_Recorder(httpx.Response(200, json=_ok_body(seconds=725))))
        async with client:
            minutes = await provider.get_travel_time(*ORIGIN, *DEST)
        assert minutes == 13

    async def test_exact_minutes_not_rounded(self) -> None:
        provider, client = _provider(_Recorder(httpx.Response(200, json=_ok_body(seconds=720))))
        async with client:
            assert await provider.get_travel_time(*ORIGIN, *DEST) == 12

    async def test_request_params(self) -> None:
        handler = _Recorder(httpx.Response(200, json=_ok_body()))
        provider, client = _provider(handler)
        async with client:
            await provider.get_distance(*ORIGIN, *DEST)
        params = handler.requests[0].url.params
        assert params["origins"] == "40.72,-73.99"
        assert params["destinations"] == "40.7128,-74.006"
        assert params["key"] == "test-key"
        assert params["units"] == "imperial"
        assert params["mode"] == "driving"


class TestRetryAndFallback:
    async def test_retries_then_falls_back(self) -> None:
        handler = _Recorder(httpx.Response(500))
        provider, client = _provider(handler)
        with patch.object(asyncio, "sleep", new_callable=AsyncMock) as mock_sleep:
            async with client:
                miles = await provider.get_distance(*ORIGIN, *DEST)
        assert len(handler.requests) == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [0.1, 0.2]
        assert miles == pytest.approx(haversine_miles(*ORIGIN, *DEST))

    async def test_recovers_after_transient_failure(self) -> None:
        handler = _Recorder(
            httpx.Response(503),
            httpx.Response(200, json=_ok_body()),
        )
        provider, client = _provider(handler)
        with patch.object(asyncio, "sleep", new_callable=AsyncMock):
            async with client:
                miles = await provider.get_distance(*ORIGIN, *DEST)
        assert len(handler.requests) == 2
        assert miles == pytest.approx(5633 * 0.000621371)

    async def test_connection_error_falls_back(self) -> None:
        handler = _Recorder(httpx.ConnectError("refused"))
        provider, client = _provider(handler)
        with patch.object(asyncio, "sleep", new_callable=AsyncMock):
            async with client:
                minutes = await provider.get_travel_time(*ORIGIN, *DEST)
        assert len(handler.requests) == 3
        assert minutes == estimate_travel_minutes(haversine_miles(*ORIGIN, *DEST))

    async def test_custom_retry_count(self) -> None:
        handler = _Recorder(httpx.Response(500))
        provider, client = _provider(handler, max_retries=5)
        with patch.object(asyncio, "sleep", new_callable=AsyncMock):
            async with client:
                await provider.get_distance(*ORIGIN, *DEST)
        assert len(handler.requests) == 5

    async def test_request_denied_falls_back_without_retry(self) -> None:
        body = {"status": "REQUEST_DENIED", "error_message": "bad key", "rows": []}
        handler = _Recorder(httpx.Response(200, json=body))
        provider, client = _provider(handler)
        async with client:
            miles = await provider.get_distance(*ORIGIN, *DEST)
        assert len(handler.requests) == 1
        assert miles == pytest.approx(haversine_miles(*ORIGIN, *DEST))

    async def test_zero_results_element_falls_back(self) -> None:
        body = {"status": "OK", "rows": [{"elements": [{"status": "ZERO_RESULTS"}]}]}
        provider, client = _provider(_Recorder(httpx.Response(200, json=body)))
        async with client:
            miles = await provider.get_distance(*ORIGIN, *DEST)
        assert miles == pytest.approx(haversine_miles(*ORIGIN, *DEST))

    async def test_empty_rows_falls_back(self) -> None:
        body = {"status": "OK", "rows": []}
        provider, client = _provider(_Recorder(httpx.Response(200, json=body)))
        async with client:
            miles = await provider.get_distance(*ORIGIN, *DEST)
        assert miles == pytest.approx(haversine_miles(*ORIGIN, *DEST))

    async def test_malformed_json_falls_back(self) -> None:
        handler = _Recorder(httpx.Response(200, content=b"<html>oops</html>"))
        provider, client = _provider(handler)
        async with client:
            miles = await provider.get_distance(*ORIGIN, *DEST)
        assert len(handler.requests) == 1
        assert miles == pytest.approx(haversine_miles(*ORIGIN, *DEST))


class TestValidation:
    async def test_invalid_coordinates_not_sent(self) -> None:
        handler = _Recorder(httpx.Response(200, json=_ok_body()))
        provider, client = _provider(handler)
        async with client:
            with pytest.raises(InvalidArgumentError):
                await provider.get_distance(91.0, 0.0, *DEST)
        assert handler.requests == []
