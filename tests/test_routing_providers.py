"""Tests for the routing providers and the OpenRouteService client.

External HTTP is replaced by httpx.MockTransport so that both the success
path and every fallback path run offline.
"""
from __future__ import annotations

import asyncio
from typing import Any, Dict

import httpx
import pytest

from ambulance_dispatch.core.config import Settings
from ambulance_dispatch.domains.routing import geo_math
from ambulance_dispatch.domains.routing.geo_math import Coordinates
from ambulance_dispatch.domains.routing.providers import (
    OpenRouteServiceRouter, StraightLineRouter, build_router,
)
from ambulance_dispatch.domains.routing.schemas import RouteSource
from ambulance_dispatch.infra.clients.openrouteservice import (
    OpenRouteServiceClient, _parse_route_response,
)


ORIGIN = Coordinates(3.07, 101.60)
DESTINATION = Coordinates(3.06, 101.58)
ORS_URL = "https://ors.test/v2/directions/driving-car/geojson"


def _ors_body() -> Dict[str, Any]:
    return {
        "type": "FeatureCollection",
        "features": [{
            "geometry": {
                "type": "LineString",
                "coordinates": [[101.60, 3.07], [101.59, 3.066], [101.58, 3.06]],
            },
            "properties": {"summary": {"distance": 3120.4, "duration": 287.6}},
        }],
    }


def _ors_router(handler) -> OpenRouteServiceRouter:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = OpenRouteServiceClient(api_key="test-key", base_url=ORS_URL, http_client=http_client)
    return OpenRouteServiceRouter(client, StraightLineRouter(points=11))


def test_straight_line_route_uses_tortuosity_and_average_speed() -> None:
    """Distance is haversine * 1.4 and ETA is that distance at 50 km/h."""

    route = StraightLineRouter().route(ORIGIN, DESTINATION)

    road = geo_math.distance(ORIGIN, DESTINATION) * 1.4
    assert route.distance_m == float(round(road))
    assert route.eta_s == geo_math.estimate_eta(road)
    assert route.eta_s > 0
    assert route.source == RouteSource.FALLBACK
    assert route.geometry == [ORIGIN, DESTINATION]


def test_straight_line_route_densified_geometry() -> None:
    route = asyncio.run(StraightLineRouter(points=11).get_route(ORIGIN, DESTINATION))

    assert len(route.geometry) == 11
    assert route.origin == ORIGIN
    assert route.destination == DESTINATION
    assert route.to_geojson()["type"] == "LineString"
    assert route.to_geojson()["coordinates"][0] == [ORIGIN.lng, ORIGIN.lat]


def test_ors_success_returns_provider_route() -> None:
    seen: Dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = request.read()
        return httpx.Response(200, json=_ors_body())

    route = asyncio.run(_ors_router(handler).get_route(ORIGIN, DESTINATION))

    assert route.source == RouteSource.OPENROUTESERVICE
    assert route.distance_m == 3120.0
    assert route.eta_s == 288
    assert route.geometry[0] == Coordinates(3.07, 101.60)
    assert route.geometry[-1] == Coordinates(3.06, 101.58)
    assert seen["auth"] == "test-key"
    # ORS expects [lng, lat]
    assert b"[101.6, 3.07]" in seen["body"] or b"[101.6,3.07]" in seen["body"]


def test_ors_http_error_falls_back_to_straight_line() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"error": "unavailable"})

    route = asyncio.run(_ors_router(handler).get_route(ORIGIN, DESTINATION))

    expected = StraightLineRouter(points=11).route(ORIGIN, DESTINATION)
    assert route.source == RouteSource.FALLBACK
    assert route.eta_s == expected.eta_s
    assert route.distance_m == expected.distance_m


def test_ors_transport_error_falls_back() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    route = asyncio.run(_ors_router(handler).get_route(ORIGIN, DESTINATION))

    assert route.source == RouteSource.FALLBACK


def test_ors_empty_route_falls_back() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"type": "FeatureCollection", "features": []})

    route = asyncio.run(_ors_router(handler).get_route(ORIGIN, DESTINATION))

    assert route.source == RouteSource.FALLBACK


@pytest.mark.parametrize(
    "body",
    [
        {"error": {"code": 2010, "message": "Could not find routable point"}},
        {"features": []},
        {"features": [{"geometry": {"coordinates": [[101.6, 3.07]]},
                       "properties": {"summary": {"distance": 1, "duration": 1}}}]},
        {"features": [{"geometry": {"coordinates": [[101.6, 3.07], [101.58, 3.06]]},
                       "properties": {"summary": {}}}]},
    ],
)
def test_parse_route_response_rejects_malformed_bodies(body: Dict[str, Any]) -> None:
    with pytest.raises(RuntimeError):
        _parse_route_response(body)


def test_ors_client_requires_api_key() -> None:
    with pytest.raises(ValueError):
        OpenRouteServiceClient(api_key="", base_url=ORS_URL)


def test_build_router_selects_configured_provider() -> None:
    straight = build_router(Settings(_env_file=None, routing_provider="straight_line"))
    assert isinstance(straight, StraightLineRouter)

    # no key configured: stays on straight-line routing
    keyless = build_router(Settings(_env_file=None, routing_provider="openrouteservice", ors_api_key=""))
    assert isinstance(keyless, StraightLineRouter)

    ors = build_router(Settings(_env_file=None, routing_provider="openrouteservice", ors_api_key="k"))
    assert isinstance(ors, OpenRouteServiceRouter)
