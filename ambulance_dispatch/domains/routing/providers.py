"""
Routing providers

A route between two points comes from one of a fixed set of providers chosen
when the application is assembled:

1. StraightLineRouter - deterministic Haversine estimate, never fails
2. OpenRouteServiceRouter - external directions API, falls back to the
   straight-line estimate on any failure
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from ambulance_dispatch.core.config import RoutingProviderKind, Settings
from ambulance_dispatch.infra.clients.openrouteservice import OpenRouteServiceClient
from . import geo_math
from .geo_math import Coordinates
from .schemas import RouteResult, RouteSource

logger = logging.getLogger(__name__)


class RoutingProvider(ABC):

    @abstractmethod
    async def get_route(self, origin: Coordinates, destination: Coordinates) -> RouteResult:
        """Route from origin to destination; implementations must not raise"""


class StraightLineRouter(RoutingProvider):
    """
    Straight-line route estimate

    Distance is the Haversine distance scaled by the tortuosity factor, ETA
    assumes the average speed. Geometry is the straight segment sampled at
    `points` points (2 gives the bare segment).
    """

    def __init__(
        self,
        tortuosity_factor: float = geo_math.TORTUOSITY_FACTOR,
        average_speed_kmh: float = geo_math.AVERAGE_SPEED_KMH,
        points: int = 2,
    ) -> None:
        self._tortuosity_factor = tortuosity_factor
        self._average_speed_kmh = average_speed_kmh
        self._points = points

    def route(self, origin: Coordinates, destination: Coordinates) -> RouteResult:
        straight_line = geo_math.distance(origin, destination)
        road_distance = geo_math.estimate_road_distance(straight_line, self._tortuosity_factor)

        return RouteResult(
            geometry=geo_math.densify(origin, destination, self._points),
            distance_m=float(round(road_distance)),
            eta_s=geo_math.estimate_eta(road_distance, self._average_speed_kmh),
            source=RouteSource.FALLBACK,
        )

    async def get_route(self, origin: Coordinates, destination: Coordinates) -> RouteResult:
        return self.route(origin, destination)


class OpenRouteServiceRouter(RoutingProvider):
    """OpenRouteService directions with straight-line fallback"""

    def __init__(self, client: OpenRouteServiceClient, fallback: StraightLineRouter) -> None:
        self._client = client
        self._fallback = fallback

    async def get_route(self, origin: Coordinates, destination: Coordinates) -> RouteResult:
        try:
            result = await self._client.directions(
                origin_lng=origin.lng,
                origin_lat=origin.lat,
                dest_lng=destination.lng,
                dest_lat=destination.lat,
            )
            return RouteResult(
                geometry=[Coordinates.from_geojson(c) for c in result["coordinates"]],
                distance_m=float(round(result["distance"])),
                eta_s=int(round(result["duration"])),
                source=RouteSource.OPENROUTESERVICE,
            )
        except Exception as e:
            logger.warning(
                f"OpenRouteService failed for ({origin.lat},{origin.lng}) -> "
                f"({destination.lat},{destination.lng}), using straight-line fallback: {e}"
            )

        return self._fallback.route(origin, destination)


def build_router(settings: Settings, client: Optional[OpenRouteServiceClient] = None) -> RoutingProvider:
    """Construct the configured routing provider"""
    fallback = StraightLineRouter(
        tortuosity_factor=settings.tortuosity_factor,
        average_speed_kmh=settings.average_speed_kmh,
        points=settings.fallback_route_points,
    )

    if settings.routing_provider == RoutingProviderKind.STRAIGHT_LINE:
        return fallback

    if client is None:
        if not settings.ors_api_key:
            logger.warning("routing_provider=openrouteservice but ORS_API_KEY is empty, using straight-line routing")
            return fallback
        client = OpenRouteServiceClient(
            api_key=settings.ors_api_key,
            base_url=settings.ors_base_url,
            timeout=settings.ors_timeout_s,
        )

    logger.info("Using OpenRouteService routing with straight-line fallback")
    return OpenRouteServiceRouter(client, fallback)
