"""Routing: geographic primitives, route providers and hazard penalties"""

from .geo_math import Coordinates, PolylineWalker, position_at_progress
from .schemas import Hazard, RouteResult, RouteSource
from .providers import (
    RoutingProvider,
    StraightLineRouter,
    OpenRouteServiceRouter,
    build_router,
)
from .hazards import HazardAdvisor, HazardSource, hazards_on_path

__all__ = [
    "Coordinates",
    "PolylineWalker",
    "position_at_progress",
    "Hazard",
    "RouteResult",
    "RouteSource",
    "RoutingProvider",
    "StraightLineRouter",
    "OpenRouteServiceRouter",
    "build_router",
    "HazardAdvisor",
    "HazardSource",
    "hazards_on_path",
]
