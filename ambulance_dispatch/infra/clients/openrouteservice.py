"""
OpenRouteService directions client

Driving directions between two points in GeoJSON form.
API docs: https://openrouteservice.org/dev/#/api-docs/v2/directions
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


def _format_coordinate(lng: float, lat: float) -> List[float]:
    """ORS expects [lng, lat] with at most 6 decimals"""
    return [round(lng, 6), round(lat, 6)]


def _parse_route_response(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Extract geometry and summary from an ORS GeoJSON FeatureCollection

    Returns:
        {"coordinates": [[lng, lat], ...], "distance": metres, "duration": seconds}

    Raises:
        RuntimeError: error payload or missing route fields
    """
    if "error" in data:
        error = data["error"]
        message = error.get("message") if isinstance(error, dict) else str(error)
        raise RuntimeError(f"OpenRouteService returned an error: {message}")

    features = data.get("features") or []
    if not features:
        raise RuntimeError("OpenRouteService returned no route")

    feature = features[0]
    coordinates = (feature.get("geometry") or {}).get("coordinates") or []
    summary = (feature.get("properties") or {}).get("summary") or {}

    if len(coordinates) < 2:
        raise RuntimeError("OpenRouteService route geometry has fewer than 2 points")
    if "distance" not in summary or "duration" not in summary:
        raise RuntimeError("OpenRouteService route summary is incomplete")

    return {
        "coordinates": [[float(c[0]), float(c[1])] for c in coordinates],
        "distance": float(summary["distance"]),
        "duration": float(summary["duration"]),
    }


class OpenRouteServiceClient:
    """Thin async wrapper over the directions endpoint"""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not api_key:
            raise ValueError("OpenRouteService requires an API key (ORS_API_KEY)")
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._http_client = http_client

    async def directions(
        self,
        origin_lng: float,
        origin_lat: float,
        dest_lng: float,
        dest_lat: float,
    ) -> Dict[str, Any]:
        """
        Driving directions

        Raises:
            RuntimeError: transport failure, non-2xx status or malformed body
        """
        payload = {
            "coordinates": [
                _format_coordinate(origin_lng, origin_lat),
                _format_coordinate(dest_lng, dest_lat),
            ],
        }
        headers = {
            "Authorization": self._api_key,
            "Content-Type": "application/json",
        }

        try:
            if self._http_client is not None:
                response = await self._http_client.post(
                    self._base_url, json=payload, headers=headers, timeout=self._timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self._base_url, json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise RuntimeError(f"OpenRouteService request failed: {e}") from e
        except ValueError as e:
            raise RuntimeError(f"OpenRouteService returned invalid JSON: {e}") from e

        result = _parse_route_response(data)
        logger.debug(
            f"ORS route: distance={result['distance']:.0f}m, "
            f"duration={result['duration']:.0f}s, points={len(result['coordinates'])}"
        )
        return result
