"""Route resolution against an OSRM-compatible HTTP router.

Routing is optional metadata: every failure resolves to ``None`` so order
creation never depends on the router being reachable.
"""

from typing import Any

import httpx

from order_lifecycle.config import get_settings
from order_lifecycle.models.order import Coordinates, RouteMeta
from order_lifecycle.utils.logging import get_logger

logger = get_logger(__name__)


def maps_url(coordinates: Coordinates) -> str:
    """Google Maps directions link to the customer."""
    return (
        "https://www.google.com/maps/dir/?api=1"
        f"&destination={coordinates.lat},{coordinates.lng}"
    )


def waze_url(coordinates: Coordinates) -> str:
    """Waze navigation link to the customer."""
    return f"https://waze.com/ul?ll={coordinates.lat},{coordinates.lng}&navigate=yes"


class RouteResolver:
    """Resolves the driving route from the restaurant to a destination."""

    def __init__(
        self,
        base_url: str | None = None,
        origin: Coordinates | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.routing_base_url).rstrip("/")
        self.origin = origin or Coordinates(lat=settings.origin_lat, lng=settings.origin_lng)
        self.timeout = timeout if timeout is not None else settings.routing_timeout
        self._client = client

    async def resolve(self, destination: Coordinates) -> RouteMeta | None:
        """Return the route to ``destination``, or None when it cannot be resolved."""
        url = (
            f"{self.base_url}/route/v1/driving/"
            f"{self.origin.lng},{self.origin.lat};{destination.lng},{destination.lat}"
        )
        params = {"overview": "full", "geometries": "geojson"}

        try:
            if self._client is not None:
                response = await self._client.get(url, params=params, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url, params=params)
            response.raise_for_status()
            return self._parse(response.json())
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as e:
            logger.warning(
                "route_resolution_failed",
                lat=destination.lat,
                lng=destination.lng,
                error=str(e),
            )
            return None

    @staticmethod
    def _parse(payload: dict[str, Any]) -> RouteMeta | None:
        if payload.get("code") != "Ok" or not payload.get("routes"):
            return None

        route = payload["routes"][0]
        # GeoJSON positions are [lng, lat]
        points = [(lat, lng) for lng, lat in route["geometry"]["coordinates"]]
        return RouteMeta(
            distance=route.get("distance"),
            duration=route.get("duration"),
            points=points,
        )
