import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple

import polyline
import requests

from roadsim.config import OSRM_DRIVE

LatLon = Tuple[float, float]

log = logging.getLogger("roadsim.osrm")


class RoutingError(RuntimeError):
    """The routing provider answered with something other than a route."""


class NoRoute(RoutingError):
    """Origin and destination are not connected by road."""


@dataclass(frozen=True)
class RouteResult:
    geometry_latlon: List[LatLon]
    distance_m: float
    duration_s: float
    meta: Dict[str, Any] = field(default_factory=dict)

    def last_point(self) -> Optional[LatLon]:
        if not self.geometry_latlon:
            return None
        return self.geometry_latlon[-1]


class Router(Protocol):
    async def route(self, origin: LatLon, dest: LatLon,
                    allow_alternates: bool = False) -> List[RouteResult]:
        ...


# -------------------------
# OSRM route fetch
# -------------------------
NO_ROUTE_CODES = ("NoRoute", "NoSegment")


def parse_route_response(data: Dict[str, Any]) -> List[RouteResult]:
    code = data.get("code")
    if code in NO_ROUTE_CODES:
        raise NoRoute(data.get("message", code))
    if code != "Ok":
        raise RoutingError(f"OSRM error: {data.get('message', code or 'Unknown error')}")

    routes = data.get("routes") or []
    if not routes:
        raise NoRoute("OSRM returned no routes")

    out = []
    for r in routes:
        geometry = r.get("geometry") or ""
        out.append(RouteResult(
            geometry_latlon=[(lat, lon) for lat, lon in polyline.decode(geometry)],
            distance_m=float(r.get("distance", 0.0)),
            duration_s=float(r.get("duration", 0.0)),
            meta={"weight_name": r.get("weight_name"), "legs": len(r.get("legs", []))},
        ))
    return out


class OsrmRouter:
    """
    Driving routes from an OSRM server.
    Blocking HTTP runs in a worker thread so many requests can be in flight
    from one event loop.
    """

    def __init__(self, base_url: str = OSRM_DRIVE, profile: str = "driving",
                 timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.profile = profile
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_routes(self, start: LatLon, dest: LatLon,
                     alternatives: bool = False) -> List[RouteResult]:
        a_lat, a_lon = start
        b_lat, b_lon = dest

        coords = f"{a_lon},{a_lat};{b_lon},{b_lat}"
        url = f"{self.base_url}/route/v1/{self.profile}/{coords}"
        params = {
            "overview": "full",
            "geometries": "polyline",
            "steps": "false",
            "alternatives": "true" if alternatives else "false",
        }

        r = self.session.get(url, params=params, timeout=self.timeout)
        # OSRM answers NoRoute with HTTP 400 and a JSON body
        if r.status_code == 400:
            try:
                return parse_route_response(r.json())
            except ValueError:
                pass
        r.raise_for_status()
        return parse_route_response(r.json())

    async def route(self, origin: LatLon, dest: LatLon,
                    allow_alternates: bool = False) -> List[RouteResult]:
        log.debug("route %s -> %s", origin, dest)
        return await asyncio.to_thread(self.fetch_routes, origin, dest, allow_alternates)

    def close(self) -> None:
        self.session.close()
