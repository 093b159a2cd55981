import logging
from typing import List, Optional, Sequence, Tuple

from roadsim.RouteSegment import ComputedRoute, RouteSegment, Viewport
from roadsim.Waypoint import Waypoint
from roadsim.config import SimConfig
from roadsim.local_osrm import NoRoute, Router

LatLon = Tuple[float, float]

log = logging.getLogger("roadsim.route")


class RouteComputer:
    """
    Chains start -> stops -> destination into routed segments.

    Legs are requested one after another because each leg starts where the
    previous successful one ended. An unreachable stop is skipped and the
    chain continues from the last stop that was reached.
    """

    def __init__(self, router: Router, config: Optional[SimConfig] = None):
        self.router = router
        self.config = config or SimConfig()

    async def compute_segment(self, source: LatLon, dest: LatLon) -> Optional[RouteSegment]:
        try:
            routes = await self.router.route(source, dest, allow_alternates=False)
        except NoRoute as e:
            log.info("no route %s -> %s: %s", source, dest, e)
            return None
        except Exception as e:
            log.warning("segment calculation failed %s -> %s: %s", source, dest, e)
            return None

        if not routes:
            return None
        best = routes[0]
        return RouteSegment(
            path=list(best.geometry_latlon),
            source=source,
            dest=dest,
            distance_m=best.distance_m,
            duration_s=best.duration_s,
        )

    async def compute_route(self, start: LatLon, stops: Sequence[Waypoint],
                            destination: Waypoint) -> ComputedRoute:
        segments: List[RouteSegment] = []
        current = start

        for stop in stops:
            seg = await self.compute_segment(current, stop.coordinate)
            if seg is None:
                log.info("skipping unreachable stop %r", stop.label)
                continue
            segments.append(seg)
            current = stop.coordinate

        final = await self.compute_segment(current, destination.coordinate)
        if final is not None:
            segments.append(final)

        route = ComputedRoute(segments=segments, viewport=self.fit_viewport(segments))
        log.info("route to %r: %d segment(s), %.0f m", destination.label,
                 len(segments), route.distance_m)
        return route

    def fit_viewport(self, segments: Sequence[RouteSegment]) -> Optional[Viewport]:
        total: Optional[Viewport] = None
        for seg in segments:
            box = Viewport.of_path(seg.path, insets=self.config.overlay_insets)
            if box is None:
                continue
            total = box if total is None else total.union(box)
        if total is None:
            return None
        return total.inflated(self.config.viewport_margin)
