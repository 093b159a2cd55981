import logging
from typing import Optional, Tuple

from roadsim.local_osrm import NoRoute, Router

LatLon = Tuple[float, float]

log = logging.getLogger("roadsim.snap")


class RoadSnapper:
    """
    Moves an arbitrary point onto the road network by routing to it from a
    known origin and taking the end of the returned polyline.
    A miss is an expected outcome and comes back as None.
    """

    def __init__(self, router: Router):
        self.router = router

    async def snap(self, target: LatLon, origin: LatLon) -> Optional[LatLon]:
        try:
            routes = await self.router.route(origin, target, allow_alternates=False)
        except NoRoute as e:
            log.debug("no road to %s: %s", target, e)
            return None
        except Exception as e:
            log.warning("road snap failed for %s: %s", target, e)
            return None

        if not routes:
            return None
        return routes[0].last_point()
