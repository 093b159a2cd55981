import asyncio
import logging
import random
from typing import List, Optional, Tuple

from roadsim.RoadSnapper import RoadSnapper
from roadsim.Vehicle import Vehicle, VehicleKind
from roadsim.config import SimConfig
from roadsim.geo_math import distance_meters, sample_annulus_point

LatLon = Tuple[float, float]

log = logging.getLogger("roadsim.fleet")


class FleetGenerator:
    """
    Builds a fleet of road-snapped taxis around a center.

    All snap attempts run concurrently; a single consumer drains them in
    completion order and owns the accepted list, so the proximity check
    always sees every vehicle accepted so far.
    """

    def __init__(self, snapper: RoadSnapper, config: Optional[SimConfig] = None,
                 rng: Optional[random.Random] = None):
        self.snapper = snapper
        self.config = config or SimConfig()
        self.rng = rng or random.Random()

    async def _attempt(self, center: LatLon) -> Optional[LatLon]:
        target = sample_annulus_point(center,
                                      self.config.fleet_min_radius_m,
                                      self.config.fleet_max_radius_m,
                                      self.rng)
        return await self.snapper.snap(target, origin=center)

    def _too_close(self, p: LatLon, accepted: List[Vehicle]) -> bool:
        limit = self.config.dedup_distance_m
        return any(distance_meters(v.coordinate, p) < limit for v in accepted)

    async def generate(self, center: LatLon, desired_count: Optional[int] = None) -> List[Vehicle]:
        count = self.config.fleet_size if desired_count is None else desired_count
        if count <= 0:
            return []

        budget = count * self.config.attempt_multiplier
        tasks = [asyncio.ensure_future(self._attempt(center)) for _ in range(budget)]

        vehicles: List[Vehicle] = []
        misses = 0
        try:
            for fut in asyncio.as_completed(tasks):
                snapped = await fut
                if snapped is None:
                    misses += 1
                    continue
                # keep draining once full, late attempts are discarded
                if len(vehicles) >= count:
                    continue
                if self._too_close(snapped, vehicles):
                    continue
                vehicles.append(Vehicle(coordinate=snapped, kind=VehicleKind.TAXI,
                                        available=True, bearing=0.0))
        except asyncio.CancelledError:
            for t in tasks:
                t.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        log.info("fleet around %s: %d/%d vehicles from %d attempts (%d misses)",
                 center, len(vehicles), count, budget, misses)
        return vehicles
