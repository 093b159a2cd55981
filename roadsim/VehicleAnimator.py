import asyncio
import logging
import random
import time
from typing import Callable, List, Optional, Set

from roadsim.Vehicle import Transition, Vehicle
from roadsim.config import SimConfig
from roadsim.geo_math import bearing_between, sample_annulus_point

log = logging.getLogger("roadsim.animator")


class VehicleAnimator:
    """
    Periodic idle drift. Every tick a few vehicles start a slow glide to a
    nearby point, staggered so the map never looks frozen.

    Must run on the event loop that owns the fleet; fleet() is read fresh
    each tick so a regenerated fleet is picked up without a restart.
    """

    def __init__(self,
                 fleet: Callable[[], List[Vehicle]],
                 config: Optional[SimConfig] = None,
                 on_transition: Optional[Callable[[Transition], None]] = None,
                 rng: Optional[random.Random] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.fleet = fleet
        self.config = config or SimConfig()
        self.on_transition = on_transition
        self.rng = rng or random.Random()
        self.clock = clock
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, delay_s: float = 0.0) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(delay_s))

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self, delay_s: float) -> None:
        if delay_s > 0:
            await asyncio.sleep(delay_s)
        while True:
            self.tick()
            await asyncio.sleep(self.config.tick_interval_s)

    def pick_indices(self, n: int, k: int) -> Set[int]:
        count = min(k, n)
        picked: Set[int] = set()
        draws = 0
        max_draws = count * 20
        while len(picked) < count and draws < max_draws:
            picked.add(self.rng.randrange(n))
            draws += 1
        # unlucky streak: fill deterministically
        for i in range(n):
            if len(picked) >= count:
                break
            picked.add(i)
        return picked

    def tick(self) -> List[Transition]:
        vehicles = self.fleet()
        if not vehicles:
            return []

        moved = []
        for i in sorted(self.pick_indices(len(vehicles), self.config.vehicles_per_tick)):
            moved.append(self.animate(vehicles[i]))
        return moved

    def animate(self, vehicle: Vehicle) -> Transition:
        cfg = self.config
        old = vehicle.coordinate
        new = sample_annulus_point(old, cfg.drift_min_m, cfg.drift_max_m, self.rng)
        bearing = bearing_between(old, new)
        duration = self.rng.uniform(cfg.transition_min_s, cfg.transition_max_s)

        tr = vehicle.move_to(new, bearing, duration, self.clock())
        log.debug("vehicle %s drifts %.0f deg over %.0fs", vehicle.vehicle_id[:8], bearing, duration)
        if self.on_transition is not None:
            self.on_transition(tr)
        return tr
