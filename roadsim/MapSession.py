from __future__ import annotations

import asyncio
import logging
import random
from typing import List, Optional, Sequence, Tuple

from roadsim.FleetGenerator import FleetGenerator
from roadsim.LocationProvider import AuthorizationStatus, LocationFix, LocationProvider
from roadsim.RoadSnapper import RoadSnapper
from roadsim.RouteComputer import RouteComputer
from roadsim.RouteSegment import ComputedRoute, Viewport
from roadsim.Vehicle import Transition, Vehicle
from roadsim.VehicleAnimator import VehicleAnimator
from roadsim.Waypoint import Waypoint
from roadsim.config import SimConfig
from roadsim.local_osrm import Router
from roadsim.ws_bus import CAMERA, FLEET, LOCATION, ROUTE, TRANSITION, EventBus

LatLon = Tuple[float, float]

log = logging.getLogger("roadsim.session")


class MapSession:
    """
    Owns the state behind one map screen: user position, simulated fleet
    and the current route.

    Everything here runs on one event loop. Collaborator calls are awaited
    and their results applied on that loop, and every change is announced
    on the bus.
    """

    def __init__(self, router: Router,
                 config: Optional[SimConfig] = None,
                 bus: Optional[EventBus] = None,
                 rng: Optional[random.Random] = None):
        self.config = config or SimConfig()
        self.bus = bus or EventBus()
        self.rng = rng or random.Random()

        self.generator = FleetGenerator(RoadSnapper(router), self.config, self.rng)
        self.route_computer = RouteComputer(router, self.config)
        self.animator = VehicleAnimator(lambda: self.vehicles, self.config,
                                        on_transition=self._on_transition, rng=self.rng)

        self.user_location: Optional[LatLon] = None
        self.vehicles: List[Vehicle] = []
        self.loading_vehicles = False

        self.destination: Optional[Waypoint] = None
        self.stops: List[Waypoint] = []
        self.route = ComputedRoute()

        self._fleet_task: Optional[asyncio.Task] = None
        self._route_task: Optional[asyncio.Task] = None
        self._route_generation = 0

    # -------------------------
    # location
    # -------------------------
    async def run(self, provider: LocationProvider) -> None:
        """Consume fixes until the provider stops. The first fix seeds the fleet."""
        if provider.authorization is AuthorizationStatus.NOT_DETERMINED:
            provider.request_permission()
        else:
            provider.start()

        first = True
        async for fix in provider.fixes():
            if first:
                first = False
                self.handle_initial_fix(fix)
            else:
                self.handle_fix(fix)

    def handle_fix(self, fix: LocationFix) -> None:
        self.user_location = fix.coordinate
        self.bus.publish(LOCATION, {"lat": fix.coordinate[0], "lon": fix.coordinate[1],
                                    "accuracy_m": fix.accuracy_m})

    def handle_initial_fix(self, fix: LocationFix) -> None:
        self.handle_fix(fix)
        self.center_on_user()
        if self._fleet_task is None or self._fleet_task.done():
            self._fleet_task = asyncio.get_running_loop().create_task(self._bootstrap(fix.coordinate))

    async def _bootstrap(self, center: LatLon) -> None:
        await asyncio.sleep(self.config.fleet_load_delay_s)
        await self.load_vehicles(center)
        self.animator.start(delay_s=self.config.animation_settle_delay_s)

    def center_on_user(self) -> Optional[Viewport]:
        if self.user_location is None:
            return None
        region = Viewport.around(self.user_location, self.config.user_region_m,
                                 insets=self.config.overlay_insets)
        self.bus.publish(CAMERA, {"center": region.center, "span": region.span})
        return region

    # -------------------------
    # fleet
    # -------------------------
    async def load_vehicles(self, center: LatLon, count: Optional[int] = None) -> List[Vehicle]:
        if self.loading_vehicles:
            return self.vehicles
        self.loading_vehicles = True
        try:
            vehicles = await self.generator.generate(center, count)
        finally:
            self.loading_vehicles = False

        self.vehicles = vehicles
        log.info("loaded %d nearby vehicles", len(vehicles))
        self.bus.publish(FLEET, [v.to_dict() for v in vehicles])
        return vehicles

    def _on_transition(self, tr: Transition) -> None:
        self.bus.publish(TRANSITION, {
            "id": tr.vehicle_id,
            "from": tr.start,
            "to": tr.dest,
            "bearing": tr.bearing,
            "duration_s": tr.duration_s,
        })

    # -------------------------
    # route
    # -------------------------
    def set_destination(self, destination: Waypoint, stops: Sequence[Waypoint] = (),
                        start: Optional[LatLon] = None) -> Optional[asyncio.Task]:
        self.destination = destination
        self.stops = list(stops)
        return self.calculate_route(start)

    def calculate_route(self, start: Optional[LatLon] = None) -> Optional[asyncio.Task]:
        self.cancel_route()
        origin = start or self.user_location
        if origin is None or self.destination is None:
            return None

        self._route_generation += 1
        self._route_task = asyncio.get_running_loop().create_task(
            self._compute(origin, self.destination, list(self.stops), self._route_generation))
        return self._route_task

    async def _compute(self, origin: LatLon, destination: Waypoint,
                       stops: List[Waypoint], generation: int) -> ComputedRoute:
        route = await self.route_computer.compute_route(origin, stops, destination)
        if generation != self._route_generation:
            log.debug("discarding superseded route to %r", destination.label)
            return route

        self.route = route
        self.bus.publish(ROUTE, route.to_dict())
        if route.viewport is not None:
            self.bus.publish(CAMERA, {"center": route.viewport.center,
                                      "span": route.viewport.span,
                                      "insets": route.viewport.insets})
        return route

    def cancel_route(self) -> None:
        self._route_generation += 1
        if self._route_task is not None:
            self._route_task.cancel()
            self._route_task = None

    def clear_route(self) -> None:
        self.cancel_route()
        self.route = ComputedRoute()
        self.destination = None
        self.stops = []
        self.bus.publish(ROUTE, self.route.to_dict())
        self.center_on_user()

    # -------------------------
    # teardown
    # -------------------------
    def close(self) -> None:
        self.animator.stop()
        self.cancel_route()
        if self._fleet_task is not None:
            self._fleet_task.cancel()
            self._fleet_task = None
