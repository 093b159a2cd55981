import asyncio
import random
from typing import Callable, List, Optional, Tuple

import pytest

from roadsim.config import SimConfig
from roadsim.local_osrm import NoRoute, RouteResult
from roadsim.place_search import Address, Place

LatLon = Tuple[float, float]

CENTER = (41.0082, 28.9784)


def straight(origin: LatLon, dest: LatLon) -> List[RouteResult]:
    return [RouteResult(geometry_latlon=[origin, dest], distance_m=100.0, duration_s=30.0)]


class StubRouter:
    """
    Routing collaborator for tests.
    answer(origin, dest) returns routes or raises; calls are recorded.
    """

    def __init__(self, answer: Callable = straight, delay: Optional[Callable[[], float]] = None):
        self.answer = answer
        self.delay = delay
        self.calls: List[Tuple[LatLon, LatLon, bool]] = []

    async def route(self, origin, dest, allow_alternates=False):
        self.calls.append((origin, dest, allow_alternates))
        if self.delay is not None:
            await asyncio.sleep(self.delay())
        return self.answer(origin, dest)


class StubSearch:
    def __init__(self, places: Optional[List[Place]] = None, delay: float = 0.0,
                 address: Optional[Address] = None, fail: bool = False):
        self.places = places if places is not None else []
        self.delay = delay
        self.address = address
        self.fail = fail
        self.queries: List[str] = []

    async def search(self, query, bias_region=None):
        self.queries.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("search service down")
        return [Place(name=f"{query} {p.name}", address=p.address, coordinate=p.coordinate)
                for p in self.places]

    async def reverse_geocode(self, coordinate):
        if self.fail:
            raise RuntimeError("geocoder down")
        return self.address


def no_route(origin, dest):
    raise NoRoute("unreachable")


def make_places(n: int) -> List[Place]:
    return [Place(name=f"#{i}", address=Address(locality="Istanbul"), coordinate=(41.0 + i * 0.001, 29.0))
            for i in range(n)]


@pytest.fixture
def fast_config():
    return SimConfig(
        fleet_load_delay_s=0.0,
        animation_settle_delay_s=0.0,
        tick_interval_s=0.02,
        search_debounce_s=0.1,
        stop_warning_s=0.05,
    )


@pytest.fixture
def rng():
    return random.Random(1234)
