import asyncio
import itertools
import random

from conftest import CENTER, StubRouter, no_route

from roadsim.FleetGenerator import FleetGenerator
from roadsim.RoadSnapper import RoadSnapper
from roadsim.Vehicle import VehicleKind
from roadsim.config import SimConfig
from roadsim.geo_math import distance_meters
from roadsim.local_osrm import RouteResult


def grid_router():
    """Every request ends on a fresh point 100 m further north."""
    counter = itertools.count(1)

    def answer(origin, dest):
        i = next(counter)
        p = (origin[0] + i * 100 / 111000, origin[1])
        return [RouteResult([origin, p], 100.0 * i, 10.0)]

    return StubRouter(answer)


def target_router(fail_every: int = 0):
    """Ends exactly on the requested target; optionally fails every n-th call."""
    counter = itertools.count(1)

    def answer(origin, dest):
        if fail_every and next(counter) % fail_every == 0:
            return no_route(origin, dest)
        return [RouteResult([origin, dest], 250.0, 30.0)]

    return StubRouter(answer)


def pairwise_apart(vehicles, limit=50.0):
    return all(distance_meters(a.coordinate, b.coordinate) >= limit
               for a, b in itertools.combinations(vehicles, 2))


def generate(router, count=9, config=None, seed=5):
    gen = FleetGenerator(RoadSnapper(router), config or SimConfig(), random.Random(seed))
    return asyncio.run(gen.generate(CENTER, count))


def test_all_snaps_succeed():
    router = grid_router()
    vehicles = generate(router)
    assert len(vehicles) == 9
    assert pairwise_apart(vehicles)
    # budget is always spent, late completions are just discarded
    assert len(router.calls) == 27


def test_vehicle_defaults():
    vehicles = generate(grid_router(), count=3)
    assert len({v.vehicle_id for v in vehicles}) == 3
    for v in vehicles:
        assert v.kind is VehicleKind.TAXI
        assert v.available
        assert v.bearing == 0.0


def test_snaps_route_from_center_without_alternates():
    router = grid_router()
    generate(router, count=2)
    for origin, dest, alternates in router.calls:
        assert origin == CENTER
        assert alternates is False
        assert 100 * 0.99 <= distance_meters(CENTER, dest) <= 400 * 1.01


def test_all_snaps_fail():
    assert generate(StubRouter(no_route)) == []


def test_collaborator_errors_are_misses():
    def boom(origin, dest):
        raise ConnectionError("routing service unreachable")

    assert generate(StubRouter(boom)) == []


def test_half_of_snaps_fail():
    vehicles = generate(target_router(fail_every=2))
    assert 0 <= len(vehicles) <= 9
    assert pairwise_apart(vehicles)


def test_near_duplicates_rejected():
    same = StubRouter(lambda o, d: [RouteResult([o, (41.01, 28.98)], 1.0, 1.0)])
    vehicles = generate(same)
    assert len(vehicles) == 1


def test_empty_polyline_is_a_miss():
    vehicles = generate(StubRouter(lambda o, d: [RouteResult([], 0.0, 0.0)]))
    assert vehicles == []


def test_staggered_completions_still_deduplicated():
    rng = random.Random(2)
    router = target_router()
    router.delay = lambda: rng.uniform(0.0, 0.02)
    vehicles = generate(router, count=5)
    assert len(vehicles) <= 5
    assert pairwise_apart(vehicles)


def test_zero_count():
    router = grid_router()
    assert generate(router, count=0) == []
    assert router.calls == []


def test_cancelled_generation_leaves_no_attempts_behind():
    async def run():
        router = StubRouter(delay=lambda: 5.0)
        gen = FleetGenerator(RoadSnapper(router), SimConfig(), random.Random(1))
        job = asyncio.ensure_future(gen.generate(CENTER, 3))
        await asyncio.sleep(0.05)
        assert len(router.calls) == 9

        job.cancel()
        try:
            await job
        except asyncio.CancelledError:
            pass
        assert asyncio.all_tasks() == {asyncio.current_task()}

    asyncio.run(run())
