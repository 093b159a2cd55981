import asyncio

import pytest

from conftest import StubRouter, no_route, straight

from roadsim.RouteComputer import RouteComputer
from roadsim.RouteSegment import Viewport
from roadsim.Waypoint import Waypoint
from roadsim.config import SimConfig
from roadsim.local_osrm import RouteResult

P0 = (41.0082, 28.9784)
P1 = Waypoint((41.0256, 28.9744), "Galata")
P2 = Waypoint((41.0370, 28.9850), "Taksim")
P3 = Waypoint((41.0430, 29.0090), "Besiktas")


def bent(origin, dest):
    mid = ((origin[0] + dest[0]) / 2 + 0.002, (origin[1] + dest[1]) / 2 - 0.001)
    return [RouteResult([origin, mid, dest], 1500.0, 300.0)]


def compute(router, stops, dest, start=P0, config=None):
    rc = RouteComputer(router, config or SimConfig())
    return asyncio.run(rc.compute_route(start, stops, dest))


def test_all_legs_succeed():
    router = StubRouter(bent)
    route = compute(router, [P1, P2], P3)
    waypoints = [P0, P1.coordinate, P2.coordinate, P3.coordinate]

    assert len(route.segments) == len(waypoints) - 1
    for seg, (a, b) in zip(route.segments, zip(waypoints, waypoints[1:])):
        assert seg.source == a
        assert seg.dest == b
    assert route.distance_m == pytest.approx(4500.0)
    assert route.duration_s == pytest.approx(900.0)


def test_legs_are_requested_in_order_without_alternates():
    router = StubRouter(straight)
    compute(router, [P1, P2], P3)
    assert router.calls == [
        (P0, P1.coordinate, False),
        (P1.coordinate, P2.coordinate, False),
        (P2.coordinate, P3.coordinate, False),
    ]


def test_unreachable_stop_is_skipped():
    def answer(origin, dest):
        if origin == P0 and dest == P1.coordinate:
            return no_route(origin, dest)
        return bent(origin, dest)

    router = StubRouter(answer)
    route = compute(router, [P1], P2)

    assert len(route.segments) == 1
    seg = route.segments[0]
    assert (seg.source, seg.dest) == (P0, P2.coordinate)
    expected = Viewport.of_path(seg.path).inflated(0.2)
    assert route.viewport == expected


def test_chain_continues_from_last_reached_stop():
    def answer(origin, dest):
        if dest == P2.coordinate:
            raise ConnectionError("timeout")
        return straight(origin, dest)

    route = compute(StubRouter(answer), [P1, P2], P3)
    assert [(s.source, s.dest) for s in route.segments] == [
        (P0, P1.coordinate),
        (P1.coordinate, P3.coordinate),
    ]


def test_every_leg_failing_gives_empty_route():
    route = compute(StubRouter(no_route), [P1, P2], P3)
    assert route.is_empty
    assert route.segments == []
    assert route.viewport is None
    assert route.last_segment is None


def test_no_stops():
    route = compute(StubRouter(straight), [], P3)
    assert len(route.segments) == 1
    assert route.last_segment.dest == P3.coordinate


def test_viewport_covers_every_segment_with_margin():
    route = compute(StubRouter(bent), [P1, P2], P3)
    vp = route.viewport
    for seg in route.segments:
        for p in seg.path:
            assert vp.contains(p)

    lats = [p[0] for s in route.segments for p in s.path]
    lons = [p[1] for s in route.segments for p in s.path]
    d_lat = max(lats) - min(lats)
    d_lon = max(lons) - min(lons)
    assert vp.min_lat == pytest.approx(min(lats) - 0.2 * d_lat)
    assert vp.max_lat == pytest.approx(max(lats) + 0.2 * d_lat)
    assert vp.min_lon == pytest.approx(min(lons) - 0.2 * d_lon)
    assert vp.max_lon == pytest.approx(max(lons) + 0.2 * d_lon)
    assert vp.insets == (80.0, 40.0, 350.0, 40.0)


def test_route_to_dict_is_plain_data():
    d = compute(StubRouter(straight), [P1], P2).to_dict()
    assert len(d["segments"]) == 2
    assert d["segments"][0]["geometry_latlon"][0] == P0
    assert set(d["viewport"]) == {"min_lat", "min_lon", "max_lat", "max_lon", "insets"}
