import logging
from typing import List, Optional, Tuple

import folium

from roadsim.RouteSegment import ComputedRoute
from roadsim.Vehicle import Vehicle
from roadsim.Waypoint import Waypoint

LatLon = Tuple[float, float]

log = logging.getLogger("roadsim.map")

SEGMENT_COLORS = ["blue", "purple", "darkgreen", "cadetblue"]


def draw_session_map(center: LatLon,
                     vehicles: List[Vehicle],
                     route: Optional[ComputedRoute] = None,
                     waypoints: Optional[List[Waypoint]] = None,
                     t_s: Optional[float] = None) -> folium.Map:
    m = folium.Map(location=center, zoom_start=15)

    folium.Marker(center, tooltip="You", icon=folium.Icon(color="blue", icon="user")).add_to(m)

    for v in vehicles:
        folium.Marker(
            v.get_pos(t_s),
            tooltip=f"{v.kind.value} {v.vehicle_id[:8]} ({v.bearing:.0f}°)",
            icon=folium.Icon(color="orange" if v.available else "gray", icon="taxi", prefix="fa"),
        ).add_to(m)

    if route is not None:
        for i, seg in enumerate(route.segments):
            if not seg.path:
                continue
            folium.PolyLine(seg.path, color=SEGMENT_COLORS[i % len(SEGMENT_COLORS)], weight=5,
                            opacity=0.8, tooltip=f"Segment {i + 1} ({seg.distance_m:.0f} m)").add_to(m)
        if route.viewport is not None:
            vp = route.viewport
            m.fit_bounds([[vp.min_lat, vp.min_lon], [vp.max_lat, vp.max_lon]])

    for i, w in enumerate(waypoints or []):
        last = i == len(waypoints) - 1
        folium.Marker(w.coordinate, tooltip=w.label,
                      icon=folium.Icon(color="red" if last else "purple")).add_to(m)

    return m


def save_session_map(path: str, *args, **kwargs) -> str:
    m = draw_session_map(*args, **kwargs)
    m.save(path)
    log.info("map written to %s", path)
    return path
