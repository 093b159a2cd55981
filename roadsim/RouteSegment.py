from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from roadsim.geo_math import METERS_PER_DEG, bounding_box

LatLon = Tuple[float, float]

# top, left, bottom, right (screen points)
DEFAULT_INSETS = (80.0, 40.0, 350.0, 40.0)


@dataclass(frozen=True)
class RouteSegment:
    """
    One routed leg between two consecutive waypoints.
    path: polyline points from the routing provider
    source/dest: the requested endpoints, not the snapped polyline ends
    """
    path: List[LatLon]
    source: LatLon
    dest: LatLon
    distance_m: float = 0.0
    duration_s: float = 0.0


@dataclass(frozen=True)
class Viewport:
    min_lat: float
    min_lon: float
    max_lat: float
    max_lon: float
    insets: Tuple[float, float, float, float] = DEFAULT_INSETS

    @property
    def center(self) -> LatLon:
        return ((self.min_lat + self.max_lat) / 2, (self.min_lon + self.max_lon) / 2)

    @property
    def span(self) -> Tuple[float, float]:
        return self.max_lat - self.min_lat, self.max_lon - self.min_lon

    def contains(self, p: LatLon) -> bool:
        return self.min_lat <= p[0] <= self.max_lat and self.min_lon <= p[1] <= self.max_lon

    def union(self, other: Viewport) -> Viewport:
        return Viewport(
            min_lat=min(self.min_lat, other.min_lat),
            min_lon=min(self.min_lon, other.min_lon),
            max_lat=max(self.max_lat, other.max_lat),
            max_lon=max(self.max_lon, other.max_lon),
            insets=self.insets,
        )

    def inflated(self, margin: float) -> Viewport:
        """Push every edge outward by margin * span of that dimension."""
        d_lat, d_lon = self.span
        return Viewport(
            min_lat=self.min_lat - d_lat * margin,
            min_lon=self.min_lon - d_lon * margin,
            max_lat=self.max_lat + d_lat * margin,
            max_lon=self.max_lon + d_lon * margin,
            insets=self.insets,
        )

    @classmethod
    def around(cls, center: LatLon, meters: float, insets=DEFAULT_INSETS) -> Viewport:
        half_lat = meters / 2 / METERS_PER_DEG
        half_lon = half_lat / max(math.cos(math.radians(center[0])), 1e-9)
        return cls(center[0] - half_lat, center[1] - half_lon,
                   center[0] + half_lat, center[1] + half_lon, insets)

    @classmethod
    def of_path(cls, path: List[LatLon], insets=DEFAULT_INSETS) -> Optional[Viewport]:
        box = bounding_box(path)
        if box is None:
            return None
        return cls(*box, insets=insets)


@dataclass(frozen=True)
class ComputedRoute:
    segments: List[RouteSegment] = field(default_factory=list)
    viewport: Optional[Viewport] = None

    @property
    def is_empty(self) -> bool:
        return not self.segments

    @property
    def last_segment(self) -> Optional[RouteSegment]:
        return self.segments[-1] if self.segments else None

    @property
    def distance_m(self) -> float:
        return sum(s.distance_m for s in self.segments)

    @property
    def duration_s(self) -> float:
        return sum(s.duration_s for s in self.segments)

    def to_dict(self) -> dict:
        return {
            "segments": [
                {
                    "geometry_latlon": s.path,
                    "source": s.source,
                    "dest": s.dest,
                    "distance_m": s.distance_m,
                    "duration_s": s.duration_s,
                }
                for s in self.segments
            ],
            "viewport": None if self.viewport is None else {
                "min_lat": self.viewport.min_lat,
                "min_lon": self.viewport.min_lon,
                "max_lat": self.viewport.max_lat,
                "max_lon": self.viewport.max_lon,
                "insets": self.viewport.insets,
            },
        }
