import math
import random
from typing import List, Optional, Tuple

LatLon = Tuple[float, float]

EARTH_R = 6371000.0
METERS_PER_DEG = 111000.0


# -------------------------
# distances / bearings
# -------------------------
def distance_meters(a: LatLon, b: LatLon) -> float:
    lat1, lon1 = map(math.radians, a)
    lat2, lon2 = map(math.radians, b)
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    x = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_R * math.asin(min(1.0, math.sqrt(x)))


def bearing_between(a: LatLon, b: LatLon) -> float:
    """Forward azimuth a -> b in degrees, normalised to [0, 360).

    Identical points give 0.0.
    """
    lat1, lon1 = map(math.radians, a)
    lat2, lon2 = map(math.radians, b)
    dlon = lon2 - lon1

    y = math.sin(dlon) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(dlon)
    if x == 0.0 and y == 0.0:
        return 0.0

    bearing = math.degrees(math.atan2(y, x)) % 360.0
    # -0.0 and float rounding of e.g. -1e-17 % 360
    return 0.0 if bearing >= 360.0 else bearing


# -------------------------
# random sampling
# -------------------------
def sample_annulus_point(center: LatLon,
                         min_m: float,
                         max_m: float,
                         rng: Optional[random.Random] = None) -> LatLon:
    """Random point between min_m and max_m from center.

    Small-angle approximation, only meant for offsets below ~1 km.
    """
    if min_m > max_m:
        raise ValueError(f"min_m ({min_m}) > max_m ({max_m})")
    rng = rng or random
    lat, lon = center
    dist = rng.uniform(min_m, max_m)
    t = 2 * math.pi * rng.random()

    r = dist / METERS_PER_DEG
    dlat = r * math.sin(t)
    dlon = r * math.cos(t) / math.cos(math.radians(lat))
    return lat + dlat, lon + dlon


# -------------------------
# bounds
# -------------------------
def bounding_box(points: List[LatLon]) -> Optional[Tuple[float, float, float, float]]:
    """(min_lat, min_lon, max_lat, max_lon) or None for no points."""
    if not points:
        return None
    lats = [p[0] for p in points]
    lons = [p[1] for p in points]
    return min(lats), min(lons), max(lats), max(lons)
