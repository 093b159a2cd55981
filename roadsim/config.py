"""Tunables for fleet simulation, routing and search.

Defaults match the values the map client shipped with; any of them can be
overridden through ``ROADSIM_*`` environment variables (a ``.env`` file is
read first).
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from typing import Optional, Tuple

from dotenv import load_dotenv

OSRM_DRIVE = "http://localhost:5000"
NOMINATIM = "https://nominatim.openstreetmap.org"


@dataclass(frozen=True)
class SimConfig:
    # fleet
    fleet_size: int = 9
    attempt_multiplier: int = 3
    fleet_min_radius_m: float = 100.0
    fleet_max_radius_m: float = 400.0
    dedup_distance_m: float = 50.0
    fleet_load_delay_s: float = 0.5

    # idle drift
    drift_min_m: float = 30.0
    drift_max_m: float = 80.0
    tick_interval_s: float = 2.0
    vehicles_per_tick: int = 1
    transition_min_s: float = 40.0
    transition_max_s: float = 60.0
    animation_settle_delay_s: float = 2.0

    # route / camera
    viewport_margin: float = 0.2
    overlay_insets: Tuple[float, float, float, float] = (80.0, 40.0, 350.0, 40.0)
    user_region_m: float = 1000.0

    # search
    search_debounce_s: float = 0.5
    search_min_chars: int = 4
    search_max_results: int = 15
    max_stops: int = 3
    recent_limit: int = 10
    stop_warning_s: float = 2.0

    # collaborators
    osrm_url: str = OSRM_DRIVE
    osrm_profile: str = "driving"
    nominatim_url: str = NOMINATIM
    user_agent: str = "roadsim/0.1"
    http_timeout_s: float = 10.0
    # (min_lat, min_lon, max_lat, max_lon); default covers Turkey
    search_bias: Tuple[float, float, float, float] = field(default=(34.0, 25.0, 44.0, 45.0))


def _coerce(raw: str, current):
    if isinstance(current, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, float):
        return float(raw)
    if isinstance(current, tuple):
        return tuple(float(x) for x in raw.split(","))
    return raw


def load_config(env_file: Optional[str] = None, **overrides) -> SimConfig:
    """Build a SimConfig from defaults, ROADSIM_* env vars and keyword overrides."""
    load_dotenv(env_file)
    base = SimConfig()
    values = {}
    for f in fields(SimConfig):
        raw = os.getenv("ROADSIM_" + f.name.upper())
        if raw is not None and raw != "":
            values[f.name] = _coerce(raw, getattr(base, f.name))
    values.update(overrides)
    return SimConfig(**values)
