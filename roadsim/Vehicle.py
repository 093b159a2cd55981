from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

LatLon = Tuple[float, float]


class VehicleKind(str, Enum):
    TAXI = "taxi"


@dataclass(frozen=True)
class Transition:
    """
    One idle-drift glide of a vehicle.
    The vehicle's coordinate already holds `dest`; the presentation layer
    interpolates from `start` over `duration_s` seconds.
    """
    vehicle_id: str
    start: LatLon
    dest: LatLon
    bearing: float
    duration_s: float
    started_at: float

    def get_pos_at_time(self, t_s: float) -> LatLon:
        t = t_s - self.started_at
        if t <= 0.0:
            return self.start
        if self.duration_s <= 0.0 or t >= self.duration_s:
            return self.dest

        alpha = t / self.duration_s
        lat1, lon1 = self.start
        lat2, lon2 = self.dest
        return (lat1 + alpha * (lat2 - lat1), lon1 + alpha * (lon2 - lon1))


@dataclass
class Vehicle:
    coordinate: LatLon
    vehicle_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    bearing: float = 0.0
    kind: VehicleKind = VehicleKind.TAXI
    available: bool = True
    transition: Optional[Transition] = None

    def move_to(self, dest: LatLon, bearing: float, duration_s: float, now: float) -> Transition:
        self.transition = Transition(
            vehicle_id=self.vehicle_id,
            start=self.coordinate,
            dest=dest,
            bearing=bearing,
            duration_s=duration_s,
            started_at=now,
        )
        self.coordinate = dest
        self.bearing = bearing
        return self.transition

    def get_pos(self, t_s: Optional[float] = None) -> LatLon:
        if t_s is None or self.transition is None:
            return self.coordinate
        return self.transition.get_pos_at_time(t_s)

    def to_dict(self) -> dict:
        return {
            "id": self.vehicle_id,
            "lat": self.coordinate[0],
            "lon": self.coordinate[1],
            "bearing": self.bearing,
            "kind": self.kind.value,
            "available": self.available,
        }

    def __eq__(self, other):
        if not isinstance(other, Vehicle):
            return NotImplemented
        return self.vehicle_id == other.vehicle_id

    def __hash__(self):
        return hash(self.vehicle_id)
