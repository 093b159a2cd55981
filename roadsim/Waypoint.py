from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

LatLon = Tuple[float, float]

MY_LOCATION_LABELS = ("My Location", "Konumum")


@dataclass(frozen=True)
class Waypoint:
    """
    A named point on a trip (pickup, stop or destination).
    Lists of waypoints are in travel order.
    """
    coordinate: LatLon
    label: str
    subtitle: str = ""
    waypoint_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def is_my_location(self) -> bool:
        return self.label in MY_LOCATION_LABELS

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.waypoint_id,
            "title": self.label,
            "subtitle": self.subtitle,
            "latitude": self.coordinate[0],
            "longitude": self.coordinate[1],
        }

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> Waypoint:
        return cls(
            coordinate=(float(rec["latitude"]), float(rec["longitude"])),
            label=rec["title"],
            subtitle=rec.get("subtitle", ""),
            waypoint_id=rec["id"],
        )


def dump_waypoints(waypoints: List[Waypoint]) -> bytes:
    return json.dumps([w.to_record() for w in waypoints]).encode("utf-8")


def load_waypoints(raw: bytes) -> List[Waypoint]:
    data = json.loads(raw.decode("utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"expected a list of waypoint records, got {type(data).__name__}")
    return [Waypoint.from_record(rec) for rec in data]
