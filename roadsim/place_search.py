import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Tuple

import requests

from roadsim.Waypoint import Waypoint
from roadsim.config import NOMINATIM

LatLon = Tuple[float, float]
# (min_lat, min_lon, max_lat, max_lon)
BiasRegion = Tuple[float, float, float, float]

log = logging.getLogger("roadsim.search")

UNKNOWN_PLACE = "Unknown Location"


class SearchError(RuntimeError):
    pass


@dataclass(frozen=True)
class Address:
    sub_locality: Optional[str] = None
    thoroughfare: Optional[str] = None
    sub_thoroughfare: Optional[str] = None
    locality: Optional[str] = None
    administrative_area: Optional[str] = None
    title: Optional[str] = None

    def subtitle(self) -> str:
        """'Locality/ Region', falling back to the full title."""
        parts = [p for p in (self.locality, self.administrative_area) if p]
        if not parts and self.title:
            return self.title
        return "/ ".join(parts)

    def street_line(self) -> Optional[str]:
        """'Neighbourhood, Street, No. 12' or None if nothing is known."""
        parts = []
        if self.sub_locality:
            parts.append(self.sub_locality)
        if self.thoroughfare:
            parts.append(self.thoroughfare)
        if self.sub_thoroughfare:
            parts.append(f"No. {self.sub_thoroughfare}")
        return ", ".join(parts) if parts else None


@dataclass(frozen=True)
class Place:
    name: str
    address: Address
    coordinate: LatLon

    def to_waypoint(self) -> Waypoint:
        return Waypoint(coordinate=self.coordinate, label=self.name,
                        subtitle=self.address.subtitle())


class PlaceSearch(Protocol):
    async def search(self, query: str, bias_region: Optional[BiasRegion] = None) -> List[Place]:
        ...

    async def reverse_geocode(self, coordinate: LatLon) -> Optional[Address]:
        ...


# -------------------------
# Nominatim
# -------------------------
def parse_address(item: Dict[str, Any]) -> Address:
    a = item.get("address") or {}
    return Address(
        sub_locality=a.get("suburb") or a.get("neighbourhood") or a.get("quarter"),
        thoroughfare=a.get("road"),
        sub_thoroughfare=a.get("house_number"),
        locality=a.get("city") or a.get("town") or a.get("village") or a.get("county"),
        administrative_area=a.get("state") or a.get("province"),
        title=item.get("display_name"),
    )


def parse_place(item: Dict[str, Any]) -> Place:
    name = item.get("name") or item.get("display_name") or UNKNOWN_PLACE
    return Place(
        name=name,
        address=parse_address(item),
        coordinate=(float(item["lat"]), float(item["lon"])),
    )


class NominatimSearch:
    def __init__(self, base_url: str = NOMINATIM, user_agent: str = "roadsim/0.1",
                 timeout: float = 10.0, limit: int = 15,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.limit = limit
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    def _get(self, path: str, params: Dict[str, Any]) -> Any:
        r = self.session.get(f"{self.base_url}/{path}", params=params, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def fetch_places(self, query: str, bias_region: Optional[BiasRegion] = None) -> List[Place]:
        params = {
            "q": query,
            "format": "jsonv2",
            "addressdetails": 1,
            "limit": self.limit,
        }
        if bias_region is not None:
            min_lat, min_lon, max_lat, max_lon = bias_region
            params["viewbox"] = f"{min_lon},{max_lat},{max_lon},{min_lat}"
            params["bounded"] = 0

        data = self._get("search", params)
        if not isinstance(data, list):
            raise SearchError(f"unexpected search response: {data!r}")
        return [parse_place(item) for item in data]

    def fetch_address(self, coordinate: LatLon) -> Optional[Address]:
        lat, lon = coordinate
        data = self._get("reverse", {"lat": lat, "lon": lon, "format": "jsonv2", "addressdetails": 1})
        if not isinstance(data, dict) or "error" in data:
            return None
        return parse_address(data)

    async def search(self, query: str, bias_region: Optional[BiasRegion] = None) -> List[Place]:
        return await asyncio.to_thread(self.fetch_places, query, bias_region)

    async def reverse_geocode(self, coordinate: LatLon) -> Optional[Address]:
        return await asyncio.to_thread(self.fetch_address, coordinate)

    def close(self) -> None:
        self.session.close()
