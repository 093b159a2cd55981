from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from roadsim.Waypoint import Waypoint
from roadsim.config import SimConfig
from roadsim.place_search import PlaceSearch
from roadsim.store import KeyValueStore, MemoryStore, SavedPlaces
from roadsim.ws_bus import SEARCH, EventBus

LatLon = Tuple[float, float]

log = logging.getLogger("roadsim.search")

MY_LOCATION = "My Location"


class FieldKind(Enum):
    PICKUP = "pickup"
    STOP = "stop"
    DESTINATION = "destination"


@dataclass(frozen=True)
class RouteField:
    kind: FieldKind
    index: int = 0

    @classmethod
    def stop(cls, index: int) -> RouteField:
        return cls(FieldKind.STOP, index)

    def __str__(self):
        if self.kind is FieldKind.STOP:
            return f"stop({self.index})"
        return self.kind.value


PICKUP = RouteField(FieldKind.PICKUP)
DESTINATION = RouteField(FieldKind.DESTINATION)


class SearchCoordinator:
    """
    Route form state plus place search.

    Typing in a field is debounced per field; only the active field's query
    goes out, and a new search cancels the one in flight. Results of a
    superseded search are never written.
    """

    def __init__(self, search: PlaceSearch,
                 store: Optional[KeyValueStore] = None,
                 config: Optional[SimConfig] = None,
                 bus: Optional[EventBus] = None):
        self.search = search
        self.config = config or SimConfig()
        self.bus = bus
        self.saved = SavedPlaces(store if store is not None else MemoryStore(),
                                 recent_limit=self.config.recent_limit)

        self.pickup: Optional[Waypoint] = None
        self.destination: Optional[Waypoint] = None
        self.stops: List[Optional[Waypoint]] = []
        self.pickup_text = ""
        self.destination_text = ""
        self.stop_texts: List[str] = []

        self.active_field: RouteField = DESTINATION
        self.results: List[Waypoint] = []
        self.loading = False
        self.show_favorites = False
        self.stop_limit_warning = False

        self._debounce: Dict[RouteField, asyncio.Task] = {}
        self._last_query: Dict[RouteField, str] = {}
        self._search_task: Optional[asyncio.Task] = None
        self._generation = 0
        self._warning_task: Optional[asyncio.Task] = None

    # -------------------------
    # text input
    # -------------------------
    def text_of(self, field: RouteField) -> str:
        if field.kind is FieldKind.PICKUP:
            return self.pickup_text
        if field.kind is FieldKind.DESTINATION:
            return self.destination_text
        return self.stop_texts[field.index]

    def _store_text(self, field: RouteField, text: str) -> None:
        if field.kind is FieldKind.PICKUP:
            self.pickup_text = text
        elif field.kind is FieldKind.DESTINATION:
            self.destination_text = text
        else:
            self.stop_texts[field.index] = text

    def set_text(self, field: RouteField, text: str) -> None:
        """Text edited by the user; schedules a debounced search."""
        if field.kind is FieldKind.STOP and not 0 <= field.index < len(self.stop_texts):
            return
        self._store_text(field, text)

        pending = self._debounce.pop(field, None)
        if pending is not None:
            pending.cancel()
        self._debounce[field] = asyncio.get_running_loop().create_task(self._debounced(field, text))

    async def _debounced(self, field: RouteField, text: str) -> None:
        await asyncio.sleep(self.config.search_debounce_s)
        self._debounce.pop(field, None)
        if self._last_query.get(field) == text:
            return
        self._last_query[field] = text
        if self.active_field != field:
            return
        self.perform_search(text)

    def focus(self, field: RouteField) -> None:
        self.active_field = field

    # -------------------------
    # search
    # -------------------------
    def perform_search(self, query: str) -> None:
        self.cancel_search()

        if len(query) < self.config.search_min_chars:
            self._set_results([])
            return

        self._generation += 1
        self._search_task = asyncio.get_running_loop().create_task(
            self._run_search(query, self._generation))

    def cancel_search(self) -> None:
        self._generation += 1
        if self._search_task is not None:
            self._search_task.cancel()
            self._search_task = None
        self.loading = False

    async def _run_search(self, query: str, generation: int) -> None:
        self.loading = True
        try:
            places = await self.search.search(query, self.config.search_bias)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.warning("search %r failed: %s", query, e)
            places = []

        if generation != self._generation:
            log.debug("discarding stale results for %r", query)
            return
        self.loading = False
        self._set_results([p.to_waypoint() for p in places[:self.config.search_max_results]], query)

    def _set_results(self, results: List[Waypoint], query: str = "") -> None:
        self.results = results
        if self.bus is not None:
            self.bus.publish(SEARCH, {
                "field": str(self.active_field),
                "query": query,
                "results": [w.to_record() for w in results],
            })

    def clear_results(self) -> None:
        self._set_results([])

    # -------------------------
    # form
    # -------------------------
    def select_result(self, result: Waypoint, field: RouteField) -> None:
        if field.kind is FieldKind.PICKUP:
            self.pickup = result
        elif field.kind is FieldKind.DESTINATION:
            self.destination = result
        elif 0 <= field.index < len(self.stops):
            self.stops[field.index] = result
        else:
            return
        self._store_text(field, result.label)
        # selecting is not typing
        self._last_query[field] = result.label

        self.cancel_search()
        self.clear_results()
        self.saved.add_recent(result)

    async def set_user_location(self, coordinate: LatLon) -> Waypoint:
        self.pickup = Waypoint(coordinate=coordinate, label=MY_LOCATION)
        try:
            address = await self.search.reverse_geocode(coordinate)
        except Exception as e:
            log.warning("reverse geocoding failed: %s", e)
            address = None

        line = address.street_line() if address is not None else None
        if line:
            self.pickup = Waypoint(coordinate=coordinate, label=line)
        self.pickup_text = self.pickup.label
        self._last_query[PICKUP] = self.pickup_text
        return self.pickup

    def swap_locations(self) -> None:
        self.pickup, self.destination = self.destination, self.pickup
        self.pickup_text, self.destination_text = self.destination_text, self.pickup_text

    def add_stop(self) -> bool:
        if len(self.stops) < self.config.max_stops:
            self.stops.append(None)
            self.stop_texts.append("")
            return True

        self.stop_limit_warning = True
        if self._warning_task is not None:
            self._warning_task.cancel()
        self._warning_task = asyncio.get_running_loop().create_task(self._hide_warning())
        return False

    async def _hide_warning(self) -> None:
        await asyncio.sleep(self.config.stop_warning_s)
        self.stop_limit_warning = False

    def remove_stop(self, index: int) -> None:
        if not 0 <= index < len(self.stops):
            return
        del self.stops[index]
        del self.stop_texts[index]
        # stop fields after the removed one shift down
        for field in [f for f in self._debounce if f.kind is FieldKind.STOP]:
            self._debounce.pop(field).cancel()
        self._last_query = {f: q for f, q in self._last_query.items() if f.kind is not FieldKind.STOP}
        if self.active_field.kind is FieldKind.STOP and self.active_field.index >= len(self.stops):
            self.active_field = DESTINATION

    def trip(self) -> Optional[Tuple[Optional[Waypoint], List[Waypoint], Waypoint]]:
        """(pickup, filled stops, destination), or None without a destination."""
        if self.destination is None:
            return None
        return self.pickup, [s for s in self.stops if s is not None], self.destination

    # -------------------------
    # recents / favorites
    # -------------------------
    @property
    def recent_searches(self) -> List[Waypoint]:
        return self.saved.recent

    @property
    def favorites(self) -> List[Waypoint]:
        return self.saved.favorites

    def clear_recent_searches(self) -> None:
        self.saved.clear_recent()

    def toggle_favorite(self, place: Waypoint) -> bool:
        return self.saved.toggle_favorite(place)

    def is_favorite(self, place: Waypoint) -> bool:
        return self.saved.is_favorite(place)

    def toggle_show_favorites(self) -> None:
        self.show_favorites = not self.show_favorites

    def close(self) -> None:
        self.cancel_search()
        for task in self._debounce.values():
            task.cancel()
        self._debounce.clear()
        if self._warning_task is not None:
            self._warning_task.cancel()
            self._warning_task = None
