import base64
import json
import logging
import os
import tempfile
import time
from typing import Dict, List, Optional, Protocol

from roadsim.Waypoint import Waypoint, dump_waypoints, load_waypoints

log = logging.getLogger("roadsim.store")

RECENT_KEY = "roadsim.recentSearches"
FAVORITES_KEY = "roadsim.favorites"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[bytes]:
        ...

    def set(self, key: str, value: bytes) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class MemoryStore:
    def __init__(self):
        self.data: Dict[str, bytes] = {}

    def get(self, key: str) -> Optional[bytes]:
        return self.data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self.data[key] = bytes(value)

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore:
    """
    All keys in one JSON file, values base64 encoded.
    Every write replaces the file atomically.
    """

    def __init__(self, path: str, retries: int = 30, sleep_s: float = 0.01):
        if retries < 1:
            raise ValueError("retries must be at least 1")
        self.path = path
        self.retries = retries
        self.sleep_s = sleep_s

    def _read_all(self) -> Dict[str, str]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except ValueError as e:
            log.warning("ignoring unreadable store %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: Dict[str, str]) -> None:
        dir_name = os.path.dirname(os.path.abspath(self.path)) or "."
        last_err = None

        for _ in range(self.retries):
            tmp_path = None
            try:
                fd, tmp_path = tempfile.mkstemp(prefix="store_", suffix=".json", dir=dir_name)
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f)
                    f.flush()
                    os.fsync(f.fileno())

                os.replace(tmp_path, self.path)
                tmp_path = None
                return
            except PermissionError as e:
                last_err = e
                time.sleep(self.sleep_s)
            finally:
                if tmp_path is not None:
                    try:
                        os.remove(tmp_path)
                    except OSError:
                        pass

        raise last_err

    def get(self, key: str) -> Optional[bytes]:
        raw = self._read_all().get(key)
        if raw is None:
            return None
        return base64.b64decode(raw)

    def set(self, key: str, value: bytes) -> None:
        data = self._read_all()
        data[key] = base64.b64encode(value).decode("ascii")
        self._write_all(data)

    def remove(self, key: str) -> None:
        data = self._read_all()
        if data.pop(key, None) is not None:
            self._write_all(data)


# -------------------------
# recents / favorites
# -------------------------
class SavedPlaces:
    """Recent searches (newest first, bounded) and favorites (newest first)."""

    def __init__(self, store: KeyValueStore, recent_limit: int = 10):
        self.store = store
        self.recent_limit = recent_limit
        self.recent: List[Waypoint] = [w for w in self._load(RECENT_KEY) if not w.is_my_location]
        self.favorites: List[Waypoint] = self._load(FAVORITES_KEY)

    def _load(self, key: str) -> List[Waypoint]:
        raw = self.store.get(key)
        if raw is None:
            return []
        try:
            return load_waypoints(raw)
        except (ValueError, KeyError, TypeError) as e:
            log.warning("dropping unreadable %s: %s", key, e)
            return []

    def add_recent(self, place: Waypoint) -> None:
        if place.is_my_location:
            return
        self.recent = [w for w in self.recent if w.waypoint_id != place.waypoint_id]
        self.recent.insert(0, place)
        del self.recent[self.recent_limit:]
        self.store.set(RECENT_KEY, dump_waypoints(self.recent))

    def clear_recent(self) -> None:
        self.recent = []
        self.store.remove(RECENT_KEY)

    def is_favorite(self, place: Waypoint) -> bool:
        return any(w.waypoint_id == place.waypoint_id for w in self.favorites)

    def toggle_favorite(self, place: Waypoint) -> bool:
        """Returns True if the place is a favorite afterwards."""
        if self.is_favorite(place):
            self.favorites = [w for w in self.favorites if w.waypoint_id != place.waypoint_id]
            added = False
        else:
            self.favorites.insert(0, place)
            added = True
        self.store.set(FAVORITES_KEY, dump_waypoints(self.favorites))
        return added
