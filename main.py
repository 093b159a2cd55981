import asyncio
import logging
import webbrowser

from roadsim.LocationProvider import ReplayLocationProvider
from roadsim.MapSession import MapSession
from roadsim.SearchCoordinator import DESTINATION, SearchCoordinator
from roadsim.config import load_config
from roadsim.local_osrm import OsrmRouter
from roadsim.logging_config import configure
from roadsim.map_view import save_session_map
from roadsim.place_search import NominatimSearch
from roadsim.store import JsonFileStore
from roadsim.ws_bus import ROUTE

# Coordinates: (lat, lon)
user = (41.0082, 28.9784)        # Sultanahmet
query = "Galata Kulesi"

log = logging.getLogger("roadsim.demo")


async def demo():
    cfg = load_config()
    router = OsrmRouter(cfg.osrm_url, cfg.osrm_profile, timeout=cfg.http_timeout_s)
    places = NominatimSearch(cfg.nominatim_url, cfg.user_agent, timeout=cfg.http_timeout_s,
                             limit=cfg.search_max_results)

    session = MapSession(router, cfg)
    search = SearchCoordinator(places, JsonFileStore("saved_places.json"), cfg, session.bus)
    routes = session.bus.subscribe()

    provider = ReplayLocationProvider([user], interval_s=1.0)
    await session.run(provider)

    # fleet + a couple of animation ticks
    await asyncio.sleep(cfg.fleet_load_delay_s + cfg.animation_settle_delay_s + 2 * cfg.tick_interval_s)

    await search.set_user_location(user)
    search.focus(DESTINATION)
    search.set_text(DESTINATION, query)
    await asyncio.sleep(cfg.search_debounce_s + 3.0)
    if not search.results:
        log.warning("no results for %r", query)
    else:
        search.select_result(search.results[0], DESTINATION)
        pickup, stops, dest = search.trip()
        session.set_destination(dest, stops, start=pickup.coordinate)
        while (await routes.get())["type"] != ROUTE:
            pass

    waypoints = [w for w in (search.pickup, *session.stops, session.destination) if w is not None]
    path = save_session_map("map.html", user, session.vehicles, session.route, waypoints)

    session.close()
    search.close()
    router.close()
    places.close()
    webbrowser.open(path)


if __name__ == "__main__":
    configure()
    asyncio.run(demo())
