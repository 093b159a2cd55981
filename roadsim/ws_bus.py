import asyncio
import json
import logging
from typing import Any, Callable, Dict, List, Set

from aiohttp import WSMsgType, web

log = logging.getLogger("roadsim.bus")

FLEET = "fleet"
TRANSITION = "transition"
ROUTE = "route"
SEARCH = "search"
LOCATION = "location"
CAMERA = "camera"


class EventBus:
    """
    Fan-out of session events to subscribers.
    Each subscriber owns a bounded queue; when it is full the oldest event
    is dropped so a slow consumer always ends up with the latest state.
    """

    def __init__(self):
        self.subscribers: Set[asyncio.Queue] = set()
        self.listeners: List[Callable[[Dict[str, Any]], None]] = []

    def subscribe(self, maxsize: int = 100) -> asyncio.Queue:
        q: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.subscribers.add(q)
        return q

    def unsubscribe(self, q: asyncio.Queue) -> None:
        self.subscribers.discard(q)

    def on(self, listener: Callable[[Dict[str, Any]], None]) -> None:
        self.listeners.append(listener)

    def publish(self, kind: str, data: Any) -> None:
        event = {"type": kind, "data": data}
        for q in list(self.subscribers):
            # keep only latest event if queue is full
            if q.full():
                try:
                    q.get_nowait()
                except asyncio.QueueEmpty:
                    pass
            q.put_nowait(event)
        for listener in list(self.listeners):
            try:
                listener(event)
            except Exception:
                log.exception("listener failed on %s event", kind)


# -------------------------
# websocket relay
# -------------------------
BUS_KEY = web.AppKey("bus", EventBus)


async def relay(bus: EventBus, ws: web.WebSocketResponse, maxsize: int = 100) -> None:
    q = bus.subscribe(maxsize)
    try:
        while not ws.closed:
            event = await q.get()
            await ws.send_str(json.dumps(event))
    finally:
        bus.unsubscribe(q)


async def ws_handler(request: web.Request) -> web.WebSocketResponse:
    bus = request.app[BUS_KEY]
    ws = web.WebSocketResponse()
    await ws.prepare(request)

    sender = asyncio.create_task(relay(bus, ws))
    try:
        async for msg in ws:
            if msg.type == WSMsgType.ERROR:
                log.warning("websocket closed with %s", ws.exception())
                break
    finally:
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass
        except Exception as e:
            log.warning("websocket relay failed: %s", e)
    return ws


def make_app(bus: EventBus) -> web.Application:
    app = web.Application()
    app[BUS_KEY] = bus
    app.router.add_get("/ws", ws_handler)
    return app
