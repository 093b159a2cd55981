from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, List, Optional, Protocol, Tuple

LatLon = Tuple[float, float]

log = logging.getLogger("roadsim.location")


class AuthorizationStatus(str, Enum):
    NOT_DETERMINED = "not_determined"
    DENIED = "denied"
    AUTHORIZED = "authorized"


@dataclass(frozen=True)
class LocationFix:
    coordinate: LatLon
    accuracy_m: float = 10.0
    authorization: AuthorizationStatus = AuthorizationStatus.AUTHORIZED


class LocationProvider(Protocol):
    authorization: AuthorizationStatus

    def request_permission(self) -> None:
        ...

    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...

    def fixes(self) -> AsyncIterator[LocationFix]:
        ...


class ReplayLocationProvider:
    """
    Plays back a fixed list of fixes, one every interval_s.
    Permission is granted on request unless constructed with grant=False;
    delivery starts once authorized, like a device provider would.
    """

    def __init__(self, fixes: List[LatLon], interval_s: float = 1.0,
                 accuracy_m: float = 10.0, grant: bool = True):
        self._points = list(fixes)
        self.interval_s = interval_s
        self.accuracy_m = accuracy_m
        self.grant = grant
        self.authorization = AuthorizationStatus.NOT_DETERMINED
        self._queue: asyncio.Queue = asyncio.Queue()
        self._feeder: Optional[asyncio.Task] = None

    def request_permission(self) -> None:
        self.authorization = AuthorizationStatus.AUTHORIZED if self.grant else AuthorizationStatus.DENIED
        log.info("authorization status changed: %s", self.authorization.value)
        if self.authorization is AuthorizationStatus.AUTHORIZED:
            self.start()

    def start(self) -> None:
        if self._feeder is not None or self.authorization is not AuthorizationStatus.AUTHORIZED:
            return
        self._feeder = asyncio.get_running_loop().create_task(self._feed())

    def stop(self) -> None:
        if self._feeder is not None:
            self._feeder.cancel()
            self._feeder = None
        self._queue.put_nowait(None)

    async def _feed(self) -> None:
        for i, p in enumerate(self._points):
            if i:
                await asyncio.sleep(self.interval_s)
            self._queue.put_nowait(LocationFix(p, self.accuracy_m, self.authorization))
        self._queue.put_nowait(None)

    async def fixes(self) -> AsyncIterator[LocationFix]:
        while True:
            fix = await self._queue.get()
            if fix is None:
                return
            yield fix
