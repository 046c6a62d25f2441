from __future__ import annotations

"""Server registry – the pool's only mutable state.

Not thread-safe on purpose: the coordinator thread is its sole caller,
which linearizes every operation. Do not share a ``Registry`` between
threads directly.
"""

from typing import Callable, Dict, List, Optional

from pydantic import BaseModel

from ..errors import ServerNotBusyError, UnknownServerError
from ..utils.events import (
    publish,
    PoolClosed,
    ServerAcquired,
    ServerClosed,
    ServerReleased,
    ServerStarted,
)
from ..utils.logging import log
from .handler import NOT_FOUND, Handler, KeepAliveHandler
from .server import TestServer

__all__ = ["Registry", "PoolStats"]

ServerFactory = Callable[[KeepAliveHandler], TestServer]


class PoolStats(BaseModel):
    created: int = 0
    busy: int = 0
    idle: int = 0
    closed: int = 0
    high_water: int = 0  # most servers ever busy at once


class _Entry(KeepAliveHandler):  # noqa: D401
    __slots__ = ("busy",)

    def __init__(self, handler: Handler, keep_alive: bool):
        super().__init__(handler, keep_alive)
        self.busy = True


class Registry:  # noqa: D101
    def __init__(self, factory: Optional[ServerFactory] = None):
        self._factory: ServerFactory = factory or TestServer
        self._entries: Dict[TestServer, _Entry] = {}
        self._busy = 0
        self._high_water = 0
        self._closed = 0

    # -------------------------------------------------- #
    def acquire(self, handler: Handler, keep_alive: bool = False) -> TestServer:
        """Hand out an idle server, starting a new one when none is idle."""
        for server, entry in self._entries.items():
            if not entry.busy:
                entry.handler = handler
                entry.keep_alive = keep_alive
                entry.busy = True
                self._mark_busy()
                publish(ServerAcquired(url=server.url, keep_alive=keep_alive, reused=True))
                return server

        entry = _Entry(handler, keep_alive)
        server = self._factory(entry)  # ServerStartError propagates to the caller
        self._entries[server] = entry
        self._mark_busy()
        publish(ServerStarted(url=server.url))
        publish(ServerAcquired(url=server.url, keep_alive=keep_alive, reused=False))
        return server

    def release(self, server: TestServer) -> None:
        entry = self._entries.get(server)
        if entry is None:
            raise UnknownServerError(server)
        if not entry.busy:
            raise ServerNotBusyError(server)
        # Stray requests between tests get a 404, never the old handler.
        entry.handler = NOT_FOUND
        entry.busy = False
        self._busy -= 1
        publish(ServerReleased(url=server.url))

    def close_all(self) -> List[TestServer]:
        """Close idle servers; return the busy ones, which are left running."""
        leaked: List[TestServer] = []
        closed = 0
        for server, entry in self._entries.items():
            if entry.busy:
                leaked.append(server)
                continue
            server.close()
            closed += 1
            publish(ServerClosed(url=server.url))
        self._closed += closed

        if leaked:
            log.warning(
                "pool closed with %d server(s) still acquired; they stay open: %s",
                len(leaked),
                ", ".join(s.url for s in leaked),
            )
        publish(PoolClosed(closed=closed, leaked=len(leaked)))
        return leaked

    # -------------------------------------------------- #
    def stats(self) -> PoolStats:
        return PoolStats(
            created=len(self._entries),
            busy=self._busy,
            idle=len(self._entries) - self._busy,
            closed=self._closed,
            high_water=self._high_water,
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, server: object) -> bool:
        return server in self._entries

    def _mark_busy(self) -> None:
        self._busy += 1
        self._high_water = max(self._high_water, self._busy)
