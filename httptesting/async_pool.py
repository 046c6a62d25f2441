from __future__ import annotations
"""AsyncServerPool – awaitable front-end for :class:`ServerPool`.

Pool calls block until the coordinator replies, so each one runs on an
anyio worker thread and the event loop keeps serving other tasks. Works
under asyncio and trio::

    async with AsyncServerPool().server(OK) as srv:
        async with httpx.AsyncClient(base_url=srv.url) as c:
            await c.get("/")
"""
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, List, Optional

import anyio

from .core.handler import Handler
from .core.registry import PoolStats
from .core.server import TestServer
from .pool import POOL, ServerPool

__all__ = ["AsyncServerPool"]


class AsyncServerPool:  # noqa: D101
    def __init__(self, pool: Optional[ServerPool] = None):
        self.pool = pool or POOL

    # ------------------------------------------------------------------ #
    async def acquire(self, handler: Handler) -> TestServer:
        return await anyio.to_thread.run_sync(self.pool.acquire, handler)

    async def acquire_keep_alive(self, handler: Handler) -> TestServer:
        return await anyio.to_thread.run_sync(self.pool.acquire_keep_alive, handler)

    async def release(self, server: TestServer) -> None:
        await anyio.to_thread.run_sync(self.pool.release, server)

    async def stats(self) -> PoolStats:
        return await anyio.to_thread.run_sync(self.pool.stats)

    async def aclose(self) -> None:
        await anyio.to_thread.run_sync(self.pool.close)

    # ------------------------------------------------------------------ #
    @asynccontextmanager
    async def server(self, handler: Handler, *, keep_alive: bool = False) -> AsyncIterator[TestServer]:
        get = self.acquire_keep_alive if keep_alive else self.acquire
        srv = await get(handler)
        try:
            yield srv
        finally:
            # Shielded so a cancelled test still hands its server back.
            with anyio.CancelScope(shield=True):
                await self.release(srv)

    @asynccontextmanager
    async def servers(self, *handlers: Handler, keep_alive: bool = False) -> AsyncIterator[List[TestServer]]:
        async with AsyncExitStack() as stack:
            yield [
                await stack.enter_async_context(self.server(h, keep_alive=keep_alive))
                for h in handlers
            ]
