from __future__ import annotations

"""pytest fixtures for pooled test servers.

Enable in a ``conftest.py``::

    pytest_plugins = ["httptesting.pytest_plugin"]

then::

    def test_teapot(serve):
        srv = serve(TEAPOT)
        assert httpx.get(srv.url).status_code == 418
"""

from typing import Callable, Iterator

import pytest

from .config import PoolConfig
from .core.handler import Handler
from .core.server import TestServer
from .pool import ServerPool

__all__ = ["server_pool", "serve"]


@pytest.fixture
def server_pool() -> Iterator[ServerPool]:
    """An isolated pool, closed after the test."""
    pool = ServerPool(PoolConfig.from_env())
    try:
        yield pool
    finally:
        if not pool.closed:
            pool.close()


@pytest.fixture
def serve(server_pool: ServerPool) -> Iterator[Callable[..., TestServer]]:
    """Factory ``serve(handler, keep_alive=False)``; servers are released at teardown."""
    acquired: list[TestServer] = []

    def _serve(handler: Handler, *, keep_alive: bool = False) -> TestServer:
        get = server_pool.acquire_keep_alive if keep_alive else server_pool.acquire
        srv = get(handler)
        acquired.append(srv)
        return srv

    yield _serve

    for srv in reversed(acquired):
        server_pool.release(srv)
