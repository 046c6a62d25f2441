from __future__ import annotations
"""ServerPool – reusable HTTP test servers for fast test suites.

Starting a server per test costs a bind and a thread; the pool keeps
released servers around and hands them to the next caller with a new
handler. Use::

    from httptesting import POOL, TEAPOT

    with POOL.server(TEAPOT) as srv:
        assert httpx.get(srv.url).status_code == 418

or the callback form :func:`with_servers` / :func:`with_server`.
"""

from contextlib import ExitStack, contextmanager
from functools import partial
from typing import Callable, Iterator, List, Optional, Sequence, TypeVar

from .config import PoolConfig
from .core.coordinator import Coordinator, Message, MessageKind
from .core.handler import Handler
from .core.registry import PoolStats, Registry
from .core.server import TestServer
from .errors import PoolClosedError
from .utils.logging import get as get_logger

__all__ = ["ServerPool", "POOL", "with_servers", "with_server"]

R = TypeVar("R")


class ServerPool:
    """Thread-safe pool of :class:`TestServer` instances.

    Every call is a message to the pool's coordinator thread and blocks
    until it replies. Servers still acquired when the pool is closed are
    not closed.
    """

    def __init__(self, config: Optional[PoolConfig] = None):
        self.config = config or PoolConfig()
        if self.config.log_level is not None:
            get_logger(self.config.log_level)
        factory = partial(
            TestServer,
            host=self.config.host,
            request_timeout=self.config.request_timeout,
        )
        self._coordinator = Coordinator(Registry(factory))

    # -------------------------------------------------- #
    def acquire(self, handler: Handler) -> TestServer:
        """Take a server and install *handler*; responses close the connection."""
        return self._acquire(handler, keep_alive=False)

    def acquire_keep_alive(self, handler: Handler) -> TestServer:
        """Like :meth:`acquire` but without forcing ``Connection: close``."""
        return self._acquire(handler, keep_alive=True)

    def release(self, server: TestServer) -> None:
        """Give *server* back. Raises :class:`ReleaseError` if it is not held."""
        self._coordinator.call(Message(MessageKind.RELEASE, server=server))

    def close(self) -> None:
        """Close every idle server and stop the pool.

        Raises :class:`PoolClosedError` when called twice.
        """
        self._coordinator.call(Message(MessageKind.CLOSE))
        self._coordinator.join()

    @property
    def closed(self) -> bool:
        return self._coordinator.closed

    def stats(self) -> PoolStats:
        return self._coordinator.call(Message(MessageKind.STATS))

    # -------------------------------------------------- #
    @contextmanager
    def server(self, handler: Handler, *, keep_alive: bool = False) -> Iterator[TestServer]:
        """Context-manager yielding a server that is released on exit."""
        srv = self._acquire(handler, keep_alive=keep_alive)
        try:
            yield srv
        finally:
            self.release(srv)

    @contextmanager
    def servers(self, *handlers: Handler, keep_alive: bool = False) -> Iterator[List[TestServer]]:
        """Acquire one server per handler, in order; release all on exit."""
        with ExitStack() as stack:
            yield [stack.enter_context(self.server(h, keep_alive=keep_alive)) for h in handlers]

    def _acquire(self, handler: Handler, keep_alive: bool) -> TestServer:
        return self._coordinator.call(
            Message(MessageKind.ACQUIRE, handler=handler, keep_alive=keep_alive)
        )

    def __enter__(self) -> "ServerPool":
        return self

    def __exit__(self, *exc) -> None:
        try:
            self.close()
        except PoolClosedError:
            pass  # already closed, possibly by another thread


# Process-wide default pool; its coordinator is a daemon thread, so it never
# has to be closed.
POOL = ServerPool(PoolConfig.from_env())


def with_servers(
    handlers: Sequence[Handler],
    fn: Callable[[List[TestServer]], R],
    pool: Optional[ServerPool] = None,
) -> R:
    """Run *fn* with one server per handler; every server is released afterwards."""
    with (pool or POOL).servers(*handlers) as srvs:
        return fn(srvs)


def with_server(
    handler: Handler,
    fn: Callable[[TestServer], R],
    pool: Optional[ServerPool] = None,
) -> R:
    """Run *fn* with a single server from the pool."""
    return with_servers([handler], lambda srvs: fn(srvs[0]), pool=pool)
