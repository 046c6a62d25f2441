"""httptesting: a concurrency-safe pool of reusable HTTP test servers.

Main components:
* `ServerPool`: acquire / release servers, one coordinator thread per pool
* `POOL`: process-wide default pool
* `with_servers` / `with_server`: run a callback with pooled servers
* `AsyncServerPool`: awaitable wrapper for asyncio / trio suites
"""

# Version info
__version__ = "0.1.0"

from httptesting.core.handler import (
    Request,
    ResponseWriter,
    Handler,
    KeepAliveHandler,
    OK,
    TEAPOT,
    NOT_FOUND,
)
from httptesting.core.server import TestServer
from httptesting.core.registry import PoolStats
from httptesting.config import PoolConfig, load_config_from_yaml
from httptesting.errors import (
    ServerPoolError,
    PoolClosedError,
    ReleaseError,
    UnknownServerError,
    ServerNotBusyError,
    ServerStartError,
)
from httptesting.pool import ServerPool, POOL, with_servers, with_server
from httptesting.async_pool import AsyncServerPool

__all__ = [
    # Pool
    "ServerPool",
    "AsyncServerPool",
    "POOL",
    "with_servers",
    "with_server",
    "PoolStats",

    # Server and handler model
    "TestServer",
    "Request",
    "ResponseWriter",
    "Handler",
    "KeepAliveHandler",
    "OK",
    "TEAPOT",
    "NOT_FOUND",

    # Config
    "PoolConfig",
    "load_config_from_yaml",

    # Errors
    "ServerPoolError",
    "PoolClosedError",
    "ReleaseError",
    "UnknownServerError",
    "ServerNotBusyError",
    "ServerStartError",
]
