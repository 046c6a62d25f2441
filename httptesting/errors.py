from __future__ import annotations

"""Exceptions raised by the server pool."""

__all__ = [
    "ServerPoolError",
    "PoolClosedError",
    "ReleaseError",
    "UnknownServerError",
    "ServerNotBusyError",
    "ServerStartError",
]


class ServerPoolError(Exception):
    """Base class for every error raised by httptesting."""


class PoolClosedError(ServerPoolError):
    """The pool was closed; it accepts no further requests."""


class ReleaseError(ServerPoolError):
    """A server was released that the pool does not hold as busy."""

    def __init__(self, server, reason: str):
        self.server = server
        super().__init__(f"cannot release {getattr(server, 'url', server)!s}: {reason}")


class UnknownServerError(ReleaseError):
    def __init__(self, server):
        super().__init__(server, "server does not belong to this pool")


class ServerNotBusyError(ReleaseError):
    def __init__(self, server):
        super().__init__(server, "server is already idle")


class ServerStartError(ServerPoolError):
    """The underlying test server could not be started (e.g. no free port)."""
