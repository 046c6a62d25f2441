from __future__ import annotations
"""Rich-backed logging for httptesting.

Plain log records go through a :class:`rich.logging.RichHandler` attached
to the ``httptesting`` logger. Pool lifecycle events are mirrored as
debug lines so ``get("debug")`` is enough to trace server reuse.
"""
from logging import Formatter, Logger, getLogger, INFO, DEBUG, WARNING, ERROR

from rich.console import Console
from rich.logging import RichHandler

from httptesting.utils.events import (
    subscribe,
    ServerStarted,
    ServerAcquired,
    ServerReleased,
    ServerClosed,
    PoolClosed,
)

console = Console(stderr=True)

__all__ = ["console", "get", "log"]

_LEVEL_MAP = {
    "info": INFO,
    "debug": DEBUG,
    "warning": WARNING,
    "error": ERROR,
}

log: Logger = getLogger("httptesting")

# Attach once; reloading this module must not stack handlers.
if not any(isinstance(h, RichHandler) for h in log.handlers):
    _handler = RichHandler(console=console, rich_tracebacks=True, markup=False, show_path=False)
    _handler.setFormatter(Formatter("%(message)s", datefmt="%H:%M:%S"))
    log.addHandler(_handler)
    log.setLevel(WARNING)


def get(level: str = "info") -> Logger:  # noqa: D401
    """Return the package logger set to *level* (str)."""
    lvl = _LEVEL_MAP.get(level.lower(), INFO)
    lg = getLogger("httptesting")
    lg.setLevel(lvl)
    return lg


# --------------------------------------------------------------------------- #
# Event subscribers
# --------------------------------------------------------------------------- #

@subscribe(ServerStarted)
def _on_started(evt: ServerStarted):  # noqa: D401 – event hook
    log.debug("started test server %s", evt.url)


@subscribe(ServerAcquired)
def _on_acquired(evt: ServerAcquired):
    log.debug(
        "acquired %s (%s, keep-alive=%s)",
        evt.url,
        "reused" if evt.reused else "new",
        evt.keep_alive,
    )


@subscribe(ServerReleased)
def _on_released(evt: ServerReleased):
    log.debug("released %s", evt.url)


@subscribe(ServerClosed)
def _on_closed(evt: ServerClosed):
    log.debug("closed test server %s", evt.url)


@subscribe(PoolClosed)
def _on_pool_closed(evt: PoolClosed):
    log.debug("pool closed: %d server(s) closed, %d leaked", evt.closed, evt.leaked)
