from __future__ import annotations
"""Ultra-lightweight pub/sub **EventBus** for pool lifecycle notifications.

Example
-------
```python
from httptesting.utils.events import Event, ServerStarted, subscribe

@subscribe(ServerStarted)
def _on_start(evt: ServerStarted):
    print(f"new test server on {evt.url}")

seen = []
sub = subscribe(Event, seen.append)  # every event type
...
sub.cancel()
```
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Type, TypeVar

__all__ = [
    "Event",
    "ServerStarted",
    "ServerAcquired",
    "ServerReleased",
    "ServerClosed",
    "PoolClosed",
    "Subscription",
    "subscribe",
    "subscribed",
    "unsubscribe",
    "publish",
]

T = TypeVar("T", bound="Event")
_Handler = Callable[[Any], None]
_REGISTRY: Dict[Type["Event"], List[_Handler]] = {}


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True, kw_only=True)
class Event:  # noqa: D101 – base event
    ts: datetime = field(default_factory=_now)


# --------------------------------------------------------------------------- #
# Concrete events
# --------------------------------------------------------------------------- #
@dataclass(slots=True)
class ServerStarted(Event):
    url: str


@dataclass(slots=True)
class ServerAcquired(Event):
    url: str
    keep_alive: bool
    reused: bool


@dataclass(slots=True)
class ServerReleased(Event):
    url: str


@dataclass(slots=True)
class ServerClosed(Event):
    url: str


@dataclass(slots=True)
class PoolClosed(Event):
    closed: int
    leaked: int  # busy at close time, left running


# --------------------------------------------------------------------------- #
# Subscriptions
# --------------------------------------------------------------------------- #

class Subscription:
    """Handle returned by :func:`subscribe`; call it (or ``cancel()``) to stop."""

    __slots__ = ("event_type", "func")

    def __init__(self, event_type: Type[Event], func: _Handler):
        self.event_type = event_type
        self.func = func

    def cancel(self) -> None:
        unsubscribe(self.event_type, self.func)

    __call__ = cancel


def subscribe(event_type: Type[T], func: Optional[_Handler] = None):
    """Register *func* for *event_type* and its subclasses.

    ``subscribe(ServerStarted, fn)`` returns a :class:`Subscription`;
    ``@subscribe(ServerStarted)`` works as a decorator and leaves the
    function unchanged.
    """
    if func is not None:
        _REGISTRY.setdefault(event_type, []).append(func)
        return Subscription(event_type, func)

    def _decorator(fn: _Handler) -> _Handler:
        subscribe(event_type, fn)
        return fn

    return _decorator


def unsubscribe(event_type: Type[Event], func: _Handler) -> None:
    handlers = _REGISTRY.get(event_type, [])
    if func in handlers:
        handlers.remove(func)


@contextmanager
def subscribed(event_type: Type[T], func: _Handler) -> Iterator[Subscription]:
    """Keep *func* subscribed for the duration of a ``with`` block."""
    sub = subscribe(event_type, func)
    try:
        yield sub
    finally:
        sub.cancel()


def publish(evt: Event) -> None:
    """Deliver *evt* to subscribers of its class and of every base event class."""
    for cls in type(evt).__mro__:
        for func in tuple(_REGISTRY.get(cls, ())):
            try:
                func(evt)
            except Exception as e:  # noqa: BLE001
                # A broken subscriber must never take the coordinator down.
                from httptesting.utils.logging import log

                log.warning("event subscriber %r failed on %s: %s", func, type(evt).__name__, e)
        if cls is Event:
            break
