# This file makes the 'utils' directory a Python package.

"""httptesting utilities: logging and the lifecycle event bus."""

from .events import publish, subscribe, subscribed, unsubscribe

__all__ = [
    "publish",
    "subscribe",
    "subscribed",
    "unsubscribe",
]
