from __future__ import annotations

"""Core building blocks: handler model, test server, registry, coordinator."""

from .handler import (  # noqa: F401 – re-export
    Request,
    ResponseWriter,
    Handler,
    KeepAliveHandler,
    OK,
    TEAPOT,
    NOT_FOUND,
)
from .server import TestServer  # noqa: F401
from .registry import Registry, PoolStats  # noqa: F401
from .coordinator import Coordinator, Message, MessageKind  # noqa: F401
