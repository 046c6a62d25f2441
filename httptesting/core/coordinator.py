from __future__ import annotations

"""Coordinator – single owner of the :class:`Registry`.

Callers never touch the registry. They :meth:`Coordinator.submit` a
:class:`Message` and block on its reply future; the coordinator thread
pulls messages off one FIFO inbox and handles them one at a time, so all
registry operations are linearized without a registry lock.

Lifecycle is ``running -> closed``, exactly once. The close message makes
the thread close every idle server and exit for good. A small gate lock
protects only the closed flag and the enqueue: anything accepted before
close is still handled (the inbox is FIFO), anything after is rejected
with :class:`PoolClosedError` instead of waiting forever.
"""

import queue
import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ..errors import PoolClosedError
from ..utils.logging import log
from .handler import Handler
from .registry import Registry
from .server import TestServer

__all__ = ["Coordinator", "Message", "MessageKind"]


class MessageKind(Enum):
    ACQUIRE = "acquire"
    RELEASE = "release"
    STATS = "stats"
    CLOSE = "close"


@dataclass(slots=True)
class Message:
    kind: MessageKind
    handler: Optional[Handler] = None
    keep_alive: bool = False
    server: Optional[TestServer] = None
    reply: Future = field(default_factory=Future)


class Coordinator:  # noqa: D101
    def __init__(self, registry: Registry, name: str = "httptesting-coordinator"):
        self._registry = registry
        self._inbox: "queue.Queue[Message]" = queue.Queue()
        self._gate = threading.Lock()
        self._closed = False
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    @property
    def closed(self) -> bool:
        return self._closed

    # -------------------------------------------------- #
    def submit(self, msg: Message) -> Future:
        """Queue *msg* and return its reply future."""
        with self._gate:
            if self._closed:
                raise PoolClosedError("server pool is closed")
            if msg.kind is MessageKind.CLOSE:
                self._closed = True
            self._inbox.put(msg)
        return msg.reply

    def call(self, msg: Message) -> Any:
        """Submit *msg* and block until the coordinator replies."""
        return self.submit(msg).result()

    def join(self, timeout: Optional[float] = None) -> None:
        self._thread.join(timeout)

    # -------------------------------------------------- #
    def _run(self) -> None:
        while True:
            msg = self._inbox.get()
            # A cancelled request is skipped, except close which always runs.
            live = msg.reply.set_running_or_notify_cancel()
            if not live and msg.kind is not MessageKind.CLOSE:
                continue
            try:
                result = self._handle(msg)
            except Exception as e:  # noqa: BLE001 – handed back to the caller
                if not live:
                    raise
                msg.reply.set_exception(e)
            else:
                if live:
                    msg.reply.set_result(result)
            if msg.kind is MessageKind.CLOSE:
                log.debug("coordinator stopped")
                return

    def _handle(self, msg: Message) -> Any:
        reg = self._registry
        if msg.kind is MessageKind.ACQUIRE:
            return reg.acquire(msg.handler, msg.keep_alive)
        if msg.kind is MessageKind.RELEASE:
            reg.release(msg.server)
            return None
        if msg.kind is MessageKind.STATS:
            return reg.stats()
        if msg.kind is MessageKind.CLOSE:
            return reg.close_all()
        raise ValueError(f"Unsupported message kind: {msg.kind!r}")
