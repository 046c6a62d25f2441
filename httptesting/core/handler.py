from __future__ import annotations

"""Request/response model passed to test handlers.

A handler is any callable ``handler(rsp, req)``; it fills in the
:class:`ResponseWriter` and returns nothing::

    def echo(rsp: ResponseWriter, req: Request) -> None:
        rsp.headers["Content-Type"] = "text/plain"
        rsp.write(req.body)
"""

from dataclasses import dataclass, field
from email.message import Message
from typing import Callable, Dict, List, Tuple
from urllib.parse import parse_qs, urlsplit

__all__ = [
    "Request",
    "ResponseWriter",
    "Handler",
    "KeepAliveHandler",
    "OK",
    "TEAPOT",
    "NOT_FOUND",
]


@dataclass(slots=True)
class Request:
    method: str
    path: str
    headers: Message
    body: bytes = b""
    client_address: Tuple[str, int] | None = None

    @property
    def query(self) -> Dict[str, List[str]]:
        """Parsed query string of :attr:`path`."""
        return parse_qs(urlsplit(self.path).query)


@dataclass(slots=True)
class ResponseWriter:
    status: int = 200
    headers: Message = field(default_factory=Message)
    _chunks: List[bytes] = field(default_factory=list, repr=False)

    def write_header(self, status: int) -> None:
        self.status = status

    def write(self, data: bytes | str) -> int:
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._chunks.append(data)
        return len(data)

    @property
    def body(self) -> bytes:
        return b"".join(self._chunks)

    def set_header(self, name: str, value: str) -> None:
        """Replace every value of header *name* with *value*."""
        del self.headers[name]
        self.headers[name] = value


Handler = Callable[[ResponseWriter, Request], None]


def OK(rsp: ResponseWriter, req: Request) -> None:  # noqa: N802
    """Answer 200 with an empty body."""


def TEAPOT(rsp: ResponseWriter, req: Request) -> None:  # noqa: N802
    rsp.write_header(418)


def NOT_FOUND(rsp: ResponseWriter, req: Request) -> None:  # noqa: N802
    rsp.write_header(404)


class KeepAliveHandler:
    """Handler wrapper installed on every pooled server.

    Unless *keep_alive* is set, responses carry ``Connection: close`` so
    each request gets a fresh connection. The inner handler can be swapped
    between requests.
    """

    __slots__ = ("handler", "keep_alive")

    def __init__(self, handler: Handler, keep_alive: bool = False):
        self.handler = handler
        self.keep_alive = keep_alive

    def __call__(self, rsp: ResponseWriter, req: Request) -> None:
        if not self.keep_alive:
            rsp.set_header("Connection", "close")
        self.handler(rsp, req)
