from __future__ import annotations

"""Ephemeral in-process HTTP server used as a pool entry.

Each :class:`TestServer` listens on ``host:0`` (the OS picks the port) and
serves from a daemon thread, so a test process never needs to shut it
down explicitly. The handler is looked up on every request, which is what
lets the pool swap it between tests.
"""

import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional, Set, Tuple

import httpx

from ..errors import ServerStartError
from ..utils.logging import log
from .handler import Handler, Request, ResponseWriter

__all__ = ["TestServer"]

_MAX_LINE = 65537
_METHODS = ("GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE")


class _HTTPServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address, owner: "TestServer", request_timeout: Optional[float]):
        self.owner = owner
        self.request_timeout = request_timeout
        self._conns: Set[socket.socket] = set()
        self._conns_lock = threading.Lock()
        super().__init__(address, _RequestHandler)

    def track(self, conn: socket.socket) -> None:
        with self._conns_lock:
            self._conns.add(conn)

    def untrack(self, conn: socket.socket) -> None:
        with self._conns_lock:
            self._conns.discard(conn)

    def drop_connections(self) -> None:
        """Cut every open client connection (keep-alive sockets included)."""
        with self._conns_lock:
            conns = list(self._conns)
            self._conns.clear()
        for conn in conns:
            try:
                conn.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass  # peer already gone


class _RequestHandler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"
    server: _HTTPServer

    def setup(self):
        self.timeout = self.server.request_timeout
        super().setup()
        self.server.track(self.connection)

    def finish(self):
        try:
            super().finish()
        finally:
            self.server.untrack(self.connection)

    def _read_chunked(self) -> bytes:
        chunks = []
        while True:
            line = self.rfile.readline(_MAX_LINE)
            size = int(line.split(b";", 1)[0].strip(), 16)
            if size < 0:
                raise ValueError(f"negative chunk size {size}")
            if size == 0:
                break
            chunks.append(self.rfile.read(size))
            self.rfile.readline(_MAX_LINE)  # CRLF closing the chunk
        # Trailers end with a blank line.
        while self.rfile.readline(_MAX_LINE) not in (b"\r\n", b"\n", b""):
            pass
        return b"".join(chunks)

    def _read_body(self) -> bytes:
        if "chunked" in self.headers.get("Transfer-Encoding", "").lower():
            return self._read_chunked()
        length = int(self.headers.get("Content-Length") or 0)
        if length < 0:
            raise ValueError(f"negative Content-Length {length}")
        return self.rfile.read(length) if length else b""

    def _dispatch(self):
        try:
            body = self._read_body()
        except ValueError as e:
            # The stream position is unknown now, so the connection is dropped.
            self.send_error(400, f"Malformed request body: {e}")
            self.close_connection = True
            return
        req = Request(self.command, self.path, self.headers, body, self.client_address)
        rsp = ResponseWriter()
        try:
            self.server.owner.handler(rsp, req)
        except Exception:  # noqa: BLE001 – a test handler bug becomes a 500
            log.exception("handler raised while serving %s %s", self.command, self.path)
            rsp = ResponseWriter(status=500)
            rsp.set_header("Connection", "close")

        payload = rsp.body
        self.send_response(rsp.status)
        for name, value in rsp.headers.items():
            if name.lower() == "content-length":
                continue
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        if self.command != "HEAD" and payload:
            self.wfile.write(payload)

    def log_message(self, format, *args):  # noqa: A002 – stdlib signature
        log.debug("%s - %s", self.address_string(), format % args)


for _m in _METHODS:
    setattr(_RequestHandler, f"do_{_m}", _RequestHandler._dispatch)


class TestServer:
    """A running HTTP/1.1 server bound to an ephemeral port."""

    __test__ = False  # not a pytest test class

    def __init__(self, handler: Handler, host: str = "127.0.0.1", *, request_timeout: Optional[float] = None):
        self.handler = handler
        try:
            self._httpd = _HTTPServer((host, 0), self, request_timeout)
        except OSError as e:
            raise ServerStartError(f"could not start test server on {host}: {e}") from e
        self._closed = False
        self._thread = threading.Thread(
            target=self._httpd.serve_forever,
            name=f"httptesting-{self.port}",
            daemon=True,
        )
        self._thread.start()

    # -------------------------------------------------- #
    @property
    def address(self) -> Tuple[str, int]:
        host, port = self._httpd.server_address[:2]
        return host, port

    @property
    def port(self) -> int:
        return self.address[1]

    @property
    def url(self) -> str:
        host, port = self.address
        return f"http://{host}:{port}"

    @property
    def closed(self) -> bool:
        return self._closed

    def client(self, **kwargs) -> httpx.Client:
        """Return an :class:`httpx.Client` pointed at this server."""
        return httpx.Client(base_url=self.url, **kwargs)

    # -------------------------------------------------- #
    def close(self) -> None:
        """Stop serving and free the port. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._httpd.shutdown()
        self._httpd.server_close()
        self._httpd.drop_connections()
        self._thread.join()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<TestServer {self.url} {state}>"
