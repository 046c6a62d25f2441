import socket

import httpx
import pytest

from httptesting.core import server as server_mod
from httptesting.core.handler import OK, TEAPOT
from httptesting.core.server import TestServer
from httptesting.errors import ServerStartError


@pytest.fixture
def srv():
    s = TestServer(OK)
    yield s
    s.close()


def test_serves_handler(srv):
    def echo(rsp, req):
        rsp.headers["Content-Type"] = "text/plain"
        rsp.write(req.method + " " + req.path + " ")
        rsp.write(req.body)

    srv.handler = echo
    r = httpx.post(srv.url + "/x?y=1", content=b"payload")
    assert r.status_code == 200
    assert r.text == "POST /x?y=1 payload"
    assert r.headers["content-type"] == "text/plain"


def test_handler_swap_takes_effect_on_next_request(srv):
    assert httpx.get(srv.url).status_code == 200
    srv.handler = TEAPOT
    assert httpx.get(srv.url).status_code == 418


def test_head_has_no_body(srv):
    srv.handler = lambda rsp, req: rsp.write(b"hello")
    r = httpx.head(srv.url)
    assert r.status_code == 200
    assert r.headers["content-length"] == "5"
    assert r.content == b""


def test_handler_error_becomes_500(srv):
    def boom(rsp, req):
        raise RuntimeError("bug in test handler")

    srv.handler = boom
    r = httpx.get(srv.url)
    assert r.status_code == 500
    # server keeps working afterwards
    srv.handler = OK
    assert httpx.get(srv.url).status_code == 200


def test_client_uses_base_url(srv):
    srv.handler = lambda rsp, req: rsp.write(req.path)
    with srv.client() as c:
        assert c.get("/ping").text == "/ping"


def test_close_frees_port():
    s = TestServer(OK)
    url = s.url
    assert httpx.get(url).status_code == 200
    s.close()
    assert s.closed
    s.close()  # idempotent
    with pytest.raises(httpx.ConnectError):
        httpx.get(url)


def test_start_failure_raises(monkeypatch):
    def _no_port(*a, **k):
        raise OSError(98, "Address already in use")

    monkeypatch.setattr(server_mod, "_HTTPServer", _no_port)
    with pytest.raises(ServerStartError) as ei:
        TestServer(OK)
    assert isinstance(ei.value.__cause__, OSError)


def test_chunked_body_on_keep_alive_connection():
    s = TestServer(lambda rsp, req: rsp.write(req.body))
    try:
        with s.client() as c:
            r1 = c.post("/", content=iter([b"abc", b"def"]))
            assert r1.status_code == 200
            assert r1.content == b"abcdef"
            # the connection is still in a clean state for the next request
            r2 = c.post("/", content=b"next")
            assert r2.content == b"next"
    finally:
        s.close()


def test_bad_content_length_is_rejected():
    s = TestServer(OK)
    try:
        with socket.create_connection(s.address, timeout=5) as sock:
            sock.sendall(
                b"POST / HTTP/1.1\r\nHost: x\r\nContent-Length: abc\r\n\r\n"
            )
            data = b""
            while chunk := sock.recv(4096):
                data += chunk
        assert data.startswith(b"HTTP/1.1 400")
        assert b"Connection: close" in data
    finally:
        s.close()
