import random
import threading

import httpx
import pytest

from httptesting import (
    NOT_FOUND,
    OK,
    TEAPOT,
    PoolClosedError,
    PoolConfig,
    ServerNotBusyError,
    ServerPool,
    UnknownServerError,
)
from httptesting.utils.events import ServerStarted, subscribed


def test_released_server_is_reused_with_new_handler(server_pool):
    s1 = server_pool.acquire(TEAPOT)
    assert httpx.get(s1.url).status_code == 418
    server_pool.release(s1)

    s2 = server_pool.acquire(OK)
    assert s2 is s1
    assert httpx.get(s2.url).status_code == 200
    server_pool.release(s2)


def test_idle_server_answers_not_found(server_pool):
    srv = server_pool.acquire(TEAPOT)
    server_pool.release(srv)
    assert httpx.get(srv.url).status_code == 404

    again = server_pool.acquire(TEAPOT)
    assert again is srv
    assert httpx.get(srv.url).status_code == 418
    server_pool.release(again)


def test_default_mode_closes_connections(server_pool):
    ports = []

    def remember(rsp, req):
        ports.append(req.client_address[1])

    with server_pool.server(remember) as srv, srv.client() as c:
        r1 = c.get("/")
        r2 = c.get("/")
    assert r1.headers["connection"] == "close"
    assert r2.status_code == 200
    assert ports[0] != ports[1]


def test_keep_alive_mode_reuses_connection(server_pool):
    ports = []

    def remember(rsp, req):
        ports.append(req.client_address[1])

    srv = server_pool.acquire_keep_alive(remember)
    with srv.client() as c:
        r1 = c.get("/")
        c.get("/")
    server_pool.release(srv)
    assert "connection" not in r1.headers
    assert ports[0] == ports[1]


def test_concurrent_acquire_never_shares(server_pool):
    n = 12
    barrier = threading.Barrier(n)
    held = []
    lock = threading.Lock()

    def worker():
        srv = server_pool.acquire(OK)
        with lock:
            held.append(srv)
        barrier.wait(timeout=10)  # everyone holds a server at once
        server_pool.release(srv)

    threads = [threading.Thread(target=worker) for _ in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len({id(s) for s in held}) == n
    st = server_pool.stats()
    assert st.created == n
    assert st.busy == 0


def test_servers_started_never_exceed_peak_holdings(server_pool):
    started = []
    rnd = random.Random(7)
    held = []
    peak = 0
    with subscribed(ServerStarted, started.append):
        for _ in range(60):
            if held and rnd.random() < 0.5:
                server_pool.release(held.pop(rnd.randrange(len(held))))
            else:
                held.append(server_pool.acquire(OK))
                peak = max(peak, len(held))
        for srv in held:
            server_pool.release(srv)

    assert len(started) <= peak
    assert len({e.url for e in started}) == len(started)
    assert server_pool.stats().created == len(started)


def test_release_misuse_is_reported(server_pool):
    other = ServerPool()
    foreign = other.acquire(OK)
    with pytest.raises(UnknownServerError):
        server_pool.release(foreign)
    other.release(foreign)
    other.close()

    srv = server_pool.acquire(OK)
    server_pool.release(srv)
    with pytest.raises(ServerNotBusyError):
        server_pool.release(srv)


def test_close_closes_idle_and_leaks_busy():
    pool = ServerPool()
    idle = pool.acquire(OK)
    busy = pool.acquire(TEAPOT)
    pool.release(idle)

    pool.close()
    assert pool.closed
    assert idle.closed
    with pytest.raises(httpx.ConnectError):
        httpx.get(idle.url)
    # never released, so still alive with its handler
    assert not busy.closed
    assert httpx.get(busy.url).status_code == 418
    busy.close()


def test_closed_pool_rejects_calls():
    pool = ServerPool()
    srv = pool.acquire(OK)
    pool.release(srv)
    pool.close()

    with pytest.raises(PoolClosedError):
        pool.acquire(OK)
    with pytest.raises(PoolClosedError):
        pool.release(srv)
    with pytest.raises(PoolClosedError):
        pool.close()


def test_pool_as_context_manager():
    with ServerPool(PoolConfig(log_level="error")) as pool:
        srv = pool.acquire(NOT_FOUND)
        pool.release(srv)
    assert pool.closed
    assert srv.closed


def test_exit_after_close_from_another_thread():
    with ServerPool() as pool:
        t = threading.Thread(target=pool.close)
        t.start()
        t.join()
        assert pool.closed
    # __exit__ found the pool already closed and did not raise
    assert pool.closed
