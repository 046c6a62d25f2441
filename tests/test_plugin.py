import httpx

from httptesting import OK, TEAPOT


def test_serve_fixture(serve, server_pool):
    a = serve(TEAPOT)
    b = serve(OK, keep_alive=True)
    assert httpx.get(a.url).status_code == 418
    assert "connection" not in httpx.get(b.url).headers
    assert server_pool.stats().busy == 2
