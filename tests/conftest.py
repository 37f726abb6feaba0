from typing import Callable, List

import httpx
import pytest
from httpipe.core.context import Context
from httpipe.proxy.orchestration import Server

UPSTREAM = "http://upstream.example"


@pytest.fixture
def upstream_calls() -> List[httpx.Request]:
    """Requests seen by the stub upstream, in arrival order."""
    return []


@pytest.fixture
def make_server(upstream_calls) -> Callable[..., Server]:
    """Factory for a Server whose transport is an httpx.MockTransport.

    The handler receives each upstream request and returns an httpx.Response
    (or raises an httpx error to simulate a failed round trip).
    """

    def _make(handler: Callable[[httpx.Request], httpx.Response], upstream: str = UPSTREAM) -> Server:
        def recording_handler(request: httpx.Request) -> httpx.Response:
            upstream_calls.append(request)
            return handler(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(recording_handler))
        return Server(upstream, transport=client)

    return _make


@pytest.fixture
def ok_server(make_server) -> Server:
    """A Server whose upstream always answers 200 'hello'."""
    return make_server(lambda request: httpx.Response(200, text="hello"))


@pytest.fixture
def context() -> Context:
    """A bare context for handler-level tests."""
    return Context(request=httpx.Request("GET", f"{UPSTREAM}/foo?x=1"), session=1)
