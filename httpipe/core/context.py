# Defines the per-call Context threaded through both handler chains.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from httpx import Request, Response

from httpipe.proxy.utils import decompress_content

if TYPE_CHECKING:
    from httpipe.proxy.orchestration import Server


@dataclass
class Context:
    """Holds the state for a single call through the proxy.

    A Context is created by the Server for each inbound request and is only
    ever touched by the task serving that request.

    Attributes:
        request: The in-flight request, already rewritten onto the upstream.
        session: Correlation id assigned by the owning Server.
        server: The Server that created this context.
        response: The current response of the response-handler chain. Every
            response handler overwrites it with its return value, even None.
        error: The upstream round-trip error, if any.
        body: The raw upstream response body, captured once before the
            response-handler chain runs. This is what gets written to the
            client for round-tripped calls, so handlers that rewrite content
            must assign to it.
        body_decoded: True when ``body`` was taken from a response httpx had
            already read, so any Content-Encoding is already removed.
    """

    request: Request
    session: int
    server: Optional["Server"] = field(default=None, repr=False)
    response: Optional[Response] = None
    error: Optional[Exception] = None
    body: bytes = b""
    body_decoded: bool = False

    async def round_trip(self, request: Request) -> Response:
        """Sends a request to the upstream through the server's shared transport."""
        if self.server is None:
            raise RuntimeError(f"[{self.session}] Context has no server to round trip through")
        return await self.server.round_trip(request)

    def decoded_body(self) -> bytes:
        """Returns the captured body with any Content-Encoding removed.

        Raises:
            ValueError: If the encoding is unsupported or decompression fails.
        """
        if self.body_decoded:
            return self.body
        encoding = self.response.headers.get("content-encoding") if self.response is not None else None
        return decompress_content(self.body, encoding)
