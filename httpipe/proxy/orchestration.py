import logging
import threading
from typing import Iterable, Optional, Tuple, Union

import fastapi
import httpx
from fastapi import status
from fastapi.responses import PlainTextResponse

from httpipe.core.chain import run_request_chain, run_response_chain
from httpipe.core.context import Context
from httpipe.core.handlers import (
    RequestHandler,
    RequestHandlerFunc,
    ResponseHandler,
    ResponseHandlerFunc,
    as_request_handler,
    as_response_handler,
)
from httpipe.core.logging import log_session_state
from httpipe.exceptions import EmptyResponseError, UpstreamConfigurationError
from httpipe.proxy.utils import STRIPPED_RESPONSE_HEADERS, copy_headers, rewrite_request, to_httpx_request

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def parse_upstream(upstream: Union[str, httpx.URL]) -> httpx.URL:
    """Parses and validates the upstream target.

    Raises:
        UpstreamConfigurationError: If the target is not an http(s) URL with a host.
    """
    try:
        url = httpx.URL(upstream)
    except (httpx.InvalidURL, TypeError) as e:
        raise UpstreamConfigurationError(f"Invalid upstream URL {upstream!r}: {e}") from e
    if url.scheme not in ("http", "https") or not url.host:
        raise UpstreamConfigurationError(f"Invalid upstream URL {upstream!r}: expected http(s)://host[:port]")
    return url


class Server:
    """
    Reverse proxy onto a single upstream.

    Each call runs the request handlers (until one of them supplies a
    response), otherwise sends the request upstream, then runs every response
    handler over the upstream response or over the failure.

    Attributes:
        upstream (httpx.URL): Scheme, host and port every request is sent to.
        request_handlers (list[RequestHandler]): Run in order before the round trip.
        response_handlers (list[ResponseHandler]): Run in order after the round trip.
        transport (httpx.AsyncClient): Shared outbound client.
    """

    def __init__(
        self,
        upstream: Union[str, httpx.URL],
        transport: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
        trust_env: bool = True,
    ):
        """
        Initializes the Server.

        Args:
            upstream: The upstream URL, e.g. ``http://backend:8080``.
            transport: Client used for round trips. Defaults to an
                ``httpx.AsyncClient`` that honours proxy environment variables
                and never follows redirects.
            timeout: Timeout in seconds for the default client.
            trust_env: Whether the default client reads proxy settings from the environment.

        Raises:
            UpstreamConfigurationError: If ``upstream`` is not a valid http(s) URL.
        """
        self.upstream = parse_upstream(upstream)
        self.request_handlers: list[RequestHandler] = []
        self.response_handlers: list[ResponseHandler] = []
        if transport is None:
            transport = httpx.AsyncClient(timeout=timeout, trust_env=trust_env, follow_redirects=False)
        self.transport = transport
        self._session = 0
        self._session_lock = threading.Lock()

    def __repr__(self) -> str:
        return (
            f"<Server(upstream={self.upstream}, request_handlers={self.request_handlers}, "
            f"response_handlers={self.response_handlers})>"
        )

    # --- Configuration ---

    def add_request_handler(
        self, handler: Union[RequestHandler, RequestHandlerFunc]
    ) -> Union[RequestHandler, RequestHandlerFunc]:
        """Appends a request handler. Works as a decorator for plain functions."""
        self.request_handlers.append(as_request_handler(handler))
        return handler

    def add_response_handler(
        self, handler: Union[ResponseHandler, ResponseHandlerFunc]
    ) -> Union[ResponseHandler, ResponseHandlerFunc]:
        """Appends a response handler. Works as a decorator for plain functions."""
        self.response_handlers.append(as_response_handler(handler))
        return handler

    def next_session(self) -> int:
        """Returns the next session id. Safe to call from several threads."""
        with self._session_lock:
            self._session += 1
            return self._session

    # --- Chains ---

    async def handle_request(
        self, request: httpx.Request, ctx: Context
    ) -> Tuple[httpx.Request, Optional[httpx.Response]]:
        return await run_request_chain(self.request_handlers, request, ctx)

    async def handle_response(self, response: Optional[httpx.Response], ctx: Context) -> Optional[httpx.Response]:
        return await run_response_chain(self.response_handlers, response, ctx)

    async def round_trip(self, request: httpx.Request) -> httpx.Response:
        """Sends the request upstream. The response body is left unread.

        Raises:
            httpx.HTTPError: If the upstream cannot be reached or the exchange fails.
        """
        return await self.transport.send(request, stream=True)

    # --- Serving ---

    async def serve_http(self, request: fastapi.Request) -> fastapi.Response:
        """Entry point for the HTTP listener: proxies one inbound FastAPI request."""
        return await self.serve(await to_httpx_request(request))

    async def serve(self, request: httpx.Request) -> fastapi.Response:
        """
        Proxies one inbound request.

        Args:
            request: The inbound request, addressed to this proxy. A streaming
                body is read in full before any handler runs.

        Returns:
            The response to relay to the client.

        Raises:
            EmptyResponseError: If the response handlers discard a successful upstream response.
            Exception: Propagates any exception raised by a handler.
        """
        await request.aread()
        request = rewrite_request(self.upstream, request)
        ctx = Context(request=request, session=self.next_session(), server=self)
        logger.info(
            f"[{ctx.session}] Request for {request.url}",
            extra={"session": ctx.session, "method": request.method, "url": str(request.url)},
        )

        request, response = await self.handle_request(request, ctx)
        ctx.request = request
        if response is not None:
            # Short-circuit: no body capture, no response handlers.
            log_session_state(ctx.session, "short_circuit", {"status_code": response.status_code})
            try:
                body, decoded = await self._read_body(response)
                return self._relay(response, body, ctx, decoded=decoded)
            finally:
                await self._close([response], ctx)

        try:
            upstream_response = await self.round_trip(request)
        except httpx.HTTPError as e:
            return await self._handle_round_trip_error(e, ctx)

        closables = [upstream_response]
        try:
            log_session_state(
                ctx.session, "round_trip", {"status_code": upstream_response.status_code, "url": str(request.url)}
            )
            await self._capture_body(upstream_response, ctx)
            response = await self.handle_response(upstream_response, ctx)
            if response is None:
                logger.error(f"[{ctx.session}] Response handlers discarded the upstream response")
                raise EmptyResponseError(session=ctx.session)
            closables.append(response)
            return self._relay(response, ctx.body, ctx, decoded=ctx.body_decoded)
        finally:
            await self._close(closables, ctx)

    async def _handle_round_trip_error(self, error: httpx.HTTPError, ctx: Context) -> fastapi.Response:
        logger.warning(
            f"[{ctx.session}] Upstream round trip failed: {error}",
            extra={"session": ctx.session, "error": str(error), "error_type": error.__class__.__name__},
        )
        ctx.error = error
        response = await self.handle_response(None, ctx)
        if response is None:
            return PlainTextResponse(str(error), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
        try:
            await self._capture_body(response, ctx)
            return self._relay(response, ctx.body, ctx, decoded=ctx.body_decoded)
        finally:
            await self._close([response], ctx)

    async def _read_body(self, response: httpx.Response) -> Tuple[bytes, bool]:
        """Reads the body of a response.

        Returns:
            The body, and whether httpx had already read and decoded it. An
            unread stream gives the raw (still encoded) bytes.
        """
        if response.is_stream_consumed:
            return response.content, True
        body = bytearray()
        async for chunk in response.aiter_raw():
            body.extend(chunk)
        return bytes(body), False

    async def _capture_body(self, response: httpx.Response, ctx: Context) -> None:
        """Buffers the whole body into ``ctx.body``.

        A failed read keeps what was received and records the error on the context.
        """
        if response.is_stream_consumed:
            ctx.body = response.content
            ctx.body_decoded = True
            return
        ctx.body_decoded = False
        body = bytearray()
        try:
            async for chunk in response.aiter_raw():
                body.extend(chunk)
        except httpx.HTTPError as e:
            logger.warning(
                f"[{ctx.session}] Error reading upstream body after {len(body)} bytes: {e}",
                extra={"session": ctx.session, "error": str(e), "bytes_read": len(body)},
            )
            ctx.error = e
        ctx.body = bytes(body)

    def _relay(self, response: httpx.Response, body: bytes, ctx: Context, decoded: bool = False) -> fastapi.Response:
        headers = httpx.Headers(response.headers)
        status_code = response.status_code
        # 304 and HEAD responses describe a representation they do not carry,
        # so the upstream's Content-Length is kept. 1xx and 204 carry none.
        keep_length = status_code == 304 or ctx.request.method == "HEAD"
        bodiless = status_code < 200 or status_code == 204
        for name in STRIPPED_RESPONSE_HEADERS:
            if name == "content-length" and keep_length:
                continue
            if name in headers:
                del headers[name]
        if decoded and "content-encoding" in headers:
            del headers["content-encoding"]
        relayed = fastapi.Response(content=body, status_code=status_code)
        copy_headers(relayed.headers, headers)
        if not (keep_length or bodiless):
            relayed.headers["content-length"] = str(len(body))
        logger.info(
            f"[{ctx.session}] Relaying response {response.status_code}",
            extra={"session": ctx.session, "status_code": response.status_code, "body_length": len(body)},
        )
        return relayed

    async def _close(self, responses: Iterable[httpx.Response], ctx: Context) -> None:
        seen = set()
        for response in responses:
            if id(response) in seen:
                continue
            seen.add(id(response))
            try:
                await response.aclose()
            except Exception as e:
                logger.warning(f"[{ctx.session}] IO error closing response: {e}")

    async def aclose(self) -> None:
        """Closes the shared transport."""
        await self.transport.aclose()
