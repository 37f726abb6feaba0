"""Handler capabilities for the request and response chains.

Two capabilities, each satisfied either by subclassing the abstract base or by
wrapping a plain function::

    class Deny(RequestHandler):
        async def handle(self, request, ctx):
            return request, new_response(request, "text/plain", 403, "denied")

    async def stamp(response, ctx):
        if response is not None:
            response.headers["X-Session"] = str(ctx.session)
        return response

    server.add_request_handler(Deny())
    server.add_response_handler(stamp)  # wrapped in a ResponseWrapper
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Tuple, Union

from httpx import Request, Response

from httpipe.exceptions import HandlerError

if TYPE_CHECKING:
    from httpipe.core.context import Context

RequestResult = Tuple[Optional[Request], Optional[Response]]
RequestHandlerFunc = Callable[[Request, "Context"], Union[RequestResult, Awaitable[RequestResult]]]
ResponseHandlerFunc = Callable[
    [Optional[Response], "Context"], Union[Optional[Response], Awaitable[Optional[Response]]]
]


class RequestHandler(ABC):
    """Called before the request is sent upstream."""

    @abstractmethod
    async def handle(self, request: Request, ctx: "Context") -> RequestResult:
        """
        Inspect or rewrite the request before it goes upstream.

        Args:
            request: The inbound request, already rewritten onto the upstream URL.
            ctx: The per-call context.

        Returns:
            A ``(request, response)`` tuple. A non-None response short-circuits
            the call: the upstream is never contacted and the response is sent
            to the client as-is.
        """
        pass

    @property
    def name(self) -> str:
        return self.__class__.__name__

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class ResponseHandler(ABC):
    """Called for every response (or upstream failure) before it reaches the client."""

    @abstractmethod
    async def handle(self, response: Optional[Response], ctx: "Context") -> Optional[Response]:
        """
        Inspect or replace the current response.

        Args:
            response: The current response. None when the round trip failed
                and no earlier handler supplied one; ``ctx.error`` then holds
                the failure.
            ctx: The per-call context.

        Returns:
            The response to continue with. The return value always replaces
            ``ctx.response``, so returning None drops whatever earlier handlers
            produced.
        """
        pass

    @property
    def name(self) -> str:
        return self.__class__.__name__

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


async def _call(fn: Callable[..., Any], *args: Any) -> Any:
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class RequestWrapper(RequestHandler):
    """Adapts a plain (sync or async) function to the RequestHandler interface."""

    def __init__(self, fn: RequestHandlerFunc):
        self.fn = fn

    async def handle(self, request: Request, ctx: "Context") -> RequestResult:
        result = await _call(self.fn, request, ctx)
        if not isinstance(result, tuple) or len(result) != 2:
            raise HandlerError(
                f"Request handler {self.name} must return a (request, response) tuple, got {type(result)}",
                handler_name=self.name,
                session=ctx.session,
            )
        return result

    @property
    def name(self) -> str:
        return getattr(self.fn, "__name__", repr(self.fn))

    def __repr__(self) -> str:
        return f"RequestWrapper({self.name})"


class ResponseWrapper(ResponseHandler):
    """Adapts a plain (sync or async) function to the ResponseHandler interface."""

    def __init__(self, fn: ResponseHandlerFunc):
        self.fn = fn

    async def handle(self, response: Optional[Response], ctx: "Context") -> Optional[Response]:
        return await _call(self.fn, response, ctx)

    @property
    def name(self) -> str:
        return getattr(self.fn, "__name__", repr(self.fn))

    def __repr__(self) -> str:
        return f"ResponseWrapper({self.name})"


def as_request_handler(handler: Union[RequestHandler, RequestHandlerFunc]) -> RequestHandler:
    """Returns handler instances unchanged and wraps plain callables."""
    if isinstance(handler, RequestHandler):
        return handler
    if callable(handler):
        return RequestWrapper(handler)
    raise HandlerError(f"Not a request handler: {handler!r}", handler_name=repr(handler))


def as_response_handler(handler: Union[ResponseHandler, ResponseHandlerFunc]) -> ResponseHandler:
    """Returns handler instances unchanged and wraps plain callables."""
    if isinstance(handler, ResponseHandler):
        return handler
    if callable(handler):
        return ResponseWrapper(handler)
    raise HandlerError(f"Not a response handler: {handler!r}", handler_name=repr(handler))
