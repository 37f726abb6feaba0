# Runs the ordered request and response handler chains.

import logging
from typing import Optional, Sequence, Tuple

from httpx import Request, Response

from httpipe.core.context import Context
from httpipe.core.handlers import RequestHandler, ResponseHandler

logger = logging.getLogger(__name__)


async def run_request_chain(
    handlers: Sequence[RequestHandler], request: Request, ctx: Context
) -> Tuple[Request, Optional[Response]]:
    """
    Runs request handlers in registration order until one returns a response.

    Every handler is given the original request, not the request returned by
    the handler before it. The first handler to return a response wins and no
    later handler runs.

    Args:
        handlers: The ordered request handlers.
        request: The (already rewritten) inbound request.
        ctx: The per-call context.

    Returns:
        The request returned by the last handler that ran (the original request
        if the chain is empty or that handler returned None for it), and the
        short-circuit response or None.

    Raises:
        Exception: Propagates any exception raised by a handler.
    """
    current_request = request
    for i, handler in enumerate(handlers):
        logger.debug(f"[{ctx.session}] Applying request handler {i + 1}/{len(handlers)}: {handler.name}")
        try:
            returned_request, response = await handler.handle(request, ctx)
        except Exception as e:
            logger.error(f"[{ctx.session}] Error applying request handler {handler.name}: {e}", exc_info=True)
            raise
        current_request = returned_request if returned_request is not None else request
        if response is not None:
            logger.info(
                f"[{ctx.session}] Request handler {handler.name} short-circuited with status {response.status_code}",
                extra={"session": ctx.session, "handler": handler.name, "status_code": response.status_code},
            )
            return current_request, response
    return current_request, None


async def run_response_chain(
    handlers: Sequence[ResponseHandler], response: Optional[Response], ctx: Context
) -> Optional[Response]:
    """
    Runs every response handler in registration order.

    There is no short-circuit: each handler receives ``ctx.response`` as left
    by the previous one, and its return value is written back to
    ``ctx.response`` even when it is None.

    Args:
        handlers: The ordered response handlers.
        response: The upstream response, or None when the round trip failed.
        ctx: The per-call context.

    Returns:
        The final ``ctx.response``.

    Raises:
        Exception: Propagates any exception raised by a handler.
    """
    ctx.response = response
    for i, handler in enumerate(handlers):
        logger.debug(f"[{ctx.session}] Applying response handler {i + 1}/{len(handlers)}: {handler.name}")
        try:
            ctx.response = await handler.handle(ctx.response, ctx)
        except Exception as e:
            logger.error(f"[{ctx.session}] Error applying response handler {handler.name}: {e}", exc_info=True)
            raise
        if ctx.response is None:
            logger.debug(f"[{ctx.session}] Response handler {handler.name} returned no response")
    return ctx.response
