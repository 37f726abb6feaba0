"""httpipe - a reverse proxy with pluggable request and response handler chains."""

from httpipe.core.context import Context
from httpipe.core.handlers import (
    RequestHandler,
    RequestWrapper,
    ResponseHandler,
    ResponseWrapper,
)
from httpipe.core.response_builder import new_response
from httpipe.exceptions import EmptyResponseError, HandlerError, HttpipeError, UpstreamConfigurationError
from httpipe.proxy.orchestration import Server

__all__ = [
    "Context",
    "EmptyResponseError",
    "HandlerError",
    "HttpipeError",
    "RequestHandler",
    "RequestWrapper",
    "ResponseHandler",
    "ResponseWrapper",
    "Server",
    "UpstreamConfigurationError",
    "new_response",
]
__version__ = "0.1.0"
