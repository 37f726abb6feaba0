from typing import Iterable, Mapping, Optional

from httpx import Request

from httpipe.core.context import Context
from httpipe.core.handlers import RequestHandler, RequestResult


class HeaderRewriteHandler(RequestHandler):
    """Sets and removes request headers before the request goes upstream. Never short-circuits."""

    def __init__(self, set_headers: Optional[Mapping[str, str]] = None, remove_headers: Iterable[str] = ()):
        self.set_headers = dict(set_headers or {})
        self.remove_headers = [name.lower() for name in remove_headers]

    async def handle(self, request: Request, ctx: Context) -> RequestResult:
        for name in self.remove_headers:
            if name in request.headers:
                del request.headers[name]
        for name, value in self.set_headers.items():
            request.headers[name] = value
        return request, None
