from typing import Iterable

from httpx import Request

from httpipe.core.context import Context
from httpipe.core.handlers import RequestHandler, RequestResult
from httpipe.core.response_builder import new_response


class BlockPathHandler(RequestHandler):
    """Answers requests under any of the given path prefixes without contacting the upstream."""

    def __init__(self, prefixes: Iterable[str], status: int = 403, body: str = "Forbidden"):
        self.prefixes = tuple(prefixes)
        self.status = status
        self.body = body

    async def handle(self, request: Request, ctx: Context) -> RequestResult:
        if request.url.path.startswith(self.prefixes):
            return request, new_response(request, "text/plain; charset=utf-8", self.status, self.body)
        return request, None

    def __repr__(self) -> str:
        return f"BlockPathHandler(prefixes={list(self.prefixes)}, status={self.status})"
