import logging
from typing import Optional

from httpx import Response

from httpipe.core.context import Context
from httpipe.core.handlers import ResponseHandler

logger = logging.getLogger(__name__)


class BodyReplaceHandler(ResponseHandler):
    """Replaces text in successful textual upstream bodies.

    Works on ``ctx.body``, which is what gets written to the client. Encoded
    bodies are decoded first and the Content-Encoding header is dropped.
    """

    def __init__(self, old: str, new: str):
        self.old = old
        self.new = new

    async def handle(self, response: Optional[Response], ctx: Context) -> Optional[Response]:
        if response is None or not 200 <= response.status_code < 300:
            return response
        content_type = response.headers.get("content-type", "").lower()
        if not (content_type.startswith("text/") or "json" in content_type):
            return response

        try:
            text = ctx.decoded_body().decode(response.encoding or "utf-8")
        except (ValueError, LookupError) as e:
            # Undecodable bodies are passed through untouched.
            logger.warning(f"[{ctx.session}] {self.name} could not decode body: {e}")
            return response

        if self.old not in text:
            return response
        ctx.body = text.replace(self.old, self.new).encode(response.encoding or "utf-8")
        if "content-encoding" in response.headers:
            del response.headers["content-encoding"]
        return response

    def __repr__(self) -> str:
        return f"BodyReplaceHandler(old={self.old!r}, new={self.new!r})"
