from typing import Optional

from httpx import Response

from httpipe.core.context import Context
from httpipe.core.handlers import ResponseHandler
from httpipe.core.response_builder import new_response

ERROR_PAGE = """<html>
<head><title>{status} Upstream Error</title></head>
<body><h1>Upstream unavailable</h1><p>Session {session}: {error_type}</p></body>
</html>
"""


class ErrorPageHandler(ResponseHandler):
    """Turns a failed round trip into an HTML error page.

    The error text itself is not shown, only its type.
    """

    def __init__(self, status: int = 502):
        self.status = status

    async def handle(self, response: Optional[Response], ctx: Context) -> Optional[Response]:
        if response is not None or ctx.error is None:
            return response
        body = ERROR_PAGE.format(status=self.status, session=ctx.session, error_type=ctx.error.__class__.__name__)
        return new_response(ctx.request, "text/html; charset=utf-8", self.status, body)
