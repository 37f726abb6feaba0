# Builds synthetic responses for handlers that short-circuit or render errors.

from httpx import Request, Response


def new_response(request: Request, content_type: str, status: int, body: str) -> Response:
    """Creates a ready-to-send response.

    The response carries the given Content-Type, a Content-Length computed from
    the UTF-8 encoded body, and is bound to ``request``.

    Args:
        request: The request this response answers.
        content_type: Value for the Content-Type header.
        status: HTTP status code.
        body: Response text.

    Returns:
        An httpx.Response whose content is already loaded.
    """
    content = body.encode("utf-8")
    return Response(
        status_code=status,
        headers={"Content-Type": content_type},
        content=content,
        request=request,
    )
