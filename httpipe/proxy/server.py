import logging

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from httpipe.exceptions import HttpipeError
from httpipe.proxy.orchestration import Server

logger = logging.getLogger(__name__)

router = APIRouter()

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def get_server(request: Request) -> Server:
    """Returns the Server stored on the application state by the lifespan."""
    server = getattr(request.app.state, "pipe", None)
    if server is None:
        raise RuntimeError("No proxy Server configured on app.state.pipe")
    return server


@router.api_route("/{full_path:path}", methods=PROXY_METHODS, include_in_schema=False)
async def proxy_endpoint(request: Request, full_path: str) -> Response:
    """
    Catch-all proxy endpoint.
    Every method and path not matched by another route is relayed upstream.
    """
    client_ip = request.client.host if request.client else "unknown"
    logger.info(
        "Proxy request received",
        extra={
            "method": request.method,
            "path": request.url.path,
            "client_ip": client_ip,
            "headers_count": len(request.headers),
        },
    )
    server = get_server(request)
    try:
        response = await server.serve_http(request)
    except HttpipeError as e:
        logger.warning(f"Proxy error for {request.method} {request.url.path}: {e}")
        return JSONResponse(
            status_code=e.status_code or 500,
            content={"detail": e.detail or str(e), "session": e.session},
        )

    logger.info(
        "Proxy response sent",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "client_ip": client_ip,
        },
    )
    return response
