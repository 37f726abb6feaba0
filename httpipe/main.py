import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from httpipe.core.logging import setup_logging
from httpipe.handlers import BlockPathHandler, ErrorPageHandler
from httpipe.proxy.orchestration import Server
from httpipe.proxy.server import router as proxy_router
from httpipe.settings import Settings

setup_logging()


logger = logging.getLogger(__name__)


def build_server(settings: Settings) -> Server:
    """Builds a Server from settings, installing the bundled handlers they enable.

    Raises:
        ValueError: If UPSTREAM_URL is missing or invalid.
    """
    upstream = settings.get_upstream_url()
    if not upstream:
        raise ValueError("UPSTREAM_URL is not set")
    server = Server(
        upstream,
        timeout=settings.get_upstream_timeout(),
        trust_env=settings.get_upstream_trust_env(),
    )
    blocked = settings.get_blocked_path_prefixes()
    if blocked:
        server.add_request_handler(BlockPathHandler(blocked))
    if settings.get_error_page_enabled():
        server.add_response_handler(ErrorPageHandler())
    return server


def create_app(server: Optional[Server] = None) -> FastAPI:
    """Creates the proxy application.

    Args:
        server: A preconfigured Server. When omitted, one is built from
            Settings during startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Builds (if needed) and tears down the proxy Server.

        Raises:
            RuntimeError: If the Server cannot be built from settings.
        """
        logger.info("Application startup sequence initiated.")
        if app.state.pipe is None:
            try:
                app.state.pipe = build_server(Settings())
            except Exception as init_exc:
                logger.critical(f"Fatal error during proxy initialization: {init_exc}", exc_info=True)
                raise RuntimeError(f"Application startup failed: {init_exc}") from init_exc
        logger.info(f"Proxying to {app.state.pipe.upstream}")

        yield

        logger.info("Application shutdown sequence initiated.")
        await app.state.pipe.aclose()
        logger.info("Upstream HTTP client closed.")

    app = FastAPI(
        title="httpipe",
        description="A reverse proxy with pluggable request and response handlers.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.pipe = server

    @app.get("/healthz", tags=["General"], status_code=200)
    async def health_check():
        """Liveness probe. Never proxied."""
        return {"status": "ok"}

    app.include_router(proxy_router)
    return app


app = create_app()

# --- Run with Uvicorn (for local development) --- #

if __name__ == "__main__":
    import uvicorn

    dev_settings = Settings()
    uvicorn.run(
        "httpipe.main:app",
        host=dev_settings.get_app_host(),
        port=dev_settings.get_app_port(),
        reload=dev_settings.get_app_reload(),
        log_level=dev_settings.get_log_level().lower(),
    )
