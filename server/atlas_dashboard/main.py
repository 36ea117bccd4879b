"""RED Atlas Dashboard FastAPI Application Entry Point."""

import asyncio
import time
import uuid
from contextlib import asynccontextmanager, suppress
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger

from . import __version__
from .config import Settings, get_settings
from .log import configure_logging
from .routers import (
    atlas_router,
    auth_router,
    cache_router,
    diagnostics_router,
    health_router,
    metrics_router,
    screens_router,
)
from .security import client_ip, ip_allow_list, require_session
from .services.cache import Cache, run_sweeper
from .services.dashboard import Dashboard, Providers, build_providers


def create_app(
    settings: Optional[Settings] = None,
    providers: Optional[Providers] = None,
    cache: Optional[Cache] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings)

    cache = cache or Cache(
        grace_factor=settings.cache_grace_factor,
        single_flight=settings.cache_single_flight,
    )
    providers = providers or build_providers(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sweeper = asyncio.create_task(run_sweeper(cache, settings.cache_sweep_interval))
        logger.info("Dashboard started (timezone {})", settings.dashboard_timezone)
        try:
            yield
        finally:
            sweeper.cancel()
            with suppress(asyncio.CancelledError):
                await sweeper

    app = FastAPI(
        title="RED Atlas Dashboard",
        description="Office dashboard for RED Atlas business, traffic and ads metrics",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.cache = cache
    app.state.providers = providers
    app.state.dashboard = Dashboard(settings, cache, providers)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.middleware("http")(ip_allow_list)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request.error method={} path={} request_id={}",
                request.method, request.url.path, request_id,
            )
            raise
        latency_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            "request.completed method={} path={} status={} latency_ms={} client_ip={} request_id={}",
            request.method, request.url.path, response.status_code, latency_ms,
            client_ip(request, settings.trust_forwarded_for), request_id,
        )
        response.headers["X-Request-ID"] = request_id
        return response

    # Include routers with /api prefix
    gated = [Depends(require_session)]
    app.include_router(health_router, prefix="/api")
    app.include_router(auth_router, prefix="/api")
    app.include_router(metrics_router, prefix="/api", dependencies=gated)
    app.include_router(atlas_router, prefix="/api", dependencies=gated)
    app.include_router(screens_router, prefix="/api", dependencies=gated)
    app.include_router(cache_router, prefix="/api", dependencies=gated)
    app.include_router(diagnostics_router, prefix="/api", dependencies=gated)

    # Serve the slideshow client build
    client_dist = settings.client_dist
    if client_dist.exists():
        if (client_dist / "assets").exists():
            app.mount("/assets", StaticFiles(directory=client_dist / "assets"), name="assets")

        @app.get("/", include_in_schema=False)
        async def serve_index():
            """Serve the index.html for the root path."""
            return FileResponse(client_dist / "index.html")

        @app.get("/{path:path}", include_in_schema=False)
        async def serve_spa(path: str):
            """Serve the SPA for any non-API routes."""
            if path == "api" or path.startswith("api/"):
                raise HTTPException(status_code=404, detail="Not Found")
            file_path = (client_dist / path).resolve()
            if client_dist.resolve() in file_path.parents and file_path.is_file():
                return FileResponse(file_path)
            # Otherwise serve index.html for SPA routing
            return FileResponse(client_dist / "index.html")

    return app


app = create_app()


def run():
    """Run the server."""
    settings = get_settings()
    logger.info("RED Atlas Dashboard running at http://localhost:{}", settings.port)
    uvicorn.run(
        "atlas_dashboard.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
