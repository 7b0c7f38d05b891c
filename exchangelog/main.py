"""
FastAPI Application Entry Point

This module initializes the demo FastAPI application and configures:
- The log sink (rotating file + console)
- Exchange logging middleware
- API routes

Design Decisions:
- The sink is created once per application and closed on shutdown
- create_app() accepts a sink and registry so tests can inject their own
"""

from typing import Optional

import uvicorn
from fastapi import APIRouter, FastAPI

from exchangelog import __version__
from exchangelog.api import endpoints
from exchangelog.core.handlers import HandlerRegistry, handlers
from exchangelog.core.log_sink import LogSink
from exchangelog.core.setting import settings
from exchangelog.middleware.logging import add_logging_middleware


health_router = APIRouter(tags=["Health"])


@health_router.get("/")
@handlers.register("Root")
async def root():
    """Root endpoint for health checks."""
    return {
        "message": settings.SERVICE_NAME,
        "version": __version__,
        "docs": "/docs"
    }


@health_router.get("/health")
@handlers.register("HealthCheck")
async def health_check():
    return {"status": "healthy"}


def create_app(
    sink: Optional[LogSink] = None,
    registry: Optional[HandlerRegistry] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        sink: Log sink to write exchanges to (built from settings when omitted)
        registry: Handler registry (defaults to the shared one every
            endpoint of this module and exchangelog.api registers with)
    """
    sink = sink if sink is not None else LogSink.from_settings(settings)
    registry = registry if registry is not None else handlers

    app = FastAPI(
        title=settings.SERVICE_NAME,
        description="Demo service whose every request is written to the exchange log",
        version=__version__,
    )
    app.state.log_sink = sink

    add_logging_middleware(app, sink, registry)

    app.include_router(health_router)
    app.include_router(endpoints.router, tags=["Demo"])

    @app.on_event("shutdown")
    async def shutdown_event():
        """Flush and close the log sink."""
        sink.close()

    return app


app = create_app()


def run() -> None:
    """Serve the module-level app with uvicorn."""
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
