"""FastAPI application entry point.

Receives object store notifications and drain triggers and hands them to
the arq worker. Run with:
    uvicorn index_sync.main:app
"""

import logging
import traceback
from contextlib import asynccontextmanager

from arq.connections import create_pool
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import __version__
from .config import settings
from .routers import events_router, health_router
from .services.index_writer import build_index_writer
from .services.retry_queue import RetryQueue
from .worker import parse_redis_url

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown tasks."""
    # Startup
    logger.info("Connecting to arq job queue...")
    app.state.arq_pool = await create_pool(
        parse_redis_url(settings.redis_url),
        default_queue_name=settings.arq_queue_name,
    )
    logger.info("arq pool ready")

    app.state.retry_queue = RetryQueue()
    await app.state.retry_queue.connect()
    app.state.index_writer = build_index_writer()

    yield

    # Shutdown
    logger.info("Closing clients...")
    await app.state.index_writer.close()
    await app.state.retry_queue.disconnect()
    await app.state.arq_pool.close()
    logger.info("Clients closed")


# Create FastAPI application
app = FastAPI(
    title="Index Sync",
    description="Keeps the current and legacy search indexes in sync with the object store",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# Global exception handler to log errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log all unhandled exceptions with full traceback."""
    logger.error(f"Unhandled exception on {request.method} {request.url}:")
    logger.error(f"Exception type: {type(exc).__name__}")
    logger.error(f"Traceback:\n{traceback.format_exc()}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Include API routers
app.include_router(events_router)
app.include_router(health_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "status": "healthy",
        "service": "index-sync",
        "version": __version__,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "index_sync.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
