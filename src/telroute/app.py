"""FastAPI application for line routing and bulk import.

This is the main entry point for the routing API server.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .bulk_import.api import router as import_router
from .common.database import check_database_health
from .common.exceptions import TelrouteError
from .topology.api import router as topology_router
from .topology.api.dependencies import close_db_pool, get_optional_db_pool, init_db_pool
from .topology.api.errors import to_http_exception

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Handles startup and shutdown events:
    - Startup: Initialize database pool
    - Shutdown: Close database pool
    """
    logger.info("Starting Line Routing API...")

    try:
        await init_db_pool()
        logger.info("Database pool initialized")
    except Exception as e:
        logger.error(f"Failed to initialize database pool: {e}")
        raise

    yield

    logger.info("Shutting down Line Routing API...")
    await close_db_pool()
    logger.info("Database pool closed")


# Create FastAPI application
app = FastAPI(
    title="Telephone Line Routing API",
    description="""
    API for tracing phone lines through distribution equipment.

    ## Features

    - **Nodes**: Frames, slot devices, converters and sockets with their capacity
    - **Port Assignment**: Move a port from one line to another, keeping each line's path contiguous
    - **Frame Layouts**: Map grid cells to sets and open a set's terminals
    - **Bulk Import**: Preview, edit and commit phone lines or assets from Excel/CSV

    ## Workflow

    1. Create nodes and arrange Frame layouts
    2. Assign phone lines to ports along their route
    3. Follow a line's path and change history
    4. Import existing lines or assets in bulk
    """,
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS
cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "X-API-Key"],
)

# Include routers
app.include_router(topology_router)
app.include_router(import_router)


@app.exception_handler(TelrouteError)
async def service_error_handler(request: Request, exc: TelrouteError):
    """Service errors raised before a route body runs, e.g. from a dependency."""
    error = to_http_exception(exc)
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Telephone Line Routing API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health")
async def health():
    """Global health check, including the database pool."""
    database = await check_database_health(get_optional_db_pool())
    return {
        "status": "healthy" if database["healthy"] else "degraded",
        "database": database,
    }


# Entry point for running with uvicorn
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.telroute.app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
