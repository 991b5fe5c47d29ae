"""
Regional Franchise Platform - FastAPI Application Entry Point

This is the main entry point for the FastAPI application.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from franchise import __version__
from franchise.config import settings
from franchise.database import init_db, close_db
from franchise.utils.error_handling import setup_exception_handlers

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info(f"Starting {settings.app_name}...")
    logger.info(f"Environment: {settings.app_env}")

    # Initialize database (dev only - use migrations in production)
    if settings.is_development:
        await init_db()
        logger.info("Database tables initialized")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")
    await close_db()
    logger.info("Database connections closed")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Territory governance, job allocation and licensee revenue settlement",
    version=__version__,
    docs_url="/api/docs" if settings.is_development else None,
    redoc_url="/api/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)


# ===========================================
# API ROUTES
# ===========================================

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__,
    }


@app.get("/api/v1")
async def api_root():
    """API v1 root endpoint."""
    return {
        "message": f"Welcome to {settings.app_name} API v1",
        "endpoints": {
            "licensees": "/api/v1/licensees",
            "territories": "/api/v1/territories",
            "consultants": "/api/v1/consultants",
            "jobs": "/api/v1/jobs",
            "revenue": "/api/v1/revenue",
            "settlements": "/api/v1/settlements",
            "audit_logs": "/api/v1/audit-logs",
        }
    }


# ===========================================
# INCLUDE ROUTERS
# ===========================================

from franchise.routers import (  # noqa: E402
    licensees, territories, consultants, jobs,
    revenue, settlements, audit_logs,
)

app.include_router(licensees.router, prefix="/api/v1")
app.include_router(territories.router, prefix="/api/v1")
app.include_router(consultants.router, prefix="/api/v1")
app.include_router(jobs.router, prefix="/api/v1")
app.include_router(revenue.router, prefix="/api/v1")
app.include_router(settlements.router, prefix="/api/v1")
app.include_router(audit_logs.router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
    )
