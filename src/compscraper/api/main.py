"""
FastAPI Main Application

Comparable scrape pipeline REST API.
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI
from sqlalchemy import text
from sqlalchemy.orm import Session

from src import __version__
from src.compscraper.api.dependencies import get_db, shutdown_job_service
from src.compscraper.api.routers import comparables, jobs
from src.compscraper.api.schemas import HealthCheck
from src.compscraper.db.session import close_connections
from src.compscraper.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("api_started", version=__version__)
    yield
    shutdown_job_service()
    close_connections()
    logger.info("api_stopped")


# Create FastAPI app
app = FastAPI(
    title="Comparable Scrape API",
    description="Create and track comparable property scrape jobs and search stored comparables",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Include routers
app.include_router(jobs.router)
app.include_router(comparables.router)


@app.get("/health", response_model=HealthCheck, tags=["health"])
def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint.

    Returns:
        Health status with database connectivity check
    """
    try:
        db.execute(text("SELECT 1"))
        database_status = "connected"
    except Exception as e:
        database_status = f"error: {str(e)}"

    return HealthCheck(
        status="healthy" if database_status == "connected" else "degraded",
        version=__version__,
        database=database_status,
        timestamp=datetime.now(timezone.utc),
    )


@app.get("/", tags=["root"])
def root():
    """
    Root endpoint.

    Returns:
        API information
    """
    return {
        "name": "Comparable Scrape API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.compscraper.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
