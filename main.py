import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from snaplink.config import settings
from snaplink.database.connection import engine, Base
from snaplink.dependencies import get_aggregator
from snaplink.exceptions import SnapLinkError
from snaplink.api.v1 import links, feedback, redirect

# Import models to ensure they're registered with Base
from snaplink.models import Link, LinkAttribute, CounterRow, Feedback  # noqa: F401

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("snaplink")


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("%s %s started (%s)", settings.app_name, settings.app_version, settings.environment)
    yield
    # Only drain the aggregator if a request actually created it
    if get_aggregator.cache_info().currsize:
        get_aggregator().shutdown(grace_seconds=settings.aggregator_shutdown_grace_seconds)


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="URL shortener with click analytics",
    debug=settings.debug,
    lifespan=lifespan,
)


@app.exception_handler(SnapLinkError)
async def snaplink_error_handler(request: Request, exc: SnapLinkError):
    """Render every SnapLink error as {status, message}; details stay in the logs"""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %r", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": exc.status_code, "message": exc.message},
    )


@app.get("/")
def read_root():
    """Root endpoint with API information"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "environment": settings.environment}


######## Include routers
app.include_router(links.router, prefix="/api/v1")
app.include_router(feedback.router, prefix="/api/v1")
app.include_router(redirect.router)
