"""
FastAPI Backend for the video dashboard media services
"""

import logging
import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import time

# Configure structured logging
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer()
    ],
    wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=False,
)

logger = structlog.get_logger()

# Import settings
from config import settings
from schemas import ErrorResponse


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("application_startup", message="FastAPI application starting up")

    # Validate configuration
    try:
        settings.validate_storage_config()
        logger.info(
            "config_validated",
            supabase_url=settings.SUPABASE_URL,
            signed_url_expiry=settings.SIGNED_URL_EXPIRY
        )
    except ValueError as e:
        logger.error("config_validation_failed", error=str(e))
        raise

    yield

    logger.info("application_shutdown", message="FastAPI application shutting down")


# Initialize FastAPI app
app = FastAPI(
    title="Video Dashboard Media API",
    description="Backend API for refreshing expiring media links on scenes and projects",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.DEBUG,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def bind_request_context(request: Request, call_next):
    """Tag every log line emitted while serving a request with its route."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(method=request.method, path=request.url.path)
    start_time = time.time()

    response = await call_next(request)

    logger.info(
        "request_completed",
        status_code=response.status_code,
        process_time=f"{time.time() - start_time:.3f}s"
    )
    return response


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Storage failures are absorbed by the refresher; anything reaching here is a bug."""
    logger.exception("unhandled_exception", exc_type=type(exc).__name__)

    body = ErrorResponse(
        error="InternalServerError",
        message=str(exc) if app.debug else "An unexpected error occurred",
    )
    return JSONResponse(status_code=500, content=body.model_dump())


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint

    Returns:
        dict: Health status of the API
    """
    return {
        "status": "healthy",
        "service": "video-dashboard-media",
        "version": "1.0.0"
    }


# Include routers
from routers import media

app.include_router(media.router)


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information"""
    return {
        "message": "Video Dashboard Media API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "refresh_scenes": "/api/media/refresh-scenes",
            "refresh_thumbnails": "/api/media/refresh-thumbnails"
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
