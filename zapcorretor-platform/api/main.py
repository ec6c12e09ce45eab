"""
ZapCorretor WhatsApp API - Main Application.

FastAPI application with CORS enabled for the web front-end.

Environment variables:
- LOG_LEVEL: root log level (default INFO)
- CORS_ORIGINS: comma-separated allowed origins (default *)
"""

import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import __version__
from domain.errors import InstanceError, InvalidRequestError, UpstreamFailureError

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title="ZapCorretor WhatsApp API",
    description="Lifecycle of the WhatsApp instances used by tenant admins and agents",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

cors_origins = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "x-user-id", "apikey", "content-type"],
)


@app.exception_handler(InstanceError)
async def instance_error_handler(request: Request, exc: InstanceError) -> JSONResponse:
    """Render lifecycle failures as `{"error": ...}` with the failure's status."""
    content = {"error": exc.message}
    if isinstance(exc, UpstreamFailureError):
        content["upstream_status"] = exc.upstream_status
        content["upstream_body"] = exc.body

    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.status_code, exc.message)

    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed input gets the same `{"error": ...}` shape, with status 422."""
    errors = exc.errors()
    if errors:
        location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        message = errors[0].get("msg", "Invalid request")
        if location:
            message = f"{location}: {message}"
    else:
        message = "Invalid request"
    return await instance_error_handler(request, InvalidRequestError(message))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "zapcorretor-whatsapp-api"
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "ZapCorretor WhatsApp API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import instance

app.include_router(instance.router, prefix="/api/v1", tags=["WhatsApp Instance"])
