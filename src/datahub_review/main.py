# src/datahub_review/main.py
"""Main entry point for the DataHub Review application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from datahub_review.api.v1 import (
    admin_actions_router,
    comments_router,
    submissions_router,
    system_router,
    validation_queue_router,
)
from datahub_review.core.errors import PreconditionFailed, ReviewError
from datahub_review.core.logging_config import configure_logging
from datahub_review.core.settings import settings
from datahub_review.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="DataHub Review API",
    description="Admin review workflow for DataHub submissions",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(submissions_router, prefix="/api/v1")
app.include_router(validation_queue_router, prefix="/api/v1")
app.include_router(comments_router, prefix="/api/v1")
app.include_router(admin_actions_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")


@app.exception_handler(ReviewError)
async def review_error_handler(request: Request, exc: ReviewError) -> JSONResponse:
    """Render workflow errors as ``{"detail", "kind", "submissionId"}``."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.kind, exc.message)
    body = ErrorResponse(detail=exc.message, kind=exc.kind, submission_id=exc.submission_id)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(by_alias=True))


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render malformed requests in the same shape as workflow errors."""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "invalid value")
        problems.append(f"{location}: {message}" if location else message)
    detail = "; ".join(problems) or "Invalid request"
    logger.info(
        "%s %s rejected (%s): %s", request.method, request.url.path, PreconditionFailed.kind, detail
    )
    body = ErrorResponse(detail=detail, kind=PreconditionFailed.kind)
    return JSONResponse(
        status_code=PreconditionFailed.status_code, content=body.model_dump(by_alias=True)
    )


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging()
    logger.info("%s %s starting", settings.app_name, settings.app_version)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Admin review workflow for DataHub submissions",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("datahub_review.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
