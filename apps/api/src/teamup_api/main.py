"""TeamUp API - Main Application"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from teamup_core import (
    FetchFailed,
    IdentityMismatch,
    InvalidProfileUrl,
    NoEvidence,
    SecurityContextChanged,
    UserNotFound,
    VerificationError,
)
from teamup_api.config import settings
from teamup_api.routers import certificates, health, skill_verification

logger = structlog.get_logger()

ERROR_STATUS_CODES: dict[type[VerificationError], int] = {
    UserNotFound: 404,
    InvalidProfileUrl: 422,
    IdentityMismatch: 403,
    SecurityContextChanged: 401,
    FetchFailed: 502,
    NoEvidence: 422,
}


def status_code_for(exc: VerificationError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status_code
    return 400


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log startup and shutdown."""
    logger.info("Starting TeamUp API", environment=settings.ENVIRONMENT)
    yield
    logger.info("Shutting down TeamUp API")


app = FastAPI(
    title="TeamUp API",
    description="Skill verification for TeamUp profiles",
    version="0.1.0",
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT == "development" else None,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(certificates.router, prefix="/api", tags=["certificates"])
app.include_router(
    skill_verification.router,
    prefix="/api/v1/skill-verification",
    tags=["skill-verification"],
)


@app.exception_handler(VerificationError)
async def verification_error_handler(request: Request, exc: VerificationError) -> JSONResponse:
    """Map verification failures to client-facing errors."""
    status_code = status_code_for(exc)
    logger.warning(
        "Verification failed",
        code=exc.code,
        status_code=status_code,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": exc.code,
                "message": exc.reason,
                "retryable": exc.retryable,
            }
        },
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Turn anything unexpected into a plain 500 without leaking details."""
    logger.error(
        "Unhandled exception",
        error=str(exc),
        path=request.url.path,
        method=request.method,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_error",
                "message": "An internal error occurred",
            }
        },
    )


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": "TeamUp API",
        "version": "0.1.0",
        "status": "running",
    }
