"""
Sales Intake API - Main Application.

FastAPI application with CORS enabled for frontend communication. Workflow
errors raised by the services are mapped to HTTP status codes here.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import __version__
from domain.errors import (
    AmbiguousSaleError,
    RemoteUnavailable,
    SaleNotFoundError,
    StoreCorruptedError,
    ValidationFailure,
    WorkflowGuardFailure,
)
from services.config import load_config

logging.basicConfig(
    level=load_config().log_level,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

# Guard failures caused by who the caller is, rather than the sale's state.
_FORBIDDEN_GUARD_CODES = frozenset({"capability", "ownership"})

# Create FastAPI application
app = FastAPI(
    title="Sales Intake API",
    description="REST API for capturing, reviewing and synchronizing customer enrollments",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS - Allow all origins for development
# TODO: Restrict origins once the seller portal has a fixed domain
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, error: str, detail: str, **extra) -> JSONResponse:
    body = {"error": error, "detail": detail, "status_code": status_code}
    body.update(extra)
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(ValidationFailure)
async def handle_validation_failure(request: Request, exc: ValidationFailure):
    return _error(422, "validation_failed", str(exc), fields=exc.errors)


@app.exception_handler(WorkflowGuardFailure)
async def handle_guard_failure(request: Request, exc: WorkflowGuardFailure):
    status_code = 403 if exc.code in _FORBIDDEN_GUARD_CODES else 409
    return _error(status_code, exc.code, str(exc))


@app.exception_handler(SaleNotFoundError)
async def handle_not_found(request: Request, exc: SaleNotFoundError):
    return _error(404, "not_found", str(exc))


@app.exception_handler(AmbiguousSaleError)
async def handle_ambiguous(request: Request, exc: AmbiguousSaleError):
    return _error(409, "ambiguous_sale", str(exc))


@app.exception_handler(RemoteUnavailable)
async def handle_remote_unavailable(request: Request, exc: RemoteUnavailable):
    return _error(503, "remote_unavailable", str(exc))


@app.exception_handler(StoreCorruptedError)
async def handle_store_corrupted(request: Request, exc: StoreCorruptedError):
    logger.error("Refusing request on unreadable partition", extra={"path": request.url.path, "error": str(exc)})
    return _error(500, "store_corrupted", str(exc))


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "sales-intake-api"
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Sales Intake API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import dashboard, drafts, sales, sync

app.include_router(drafts.router, prefix="/api/v1", tags=["Drafts"])
app.include_router(sales.router, prefix="/api/v1", tags=["Sales"])
app.include_router(dashboard.router, prefix="/api/v1", tags=["Dashboard"])
app.include_router(sync.router, prefix="/api/v1", tags=["Sync"])
