"""
Leave Portal - FastAPI Application Entry Point.

This is the main application module that:
1. Initializes the FastAPI app with CORS middleware
2. Sets up structured JSON logging
3. Implements request ID middleware (X-Request-ID header)
4. Renders service errors as the standard failure envelope
5. Registers all API route handlers and the health check

The application follows a modular architecture:
- routes/: API endpoint handlers
- models/: SQLAlchemy ORM models
- services/: Business logic (leaves, tests, scoring, remediation, generation)
- security.py: Bearer JWT identity gate and role guard
- logging_config.py: Structured logging configuration
- database.py: Database connection management
"""

import time
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from leave_portal.logging_config import (
    setup_logging, get_logger, log_with_context,
    request_id_var, generate_request_id
)
from leave_portal.errors import PortalError
from leave_portal.routes import leaves, tests, results
from leave_portal.database import DATABASE_URL, create_tables

# Import all models so they are registered with Base.metadata
import leave_portal.models  # noqa: F401

# ──────────────────────────────────────────────────────────────
# Initialize structured logging BEFORE anything else
# ──────────────────────────────────────────────────────────────
setup_logging()
logger = get_logger("http")

# Auto-create tables for SQLite local development
if DATABASE_URL.startswith("sqlite"):
    logger.info("Using SQLite — creating tables directly")
    create_tables()

# ──────────────────────────────────────────────────────────────
# Create FastAPI application
# ──────────────────────────────────────────────────────────────
app = FastAPI(
    title="Leave Portal",
    description=(
        "Academic leave management: students apply for leave, admins attach "
        "a test to each request, and the leave is approved or rejected from "
        "the scored submission, with one reevaluation and one retest per leave."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],                # Allow all origins for development
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"]
)


# ──────────────────────────────────────────────────────────────
# Request ID Middleware
#
# Generates a unique UUID per incoming request, stores it in a
# context variable for every log entry and returns it in the
# X-Request-ID response header.
# ──────────────────────────────────────────────────────────────
@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    req_id = generate_request_id()
    request_id_var.set(req_id)
    start_time = time.time()

    log_with_context(logger, "INFO",
        f"Request started: {request.method} {request.url.path}",
        context={"request_id": req_id},
        extra_data={
            "ip": request.client.host if request.client else "unknown",
            "user_agent": request.headers.get("user-agent", ""),
            "query_params": dict(request.query_params)
        })

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    response.headers["X-Request-ID"] = req_id

    log_with_context(logger, "INFO",
        f"Request completed: {request.method} {request.url.path} → {response.status_code}",
        context={"request_id": req_id},
        extra_data={
            "duration_ms": round(duration_ms, 2),
            "status_code": response.status_code
        })

    return response


# ──────────────────────────────────────────────────────────────
# Exception handlers
# ──────────────────────────────────────────────────────────────
@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    level = "ERROR" if exc.status_code >= 500 else "WARNING"
    log_with_context(logger, level,
        f"{request.method} {request.url.path} failed: {exc.message}",
        context={"request_id": request_id_var.get()},
        extra_data={"error": exc.kind, "status_code": exc.status_code})
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))
    log_with_context(logger, "WARNING",
        f"{request.method} {request.url.path} rejected: invalid request",
        context={"request_id": request_id_var.get()},
        extra_data={"errors": messages})
    return JSONResponse(status_code=400, content={
        "success": False,
        "error": "validation_error",
        "message": "; ".join(messages) or "Invalid request",
    })


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log_with_context(logger, "ERROR",
        f"Unhandled error on {request.method} {request.url.path}: {exc}",
        context={"request_id": request_id_var.get()},
        exc_info=True)
    return JSONResponse(status_code=500, content={
        "success": False,
        "error": "internal_error",
        "message": "Internal server error",
    })


# ──────────────────────────────────────────────────────────────
# Register API routes
# ──────────────────────────────────────────────────────────────
app.include_router(leaves.router, tags=["Leaves"])
app.include_router(tests.router, tags=["Tests"])
app.include_router(results.router, tags=["Results"])


@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint for Docker health checks and monitoring."""
    return {"status": "healthy", "service": "leave-portal-backend", "version": "1.0.0"}


@app.get("/", tags=["Root"])
def root():
    """Root endpoint with API information."""
    return {
        "service": "Leave Portal",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "apply_leave": "POST /api/leaves",
            "my_leaves": "GET /api/leaves/my-leaves",
            "leave_status": "PUT /api/leaves/{id}/status",
            "create_test": "POST /api/tests",
            "auto_generate": "POST /api/tests/auto-generate",
            "submit": "POST /api/tests/{id}/submit",
            "reevaluate": "POST /api/tests/{id}/reevaluate",
            "retest": "POST /api/tests/{id}/retest/request",
            "results": "GET /api/results"
        }
    }
