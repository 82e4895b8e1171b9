"""
Prover Service - Main Application
=================================

FastAPI application for transition proof generation and verification.

Version: 0.1.0
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from services.prover.routes import proofs, verification
from zkarena.circuits import registered_circuits
from zkarena.config import settings
from zkarena.logging import bind_context, clear_context, get_logger, setup_logging
from zkarena.models import HealthResponse
from zkarena.proofs import get_toolkit


# Setup logging
setup_logging(
    log_level=settings.log_level.value,
    json_logs=settings.is_production,
    service_name="prover",
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Application lifespan manager."""
    logger.info(
        "prover_service_starting",
        environment=settings.environment.value,
        port=settings.ports.prover,
        backend=settings.zk.backend.value,
    )

    # Startup
    try:
        toolkit = get_toolkit()
        logger.info(
            "verification_keys_loaded",
            registered=len(toolkit.registry.circuits()),
            build_dir=str(settings.zk.build_dir),
        )
    except Exception as e:
        logger.error("startup_failed", error=str(e))
        raise

    yield

    # Shutdown
    logger.info("prover_service_shutting_down")


# Create FastAPI application
app = FastAPI(
    title="ZK Arena Prover Service",
    description="Transition proof generation and verification for hidden-state games",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins_list,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def bind_request_context(request: Request, call_next: Any) -> Any:
    """Tag every log entry of a request with its path."""
    clear_context()
    bind_context(path=request.url.path)
    return await call_next(request)


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """
    Service health check.

    Degraded while any circuit lacks a registered verification key.
    """
    toolkit = get_toolkit()
    circuits = registered_circuits()
    missing = [c.value for c in circuits if c not in toolkit.registry]

    components: dict[str, dict[str, Any]] = {
        "keys": {
            "status": "healthy" if not missing else "degraded",
            "registered": len(circuits) - len(missing),
            "missing": missing,
        },
        "backend": {
            "status": "healthy",
            "protocol": toolkit.prover.backend.protocol,
        },
    }

    all_healthy = all(c.get("status") == "healthy" for c in components.values())

    return HealthResponse(
        status="healthy" if all_healthy else "degraded",
        service="prover",
        version="0.1.0",
        components=components,
    )


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": "ZK Arena Prover Service",
        "version": "0.1.0",
        "docs": "/docs",
    }


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(
    proofs.router,
    prefix="/api/v1/proofs",
    tags=["Proofs"],
)

app.include_router(
    verification.router,
    prefix="/api/v1/verify",
    tags=["Verification"],
)


# ============================================================================
# Error Handlers
# ============================================================================


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Any, exc: HTTPException) -> Any:
    """Handle HTTP exceptions."""
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail,
            "status_code": exc.status_code,
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Any, exc: Exception) -> Any:
    """Handle unexpected exceptions."""
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "Internal server error",
            "status_code": 500,
        },
    )


# ============================================================================
# Run with Uvicorn
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.prover.main:app",
        host="0.0.0.0",
        port=settings.ports.prover,
        reload=settings.debug,
        log_level=settings.log_level.value.lower(),
    )
