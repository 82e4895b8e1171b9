"""
Ledger Service - Main Application
=================================

FastAPI application for the authoritative game session ledger.

Version: 0.1.0
"""

import asyncio
from contextlib import asynccontextmanager, suppress
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from services.ledger.routes import sessions
from zkarena.config import settings
from zkarena.ledger.machine import SessionStateMachine, get_state_machine
from zkarena.logging import bind_context, clear_context, get_logger, setup_logging
from zkarena.models import HealthResponse


# Setup logging
setup_logging(
    log_level=settings.log_level.value,
    json_logs=settings.is_production,
    service_name="ledger",
)

logger = get_logger(__name__)


async def expiry_loop(machine: SessionStateMachine, interval: float) -> None:
    """Abandon idle sessions and drop finished ones every `interval` seconds."""
    while True:
        await asyncio.sleep(interval)
        try:
            expired = await machine.expire_inactive()
            pruned = await machine.prune_finished()
        except Exception as e:
            logger.error("expiry_sweep_failed", error=str(e), error_type=type(e).__name__)
            continue
        if expired or pruned:
            logger.info("expiry_sweep_completed", expired=len(expired), pruned=len(pruned))


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Application lifespan manager."""
    logger.info(
        "ledger_service_starting",
        environment=settings.environment.value,
        port=settings.ports.ledger,
        inactivity_timeout_seconds=settings.ledger.inactivity_timeout_seconds,
    )

    # Startup
    try:
        machine = get_state_machine()
        logger.info(
            "verification_keys_loaded",
            registered=len(machine.verifier.registry.circuits()),
        )
    except Exception as e:
        logger.error("startup_failed", error=str(e))
        raise

    sweeper = asyncio.create_task(expiry_loop(machine, settings.ledger.expiry_sweep_seconds))

    yield

    # Shutdown
    logger.info("ledger_service_shutting_down")
    sweeper.cancel()
    with suppress(asyncio.CancelledError):
        await sweeper


# Create FastAPI application
app = FastAPI(
    title="ZK Arena Ledger Service",
    description="Session state machine for proof-gated two-party games",
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
    """Tag every log entry of a request with its path and caller."""
    clear_context()
    bind_context(path=request.url.path, caller=request.headers.get("X-Participant-Id"))
    return await call_next(request)


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """
    Service health check.

    Returns session store statistics and key registry status.
    """
    machine = get_state_machine()
    components: dict[str, dict[str, Any]] = {}

    components["store"] = await machine.store.health_check()

    registered = machine.verifier.registry.circuits()
    components["keys"] = {
        "status": "healthy" if registered else "degraded",
        "registered": len(registered),
    }

    all_healthy = all(c.get("status") == "healthy" for c in components.values())

    return HealthResponse(
        status="healthy" if all_healthy else "degraded",
        service="ledger",
        version="0.1.0",
        components=components,
    )


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": "ZK Arena Ledger Service",
        "version": "0.1.0",
        "docs": "/docs",
    }


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(
    sessions.router,
    prefix="/api/v1/sessions",
    tags=["Sessions"],
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
        "services.ledger.main:app",
        host="0.0.0.0",
        port=settings.ports.ledger,
        reload=settings.debug,
        log_level=settings.log_level.value.lower(),
    )
