"""FastAPI application for Pregnancy Medication Safety."""

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from pregsafe.api import assessments_router, audit_router, conditions_router, medications_router
from pregsafe.core.config import settings
from pregsafe.core.errors import (
    AuditError,
    EmptyMedicationListError,
    InvalidCategoryError,
    InvalidTrimesterError,
    OutOfRangeWeekError,
    PregnancySafetyError,
    UnknownConditionError,
)

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

SERVICE_NAME = "pregnancy-medication-safety"
VERSION = "0.1.0"

# Domain error -> HTTP status
ERROR_STATUS_CODES: dict[type[PregnancySafetyError], int] = {
    OutOfRangeWeekError: 422,
    InvalidTrimesterError: 422,
    EmptyMedicationListError: 422,
    UnknownConditionError: 404,
    InvalidCategoryError: 500,
    AuditError: 400,
}


def prewarm_all_services() -> dict[str, Any]:
    """Pre-warm all singleton services at startup.

    Reference tables are indexed before the first request arrives.

    Returns:
        Dictionary with service names and their stats.
    """
    start_time = time.perf_counter()
    services_loaded = {}

    try:
        from pregsafe.services.medications import get_medication_catalog
        services_loaded["medication_catalog"] = get_medication_catalog().get_stats()
    except Exception as e:
        logger.warning(f"Failed to prewarm medication_catalog: {e}")

    try:
        from pregsafe.services.pregnancy_interactions import get_interaction_table
        services_loaded["interaction_table"] = get_interaction_table().get_stats()
    except Exception as e:
        logger.warning(f"Failed to prewarm interaction_table: {e}")

    try:
        from pregsafe.services.risk_calculator import get_risk_calculator_service
        svc = get_risk_calculator_service()
        services_loaded["risk_calculator"] = {"conditions": len(svc.profiles), "cached": svc.cache_size()}
    except Exception as e:
        logger.warning(f"Failed to prewarm risk_calculator: {e}")

    if settings.audit_enabled:
        try:
            from pregsafe.services.audit_store import get_audit_store
            store = get_audit_store()
            services_loaded["audit_store"] = {"path": str(store.path), "retention_years": store.retention_years}
        except Exception as e:
            logger.warning(f"Failed to prewarm audit_store: {e}")

    total_time_ms = (time.perf_counter() - start_time) * 1000

    return {
        "services_loaded": len(services_loaded),
        "total_prewarm_time_ms": round(total_time_ms, 2),
        "services": services_loaded,
    }


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Startup: load reference tables and open the audit store.
    """
    startup_start = time.perf_counter()

    prewarm_stats = prewarm_all_services()
    logger.info(
        f"Services pre-warmed: {prewarm_stats['services_loaded']} services "
        f"in {prewarm_stats['total_prewarm_time_ms']}ms"
    )

    total_startup_ms = (time.perf_counter() - startup_start) * 1000
    logger.info(f"Server ready - total startup time: {total_startup_ms:.0f}ms")

    app.state.prewarm_stats = prewarm_stats
    app.state.startup_time_ms = total_startup_ms

    yield


app = FastAPI(
    title="Pregnancy Medication Safety",
    description="API for scoring medication safety during pregnancy, detecting pregnancy-specific interactions, and assessing maternal condition regimens.",
    version=VERSION,
    lifespan=lifespan,
)


@app.exception_handler(PregnancySafetyError)
async def pregnancy_safety_error_handler(request: Request, exc: PregnancySafetyError) -> JSONResponse:
    """Map the domain error hierarchy to structured error responses."""
    status_code = next(
        (code for error_type, code in ERROR_STATUS_CODES.items() if isinstance(exc, error_type)),
        400,
    )
    if status_code >= 500:
        logger.error(f"{exc.code} on {request.url.path}: {exc}")
    else:
        logger.info(f"{exc.code} on {request.url.path}: {exc}")

    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "detail": str(exc), "details": exc.details},
    )


# Include routers
app.include_router(assessments_router)
app.include_router(audit_router)
app.include_router(conditions_router)
app.include_router(medications_router)


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, Any]:
    """Health check endpoint (liveness probe)."""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict[str, Any]:
    """Readiness check endpoint.

    Confirms the reference tables are loaded.
    """
    from pregsafe.services.medications import get_medication_catalog

    prewarm_stats = getattr(app.state, "prewarm_stats", {})
    startup_time = getattr(app.state, "startup_time_ms", 0)

    return {
        "status": "ready",
        "service": SERVICE_NAME,
        "version": VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "startup_time_ms": startup_time,
        "medications": get_medication_catalog().get_stats(),
        "prewarmed_services": prewarm_stats.get("services_loaded", 0),
        "prewarm_time_ms": prewarm_stats.get("total_prewarm_time_ms", 0),
    }


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint with API info."""
    return {
        "service": "Pregnancy Medication Safety API",
        "version": VERSION,
        "docs": "/docs",
        "health": "/health",
        "ready": "/ready",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "pregsafe.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
