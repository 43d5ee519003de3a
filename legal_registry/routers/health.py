"""
Health Router
Observability endpoints for monitoring.

Endpoints:
- /healthz - Basic liveness check (is the process running?)
- /livez - Kubernetes liveness check (same as healthz)
- /health - Alias for /healthz
- /readyz - Readiness check (is the registry bootstrapped and storage reachable?)
"""

import asyncio
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text


router = APIRouter(tags=["Health"])

# Track startup time for uptime calculation
_start_time = time.time()


@router.get("/healthz")
async def health_check():
    """
    Liveness check - is the app process running?
    Returns 200 if the process is alive.
    """
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/livez")
async def liveness_check():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/health")
async def health_alias():
    """Alias for /healthz for compatibility."""
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/readyz")
async def readiness_check(request: Request):
    """
    Readiness check - can the registry accept registrations?

    Ready means an authority and an oracle are bound and, when
    persistence is on, the database answers. An unbootstrapped registry
    still serves reads, so it reports "degraded" rather than failing.
    """
    stats = request.app.state.registry.get_statistics()
    checks = {
        "authority_set": stats["authority_set"],
        "oracle_set": stats["oracle_set"],
    }
    details = {
        "record_count": stats["total_records"],
        "max_records": stats["max_records"],
        "block_height": request.app.state.clock.height,
    }

    engine = request.app.state.db_engine
    if engine is not None:
        try:
            db_start = time.perf_counter()
            async with engine.connect() as conn:
                await asyncio.wait_for(conn.execute(text("SELECT 1")), timeout=5.0)
            checks["database"] = True
            details["database_latency_ms"] = round((time.perf_counter() - db_start) * 1000, 2)
        except asyncio.TimeoutError:
            checks["database"] = False
            details["database_error"] = "Connection timeout (5s)"
        except Exception as e:
            checks["database"] = False
            details["database_error"] = str(e)

    ready = all(checks.values())
    status_code = 200 if checks.get("database", True) else 503

    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ready" if ready else "degraded",
            "version": request.app.state.settings.app_version,
            "checks": checks,
            "details": details,
            "uptime_seconds": round(time.time() - _start_time, 2),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
