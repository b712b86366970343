"""Health check endpoints."""

from typing import Any

from fastapi import APIRouter, HTTPException, Request

from ridemate.core.metrics import health_ready_checks_total

router = APIRouter()


@router.get("/health/live")
def health_live() -> dict[str, str]:
    """Health check endpoint for liveness probe."""
    return {"status": "ok"}


@router.get("/health/ready")
async def health_ready(request: Request) -> dict[str, Any]:
    """Health check endpoint for readiness probe."""
    errors = []

    # Check database connectivity
    if not await request.app.state.db.ping():
        errors.append("database_connection_failed")
        health_ready_checks_total.labels(result="fail", reason="database").inc()
    else:
        health_ready_checks_total.labels(result="ok", reason="database").inc()

    if errors:
        raise HTTPException(status_code=503, detail={"status": "unready", "errors": errors})

    return {"status": "ready"}
