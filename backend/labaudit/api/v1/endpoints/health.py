"""
Health check endpoint.
"""

from fastapi import APIRouter
from labaudit.api.v1.endpoints.audit import running_breakers

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check():
    """Basic health check."""
    return {"status": "ok"}


@router.get("/health/detailed")
async def detailed_health():
    """Detailed health check with the circuit breaker of every running audit."""
    return {
        "status": "ok",
        "circuit_breakers": running_breakers()
    }
