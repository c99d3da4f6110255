"""Health check endpoints."""
from typing import Annotated, Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from ehs import __version__
from ehs.db.connection import DatabaseConnectionManager
from ehs.dependencies import get_db_manager

router = APIRouter(tags=["health"])


@router.get("/health")
def health_liveness() -> dict[str, str]:
    """
    Liveness check endpoint.

    Returns 200 OK if the service is running. Dependencies are not checked.
    """
    return {"status": "healthy"}


@router.get("/health/ready", response_model=None)
def health_readiness(
    manager: Annotated[DatabaseConnectionManager, Depends(get_db_manager)],
) -> JSONResponse | dict[str, Any]:
    """
    Readiness check endpoint.

    Returns:
        - 200 OK if the database answers
        - 503 Service Unavailable otherwise
    """
    database_up = manager.health_check()
    response_data = {
        "status": "healthy" if database_up else "unhealthy",
        "checks": {"database": {"status": "up" if database_up else "down"}},
        "version": __version__,
    }

    if not database_up:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response_data,
        )

    return response_data
