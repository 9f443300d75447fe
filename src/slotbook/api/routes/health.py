"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...db.session import check_connection, get_engine

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database() -> dict:
    """Check that the scheduling database answers queries."""
    connected = check_connection()
    return {
        "connected": connected,
        "backend": get_engine().url.get_backend_name(),
        "message": "Database connected." if connected else "Database connection error, see server logs.",
    }
