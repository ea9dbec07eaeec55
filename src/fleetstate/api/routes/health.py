"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request, status

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/engine", status_code=status.HTTP_200_OK)
def health_engine(request: Request) -> dict:
    """Report whether a poll has been processed and how many vehicles are cached."""
    engine = request.app.state.engine
    latest = engine.latest()
    return {
        "service": "engine",
        "polled": latest is not None,
        "last_poll_sequence": latest.poll_sequence if latest else None,
        "cached_vehicles": len(engine.cache),
    }
