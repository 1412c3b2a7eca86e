"""Liveness check for the relay itself."""

from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    summary="Health check",
    description="Returns relay status and the upstream services it forwards to.",
)
async def health(request: Request) -> dict:
    """Return a lightweight health-check response."""
    state = request.app.state
    return {
        "status": "healthy",
        "services": {
            "score": state.score_service.base_url,
            "ledger": state.ledger_service.base_url,
        },
    }
