"""Score-service relay routes.

Endpoints
---------
GET  /get-scores/
    Current activity / diet / health / sleep scores.  Zeroed on failure.

POST /evaluate-meal/
    Forward a face-verified meal photo for evaluation.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from loguru import logger

from policy_relay.schemas.scores import HealthScores, MealEvaluationRequest
from policy_relay.services.base import RemoteServiceError

router = APIRouter(tags=["scores"])

# Set on zero-filled score responses so callers can tell a fallback from real zeroes.
FALLBACK_HEADER = "X-Score-Fallback"


# ---------------------------------------------------------------------------
# GET /get-scores/
# ---------------------------------------------------------------------------

@router.get(
    "/get-scores/",
    response_model=HealthScores,
    summary="Fetch health scores",
    description="Relay the score board from the score service.",
)
async def get_scores(request: Request) -> JSONResponse:
    """Return the score board, or a zero-filled board with HTTP 500 on failure."""
    result = await request.app.state.score_service.fetch_health_scores()
    body = result.scores.model_dump(mode="json", by_alias=True)

    if not result.ok:
        logger.error("Error fetching health scores: {err}", err=result.error)
        return JSONResponse(status_code=500, content=body, headers={FALLBACK_HEADER: "true"})

    return JSONResponse(status_code=200, content=body)


# ---------------------------------------------------------------------------
# POST /evaluate-meal/
# ---------------------------------------------------------------------------

@router.post(
    "/evaluate-meal/",
    summary="Evaluate a meal photo",
    description="Forward saved face, selfie and meal URLs for verification.",
)
async def evaluate_meal(payload: MealEvaluationRequest, request: Request) -> JSONResponse:
    score_service = request.app.state.score_service

    try:
        resp = await score_service.evaluate_meal(payload)
    except RemoteServiceError as exc:
        logger.error("Error evaluating meal photo: {err}", err=exc)
        return JSONResponse(
            status_code=500,
            content={"success": False, "data": None, "error": str(exc)},
        )

    logger.info("Meal evaluation answered {status}", status=resp.status_code)
    return JSONResponse(
        status_code=200 if resp.ok else 500,
        content={"success": resp.ok, "data": resp.body},
    )
