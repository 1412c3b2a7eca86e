"""Client for the external score service (health scores and meal checks)."""

from __future__ import annotations

import httpx
from loguru import logger
from pydantic import ValidationError

from policy_relay.schemas.scores import HealthScores, MealEvaluationRequest, ScoreFetchResult
from policy_relay.services.base import RemoteResponse, RemoteServiceClient, RemoteServiceError


class ScoreServiceClient(RemoteServiceClient):
    """Talks to the face-verification / meal-evaluation backend."""

    service_name = "score-service"

    def __init__(
        self,
        http: httpx.AsyncClient,
        base_url: str,
        *,
        scores_path: str = "/get-scores/",
        evaluate_path: str = "/evaluate-meal/",
        timeout: float = 30.0,
    ) -> None:
        super().__init__(http, base_url, timeout)
        self.scores_path = scores_path
        self.evaluate_path = evaluate_path

    async def fetch_health_scores(self) -> ScoreFetchResult:
        """Fetch the current score board.  Never raises.

        Every failure mode (unreachable, non-2xx, undecodable or malformed
        body) comes back as ``ok=False`` with zeroed scores so the caller
        chooses whether the fallback is acceptable.
        """
        try:
            resp = await self._send("GET", self.scores_path)
        except RemoteServiceError as exc:
            return ScoreFetchResult.failure(str(exc))

        if not resp.ok:
            logger.warning("Score service answered {status}", status=resp.status_code)
            return ScoreFetchResult.failure(f"score service returned HTTP {resp.status_code}")

        if not isinstance(resp.body, dict):
            return ScoreFetchResult.failure("score service returned a non-object body")

        try:
            scores = HealthScores.model_validate(resp.body)
        except ValidationError as exc:
            logger.warning("Malformed score payload: {err}", err=exc)
            return ScoreFetchResult.failure(f"malformed score payload: {exc.error_count()} error(s)")

        return ScoreFetchResult.success(scores)

    async def evaluate_meal(self, request: MealEvaluationRequest) -> RemoteResponse:
        """Forward the saved face, selfie and meal URLs for verification."""
        return await self._send("POST", self.evaluate_path, json=request.model_dump())
