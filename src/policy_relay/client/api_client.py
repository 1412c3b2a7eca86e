"""Thin HTTP client that talks to the relay server."""

from __future__ import annotations

import os
from typing import Any, Optional
from urllib.parse import quote

import requests
from loguru import logger
from pydantic import ValidationError

from policy_relay.schemas.policy import CreatePolicyRequest, UpdateHealthPointsRequest
from policy_relay.schemas.scores import (
    HealthScores,
    MealEvaluationRequest,
    MealEvaluationResult,
    ScoreFetchResult,
)


class RelayAPIClient:
    """Wrapper around ``requests`` for the relay backend.

    Every method issues exactly one request; nothing is retried.

    Parameters
    ----------
    base_url:
        Root URL of the relay (e.g. ``http://localhost:3000``).
        Falls back to the ``API_BASE_URL`` env-var, then ``http://localhost:3000``.
    timeout:
        Request timeout in seconds.
    session:
        Object with a ``requests``-style ``request()`` method.  Defaults to a
        fresh ``requests.Session``.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 30,
        session: Any = None,
    ) -> None:
        self.base_url = (base_url or os.getenv("API_BASE_URL", "http://localhost:3000")).rstrip("/")
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()

    # -----------------------------------------------------------------
    # Scores
    # -----------------------------------------------------------------

    def fetch_health_scores_result(self) -> ScoreFetchResult:
        """``GET /get-scores/`` as a tagged result.  Never raises."""
        try:
            resp = self._send("GET", "/get-scores/")
        except APIError as exc:
            return ScoreFetchResult.failure(str(exc))

        if resp.status_code != 200 or resp.headers.get("X-Score-Fallback") == "true":
            return ScoreFetchResult.failure(f"HTTP {resp.status_code} from /get-scores/")

        try:
            return ScoreFetchResult.success(HealthScores.model_validate(resp.json()))
        except (ValueError, ValidationError) as exc:
            return ScoreFetchResult.failure(f"malformed score payload: {exc}")

    def fetch_health_scores(self) -> HealthScores:
        """``GET /get-scores/``; zeroed scores on any failure."""
        result = self.fetch_health_scores_result()
        if not result.ok:
            logger.error("Error fetching health scores: {err}", err=result.error)
        return result.scores

    def evaluate_meal(self, saved_face: str, test_face: str, meal: str) -> MealEvaluationResult:
        """``POST /evaluate-meal/``; ``success=False`` when the relay is unreachable."""
        payload = MealEvaluationRequest(saved_face=saved_face, test_face=test_face, meal=meal)
        try:
            resp = self._send("POST", "/evaluate-meal/", json=payload.model_dump())
            return MealEvaluationResult.model_validate(resp.json())
        except (APIError, ValueError, ValidationError) as exc:
            logger.error("Error evaluating meal photo: {err}", err=exc)
            return MealEvaluationResult(success=False)

    # -----------------------------------------------------------------
    # Policies
    # -----------------------------------------------------------------

    def create_policy(self, request: CreatePolicyRequest) -> dict[str, Any]:
        """``POST /createPolicy`` — returns the relay envelope."""
        return self._envelope("POST", "/createPolicy", json=_camel(request))

    def get_policy_details(self, policy_id: str) -> dict[str, Any]:
        """``GET /getPolicyDetails/{policy_id}`` — returns the relay envelope."""
        return self._envelope("GET", f"/getPolicyDetails/{quote(policy_id, safe='')}")

    def update_health_points(self, request: UpdateHealthPointsRequest) -> dict[str, Any]:
        """``POST /updateHealthPoints`` — returns the relay envelope."""
        return self._envelope("POST", "/updateHealthPoints", json=_camel(request))

    # -----------------------------------------------------------------
    # Internal request helpers
    # -----------------------------------------------------------------

    def _envelope(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        resp = self._send(method, path, **kwargs)
        try:
            body = resp.json()
        except ValueError as exc:
            raise APIError(
                f"Undecodable response from {path} (HTTP {resp.status_code})",
                status_code=resp.status_code,
            ) from exc

        if not isinstance(body, dict) or "success" not in body:
            raise APIError(f"Unexpected response shape from {path}", status_code=resp.status_code)
        if not body["success"]:
            logger.warning(
                "Relay reported failure on {path} (HTTP {status}): {msg}",
                path=path,
                status=resp.status_code,
                msg=body.get("message"),
            )
        return body

    def _send(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise APIError(f"Request to {url} failed: {exc}") from exc


# ---------------------------------------------------------------------------
# Custom exception
# ---------------------------------------------------------------------------


class APIError(Exception):
    """Raised when the relay is unreachable or answers something unreadable."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _camel(model: Any) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)
