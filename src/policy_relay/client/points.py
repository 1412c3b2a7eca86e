"""Health-score board: fetch, grade, and remember the latest health score."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from loguru import logger

from policy_relay.client.api_client import RelayAPIClient
from policy_relay.client.store import LocalCache
from policy_relay.schemas.scores import HealthScores, parse_score

MAX_POINTS = Decimal(100)

# (lower bound, grade), highest first.
_GRADE_BANDS: tuple[tuple[int, str], ...] = (
    (90, "A+"),
    (85, "A"),
    (80, "A-"),
    (75, "B+"),
    (70, "B"),
    (65, "B-"),
    (60, "C+"),
    (55, "C"),
    (50, "C-"),
    (45, "D+"),
    (40, "D"),
)


def grade_for(score: Any) -> str:
    """Return the letter grade for a health score on the 0–100 scale."""
    value = parse_score(score)
    for floor, grade in _GRADE_BANDS:
        if value >= floor:
            return grade
    return "F"


class PointsBoard:
    """Score board state for one user.

    Only a successful fetch touches the cached health score; a failed fetch
    shows zeroes and an error instead of overwriting the last good value.
    """

    def __init__(self, api: RelayAPIClient, cache: LocalCache) -> None:
        self.api = api
        self.cache = cache
        self.scores = HealthScores.zeroed()
        self.error: Optional[str] = None

    def refresh(self) -> HealthScores:
        result = self.api.fetch_health_scores_result()
        self.scores = result.scores

        if not result.ok:
            self.error = "Failed to load health scores. Please try again later."
            logger.error("Error fetching health scores: {err}", err=result.error)
            return self.scores

        self.error = None
        self.cache.set_health_score(result.scores.health_score)
        logger.info("Health score refreshed: {score}", score=result.scores.health_score)
        return self.scores

    @property
    def grade(self) -> str:
        return grade_for(self.scores.health_score)

    @property
    def percentage(self) -> Decimal:
        return self.scores.health_score / MAX_POINTS * 100
