"""Pydantic schemas shared by the relay server and the client core."""

from policy_relay.schemas.envelope import ErrorEnvelope, SuccessEnvelope
from policy_relay.schemas.policy import (
    CreatePolicyRequest,
    PolicyRecord,
    PolicyStatus,
    UpdateHealthPointsRequest,
)
from policy_relay.schemas.scores import (
    HealthScores,
    MealEvaluationRequest,
    MealEvaluationResult,
    MealVerification,
    Score,
    ScoreFetchResult,
    parse_score,
)

__all__ = [
    "CreatePolicyRequest",
    "ErrorEnvelope",
    "HealthScores",
    "MealEvaluationRequest",
    "MealEvaluationResult",
    "MealVerification",
    "PolicyRecord",
    "PolicyStatus",
    "Score",
    "ScoreFetchResult",
    "SuccessEnvelope",
    "UpdateHealthPointsRequest",
    "parse_score",
]
