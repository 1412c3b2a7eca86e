"""Pydantic models for health scores and meal evaluation."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_serializer


# Largest accepted power of ten; anything bigger is garbage, not a score.
MAX_SCORE_EXPONENT = 15


def parse_score(value: Any) -> Decimal:
    """Parse a health score from any boundary representation.

    Accepts ``int``, ``float``, ``Decimal`` and numeric strings.  Booleans,
    blank strings, non-numeric text and magnitudes of ``1e16`` or more are
    rejected with ``ValueError``.
    """
    if isinstance(value, bool):
        raise ValueError("score must be numeric, not a boolean")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        # str() first so 70.1 stays 70.1 instead of its binary expansion
        result = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("score must not be empty")
        try:
            result = Decimal(text)
        except InvalidOperation as exc:
            raise ValueError(f"score {value!r} is not a number") from exc
    else:
        raise ValueError(f"unsupported score type: {type(value).__name__}")

    if not result.is_finite():
        raise ValueError(f"score {value!r} is not finite")
    if result.adjusted() > MAX_SCORE_EXPONENT:
        raise ValueError(f"score {value!r} is out of range")
    return result


Score = Annotated[Decimal, BeforeValidator(parse_score)]


class HealthScores(BaseModel):
    """Four-part score board returned by the score service.

    All four scores are required: a payload missing any of them is malformed,
    never a board of zeroes.  Use :meth:`zeroed` for the fallback board.
    """

    model_config = ConfigDict(populate_by_name=True)

    activity_score: Score = Field(..., alias="activityScore")
    diet_score: Score = Field(..., alias="dietScore")
    health_score: Score = Field(..., alias="healthScore")
    sleep_score: Score = Field(..., alias="sleepScore")

    @field_serializer("activity_score", "diet_score", "health_score", "sleep_score", when_used="json")
    def _as_number(self, value: Decimal) -> Any:
        # The score board travels as JSON numbers, not decimal strings.
        return int(value) if value == value.to_integral_value() else float(value)

    @classmethod
    def zeroed(cls) -> HealthScores:
        zero = Decimal(0)
        return cls(activity_score=zero, diet_score=zero, health_score=zero, sleep_score=zero)


class ScoreFetchResult(BaseModel):
    """Tagged outcome of a score fetch; ``ok=False`` always carries zeroes."""

    ok: bool
    scores: HealthScores = Field(default_factory=HealthScores.zeroed)
    error: Optional[str] = None

    @classmethod
    def success(cls, scores: HealthScores) -> ScoreFetchResult:
        return cls(ok=True, scores=scores)

    @classmethod
    def failure(cls, error: str) -> ScoreFetchResult:
        return cls(ok=False, scores=HealthScores.zeroed(), error=error)


class MealEvaluationRequest(BaseModel):
    """Face-verified meal evaluation request forwarded to the score service."""

    saved_face: str = Field(..., min_length=1, description="URL of the saved profile face")
    test_face: str = Field(..., min_length=1, description="URL of the selfie taken with the meal")
    meal: str = Field(..., min_length=1, description="URL of the uploaded meal photo")

    model_config = {"json_schema_extra": {
        "examples": [
            {
                "saved_face": "https://bucket.s3.amazonaws.com/profile/me.jpg",
                "test_face": "https://bucket.s3.amazonaws.com/selfies/now.jpg",
                "meal": "https://bucket.s3.amazonaws.com/food_uploads/salad.jpg",
            }
        ]
    }}


class MealVerification(BaseModel):
    """Verification verdict from the score service; unknown keys pass through."""

    model_config = ConfigDict(extra="allow")

    verified: bool = False


class MealEvaluationResult(BaseModel):
    success: bool
    data: Optional[MealVerification] = None

    @property
    def verified(self) -> bool:
        return bool(self.success and self.data is not None and self.data.verified)
