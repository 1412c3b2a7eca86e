"""Pydantic models for insurance policies held on the ledger."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from policy_relay.schemas.scores import Score

# Ledger-computed values are opaque to us; keep whatever scalar the ledger sent.
LedgerValue = Optional[Union[bool, int, float, str]]

# JSON keys of the derived fields as the ledger names them.
DERIVED_FIELDS: dict[str, str] = {
    "coverageAmount": "coverage_amount",
    "premiumAmount": "premium_amount",
    "currentHealthPoints": "current_health_points",
    "rollingAverage": "rolling_average",
    "k": "k_factor",
    "isActive": "is_active",
}


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PolicyStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class CreatePolicyRequest(_CamelModel):
    """Policy creation payload accepted by the relay and forwarded to the ledger."""

    policy_id: str = Field(..., min_length=1, description="Externally supplied policy identifier")
    user_id: str = Field(..., min_length=1, description="Opaque user identifier")
    user_wallet_address: str = Field(..., min_length=1, description="Wallet that owns the policy")
    initial_health_score: Score = Field(..., description="Health score at creation time")
    coverage_duration_months: int = Field(
        ..., gt=0, alias="coverageDuration", description="Coverage duration in months"
    )

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "policyId": "P1",
                    "userId": "U1",
                    "userWalletAddress": "0xABC",
                    "initialHealthScore": "80",
                    "coverageDuration": "12",
                }
            ]
        },
    )


class UpdateHealthPointsRequest(_CamelModel):
    """Push a new health score for an existing policy."""

    policy_id: str = Field(..., min_length=1)
    new_health_points: Score
    user_wallet_address: str = Field(..., min_length=1)


class PolicyRecord(_CamelModel):
    """Local representation of one policy, partially mirrored from the ledger.

    Identity fields are fixed at creation.  The derived fields belong to the
    ledger and are overwritten wholesale whenever it reports them.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    policy_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    user_wallet_address: str = Field(..., min_length=1)
    initial_health_score: Score
    coverage_duration_months: int = Field(..., gt=0, alias="coverageDuration")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: PolicyStatus = PolicyStatus.ACTIVE

    coverage_amount: LedgerValue = None
    premium_amount: LedgerValue = None
    current_health_points: Optional[Score] = None
    rolling_average: LedgerValue = None
    k_factor: LedgerValue = Field(default=None, alias="k")
    is_active: Optional[bool] = None

    @classmethod
    def from_request(cls, request: CreatePolicyRequest) -> PolicyRecord:
        return cls(
            policy_id=request.policy_id,
            user_id=request.user_id,
            user_wallet_address=request.user_wallet_address,
            initial_health_score=request.initial_health_score,
            coverage_duration_months=request.coverage_duration_months,
        )

    def apply_ledger_fields(self, policy: dict[str, Any]) -> PolicyRecord:
        """Return a copy with derived fields taken from a ledger policy object.

        Keys the ledger did not send keep their current value; identity keys
        in *policy* are ignored.
        """
        updates = {
            attr: policy[key] for key, attr in DERIVED_FIELDS.items() if key in policy
        }
        if not updates:
            return self
        merged = self.model_dump(by_alias=False)
        merged.update(updates)
        # Re-validate so currentHealthPoints is parsed into a Score.
        return type(self).model_validate(merged)
