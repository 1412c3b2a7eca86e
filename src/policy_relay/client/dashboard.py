"""Policy dashboard: creation, drift detection and health-score reconciliation.

The dashboard owns a local list holding at most one :class:`PolicyRecord`
and mirrors it into the :class:`LocalCache`.  Flow::

    Empty ──create──▶ Creating ──ok──▶ Active ──reconcile──▶ Reconciling
      ▲                  │ fail                ▲                  │
      └──────────────────┘                     └──────────────────┘
    Active ──clear_all──▶ Empty   (local only; the ledger keeps its copy)
"""

from __future__ import annotations

import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from enum import Enum
from typing import Any, Optional

from loguru import logger
from pydantic import ValidationError

from policy_relay.client.api_client import APIError, RelayAPIClient
from policy_relay.client.errors import (
    ActionInProgressError,
    NoActivePolicyError,
    PolicyCreationError,
    PolicyLimitError,
    PolicyValidationError,
    ReconciliationError,
)
from policy_relay.client.store import LocalCache
from policy_relay.schemas.policy import (
    CreatePolicyRequest,
    PolicyRecord,
    UpdateHealthPointsRequest,
)
from policy_relay.schemas.scores import Score, parse_score

# Creation form fields, in the order the form shows them.
FORM_FIELDS = ("policyId", "userId", "userWalletAddress", "initialHealthScore", "coverageDuration")


class DashboardState(str, Enum):
    EMPTY = "Empty"
    CREATING = "Creating"
    ACTIVE = "Active"
    RECONCILING = "Reconciling"


class PolicyDashboard:
    """Client-side policy lifecycle on top of the relay.

    Parameters
    ----------
    api:
        Relay client used for every remote call.
    cache:
        Local cache holding the policy list and the last observed health score.
    """

    def __init__(self, api: RelayAPIClient, cache: LocalCache) -> None:
        self.api = api
        self.cache = cache
        self._locks = {"create": threading.Lock(), "reconcile": threading.Lock()}
        self._policies: list[PolicyRecord] = []
        self._state = DashboardState.EMPTY
        self.cached_health_score: Optional[Score] = None
        self.refresh()

    # -----------------------------------------------------------------
    # State
    # -----------------------------------------------------------------

    @property
    def state(self) -> DashboardState:
        return self._state

    @property
    def policies(self) -> list[PolicyRecord]:
        return list(self._policies)

    @property
    def policy(self) -> Optional[PolicyRecord]:
        return self._policies[0] if self._policies else None

    def refresh(self) -> None:
        """Reload the policy list and cached health score from storage."""
        policies = self.cache.load_policies()
        if len(policies) > 1:
            logger.warning("Stored policy list holds {n} records; keeping the first", n=len(policies))
            policies = policies[:1]
        self._policies = policies
        self.cached_health_score = self.cache.get_health_score()
        self._state = DashboardState.ACTIVE if policies else DashboardState.EMPTY
        logger.debug(
            "Dashboard loaded: {n} policy, cached score {score}",
            n=len(policies),
            score=self.cached_health_score,
        )

    def has_drift(self) -> bool:
        """True when the cached score and the policy's current points differ.

        Both sides are parsed scores, so ``"70"`` and ``70`` compare equal;
        any other difference counts, however small.
        """
        record = self.policy
        if record is None or self.cached_health_score is None:
            return False
        return record.current_health_points != self.cached_health_score

    # -----------------------------------------------------------------
    # Actions
    # -----------------------------------------------------------------

    def create_policy(self, form: Mapping[str, Any]) -> PolicyRecord:
        """Validate *form*, register the policy on the ledger and store it.

        Raises
        ------
        PolicyValidationError
            A field is missing or malformed.  No request is made.
        PolicyLimitError
            A policy is already held.
        PolicyCreationError
            The relay or ledger failed; the dashboard is back to ``Empty``.
        ActionInProgressError
            Another creation is still running.
        """
        request = _parse_form(form)

        with self._single_flight("create"):
            if self._policies:
                raise PolicyLimitError(
                    "Only one policy can be active at a time. "
                    "Clear the existing one before creating another."
                )

            self._state = DashboardState.CREATING
            try:
                record = self._register(request)
            except Exception:
                self._state = DashboardState.EMPTY
                raise

            self._policies = [record]
            self.cache.save_policies(self._policies)
            self._state = DashboardState.ACTIVE

        logger.info("Policy {pid} created", pid=record.policy_id)
        return record

    def reconcile(self, score: Any = None) -> PolicyRecord:
        """Push *score* (default: the cached health score) to the ledger.

        On success the record takes the pushed score as its current points and
        then whatever derived fields the ledger returned.  There is no
        read-back to confirm the ledger actually stored it.
        """
        with self._single_flight("reconcile"):
            record = self.policy
            if record is None:
                raise NoActivePolicyError("No policy to update")

            try:
                target = parse_score(score) if score is not None else self.cached_health_score
            except ValueError as exc:
                raise ReconciliationError(f"Invalid health score: {exc}") from exc
            if target is None:
                raise ReconciliationError("No health score available to push")

            self._state = DashboardState.RECONCILING
            try:
                updated = self._push_score(record, target)
            finally:
                self._state = DashboardState.ACTIVE

            self._policies = [updated]
            self.cache.save_policies(self._policies)

        logger.info(
            "Policy {pid} health points set to {score}",
            pid=updated.policy_id,
            score=target,
        )
        return updated

    def clear_all(self) -> None:
        """Forget every local policy.  The ledger is not told."""
        self.cache.clear_policies()
        self._policies = []
        self._state = DashboardState.EMPTY
        logger.info("All local policies cleared")

    # -----------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------

    @contextmanager
    def _single_flight(self, action: str) -> Iterator[None]:
        lock = self._locks[action]
        if not lock.acquire(blocking=False):
            raise ActionInProgressError(action)
        try:
            yield
        finally:
            lock.release()

    def _register(self, request: CreatePolicyRequest) -> PolicyRecord:
        try:
            created = self.api.create_policy(request)
        except APIError as exc:
            raise PolicyCreationError(f"Failed to create policy on server: {exc}") from exc
        if not created.get("success"):
            raise PolicyCreationError(created.get("message") or "Failed to create policy on server")

        try:
            details = self.api.get_policy_details(request.policy_id)
        except APIError as exc:
            raise PolicyCreationError(f"Failed to fetch policy details: {exc}") from exc
        if not details.get("success"):
            raise PolicyCreationError(details.get("message") or "Failed to fetch policy details")

        try:
            return PolicyRecord.from_request(request).apply_ledger_fields(
                _policy_object(details.get("data"))
            )
        except ValidationError as exc:
            raise PolicyCreationError(f"Ledger returned unusable policy fields: {exc}") from exc

    def _push_score(self, record: PolicyRecord, target: Score) -> PolicyRecord:
        request = UpdateHealthPointsRequest(
            policy_id=record.policy_id,
            new_health_points=target,
            user_wallet_address=record.user_wallet_address,
        )
        try:
            envelope = self.api.update_health_points(request)
        except APIError as exc:
            raise ReconciliationError(f"Failed to update health points: {exc}") from exc
        if not envelope.get("success"):
            raise ReconciliationError(envelope.get("message") or "Failed to update health points")

        try:
            return record.model_copy(update={"current_health_points": target}).apply_ledger_fields(
                _policy_object(envelope.get("data"))
            )
        except ValidationError as exc:
            raise ReconciliationError(f"Ledger returned unusable policy fields: {exc}") from exc


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_form(form: Mapping[str, Any]) -> CreatePolicyRequest:
    missing = tuple(name for name in FORM_FIELDS if _is_blank(form.get(name)))
    if missing:
        raise PolicyValidationError(
            f"Please fill all fields (missing: {', '.join(missing)})",
            missing=missing,
        )
    try:
        return CreatePolicyRequest.model_validate({name: form[name] for name in FORM_FIELDS})
    except ValidationError as exc:
        raise PolicyValidationError(f"Invalid policy form: {exc}") from exc


def _is_blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def _policy_object(data: Any) -> dict[str, Any]:
    """Extract the ledger policy object from an envelope's ``data``."""
    if isinstance(data, dict):
        inner = data.get("policy")
        return inner if isinstance(inner, dict) else data
    return {}
