"""Exceptions raised by the client-side flows."""

from __future__ import annotations


class DashboardError(Exception):
    """Base class for policy-dashboard failures shown to the user."""


class PolicyValidationError(DashboardError):
    """The creation form is incomplete or malformed; nothing was sent."""

    def __init__(self, message: str, *, missing: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.missing = missing


class PolicyLimitError(DashboardError):
    """A policy already exists; only one may be held at a time."""


class PolicyCreationError(DashboardError):
    """The relay or ledger refused or failed the creation."""


class NoActivePolicyError(DashboardError):
    """The action needs a policy but the dashboard is empty."""


class ReconciliationError(DashboardError):
    """Pushing the cached health score to the ledger failed."""


class ActionInProgressError(DashboardError):
    """A second trigger arrived while the same action was still running."""

    def __init__(self, action: str) -> None:
        super().__init__(f"'{action}' is already in progress")
        self.action = action


class UploadError(Exception):
    """Object-storage upload failed."""


class MealEvaluationError(Exception):
    """The meal photo could not be evaluated."""
