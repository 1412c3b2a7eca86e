"""Client-side core of the health policy app: everything but the screens."""

from policy_relay.client.activities import MealLogger, ProfileManager
from policy_relay.client.api_client import APIError, RelayAPIClient
from policy_relay.client.dashboard import DashboardState, PolicyDashboard
from policy_relay.client.points import PointsBoard, grade_for
from policy_relay.client.store import FoodEntry, KeyValueStore, LocalCache

__all__ = [
    "APIError",
    "DashboardState",
    "FoodEntry",
    "KeyValueStore",
    "LocalCache",
    "MealLogger",
    "PointsBoard",
    "PolicyDashboard",
    "ProfileManager",
    "RelayAPIClient",
    "grade_for",
]
