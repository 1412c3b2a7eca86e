"""Client flows driven through the real relay app and fake upstreams.

The relay client's session is a Starlette ``TestClient`` so every call goes
client core -> relay routes -> httpx.MockTransport -> ``FakeUpstreams``.
"""

from __future__ import annotations

from collections.abc import Iterator
from decimal import Decimal
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient
from omegaconf import DictConfig

from policy_relay.api.app import create_app
from policy_relay.client.api_client import RelayAPIClient
from policy_relay.client.dashboard import DashboardState, PolicyDashboard
from policy_relay.client.errors import PolicyCreationError, PolicyLimitError
from policy_relay.client.points import PointsBoard
from policy_relay.client.store import KeyValueStore, LocalCache
from policy_relay.schemas.policy import PolicyStatus

from .conftest import FakeUpstreams


@pytest.fixture()
def api(test_cfg: DictConfig, mock_transport: httpx.MockTransport) -> Iterator[RelayAPIClient]:
    with TestClient(create_app(test_cfg, transport=mock_transport)) as session:
        yield RelayAPIClient(base_url="http://testserver", timeout=5, session=session)


@pytest.fixture()
def cache(tmp_path: Path) -> LocalCache:
    return LocalCache(KeyValueStore(tmp_path / "device.json"))


class TestPolicyLifecycle:
    def test_create_policy(
        self, api: RelayAPIClient, cache: LocalCache, policy_form: dict[str, str], upstreams: FakeUpstreams
    ) -> None:
        dashboard = PolicyDashboard(api, cache)
        record = dashboard.create_policy(policy_form)

        assert dashboard.state is DashboardState.ACTIVE
        assert record.status is PolicyStatus.ACTIVE
        assert record.model_dump(mode="json", by_alias=True)["initialHealthScore"] == "80"
        assert record.coverage_amount == "80000"
        assert record.current_health_points == Decimal(80)
        assert "P1" in upstreams.policies

    def test_policy_id_with_slashes(
        self, api: RelayAPIClient, cache: LocalCache, policy_form: dict[str, str], upstreams: FakeUpstreams
    ) -> None:
        dashboard = PolicyDashboard(api, cache)
        record = dashboard.create_policy({**policy_form, "policyId": "INS/2024/1"})

        assert record.policy_id == "INS/2024/1"
        assert record.coverage_amount == "80000"
        assert list(upstreams.policies) == ["INS/2024/1"]
        assert dashboard.state is DashboardState.ACTIVE

    def test_record_survives_restart(
        self, api: RelayAPIClient, cache: LocalCache, policy_form: dict[str, str], tmp_path: Path
    ) -> None:
        created = PolicyDashboard(api, cache).create_policy(policy_form)
        reopened = PolicyDashboard(api, LocalCache(KeyValueStore(tmp_path / "device.json")))
        assert reopened.policy == created

    def test_second_creation_refused_locally(
        self, api: RelayAPIClient, cache: LocalCache, policy_form: dict[str, str], upstreams: FakeUpstreams
    ) -> None:
        dashboard = PolicyDashboard(api, cache)
        dashboard.create_policy(policy_form)
        sent = len(upstreams.requests)

        with pytest.raises(PolicyLimitError):
            dashboard.create_policy({**policy_form, "policyId": "P2"})
        assert len(upstreams.requests) == sent

    def test_ledger_conflict_is_a_creation_failure(
        self, api: RelayAPIClient, cache: LocalCache, policy_form: dict[str, str], upstreams: FakeUpstreams
    ) -> None:
        upstreams.policies["P1"] = {"policyId": "P1"}
        dashboard = PolicyDashboard(api, cache)
        with pytest.raises(PolicyCreationError, match="Failed to create policy"):
            dashboard.create_policy(policy_form)
        assert dashboard.state is DashboardState.EMPTY
        assert cache.load_policies() == []

    def test_ledger_down(
        self, api: RelayAPIClient, cache: LocalCache, policy_form: dict[str, str], upstreams: FakeUpstreams
    ) -> None:
        upstreams.ledger_down = True
        dashboard = PolicyDashboard(api, cache)
        with pytest.raises(PolicyCreationError):
            dashboard.create_policy(policy_form)
        assert dashboard.policies == []

    def test_clear_all_keeps_ledger_copy(
        self, api: RelayAPIClient, cache: LocalCache, policy_form: dict[str, str], upstreams: FakeUpstreams
    ) -> None:
        dashboard = PolicyDashboard(api, cache)
        dashboard.create_policy(policy_form)
        dashboard.clear_all()

        assert PolicyDashboard(api, cache).policies == []
        assert "P1" in upstreams.policies


class TestScoreReconciliation:
    def test_refresh_then_reconcile(
        self, api: RelayAPIClient, cache: LocalCache, policy_form: dict[str, str], upstreams: FakeUpstreams
    ) -> None:
        dashboard = PolicyDashboard(api, cache)
        dashboard.create_policy(policy_form)

        PointsBoard(api, cache).refresh()
        dashboard.refresh()
        assert dashboard.cached_health_score == Decimal(70)
        assert dashboard.has_drift() is True

        updated = dashboard.reconcile()
        assert updated.current_health_points == Decimal(70)
        assert updated.rolling_average == "75"
        assert dashboard.has_drift() is False
        assert upstreams.policies["P1"]["currentHealthPoints"] == "70"

    def test_repeated_update_is_stable(
        self, api: RelayAPIClient, cache: LocalCache, policy_form: dict[str, str]
    ) -> None:
        dashboard = PolicyDashboard(api, cache)
        dashboard.create_policy(policy_form)
        first = dashboard.reconcile(score=75)
        second = dashboard.reconcile(score=75)
        assert first.current_health_points == second.current_health_points == Decimal(75)

    def test_scores_down_shows_zeroes(
        self, api: RelayAPIClient, cache: LocalCache, upstreams: FakeUpstreams
    ) -> None:
        cache.set_health_score(66)
        upstreams.scores_down = True
        board = PointsBoard(api, cache)
        scores = board.refresh()

        assert (scores.activity_score, scores.diet_score, scores.health_score, scores.sleep_score) == (
            0,
            0,
            0,
            0,
        )
        assert board.error is not None
        assert cache.get_health_score() == Decimal(66)

    def test_empty_score_board_does_not_overwrite_cache(
        self, api: RelayAPIClient, cache: LocalCache, upstreams: FakeUpstreams
    ) -> None:
        cache.set_health_score(66)
        upstreams.scores = {"detail": "no user"}
        board = PointsBoard(api, cache)
        board.refresh()

        assert board.error is not None
        assert cache.get_health_score() == Decimal(66)


class TestMealEvaluation:
    def test_verified_through_relay(self, api: RelayAPIClient) -> None:
        result = api.evaluate_meal("https://a", "https://b", "https://c")
        assert result.success is True
        assert result.verified is True

    def test_rejected_selfie(self, api: RelayAPIClient, upstreams: FakeUpstreams) -> None:
        upstreams.verified = False
        result = api.evaluate_meal("https://a", "https://b", "https://c")
        assert result.success is True
        assert result.verified is False
