"""Shared fixtures for the relay and client-core test suite."""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from omegaconf import OmegaConf

from policy_relay.schemas.policy import CreatePolicyRequest, PolicyRecord
from policy_relay.schemas.scores import HealthScores, ScoreFetchResult
from policy_relay.services.base import RemoteResponse

SCORE_URL = "http://scores.test"
LEDGER_URL = "http://ledger.test"
_DETAILS_PREFIX = "/getPolicyDetails/"

# ---------------------------------------------------------------------------
# Hydra-style config
# ---------------------------------------------------------------------------


@pytest.fixture()
def test_cfg() -> Any:
    """Return a minimal OmegaConf DictConfig pointing at fake upstreams."""
    cfg_dict = {
        "server": {
            "host": "127.0.0.1",
            "port": 3000,
            "debug": False,
            "cors_origins": ["*"],
        },
        "logging": {
            "level": "WARNING",
            "colored": False,
            "format": "pretty",
        },
        "remote": {
            "timeout": 5.0,
            "score_service": {
                "base_url": SCORE_URL,
                "scores_path": "/get-scores/",
                "evaluate_path": "/evaluate-meal/",
            },
            "ledger_service": {
                "base_url": LEDGER_URL,
                "create_path": "/createPolicy",
                "details_path": "/getPolicyDetails/{policy_id}",
                "update_path": "/updateHealthPoints",
            },
        },
    }
    return OmegaConf.create(cfg_dict)


# ---------------------------------------------------------------------------
# Fake upstream services
# ---------------------------------------------------------------------------


class FakeUpstreams:
    """In-memory stand-in for both the score service and the ledger.

    Serves as an ``httpx.MockTransport`` handler.  Flip ``scores_down`` /
    ``ledger_down`` to simulate unreachable hosts.
    """

    def __init__(self) -> None:
        self.policies: dict[str, dict[str, Any]] = {}
        self.scores: dict[str, Any] = {
            "activityScore": 72,
            "dietScore": 64.5,
            "healthScore": 70,
            "sleepScore": 81,
        }
        self.verified = True
        self.scores_down = False
        self.ledger_down = False
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "scores.test":
            if self.scores_down:
                raise httpx.ConnectError("score service down", request=request)
            return self._scores(request)
        if self.ledger_down:
            raise httpx.ConnectError("ledger down", request=request)
        return self._ledger(request)

    def _scores(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/get-scores/":
            return httpx.Response(200, json=self.scores)
        if request.url.path == "/evaluate-meal/":
            body = json.loads(request.content)
            return httpx.Response(200, json={"verified": self.verified, "meal": body["meal"]})
        return httpx.Response(404, json={"error": "Not Found"})

    def _ledger(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.method == "POST" and path == "/createPolicy":
            body = json.loads(request.content)
            pid = body["policyId"]
            if pid in self.policies:
                return httpx.Response(409, json={"error": f"Policy {pid} already exists"})
            initial = Decimal(str(body["initialHealthScore"]))
            self.policies[pid] = {
                **body,
                "coverageAmount": str(initial * 1000),
                "premiumAmount": str(Decimal(120) - initial),
                "currentHealthPoints": str(initial),
                "rollingAverage": str(initial),
                "k": "1",
                "isActive": True,
            }
            return httpx.Response(201, json={"policy": self.policies[pid]})

        if request.method == "GET" and path.startswith(_DETAILS_PREFIX):
            # url.path is already percent-decoded, so ids may contain "/".
            pid = path[len(_DETAILS_PREFIX):]
            if pid not in self.policies:
                return httpx.Response(404, json={"error": "Policy not found"})
            return httpx.Response(200, json={"policy": self.policies[pid]})

        if request.method == "POST" and path == "/updateHealthPoints":
            body = json.loads(request.content)
            policy = self.policies.get(body["policyId"])
            if policy is None:
                return httpx.Response(404, json={"error": "Policy not found"})
            new = Decimal(str(body["newHealthPoints"]))
            previous = Decimal(policy["rollingAverage"])
            policy["currentHealthPoints"] = str(new)
            policy["rollingAverage"] = str((previous + new) / 2)
            return httpx.Response(200, json={"policy": policy})

        return httpx.Response(404, json={"error": "Not Found"})


@pytest.fixture()
def upstreams() -> FakeUpstreams:
    return FakeUpstreams()


@pytest.fixture()
def mock_transport(upstreams: FakeUpstreams) -> httpx.MockTransport:
    return httpx.MockTransport(upstreams)


# ---------------------------------------------------------------------------
# Domain objects
# ---------------------------------------------------------------------------


@pytest.fixture()
def policy_form() -> dict[str, str]:
    """Creation form exactly as a user would type it."""
    return {
        "policyId": "P1",
        "userId": "U1",
        "userWalletAddress": "0xABC",
        "initialHealthScore": "80",
        "coverageDuration": "12",
    }


@pytest.fixture()
def create_request(policy_form: dict[str, str]) -> CreatePolicyRequest:
    return CreatePolicyRequest.model_validate(policy_form)


@pytest.fixture()
def active_record(create_request: CreatePolicyRequest) -> PolicyRecord:
    return PolicyRecord.from_request(create_request).apply_ledger_fields(
        {
            "coverageAmount": "80000",
            "premiumAmount": "40",
            "currentHealthPoints": "80",
            "rollingAverage": "80",
            "k": "1",
            "isActive": True,
        }
    )


# ---------------------------------------------------------------------------
# Mocked services for route tests
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_score_service() -> MagicMock:
    service = MagicMock()
    service.base_url = SCORE_URL
    service.fetch_health_scores = AsyncMock(
        return_value=ScoreFetchResult.success(
            HealthScores(activityScore=72, dietScore=64.5, healthScore=70, sleepScore=81)
        )
    )
    service.evaluate_meal = AsyncMock(return_value=RemoteResponse(200, {"verified": True}))
    return service


@pytest.fixture()
def mock_ledger_service() -> MagicMock:
    service = MagicMock()
    service.base_url = LEDGER_URL
    service.create_policy = AsyncMock(return_value=RemoteResponse(201, {"policy": {"policyId": "P1"}}))
    service.get_policy_details = AsyncMock(
        return_value=RemoteResponse(200, {"policy": {"policyId": "P1", "currentHealthPoints": "80"}})
    )
    service.update_health_points = AsyncMock(
        return_value=RemoteResponse(200, {"policy": {"policyId": "P1", "currentHealthPoints": "75"}})
    )
    return service
