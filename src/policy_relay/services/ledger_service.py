"""Client for the external ledger that stores policies and derives their figures."""

from __future__ import annotations

from urllib.parse import quote

import httpx

from policy_relay.schemas.policy import CreatePolicyRequest, UpdateHealthPointsRequest
from policy_relay.services.base import RemoteResponse, RemoteServiceClient


class LedgerServiceClient(RemoteServiceClient):
    """Create, read and update policy records on the ledger service.

    Non-2xx answers are returned as-is so the relay can mirror the remote
    status; only transport and decode failures raise ``RemoteServiceError``.
    """

    service_name = "ledger-service"

    def __init__(
        self,
        http: httpx.AsyncClient,
        base_url: str,
        *,
        create_path: str = "/createPolicy",
        details_path: str = "/getPolicyDetails/{policy_id}",
        update_path: str = "/updateHealthPoints",
        timeout: float = 30.0,
    ) -> None:
        super().__init__(http, base_url, timeout)
        self.create_path = create_path
        self.details_path = details_path
        self.update_path = update_path

    async def create_policy(self, request: CreatePolicyRequest) -> RemoteResponse:
        payload = request.model_dump(mode="json", by_alias=True)
        return await self._send("POST", self.create_path, json=payload)

    async def get_policy_details(self, policy_id: str) -> RemoteResponse:
        path = self.details_path.format(policy_id=quote(policy_id, safe=""))
        return await self._send("GET", path)

    async def update_health_points(self, request: UpdateHealthPointsRequest) -> RemoteResponse:
        payload = request.model_dump(mode="json", by_alias=True)
        return await self._send("POST", self.update_path, json=payload)
