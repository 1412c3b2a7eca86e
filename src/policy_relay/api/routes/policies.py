"""Ledger relay routes for policy creation, lookup and health-point updates.

Every handler answers with the same envelope: ``{success: true, data}`` when
the ledger accepted the call, ``{success: false, message, error}`` otherwise.
Remote non-2xx statuses are mirrored; unreachable ledgers become 500.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from loguru import logger

from policy_relay.schemas.envelope import ErrorEnvelope, SuccessEnvelope
from policy_relay.schemas.policy import CreatePolicyRequest, UpdateHealthPointsRequest
from policy_relay.services.base import RemoteResponse, RemoteServiceError

router = APIRouter(tags=["policies"])


def _envelope(resp: RemoteResponse, failure_message: str) -> JSONResponse:
    if resp.ok:
        return JSONResponse(
            status_code=resp.status_code,
            content=SuccessEnvelope(data=resp.body).model_dump(mode="json"),
        )
    return JSONResponse(
        status_code=resp.status_code,
        content=ErrorEnvelope(message=failure_message, error=resp.body).model_dump(mode="json"),
    )


def _unreachable(exc: RemoteServiceError, failure_message: str) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content=ErrorEnvelope(message=failure_message, error=str(exc)).model_dump(mode="json"),
    )


@router.post(
    "/createPolicy",
    summary="Create a policy",
    description="Register a new policy on the ledger.",
)
async def create_policy(payload: CreatePolicyRequest, request: Request) -> JSONResponse:
    ledger = request.app.state.ledger_service
    logger.info("API: creating policy {pid}", pid=payload.policy_id)

    try:
        resp = await ledger.create_policy(payload)
    except RemoteServiceError as exc:
        logger.error("Ledger error creating policy {pid}: {err}", pid=payload.policy_id, err=exc)
        return _unreachable(exc, "Failed to create policy")

    if not resp.ok:
        logger.warning(
            "Ledger rejected policy {pid} with {status}",
            pid=payload.policy_id,
            status=resp.status_code,
        )
    return _envelope(resp, "Failed to create policy")


@router.get(
    "/getPolicyDetails/{policy_id:path}",
    summary="Policy details",
    description="Read a policy and its derived figures from the ledger.",
)
async def get_policy_details(policy_id: str, request: Request) -> JSONResponse:
    ledger = request.app.state.ledger_service

    try:
        resp = await ledger.get_policy_details(policy_id)
    except RemoteServiceError as exc:
        logger.error("Ledger error reading policy {pid}: {err}", pid=policy_id, err=exc)
        return _unreachable(exc, "Failed to fetch policy details")

    return _envelope(resp, "Failed to fetch policy details")


@router.post(
    "/updateHealthPoints",
    summary="Update health points",
    description="Push a new health score for an existing policy.",
)
async def update_health_points(payload: UpdateHealthPointsRequest, request: Request) -> JSONResponse:
    ledger = request.app.state.ledger_service
    logger.info(
        "API: updating health points of {pid} to {score}",
        pid=payload.policy_id,
        score=payload.new_health_points,
    )

    try:
        resp = await ledger.update_health_points(payload)
    except RemoteServiceError as exc:
        logger.error("Ledger error updating policy {pid}: {err}", pid=payload.policy_id, err=exc)
        return _unreachable(exc, "Failed to update health points")

    return _envelope(resp, "Failed to update health points")
