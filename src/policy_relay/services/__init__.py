"""Outbound clients for the external score and ledger services."""

from policy_relay.services.base import RemoteResponse, RemoteServiceClient, RemoteServiceError
from policy_relay.services.ledger_service import LedgerServiceClient
from policy_relay.services.score_service import ScoreServiceClient

__all__ = [
    "LedgerServiceClient",
    "RemoteResponse",
    "RemoteServiceClient",
    "RemoteServiceError",
    "ScoreServiceClient",
]
