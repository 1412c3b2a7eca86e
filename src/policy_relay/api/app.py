"""FastAPI application factory.

``create_app`` builds a fully configured ``FastAPI`` instance with:

* One shared ``httpx.AsyncClient`` for all outbound calls
* Score-service and ledger-service clients on ``app.state``
* CORS middleware
* Request-logging / exception-handling middleware
* Score, policy and health routes
* Lifespan manager that closes the outbound client on shutdown
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from policy_relay.api.middleware import ExceptionHandlerMiddleware, RequestLoggingMiddleware
from policy_relay.api.routes.health import router as health_router
from policy_relay.api.routes.policies import router as policies_router
from policy_relay.api.routes.scores import router as scores_router
from policy_relay.logging.setup import setup_logging
from policy_relay.services.ledger_service import LedgerServiceClient
from policy_relay.services.score_service import ScoreServiceClient

if TYPE_CHECKING:
    from omegaconf import DictConfig


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle for the FastAPI application."""
    logger.info(
        "Relaying to score service {score} and ledger {ledger}",
        score=app.state.score_service.base_url,
        ledger=app.state.ledger_service.base_url,
    )
    yield
    await app.state.http.aclose()
    logger.info("Application shutting down")


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def build_services(
    cfg: DictConfig,
    http: httpx.AsyncClient,
) -> tuple[ScoreServiceClient, LedgerServiceClient]:
    """Instantiate the two remote-service clients from ``cfg.remote``."""
    remote = cfg.remote
    timeout = float(remote.timeout)

    score_service = ScoreServiceClient(
        http,
        remote.score_service.base_url,
        scores_path=remote.score_service.scores_path,
        evaluate_path=remote.score_service.evaluate_path,
        timeout=timeout,
    )
    ledger_service = LedgerServiceClient(
        http,
        remote.ledger_service.base_url,
        create_path=remote.ledger_service.create_path,
        details_path=remote.ledger_service.details_path,
        update_path=remote.ledger_service.update_path,
        timeout=timeout,
    )
    return score_service, ledger_service


def create_app(
    cfg: DictConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build and return a fully configured :class:`FastAPI` application.

    Parameters
    ----------
    cfg:
        The merged Hydra configuration.
    transport:
        Optional transport for the outbound client (tests plug in an
        ``httpx.MockTransport`` here).

    Returns
    -------
    FastAPI
        Ready-to-run application instance.
    """
    # ── Logging ──────────────────────────────────────────────────────────
    setup_logging(cfg.logging)

    # ── App ──────────────────────────────────────────────────────────────
    app = FastAPI(
        title="Health Policy Relay",
        description="Stateless relay between the mobile client, the score service and the policy ledger",
        version="1.0.0",
        lifespan=_lifespan,
    )
    app.state.cfg = cfg

    # ── Outbound services ────────────────────────────────────────────────
    http = httpx.AsyncClient(transport=transport)
    app.state.http = http
    app.state.score_service, app.state.ledger_service = build_services(cfg, http)

    # ── CORS ─────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cfg.server.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Custom middleware (outermost = first to run) ─────────────────────
    app.add_middleware(ExceptionHandlerMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    # ── Routes ───────────────────────────────────────────────────────────
    app.include_router(health_router)
    app.include_router(scores_router)
    app.include_router(policies_router)

    return app
