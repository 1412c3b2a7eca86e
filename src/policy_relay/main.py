"""Relay server entry point.

``.env`` is read first so ``${oc.env:SCORE_SERVICE_URL}`` and friends resolve,
then Hydra composes ``conf/config.yaml`` and uvicorn serves the app.

Usage::

    python -m policy_relay.main
    python -m policy_relay.main server.port=8080 logging.format=structured
    policy-relay remote.ledger_service.base_url=http://ledger:5000
"""

from __future__ import annotations

import hydra
import uvicorn
from dotenv import load_dotenv
from loguru import logger
from omegaconf import DictConfig

from policy_relay.api.app import create_app

load_dotenv()


def serve(cfg: DictConfig) -> None:
    """Build the relay from *cfg* and block serving it."""
    app = create_app(cfg)
    server = cfg.server

    logger.info(
        "Relay listening on http://{host}:{port} (score={score}, ledger={ledger})",
        host=server.host,
        port=server.port,
        score=cfg.remote.score_service.base_url,
        ledger=cfg.remote.ledger_service.base_url,
    )
    # log_config=None keeps uvicorn on the loguru bridge installed by create_app.
    uvicorn.run(
        app,
        host=server.host,
        port=int(server.port),
        log_config=None,
        log_level="debug" if server.debug else "info",
    )


@hydra.main(version_base=None, config_path="../../conf", config_name="config")
def main(cfg: DictConfig) -> None:
    serve(cfg)


if __name__ == "__main__":
    main()
