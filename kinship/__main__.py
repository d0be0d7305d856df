"""Run the Kinship API under Uvicorn (``python -m kinship`` or ``kinship-server``)."""
from __future__ import annotations

import logging
import os

import uvicorn

logger = logging.getLogger(__name__)


def main() -> None:
    host = os.getenv("KINSHIP_HOST", "0.0.0.0")
    port = int(os.getenv("KINSHIP_PORT", "8000"))
    reload = os.getenv("UVICORN_RELOAD", "false").lower() == "true"
    log_level = os.getenv("KINSHIP_LOG_LEVEL", "info").lower()
    logger.info("Starting Kinship on %s:%d", host, port)
    uvicorn.run("kinship.main:app", host=host, port=port, reload=reload, log_level=log_level)


if __name__ == "__main__":
    main()
