from __future__ import annotations

import logging


def configure_app_logging(level: str = "INFO") -> None:
    """
    Set the level of the ``gatepass`` logger tree.

    Notes:
    - Plain stdlib logging; uvicorn already installs handlers.
    - Set `GATEPASS_LOG_LEVEL=DEBUG` to see individual authorization decisions.
    """

    normalized = level.upper()
    logging.getLogger("gatepass").setLevel(normalized)
    logging.getLogger("gatepass").propagate = True
