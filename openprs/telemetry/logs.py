"""Process-wide logging setup for the CLI and the API server."""

from __future__ import annotations

import logging

from openprs.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    resolved = (level or settings.log_level).upper()
    logging.basicConfig(level=getattr(logging, resolved, logging.INFO), format=LOG_FORMAT)
    # PyGithub logs every request at DEBUG.
    logging.getLogger("github").setLevel(max(logging.getLogger().level, logging.INFO))
