from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | int = logging.WARNING) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError("Unknown log level")
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # httpx logs every request at INFO, which drowns out our own messages.
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
