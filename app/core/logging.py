"""Logging configuration."""

import logging

from app.core.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(config: Settings) -> None:
    """Configure the root logger once at startup."""
    level = logging.DEBUG if config.debug else getattr(logging, config.log_level.value)

    root = logging.getLogger()
    root.setLevel(level)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    # httpx logs every request at INFO, which includes WebDAV paths
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
