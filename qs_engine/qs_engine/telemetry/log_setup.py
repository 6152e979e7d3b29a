"""Root logger configuration."""

from __future__ import annotations

import logging

from qs_engine.config import Settings
from qs_engine.telemetry.json_formatter import JSONFormatter

logger = logging.getLogger(__name__)

TEXT_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"


def configure_logging(settings: Settings) -> None:
    """Install the root handler described by *settings*.

    Plain text via ``logging.basicConfig`` by default; a single
    ``StreamHandler`` with :class:`JSONFormatter` when
    ``structured_logging`` is on.
    """
    level = logging.DEBUG if settings.debug else logging.INFO

    if settings.structured_logging:
        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        root_logger.addHandler(handler)
        root_logger.setLevel(level)
        logger.debug("Structured JSON logging enabled")
        return

    logging.basicConfig(level=level, format=TEXT_FORMAT)
