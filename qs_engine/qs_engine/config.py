"""Engine configuration loaded from environment variables."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from qs_engine.sql_toolkit import Dialect

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables with PGQS_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="PGQS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Master switch for applying per-query settings.
    enabled: bool = True
    debug: bool = False

    # Log each query id at INFO as it is computed.
    print_query_id: bool = False

    # Normalisation
    dialect: Dialect = Dialect.POSTGRES
    preserve_space: bool = False
    drop_trailing_semicolon: bool = True

    # Per-query settings rules (YAML or JSON).
    rules_file: Path | None = None

    # Telemetry
    structured_logging: bool = False

    def has_rules_file(self) -> bool:
        return self.rules_file is not None


def load_settings(**overrides: object) -> Settings:
    """Load settings from environment, with optional overrides for testing."""
    settings = Settings(**overrides)  # type: ignore[arg-type]

    if settings.debug:
        logger.info("Loaded settings (dialect=%s, enabled=%s)", settings.dialect.value, settings.enabled)

    return settings
