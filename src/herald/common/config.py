"""Application configuration using Pydantic Settings."""

import logging
from typing import Literal

from pydantic_settings import BaseSettings

from herald.common.constants import DEFAULT_TITLE, ENVELOPE_KEYS, MAX_CONTENT_LENGTH


class HeraldConfig(BaseSettings):
    """Application configuration loaded from environment variables."""

    environment: Literal["dev", "staging", "prod"] = "dev"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    envelope_keys: tuple[str, ...] = ENVELOPE_KEYS
    default_title: str = DEFAULT_TITLE
    max_content_length: int = MAX_CONTENT_LENGTH
    dispatch_timeout_seconds: float = 10.0

    model_config = {"env_prefix": "HERALD_", "case_sensitive": False}


def configure_logging(config: HeraldConfig | None = None) -> logging.Logger:
    """Apply the configured log level to the ``herald`` logger hierarchy."""
    config = config or HeraldConfig()
    logger = logging.getLogger("herald")
    logger.setLevel(config.log_level)
    return logger


__all__ = ["HeraldConfig", "configure_logging"]
