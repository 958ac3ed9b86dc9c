"""Logging configuration."""

import logging
import os
import sys
from collections.abc import MutableMapping
from typing import Any

from pydantic import BaseModel, Field


class LogConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    quiet_loggers: tuple[str, ...] = ("anthropic", "httpx", "httpcore", "uvicorn.access")


def setup_logging(config: LogConfig | None = None) -> None:
    """Configure root logging for the service and lower the chatter of HTTP clients."""
    config = config or LogConfig()

    logging.basicConfig(
        level=getattr(logging, config.level.upper()),
        format=config.format,
        datefmt=config.date_format,
        stream=sys.stdout,
        force=True,
    )

    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Get a logger for a specific module.

    Args:
        name: Module name (typically __name__)
        level: Explicit level, otherwise LOG_LEVEL or INFO

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())
    return logger


class TurnLogAdapter(logging.LoggerAdapter):
    """Prefixes records with the conversation and user a turn belongs to."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = self.extra or {}
        return f"[conv={extra.get('conversation_id')} user={extra.get('user_id')}] {msg}", kwargs


def turn_logger(logger: logging.Logger, conversation_id: str, user_id: str) -> TurnLogAdapter:
    return TurnLogAdapter(logger, {"conversation_id": conversation_id, "user_id": user_id})
