"""Application settings and logging setup."""

import logging
import os

import structlog
from pydantic import BaseModel


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Runtime settings, read from DOCQA_* environment variables."""

    app_name: str = "DocQA Chat"
    reply_timeout: float = 30.0
    bridge_available: bool = False
    log_level: str = "info"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            app_name=os.getenv("DOCQA_APP_NAME", "DocQA Chat"),
            reply_timeout=float(os.getenv("DOCQA_REPLY_TIMEOUT", "30.0")),
            bridge_available=_env_flag("DOCQA_BRIDGE_AVAILABLE", False),
            log_level=os.getenv("DOCQA_LOG_LEVEL", "info"),
        )


def configure_logging(level: str = "info") -> None:
    """Filter structlog output below ``level``."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
    )
