"""Relay configuration loaded once from the environment."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

from src.models import Credentials

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.telegram.org"
DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class RelayConfig:
    credentials: Credentials
    api_base: str = DEFAULT_API_BASE
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    allowed_origins: tuple[str, ...] = ()
    audit_log_path: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RelayConfig:
        """Read the relay settings from ``environ`` (defaults to ``os.environ``).

        Missing secrets are not an error here: the handler answers every
        request with a configuration fault until they are provided.
        """
        env = os.environ if environ is None else environ
        credentials = Credentials(
            bot_token=env.get("TELEGRAM_BOT_TOKEN", "").strip(),
            chat_id=env.get("TELEGRAM_CHAT_ID", "").strip(),
        )
        if not credentials.complete:
            logger.warning("Telegram credentials are not fully configured")

        timeout = float(env.get("RELAY_UPSTREAM_TIMEOUT", str(DEFAULT_TIMEOUT_SECONDS)))
        if timeout <= 0:
            raise ValueError("RELAY_UPSTREAM_TIMEOUT must be positive")

        origins = tuple(
            o.strip() for o in env.get("RELAY_ALLOWED_ORIGINS", "").split(",") if o.strip()
        )
        return cls(
            credentials=credentials,
            api_base=env.get("TELEGRAM_API_BASE", DEFAULT_API_BASE).rstrip("/"),
            timeout=timeout,
            allowed_origins=origins,
            audit_log_path=env.get("AUDIT_LOG_PATH") or None,
        )
