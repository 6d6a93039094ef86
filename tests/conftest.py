"""Shared test fixtures for the report relay."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import httpx
import pytest

from src.audit.logger import AuditLogger
from src.models import AuditEvent, AuditEventType, Credentials, RiskLevel
from src.relay.config import RelayConfig

BOT_TOKEN = "123456:TEST-bot-token-secret"
CHAT_ID = "-1009876543210"


@pytest.fixture
def mock_audit_logger() -> MagicMock:
    return MagicMock(spec=AuditLogger)


# --- Factory functions for test data ---


def make_config(**kwargs: Any) -> RelayConfig:
    """Factory for RelayConfig with test credentials."""
    defaults: dict[str, Any] = {
        "credentials": Credentials(bot_token=BOT_TOKEN, chat_id=CHAT_ID),
        "api_base": "https://api.telegram.test",
        "timeout": 5.0,
    }
    defaults.update(kwargs)
    return RelayConfig(**defaults)


def make_body(**kwargs: Any) -> bytes:
    """JSON request body as the capture page sends it."""
    defaults: dict[str, Any] = {"caption": "Test report", "isPhoto": False}
    defaults.update(kwargs)
    return json.dumps(defaults).encode()


def make_audit_event(**kwargs: Any) -> AuditEvent:
    defaults: dict[str, Any] = {
        "event_type": AuditEventType.RELAY_SUCCESS,
        "action": "relay",
        "result": "success",
        "risk_level": RiskLevel.INFO,
    }
    defaults.update(kwargs)
    return AuditEvent(**defaults)


def telegram_ok(result: dict[str, Any] | None = None) -> dict[str, Any]:
    return {"ok": True, "result": result or {"message_id": 42, "text": "Test report"}}


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(
        self,
        responder: Callable[[httpx.Request], httpx.Response] | None = None,
    ) -> None:
        self.requests: list[httpx.Request] = []
        self._responder = responder or (lambda request: httpx.Response(200, json=telegram_ok()))
        super().__init__(self._record)

    def _record(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responder(request)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()
