"""Shared data models for the report relay."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# --- Enums ---


class AuditEventType(str, Enum):
    RELAY_SUCCESS = "relay_success"
    RELAY_REJECTED = "relay_rejected"
    RELAY_UPSTREAM_FAILURE = "relay_upstream_failure"
    CONFIG_FAULT = "config_fault"


class RiskLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


# --- Inbound ---


class RelayRequest(BaseModel):
    """Inbound report from the capture page.

    Wire names follow the browser payload: ``caption``, ``base64Image``,
    ``isPhoto``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    caption: str = ""
    image_payload: str | None = Field(default=None, alias="base64Image")
    send_as_image: bool = Field(default=False, alias="isPhoto")


@dataclass(frozen=True)
class Parsed:
    request: RelayRequest


@dataclass(frozen=True)
class RawFallback:
    """Body that was readable text but not a JSON object, kept verbatim."""

    raw: str


@dataclass(frozen=True)
class ParseFailed:
    reason: str


ParseResult = Parsed | RawFallback | ParseFailed


# --- Credentials ---


@dataclass(frozen=True)
class Credentials:
    bot_token: str
    chat_id: str

    @property
    def complete(self) -> bool:
        return bool(self.bot_token) and bool(self.chat_id)

    def __repr__(self) -> str:
        # Keep secrets out of tracebacks and debug output.
        return f"Credentials(complete={self.complete})"


# --- Outbound ---


@dataclass(frozen=True)
class TextMessage:
    caption: str


@dataclass(frozen=True)
class PhotoMessage:
    image: bytes
    caption: str

    def __repr__(self) -> str:
        return f"PhotoMessage(image=<{len(self.image)} bytes>, caption={self.caption!r})"


OutboundMessage = TextMessage | PhotoMessage


# --- Result ---


class RelayResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    status_code: int = Field(default=200, exclude=True)
    telegram_data: dict[str, Any] | None = None
    error: str | None = None

    def to_body(self) -> dict[str, Any]:
        """Response body for the caller, without unset fields."""
        return self.model_dump(exclude_none=True)


# --- Audit Models ---


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class AuditEvent(BaseModel):
    timestamp: str = Field(default_factory=_now_iso)
    event_type: AuditEventType
    source_ip: str | None = None
    action: str
    result: str  # "success" | "failure" | "rejected"
    risk_level: RiskLevel
    details: dict[str, object] | None = None
