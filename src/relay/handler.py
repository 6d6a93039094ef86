"""Relay handler: forwards one captured report to Telegram.

Stages:
1. Method check (POST only)
2. Credentials check
3. Body parse (tagged: parsed / raw fallback / failed)
4. Caption check
5. Image decode and outbound message selection
6. One call to Telegram, response normalization
7. Result mapping, diagnostics and audit

Every fault is raised as a ``RelayError`` and mapped to a ``RelayResult`` at
this boundary; nothing else escapes to the transport.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from src.models import (
    AuditEvent,
    AuditEventType,
    OutboundMessage,
    Parsed,
    ParseFailed,
    ParseResult,
    PhotoMessage,
    RawFallback,
    RelayRequest,
    RelayResult,
    RiskLevel,
)
from src.relay.errors import (
    EmptyCaption,
    MalformedPayload,
    MethodNotAllowed,
    RelayError,
    ServerMisconfigured,
    TransportFailure,
    UpstreamMalformedResponse,
    UpstreamRejected,
)
from src.relay.payload import build_outbound, parse_body
from src.relay.telegram import TelegramClient

if TYPE_CHECKING:
    import httpx

    from src.audit.logger import AuditLogger
    from src.relay.config import RelayConfig

logger = logging.getLogger(__name__)

WRITE_METHOD = "POST"

_UPSTREAM_FAULTS = (UpstreamMalformedResponse, UpstreamRejected, TransportFailure)


class RelayHandler:
    """Validates a report request and relays it with server-held credentials."""

    def __init__(
        self,
        config: RelayConfig,
        audit_logger: AuditLogger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._audit = audit_logger
        self._client: TelegramClient | None = None
        if config.credentials.complete:
            self._client = TelegramClient(
                bot_token=config.credentials.bot_token,
                chat_id=config.credentials.chat_id,
                api_base=config.api_base,
                timeout=config.timeout,
                transport=transport,
            )

    async def handle(
        self,
        method: str,
        body: bytes,
        content_type: str | None = None,
        source_ip: str | None = None,
    ) -> RelayResult:
        """Run one relay invocation and return its result. Never raises."""
        message: OutboundMessage | None = None
        try:
            request = self.validate(method, body, content_type)
            message = build_outbound(request)
            data = await self._send(message)
        except RelayError as exc:
            return self._fail(exc, message, source_ip)
        except Exception:
            logger.exception("Unexpected failure while relaying report")
            return self._fail(TransportFailure(), message, source_ip)

        self._record(
            AuditEventType.RELAY_SUCCESS, "success", RiskLevel.INFO, source_ip,
            {"message_kind": _kind(message), "caption_length": len(message.caption)},
        )
        return RelayResult(success=True, status_code=200, telegram_data=data)

    def validate(self, method: str, body: bytes, content_type: str | None) -> RelayRequest:
        """Apply the ordered checks; the first failing check raises."""
        if method.upper() != WRITE_METHOD:
            raise MethodNotAllowed(method)

        if self._client is None:
            raise ServerMisconfigured()

        request = _request_from(parse_body(body, content_type))
        if not request.caption.strip():
            raise EmptyCaption()
        return request

    async def _send(self, message: OutboundMessage) -> dict[str, Any]:
        if self._client is None:
            raise ServerMisconfigured()
        return await self._client.send(message)

    def _fail(
        self,
        exc: RelayError,
        message: OutboundMessage | None,
        source_ip: str | None,
    ) -> RelayResult:
        details: dict[str, object] = {"fault": exc.kind, "status": exc.status_code}
        if message is not None:
            details["message_kind"] = _kind(message)

        if isinstance(exc, ServerMisconfigured):
            logger.error("Telegram bot token or chat id is not configured")
            self._record(AuditEventType.CONFIG_FAULT, "failure", RiskLevel.HIGH, source_ip, details)
        elif isinstance(exc, _UPSTREAM_FAULTS):
            logger.error("Telegram relay failed (%s, status %d): %s", exc.kind, exc.status_code, exc.message)
            self._record(
                AuditEventType.RELAY_UPSTREAM_FAILURE, "failure", RiskLevel.MEDIUM, source_ip, details,
            )
        else:
            logger.warning("Relay request rejected (%s): %s", exc.kind, exc.message)
            self._record(AuditEventType.RELAY_REJECTED, "rejected", RiskLevel.LOW, source_ip, details)

        return RelayResult(success=False, status_code=exc.status_code, error=exc.message)

    def _record(
        self,
        event_type: AuditEventType,
        result: str,
        risk_level: RiskLevel,
        source_ip: str | None,
        details: dict[str, object],
    ) -> None:
        if not self._audit:
            return
        try:
            self._audit.log(AuditEvent(
                event_type=event_type,
                source_ip=source_ip,
                action="relay",
                result=result,
                risk_level=risk_level,
                details=details,
            ))
        except OSError:
            logger.exception("Failed to write relay audit event")


def _request_from(parsed: ParseResult) -> RelayRequest:
    if isinstance(parsed, Parsed):
        return parsed.request
    if isinstance(parsed, RawFallback):
        logger.debug("Non-JSON body received (%d chars)", len(parsed.raw))
        return RelayRequest()
    if isinstance(parsed, ParseFailed):
        raise MalformedPayload()
    raise TypeError(f"unexpected parse result: {type(parsed).__name__}")


def _kind(message: OutboundMessage) -> str:
    return "photo" if isinstance(message, PhotoMessage) else "text"
