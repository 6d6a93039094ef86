"""Telegram Bot API client for the relay's single outbound call.

Sends either ``sendMessage`` (JSON) or ``sendPhoto`` (multipart) and
normalizes the reply. One attempt per call; the caller owns retries.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from src.models import OutboundMessage, PhotoMessage, TextMessage
from src.relay.config import DEFAULT_API_BASE, DEFAULT_TIMEOUT_SECONDS
from src.relay.errors import TransportFailure, UpstreamMalformedResponse, UpstreamRejected

logger = logging.getLogger(__name__)

PARSE_MODE = "Markdown"
PHOTO_FILENAME = "captured_photo.jpeg"
PHOTO_CONTENT_TYPE = "image/jpeg"


class TelegramClient:
    """Sends one outbound message to a fixed chat."""

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def endpoint(self, method: str) -> str:
        return f"{self._api_base}/bot{self._bot_token}/{method}"

    async def send(self, message: OutboundMessage) -> dict[str, Any]:
        """Deliver ``message`` and return the parsed platform reply.

        Raises TransportFailure when Telegram cannot be reached,
        UpstreamMalformedResponse when the reply is not a JSON object and
        UpstreamRejected when the reply reports ``ok: false``.
        """
        try:
            async with httpx.AsyncClient(
                verify=True, timeout=self._timeout, transport=self._transport,
            ) as client:
                if isinstance(message, PhotoMessage):
                    resp = await self._send_photo(client, message)
                else:
                    resp = await self._send_text(client, message)
        except httpx.HTTPError as exc:
            # httpx errors can embed the request URL, which holds the token.
            logger.error("Telegram request failed: %s", type(exc).__name__)
            raise TransportFailure() from exc

        return self._normalize(resp)

    async def _send_text(
        self, client: httpx.AsyncClient, message: TextMessage,
    ) -> httpx.Response:
        payload = {
            "chat_id": self._chat_id,
            "text": message.caption,
            "parse_mode": PARSE_MODE,
        }
        return await client.post(self.endpoint("sendMessage"), json=payload)

    async def _send_photo(
        self, client: httpx.AsyncClient, message: PhotoMessage,
    ) -> httpx.Response:
        request = client.build_request(
            "POST",
            self.endpoint("sendPhoto"),
            data={
                "chat_id": self._chat_id,
                "caption": message.caption,
                "parse_mode": PARSE_MODE,
            },
            files={"photo": (PHOTO_FILENAME, message.image, PHOTO_CONTENT_TYPE)},
        )
        return await client.send(ensure_content_length(request))

    def _normalize(self, resp: httpx.Response) -> dict[str, Any]:
        raw = resp.text
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            raise UpstreamMalformedResponse(self._scrub(raw), resp.status_code) from None

        if not isinstance(data, dict):
            raise UpstreamMalformedResponse(self._scrub(raw), resp.status_code)

        if data.get("ok") is not True:
            description = data.get("description")
            raise UpstreamRejected(
                self._scrub(description) if isinstance(description, str) else None,
                resp.status_code,
            )
        return data

    def _scrub(self, text: str) -> str:
        # Only the token is echoed back in Telegram error bodies.
        if self._bot_token:
            text = text.replace(self._bot_token, "***")
        return text


def ensure_content_length(request: httpx.Request) -> httpx.Request:
    """Materialize the body and set Content-Length if the encoder left it out.

    httpx sizes multipart bodies built from bytes itself; parts backed by
    streams of unknown size go out chunked, which Telegram stalls on.
    """
    body = request.read()
    if "Content-Length" not in request.headers:
        request.headers.pop("Transfer-Encoding", None)
        request.headers["Content-Length"] = str(len(body))
    return request
