"""Relay fault taxonomy.

Every fault carries the HTTP status and the sanitized message returned to the
caller. Messages never contain the bot token or the chat id.
"""

from __future__ import annotations

DEFAULT_REJECTION_MESSAGE = "Failed to send to Telegram"
EXCERPT_LIMIT = 100


def _mirror_status(upstream_status: int | None) -> int:
    if upstream_status is not None and upstream_status >= 400:
        return upstream_status
    return 500


class RelayError(Exception):
    """Base class for faults mapped to a caller-facing status and message."""

    status_code = 500
    kind = "relay_error"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class MethodNotAllowed(RelayError):
    status_code = 405
    kind = "method_not_allowed"

    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__("Only POST is allowed.")


class ServerMisconfigured(RelayError):
    status_code = 500
    kind = "server_misconfigured"

    def __init__(self) -> None:
        super().__init__("Server configuration error.")


class MalformedPayload(RelayError):
    status_code = 400
    kind = "malformed_payload"

    def __init__(self, message: str = "Malformed request payload.") -> None:
        super().__init__(message)


class EmptyCaption(RelayError):
    status_code = 400
    kind = "empty_caption"

    def __init__(self) -> None:
        super().__init__("Caption must not be empty.")


class UpstreamMalformedResponse(RelayError):
    kind = "upstream_malformed_response"

    def __init__(self, excerpt: str, upstream_status: int | None) -> None:
        self.excerpt = excerpt[:EXCERPT_LIMIT]
        self.upstream_status = upstream_status
        super().__init__(
            f"Telegram returned a non-JSON response: {self.excerpt}",
            status_code=_mirror_status(upstream_status),
        )


class UpstreamRejected(RelayError):
    kind = "upstream_rejected"

    def __init__(self, description: str | None, upstream_status: int | None) -> None:
        self.description = description
        self.upstream_status = upstream_status
        super().__init__(
            description or DEFAULT_REJECTION_MESSAGE,
            status_code=_mirror_status(upstream_status),
        )


class TransportFailure(RelayError):
    status_code = 500
    kind = "transport_failure"

    def __init__(self) -> None:
        super().__init__("Internal server error while contacting Telegram.")
