"""FastAPI application exposing the report relay."""

from __future__ import annotations

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.audit.logger import AuditLogger
from src.relay.config import RelayConfig
from src.relay.handler import RelayHandler

RELAY_PATH = "/api/telegram-proxy"

# Every method reaches the handler so non-POST calls get the relay's own 405 body.
_ROUTED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables."""
    config = RelayConfig.from_env()
    audit_logger = AuditLogger.from_env(config.audit_log_path) if config.audit_log_path else None
    return create_app(config, audit_logger)


def create_app(
    config: RelayConfig,
    audit_logger: AuditLogger | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create the relay app around an explicit configuration."""
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)
    handler = RelayHandler(config, audit_logger=audit_logger, transport=transport)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.api_route(RELAY_PATH, methods=_ROUTED_METHODS)
    async def relay(request: Request) -> JSONResponse:
        body = await request.body()
        result = await handler.handle(
            request.method,
            body,
            content_type=request.headers.get("content-type"),
            source_ip=request.client.host if request.client else None,
        )
        headers = {"Allow": "POST"} if result.status_code == 405 else None
        return JSONResponse(result.to_body(), status_code=result.status_code, headers=headers)

    if config.allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(config.allowed_origins),
            allow_methods=["POST"],
            allow_headers=["Content-Type"],
        )

    return app
