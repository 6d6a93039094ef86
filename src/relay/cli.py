"""Click CLI for sending reports through the relay handler."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import click

from src.audit.logger import AuditLogger
from src.relay.caption import format_location_caption
from src.relay.config import RelayConfig
from src.relay.handler import RelayHandler
from src.relay.payload import encode_data_uri


@click.group()
@click.option("--audit-log", default=None, help="Audit log file path.")
@click.pass_context
def cli(ctx: click.Context, audit_log: str | None) -> None:
    """Telegram report relay CLI. Credentials come from the environment."""
    ctx.ensure_object(dict)
    config = RelayConfig.from_env()
    ctx.obj["config"] = config
    path = audit_log or config.audit_log_path
    ctx.obj["audit_logger"] = AuditLogger.from_env(path) if path else None


@cli.command()
@click.argument("caption", required=False, default="")
@click.option("--photo", type=click.Path(exists=True, dir_okay=False), help="JPEG to attach.")
@click.option("--lat", type=float, default=None, help="Latitude of the report.")
@click.option("--lng", type=float, default=None, help="Longitude of the report.")
@click.pass_context
def send(
    ctx: click.Context,
    caption: str,
    photo: str | None,
    lat: float | None,
    lng: float | None,
) -> None:
    """Send CAPTION (and optionally a photo) to the configured chat."""
    if (lat is None) != (lng is None):
        raise click.UsageError("--lat and --lng must be given together")
    if lat is not None and lng is not None:
        try:
            caption = format_location_caption(lat, lng, note=caption or None)
        except ValueError as exc:
            raise click.BadParameter(str(exc)) from exc

    payload: dict[str, object] = {"caption": caption, "isPhoto": photo is not None}
    if photo is not None:
        payload["base64Image"] = encode_data_uri(Path(photo).read_bytes())

    handler = RelayHandler(ctx.obj["config"], audit_logger=ctx.obj["audit_logger"])
    result = asyncio.run(handler.handle(
        "POST", json.dumps(payload).encode(), content_type="application/json",
    ))
    click.echo(json.dumps(result.to_body(), indent=2))
    if not result.success:
        ctx.exit(1)


@cli.command("check-config")
@click.pass_context
def check_config(ctx: click.Context) -> None:
    """Report whether the Telegram credentials are set, without printing them."""
    config: RelayConfig = ctx.obj["config"]
    creds = config.credentials
    click.echo(f"TELEGRAM_BOT_TOKEN: {'set' if creds.bot_token else 'missing'}")
    click.echo(f"TELEGRAM_CHAT_ID: {'set' if creds.chat_id else 'missing'}")
    click.echo(f"API base: {config.api_base}")
    click.echo(f"Upstream timeout: {config.timeout:g}s")
    if not creds.complete:
        ctx.exit(1)


if __name__ == "__main__":
    cli()
