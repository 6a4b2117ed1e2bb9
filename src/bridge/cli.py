"""Click CLI for the WeCom bridge."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

import click
import uvicorn

from src.bridge.app import WEBHOOK_PATH, create_app
from src.config import BridgeSettings, ConfigError, load_settings
from src.relay.parser import parse_reply
from src.sessions.reader import find_latest_assistant_reply, resolve_active_session

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_QUIET_LOGGERS = ("httpx", "httpcore")


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=_LOG_FORMAT)
    # httpx logs full request URLs, which carry corpsecret and access_token
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _load(env_file: str | None) -> BridgeSettings:
    try:
        return load_settings(env_file)
    except ConfigError as exc:
        raise click.ClickException(
            f"{exc}\nCopy .env.example to .env and fill in all required values.",
        ) from exc


@click.group()
@click.option("--env-file", default=".env", help="Path to the .env file.")
@click.pass_context
def cli(ctx: click.Context, env_file: str) -> None:
    """WeCom to OpenClaw webhook bridge."""
    ctx.ensure_object(dict)
    ctx.obj["env_file"] = env_file


@cli.command()
@click.option("--host", default="0.0.0.0", help="Interface to listen on.")
@click.option("--port", type=int, default=None, help="Port (defaults to BRIDGE_PORT).")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int | None) -> None:
    """Run the webhook bridge."""
    settings = _load(ctx.obj["env_file"])
    configure_logging(settings.log_level)
    port = port or settings.bridge_port
    click.echo(f"Webhook bridge listening on port {port}")
    click.echo(f"  WeCom callback URL: http://YOUR_SERVER_IP:{port}{WEBHOOK_PATH}")
    click.echo(f"  Watching sessions dir: {settings.sessions_dir}")
    uvicorn.run(create_app(settings), host=host, port=port, log_level=settings.log_level.lower())


@cli.command("check-config")
@click.pass_context
def check_config(ctx: click.Context) -> None:
    """Validate configuration and print it with secrets masked."""
    settings = _load(ctx.obj["env_file"])
    click.echo(json.dumps(settings.redacted(), indent=2))


@cli.command("latest-reply")
@click.option("--since", default=None, help="ISO 8601 time; only replies after it count.")
@click.option(
    "--file", "session_file", default=None, type=click.Path(path_type=Path),
    help="Session file to read instead of the active one.",
)
@click.pass_context
def latest_reply(ctx: click.Context, since: str | None, session_file: Path | None) -> None:
    """Print the newest assistant reply in the active session."""
    if session_file is None:
        settings = _load(ctx.obj["env_file"])
        session_file = resolve_active_session(settings.sessions_dir)
        if session_file is None:
            raise click.ClickException(f"No session file in {settings.sessions_dir}")

    after = datetime.min.replace(tzinfo=UTC)
    if since:
        try:
            after = datetime.fromisoformat(since)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--since") from exc
        if after.tzinfo is None:
            after = after.replace(tzinfo=UTC)

    record = find_latest_assistant_reply(session_file, after)
    if record is None:
        raise click.ClickException(f"No assistant reply in {session_file.name}")
    parsed = parse_reply(record.text)
    click.echo(json.dumps(
        {
            "timestamp": record.timestamp.isoformat(),
            "text": parsed.text_only,
            "images": parsed.image_paths,
        },
        indent=2,
        ensure_ascii=False,
    ))
