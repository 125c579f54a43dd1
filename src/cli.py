"""Click CLI for running and checking the inbox relay."""

from __future__ import annotations

import logging
import sys

import click
import uvicorn

from src.config import Settings


@click.group()
@click.option("--log-level", default="info", help="Logging level (debug, info, warning).")
@click.pass_context
def cli(ctx: click.Context, log_level: str) -> None:
    """WhatsApp inbox relay."""
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level.lower()
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option("--host", default="0.0.0.0", help="Interface to bind.")
@click.option("--port", default=8080, type=int, help="Port to listen on.")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int) -> None:
    """Serve the webhook and inbox API."""
    uvicorn.run(
        "src.api.app:create_app_from_env",
        factory=True,
        host=host,
        port=port,
        log_level=ctx.obj["log_level"],
    )


@cli.command("check-config")
def check_config() -> None:
    """Report configuration problems read from the environment."""
    problems = Settings.from_env().warnings()
    if not problems:
        click.echo("Configuration OK")
        return
    for problem in problems:
        click.echo(f"warning: {problem}", err=True)
    sys.exit(1)
