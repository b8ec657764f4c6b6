"""Command-line interface for the monitoring agent.

Commands:
- run: Start the scheduler and the HTTP API
- upload: Upload local dated files once
- sync: Fetch remote dated files once
- fingerprint: Print a file's SHA-256 fingerprint
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from monitoragent.core.config import AgentConfig, ConfigError, load_config
from monitoragent.core.fingerprint import FileError, compute_fingerprint
from monitoragent.core.log import setup_logging
from monitoragent.core.naming import format_date, parse_date, remote_key, today
from monitoragent.sync.storage import StorageError


def _load(ctx: click.Context) -> tuple[AgentConfig, logging.Logger]:
    """Load the config named by the group options and set up logging."""
    try:
        config = load_config(ctx.obj["config_path"])
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    level = "DEBUG" if ctx.obj["verbose"] else config.log_level
    return config, setup_logging(config.log_path, level)


@click.group()
@click.version_option()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config file (default: $MONITORAGENT_CONFIG or ~/.aws/config.json).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """Monitor Agent - health monitor with S3-backed dated record sync."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Start the scheduler and serve the HTTP API.

    The scheduler runs the enabled health check, upload, sync and IP report
    loops in the background for as long as the server is up.
    """
    import uvicorn

    from monitoragent.agent import build_agent
    from monitoragent.server.app import create_app

    config, log = _load(ctx)
    app = create_app(build_agent(config, log), run_scheduler=True)
    uvicorn.run(app, host="0.0.0.0", port=config.port, log_config=None)


@cli.command()
@click.option("--date", "day", default=None, help="Upload only the file of this date (YYYY-MM-DD).")
@click.pass_context
def upload(ctx: click.Context, day: str | None) -> None:
    """Upload local dated files to the bucket.

    Files of past days are removed locally once the bucket holds them.
    """
    from monitoragent.agent import build_agent

    config, log = _load(ctx)
    agent = build_agent(config, log)
    if agent.reconciler is None:
        click.echo("Error: No bucket configured.", err=True)
        sys.exit(1)

    if day is None:
        result = agent.scheduler.upload_now()
        click.echo(f"Uploaded {result.transferred} of {len(result.actions)} files.")
        if result.failed:
            click.echo(f"Failed: {', '.join(result.failed)}", err=True)
            sys.exit(1)
        return

    parsed = parse_date(day)
    if parsed is None:
        click.echo(f"Error: Invalid date: {day}", err=True)
        sys.exit(1)
    key = remote_key(parsed, config.device_id)
    path = agent.local_dir / format_date(parsed)
    try:
        action = agent.reconciler.upload(key, path, remove_local=parsed != today())
    except (StorageError, FileError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"{key}: {action.value}")


@cli.command()
@click.option("--force", is_flag=True, help="Re-verify every mirrored copy against the bucket.")
@click.pass_context
def sync(ctx: click.Context, force: bool) -> None:
    """Fetch remote dated files into the local mirror."""
    from monitoragent.agent import build_agent

    config, log = _load(ctx)
    agent = build_agent(config, log)
    if agent.reconciler is None:
        click.echo("Error: No bucket configured.", err=True)
        sys.exit(1)

    try:
        result = agent.scheduler.sync_now(force=force or None)
    except StorageError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Fetched {result.transferred} of {len(result.actions)} files.")
    if result.failed:
        click.echo(f"Failed: {', '.join(result.failed)}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("path", type=click.Path(path_type=Path))
def fingerprint(path: Path) -> None:
    """Print the SHA-256 fingerprint of PATH."""
    try:
        click.echo(compute_fingerprint(path))
    except FileError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def main() -> None:
    """Entry point for the monitoragent console script."""
    cli()
