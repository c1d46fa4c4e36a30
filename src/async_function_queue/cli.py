"""Command-line interface for the function queue."""

import asyncio
import json
import logging
import sys

import click
from prometheus_client import generate_latest

from .config import LOG_FORMATS, QueueConfig
from .metrics import get_metrics
from .queue import AsyncFunctionQueue
from .replay import ReplayScriptError, load_script, replay
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)


def _queue_options(func):
    """Options shared by commands that resolve a QueueConfig."""
    options = [
        click.option(
            "--queue-name",
            type=str,
            help="Queue name used in logs and metrics (default: default)",
        ),
        click.option(
            "--max-history-size",
            type=click.IntRange(min=0),
            help="Maximum number of execution results retained (default: 100)",
        ),
        click.option(
            "--default-delay-ms",
            type=click.FloatRange(min=0),
            help="Delay applied to steps that don't set one (default: none)",
        ),
        click.option(
            "--auto-execute/--no-auto-execute",
            default=None,
            help="Start items as soon as the queue is free; otherwise drain at wait steps (default: enabled)",
        ),
        click.option(
            "--debug/--no-debug",
            default=None,
            help="Log queue lifecycle events at INFO (default: disabled)",
        ),
        click.option(
            "--metrics/--no-metrics",
            "metrics_enabled",
            default=None,
            help="Record Prometheus metrics and print them to stderr after a replay (default: disabled)",
        ),
        click.option(
            "--log-level",
            type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
            help="Logging level (default: INFO)",
        ),
        click.option(
            "--log-format",
            type=click.Choice(list(LOG_FORMATS), case_sensitive=False),
            help="Log format (default: text)",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _load_config(kwargs: dict) -> QueueConfig:
    # Filter out None values (unspecified options)
    cli_args = {k: v for k, v in kwargs.items() if v is not None}
    try:
        return QueueConfig.from_args_and_env(cli_args)
    except ValueError as e:
        raise click.UsageError(f"Invalid configuration: {e}") from e


@click.group()
def cli():
    """Async function queue - ordered, single-flight, debounced execution."""
    pass


@cli.command()
@_queue_options
def config(**kwargs):
    """Show the resolved configuration."""
    click.echo(_load_config(kwargs).display())


@cli.command(name="replay")
@click.argument("script", type=click.Path(exists=True, dir_okay=False))
@_queue_options
@click.option(
    "--json-lines",
    is_flag=True,
    help="Print one history entry per line instead of a JSON array",
)
@click.option(
    "--fail-on-error",
    is_flag=True,
    help="Exit with status 1 if any simulated function failed",
)
def replay_command(script, json_lines, fail_on_error, **kwargs):
    """Replay a JSON script of simulated functions through a queue.

    \b
    Script format:
      {"steps": [
        {"label": "save", "id": "draft", "delay_ms": 50, "duration_ms": 5},
        {"label": "boom", "fail": true},
        {"sleep_ms": 20, "label": "late"},
        {"wait": true}
      ]}
    """
    config = _load_config(kwargs)

    # Setup logging
    setup_logging(level=config.log_level, format_type=config.log_format)
    logger.info(config.display())

    try:
        steps = load_script(script)
    except ReplayScriptError as e:
        raise click.BadParameter(str(e), param_hint="SCRIPT") from e

    metrics = get_metrics() if config.metrics_enabled else None
    queue = AsyncFunctionQueue.from_config(config, metrics=metrics)

    history = asyncio.run(replay(queue, steps))
    entries = [entry.to_dict() for entry in history]

    if json_lines:
        for entry in entries:
            click.echo(json.dumps(entry))
    else:
        click.echo(json.dumps(entries, indent=2))

    if metrics is not None:
        click.echo(generate_latest(metrics.registry).decode("utf-8"), err=True, nl=False)

    failed = sum(1 for entry in history if not entry.succeeded)
    logger.info(f"Replay finished: {len(history)} recorded, {failed} failed")
    if fail_on_error and failed:
        sys.exit(1)


if __name__ == "__main__":
    cli()
