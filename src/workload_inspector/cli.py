"""
CLI entry point and command registration.
"""

import asyncio
import json
import signal
import sys
import tempfile
import threading
from contextlib import ExitStack
from pathlib import Path
from typing import Optional

import click

from .config import InspectorConfig, get_config
from .core.exceptions import ConfigError, InspectorError, PipelineFailure
from .inspector import Inspector
from .messaging import serve as serve_nats
from .utils.logger import get_logger, set_logger
from .web import create_app, make_http_server

logger = get_logger(__name__)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--log-file", type=click.Path(path_type=Path), help="Log file path")
@click.pass_context
def cli(ctx: click.Context, debug: bool = False, log_file: Optional[Path] = None):
    """Workload inspector.

    Runs shell-style command pipelines on the host and serves them over
    HTTP and NATS.
    """
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["log_file"] = log_file
    set_logger(log_level="WARNING", log_file=log_file, debug=debug)


def _echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2, sort_keys=True))


@cli.command()
@click.argument("command")
@click.option("--timeout", type=float, default=None, help="Deadline in seconds")
def run(command: str, timeout: Optional[float]):
    """Run COMMAND locally and print the result as JSON."""
    inspector = Inspector(command_timeout=timeout)
    try:
        result = inspector.run_command(command)
    except PipelineFailure as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        _echo_json(e.result.to_dict())
        sys.exit(e.result.exit_code if e.result.exit_code > 0 else 1)
    except InspectorError as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        sys.exit(1)

    _echo_json(result.to_dict())
    sys.exit(result.exit_code)


@cli.command()
def env():
    """Print the host environment as JSON."""
    _echo_json(Inspector().get_environment())


@cli.command()
def ping():
    """Print PONG."""
    click.echo(Inspector().ping())


@cli.command()
@click.option("--http/--no-http", "with_http", default=True, help="Serve the HTTP API")
@click.option("--nats/--no-nats", "with_nats", default=True, help="Serve the NATS micro service")
@click.option("--host", default="0.0.0.0", show_default=True, help="HTTP bind address")
@click.pass_context
def serve(ctx: click.Context, with_http: bool, with_nats: bool, host: str):
    """Serve the inspector until SIGINT or SIGTERM."""
    if not (with_http or with_nats):
        raise click.UsageError("nothing to serve: enable --http or --nats")

    try:
        config = get_config(require_workloads=with_nats)
    except ConfigError as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        raise click.Abort() from e

    set_logger(
        log_level=config.log_level,
        log_file=ctx.obj.get("log_file"),
        debug=ctx.obj.get("debug", False),
    )

    try:
        asyncio.run(_serve(config, with_http, with_nats, host))
    except InspectorError as e:
        logger.error("%s", e)
        raise click.Abort() from e


async def _serve(config: InspectorConfig, with_http: bool, with_nats: bool, host: str) -> None:
    inspector = Inspector(command_timeout=config.command_timeout)
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            logger.debug("add_signal_handler not implemented for signal %s", sig)

    with ExitStack() as stack:
        if with_http:
            app = create_app(inspector, config.http)
            server = make_http_server(app, config.http, host=host)
            thread = threading.Thread(target=server.serve_forever, name="http", daemon=True)
            thread.start()
            stack.callback(thread.join)
            stack.callback(server.shutdown)

        logger.info("WorkloadInspector started")
        if with_nats:
            if config.in_container:
                creds_dir = None
            else:
                creds_dir = Path(stack.enter_context(tempfile.TemporaryDirectory()))
            creds_file = config.save_creds(creds_dir)
            await serve_nats(config.workloads.servers, str(creds_file), inspector, stop_event)
        else:
            await stop_event.wait()

    logger.info("WorkloadInspector stopped")


def main():
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        sys.exit(1)


if __name__ == "__main__":
    main()
