"""jirabridge entry point: CLI host for blocks, the sync step and the webhook server."""

from __future__ import annotations

import asyncio
import json
import signal
import sys
from typing import Any

import click

from jirabridge.blocks import catalog, get_block, require_inputs
from jirabridge.config import Settings, load_settings
from jirabridge.core.bus import Event, EventBus, EventType
from jirabridge.core.client import JiraClient
from jirabridge.core.errors import JiraBridgeError
from jirabridge.core.sync import sync
from jirabridge.utils.logging import get_logger, setup_logging
from jirabridge.webhooks.dispatch import BusRelay, Dispatcher, StaticSubscriberRegistry
from jirabridge.webhooks.ingress import WebhookIngress
from jirabridge.webhooks.server import WebhookServer

log = get_logger(__name__)


class JiraBridge:
    """Wires the webhook server, dispatcher and event bus together."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.bus = EventBus()
        self.registry = StaticSubscriberRegistry.from_settings(settings.subscribers)
        self.dispatcher = Dispatcher(self.registry, BusRelay(self.bus))
        self.server = WebhookServer(
            settings.webhooks,
            WebhookIngress(self.dispatcher),
            secret=settings.jira.webhook_secret,
        )

    async def start(self) -> None:
        log.info(
            "jirabridge_starting",
            version="0.1.0",
            subscribers=len(self.settings.subscribers),
        )
        self.bus.subscribe(EventType.WEBHOOK_RELAYED, self._deliver)
        await self.bus.start()
        await self.server.start()
        log.info("jirabridge_ready")

    async def stop(self) -> None:
        log.info("jirabridge_stopping")
        await self.server.stop()
        await self.bus.stop()
        log.info("jirabridge_stopped")

    async def _deliver(self, event: Event) -> None:
        for block_id in event.data["block_ids"]:
            log.info(
                "webhook_delivered",
                block_id=block_id,
                kind=event.data["kind"],
                body=event.data["body"],
            )


async def serve(settings: Settings) -> None:
    app = JiraBridge(settings)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        log.info("shutdown_signal")
        stop_event.set()

    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _signal_handler)

    await app.start()

    try:
        if sys.platform == "win32":
            while not stop_event.is_set():
                await asyncio.sleep(1)
        else:
            await stop_event.wait()
    except KeyboardInterrupt:
        pass
    finally:
        await app.stop()


async def run_block(settings: Settings, name: str, config: dict[str, Any]) -> dict[str, Any]:
    """Validate inputs and run one block against the configured Jira site."""
    block = get_block(name)
    require_inputs(block, config)
    async with JiraClient(settings.jira.credentials()) as client:
        output = await block.run(config, client)
    log.info("block_completed", block=name)
    return output


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


@click.group()
@click.option("--config", "config_path", default=None, help="Path to config YAML file")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, log_level: str | None) -> None:
    """jirabridge: Jira operations and webhook fan-out."""
    settings = load_settings(config_path)
    if log_level:
        settings.log_level = log_level
    setup_logging(level=settings.log_level, json_output=settings.log_json)
    ctx.obj = settings


@cli.command("serve")
@click.pass_obj
def serve_command(settings: Settings) -> None:
    """Run the webhook server until interrupted."""
    asyncio.run(serve(settings))


@cli.command("sync")
@click.pass_obj
def sync_command(settings: Settings) -> None:
    """Check credentials and print the authenticated user's identity."""
    result = asyncio.run(sync(settings.jira.credentials()))
    _echo_json({"status": result.status, "signals": result.signals, "description": result.description})
    if result.status != "ready":
        sys.exit(1)


@cli.command("blocks")
def blocks_command() -> None:
    """Print the block and trigger catalog as JSON."""
    _echo_json(catalog())


@cli.command("run")
@click.argument("name")
@click.option("--input", "input_json", default="{}", help="Block input configuration as JSON")
@click.pass_obj
def run_command(settings: Settings, name: str, input_json: str) -> None:
    """Run the block NAME and print its output event."""
    try:
        config = json.loads(input_json)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"invalid JSON: {e}", param_hint="--input") from e
    if not isinstance(config, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--input")

    try:
        output = asyncio.run(run_block(settings, name, config))
    except JiraBridgeError as e:
        log.error("block_failed", block=name, error=str(e))
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    _echo_json(output)


if __name__ == "__main__":
    cli()
