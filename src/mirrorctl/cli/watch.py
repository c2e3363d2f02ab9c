"""CLI command: mirrorctl watch — monitor devices and reconnect sessions."""

from __future__ import annotations

import signal
import threading
from typing import Any

import click
from rich.console import Console

from mirrorctl.app import ControlCenter
from mirrorctl.cli.run import build_options, session_option_flags
from mirrorctl.config import MirrorCtlConfig
from mirrorctl.devices.models import DeviceRecord
from mirrorctl.policy.models import PolicyOutcome
from mirrorctl.session.models import SessionStatusReport

console = Console(stderr=True)


@click.command()
@click.option(
    "--auto-connect/--no-auto-connect",
    default=None,
    help="Start a session when a new USB device appears.",
)
@click.option(
    "--auto-reconnect/--no-auto-reconnect",
    default=None,
    help="Resume the last session when its device comes back.",
)
@session_option_flags
@click.pass_context
def watch(
    ctx: click.Context,
    auto_connect: bool | None,
    auto_reconnect: bool | None,
    **flags: Any,
) -> None:
    """Watch for USB devices and manage sessions automatically."""
    config: MirrorCtlConfig = ctx.obj["config"]
    if auto_connect is not None:
        config.auto_connect = auto_connect
    if auto_reconnect is not None:
        config.auto_reconnect = auto_reconnect
    config.default_options = build_options(config, flags)

    if not config.is_configured():
        console.print(
            "[yellow]scrcpy not found.[/yellow] Sessions cannot start until "
            "--tool-dir or MIRRORCTL_TOOL_DIR points at it."
        )

    center = ControlCenter(config)

    def on_connected(device: DeviceRecord) -> None:
        name = f" ({device.display_name})" if device.display_name else ""
        console.print(f"  [green]+[/green] {device.id}{name} connected")

    def on_disconnected(device: DeviceRecord) -> None:
        console.print(f"  [red]-[/red] {device.id} disconnected")

    def on_outcome(outcome: PolicyOutcome) -> None:
        color = "green" if outcome.success else "red"
        console.print(
            f"  [{color}]{outcome.decision.value}[/{color}] {outcome.device_id}: "
            f"{outcome.message}"
        )

    def on_session(report: SessionStatusReport) -> None:
        state = "[green]running[/green]" if report.running else "[dim]stopped[/dim]"
        console.print(f"  session {state} {report.device_id or ''}")

    center.device_connected.subscribe(on_connected)
    center.device_disconnected.subscribe(on_disconnected)
    center.auto_connect_triggered.subscribe(on_outcome)
    center.auto_reconnect_triggered.subscribe(on_outcome)
    center.session_changed.subscribe(on_session)

    console.print(
        f"[bold]mirrorctl[/bold] watching devices every {config.poll_interval:.1f}s "
        f"(auto-connect: {_on_off(config.auto_connect)}, "
        f"auto-reconnect: {_on_off(config.auto_reconnect)})"
    )
    console.print("  Press Ctrl+C to stop.\n")

    stop = threading.Event()

    def _signal_handler(signum: int, frame: object) -> None:
        console.print("\n[dim]Stopping...[/dim]")
        stop.set()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    center.start()
    try:
        while not stop.wait(timeout=0.5):
            pass
    finally:
        center.dispose()


def _on_off(value: bool) -> str:
    return "[green]on[/green]" if value else "[dim]off[/dim]"
