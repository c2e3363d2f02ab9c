"""CLI commands: mirrorctl run / preview — start a mirroring session."""

from __future__ import annotations

import dataclasses
import signal
import sys
import threading
from collections.abc import Callable
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from mirrorctl.config import MirrorCtlConfig
from mirrorctl.session.arguments import command_preview
from mirrorctl.session.controller import SessionController
from mirrorctl.session.loader import apply_preset, list_presets
from mirrorctl.session.models import (
    SessionOptions,
    SessionState,
    SessionStatus,
    SessionStatusReport,
)

console = Console(stderr=True)


def session_option_flags(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the option flags shared by ``run``, ``preview`` and ``watch``."""
    decorators = [
        click.option(
            "--preset",
            "-p",
            type=click.Choice(list_presets()),
            help="Apply a bundled option preset.",
        ),
        click.option("--max-size", type=int, help="Cap the video size (pixels)."),
        click.option("--native", is_flag=True, help="Mirror at native resolution."),
        click.option("--bitrate", type=int, help="Video bitrate in Mbps."),
        click.option("--fps", type=int, help="Frame rate cap."),
        click.option("--no-audio", is_flag=True, help="Disable audio forwarding."),
        click.option("--audio-only", is_flag=True, help="Forward audio only."),
        click.option("--no-control", is_flag=True, help="Disable input forwarding."),
    ]
    for decorator in reversed(decorators):
        fn = decorator(fn)
    return fn


def build_options(config: MirrorCtlConfig, flags: dict[str, Any]) -> SessionOptions:
    """Default options from config, then preset, then explicit flags."""
    options = config.default_options
    if flags.get("preset"):
        options = apply_preset(flags["preset"], options)

    changes: dict[str, Any] = {}
    if flags.get("max_size"):
        changes["max_resolution"] = flags["max_size"]
    if flags.get("native"):
        changes["use_max_resolution"] = True
    if flags.get("bitrate"):
        changes["bitrate"] = flags["bitrate"]
    if flags.get("fps"):
        changes["fps"] = flags["fps"]
    if flags.get("no_audio"):
        changes["audio_enabled"] = False
    if changes:
        options = dataclasses.replace(options, **changes)

    if flags.get("audio_only"):
        options = options.with_audio_only(True)
    if flags.get("no_control"):
        options = options.with_controls(False)
    return options


@click.command()
@click.argument("device_id")
@session_option_flags
@click.pass_context
def preview(ctx: click.Context, device_id: str, **flags: Any) -> None:
    """Print the scrcpy command line that would be run."""
    options = build_options(ctx.obj["config"], flags)
    click.echo(command_preview(device_id, options))


@click.command()
@click.argument("device_id")
@session_option_flags
@click.pass_context
def run(ctx: click.Context, device_id: str, **flags: Any) -> None:
    """Mirror a device until Ctrl+C or until scrcpy exits."""
    config: MirrorCtlConfig = ctx.obj["config"]
    options = build_options(config, flags)
    controller = SessionController(config)

    console.print(
        f"[bold]mirrorctl[/bold] starting [cyan]{device_id}[/cyan]\n"
        f"  [dim]{command_preview(device_id, options)}[/dim]"
    )

    done = threading.Event()

    def on_change(report: SessionStatusReport) -> None:
        # IDLE follows the reaper, so the exit code is known by then
        if report.status is SessionStatus.IDLE:
            done.set()

    controller.state_changed.subscribe(on_change)

    result = controller.start(device_id, options)
    if not result.success:
        console.print(f"[red]✗[/red] {result.message}")
        sys.exit(1)
    session = controller.session
    console.print(f"[green]✓[/green] {result.message}. Press Ctrl+C to stop.")

    def _signal_handler(signum: int, frame: object) -> None:
        console.print("\n[dim]Stopping...[/dim]")
        controller.stop(user_initiated=True)

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    while not done.wait(timeout=0.5):
        pass

    _print_summary(session, stopped_by_user=controller.get_last_session() is None)


def _print_summary(session: SessionState | None, stopped_by_user: bool) -> None:
    console.print("\n[bold]Session Summary[/bold]")
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="dim")
    table.add_column()

    if session is not None:
        table.add_row("Device", session.device_id)
        table.add_row("PID", str(session.pid))
        rc = session.returncode
        table.add_row("Exit Code", str(rc) if rc is not None else "N/A")
    table.add_row("Stopped by user", "yes" if stopped_by_user else "no")
    console.print(table)
