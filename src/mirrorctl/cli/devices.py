"""CLI commands: mirrorctl devices / specs / wifi / disconnect."""

from __future__ import annotations

import sys

import click
from rich.console import Console
from rich.table import Table

from mirrorctl.devices.adb import AdbClient
from mirrorctl.devices.models import AuthState
from mirrorctl.devices.quality import suggest_quality_settings

console = Console(stderr=True)

_AUTH_COLORS = {
    AuthState.READY: "green",
    AuthState.PENDING_AUTHORIZATION: "yellow",
    AuthState.UNREACHABLE: "red",
}


@click.command()
@click.pass_context
def devices(ctx: click.Context) -> None:
    """List attached Android devices."""
    config = ctx.obj["config"]
    if config.adb_path() is None:
        console.print("[red]adb not found.[/red] Use --tool-dir to point at it.")
        sys.exit(1)

    records = AdbClient(config).list_devices()
    if not records:
        console.print("[dim]No devices attached.[/dim]")
        return

    table = Table(title="Devices", show_lines=False)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Connection")
    table.add_column("State")

    for record in records:
        color = _AUTH_COLORS[record.auth_state]
        table.add_row(
            record.id,
            record.display_name or "",
            record.connection_kind.value,
            f"[{color}]{record.auth_state.value}[/{color}]",
        )
    console.print(table)


@click.command()
@click.argument("device_id")
@click.pass_context
def specs(ctx: click.Context, device_id: str) -> None:
    """Show device descriptors and suggested quality settings."""
    config = ctx.obj["config"]
    device_specs = AdbClient(config).get_device_specs(device_id)
    if device_specs is None:
        console.print("[red]adb not found.[/red] Use --tool-dir to point at it.")
        sys.exit(1)

    suggested = suggest_quality_settings(device_specs)

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="dim")
    table.add_column()
    table.add_row("Model", device_specs.model)
    table.add_row(
        "Android", f"{device_specs.android_version} (SDK {device_specs.sdk_version})"
    )
    table.add_row("Screen", f"{device_specs.screen_width}x{device_specs.screen_height}")
    table.add_row("Density", str(device_specs.density))
    console.print(f"[bold]{device_id}[/bold]")
    console.print(table)

    console.print("\n[bold]Suggested settings[/bold]")
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="dim")
    table.add_column()
    table.add_row("Max size", str(suggested.max_resolution))
    table.add_row("Bitrate", f"{suggested.bitrate}M")
    table.add_row("FPS", str(suggested.fps))
    table.add_row("Codec", suggested.video_codec.value)
    table.add_row("Audio bitrate", f"{suggested.audio_bitrate}K")
    console.print(table)


@click.command()
@click.argument("device_id")
@click.pass_context
def wifi(ctx: click.Context, device_id: str) -> None:
    """Switch a USB device to wireless adb and connect to it."""
    result = AdbClient(ctx.obj["config"]).connect_wifi(device_id)
    _report(result.success, result.message)


@click.command()
@click.argument("device_id")
@click.pass_context
def disconnect(ctx: click.Context, device_id: str) -> None:
    """Disconnect a wireless device."""
    result = AdbClient(ctx.obj["config"]).disconnect_device(device_id)
    _report(result.success, result.message)


def _report(success: bool, message: str) -> None:
    if success:
        console.print(f"[green]✓[/green] {message}")
    else:
        console.print(f"[red]✗[/red] {message}")
        sys.exit(1)
