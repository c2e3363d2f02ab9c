"""CLI entry point — Click group with global options."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from mirrorctl import __version__
from mirrorctl.config import MirrorCtlConfig


@click.group()
@click.version_option(version=__version__, prog_name="mirrorctl")
@click.option(
    "--tool-dir",
    "-t",
    type=click.Path(exists=True, file_okay=False),
    help="Folder containing the scrcpy and adb executables.",
)
@click.option(
    "--options",
    "-o",
    "options_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to a YAML session options profile.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.pass_context
def main(
    ctx: click.Context,
    tool_dir: str | None,
    options_path: str | None,
    verbose: bool,
) -> None:
    """mirrorctl — manage scrcpy mirroring sessions for Android devices."""
    ctx.ensure_object(dict)

    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        config = MirrorCtlConfig.load(options_path)
    except ValueError as exc:
        raise click.ClickException(f"Invalid configuration: {exc}") from exc
    if tool_dir:
        config.tool_dir = Path(tool_dir)
    config.verbose = verbose
    ctx.obj["config"] = config


def _register_commands() -> None:
    from mirrorctl.cli.devices import devices, disconnect, specs, wifi  # noqa: F811
    from mirrorctl.cli.run import preview, run  # noqa: F811
    from mirrorctl.cli.watch import watch  # noqa: F811

    main.add_command(devices)
    main.add_command(specs)
    main.add_command(wifi)
    main.add_command(disconnect)
    main.add_command(preview)
    main.add_command(run)
    main.add_command(watch)


_register_commands()
