"""Build the scrcpy command line from SessionOptions."""

from __future__ import annotations

import shlex

from mirrorctl.session.models import InputMode, RenderDriver, SessionOptions


def build_arguments(device_id: str, options: SessionOptions) -> list[str]:
    """Return the scrcpy argument list for a device and option set.

    Pure and order-stable: equal inputs always produce an equal list.
    """
    args: list[str] = ["-s", device_id]

    if not options.video_enabled or options.audio_only:
        args.append("--no-video")
    else:
        if not options.use_max_resolution:
            args.extend(["--max-size", str(options.max_resolution)])
        args.extend(["--video-bit-rate", f"{options.bitrate}M"])
        args.extend(["--max-fps", str(options.fps)])
        args.extend(["--video-codec", options.video_codec.value])
        if options.render_driver is not RenderDriver.AUTO:
            args.extend(["--render-driver", options.render_driver.value])
        if options.borderless:
            args.append("--window-borderless")
        if options.fullscreen:
            args.append("--fullscreen")

    if not options.audio_enabled:
        args.append("--no-audio")
    else:
        args.extend(["--audio-codec", options.audio_codec.value])
        args.extend(["--audio-bit-rate", f"{options.audio_bitrate}K"])

    if options.keyboard_mode is not InputMode.DEFAULT:
        args.append(f"--keyboard={options.keyboard_mode.value}")
    if options.mouse_mode is not InputMode.DEFAULT:
        args.append(f"--mouse={options.mouse_mode.value}")

    if options.no_control:
        args.append("--no-control")
    if options.turn_screen_off:
        args.append("--turn-screen-off")
    # --stay-awake requires control
    if options.stay_awake and not options.no_control:
        args.append("--stay-awake")
    if options.always_on_top:
        args.append("--always-on-top")
    if options.hide_window:
        args.append("--no-window")

    return args


def command_preview(device_id: str, options: SessionOptions) -> str:
    """Human-readable command line, as shown before starting a session."""
    args = build_arguments(device_id, options)
    return " ".join(["scrcpy", *(shlex.quote(a) for a in args)])
