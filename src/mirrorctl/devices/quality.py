"""Suggest mirroring quality settings from device descriptors."""

from __future__ import annotations

from mirrorctl.devices.models import DeviceSpecs, SuggestedSettings
from mirrorctl.session.models import VideoCodec

# H.265 encoding is available from Android 7.0 (SDK 24)
_H265_MIN_SDK = 24


def suggest_quality_settings(specs: DeviceSpecs) -> SuggestedSettings:
    """Pick resolution, bitrate and frame rate for a device's screen."""
    max_dimension = max(specs.screen_width, specs.screen_height)

    if max_dimension >= 2560:
        resolution, bitrate, fps = 1920, 16, 60
    elif max_dimension >= 1920:
        resolution, bitrate, fps = 1920, 12, 60
    elif max_dimension >= 1280:
        resolution, bitrate, fps = max_dimension, 8, 60
    else:
        resolution, bitrate, fps = max_dimension, 4, 30

    codec = VideoCodec.H265 if specs.sdk_version >= _H265_MIN_SDK else VideoCodec.H264

    return SuggestedSettings(
        max_resolution=resolution,
        bitrate=bitrate,
        fps=fps,
        video_codec=codec,
        audio_bitrate=128,
    )
