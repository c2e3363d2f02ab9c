"""Device data models — inventory records and hardware descriptors."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from mirrorctl.session.models import VideoCodec


class ConnectionKind(enum.Enum):
    """How adb reaches the device."""

    WIRED = "wired"
    WIRELESS = "wireless"


class AuthState(enum.Enum):
    """Authorization state reported by ``adb devices``."""

    READY = "ready"
    UNREACHABLE = "unreachable"
    PENDING_AUTHORIZATION = "pending-authorization"


@dataclass(frozen=True)
class DeviceRecord:
    """A single device line from ``adb devices -l``."""

    id: str
    connection_kind: ConnectionKind
    auth_state: AuthState
    display_name: str | None = None

    @property
    def is_wired(self) -> bool:
        return self.connection_kind is ConnectionKind.WIRED

    @property
    def is_ready(self) -> bool:
        return self.auth_state is AuthState.READY


@dataclass(frozen=True)
class DeviceSpecs:
    """Hardware and software descriptors queried from a device."""

    screen_width: int = 1080
    screen_height: int = 1920
    density: int = 420
    model: str = "Unknown"
    android_version: str = "Unknown"
    sdk_version: int = 30


@dataclass(frozen=True)
class SuggestedSettings:
    """Quality settings derived from a device's screen and SDK level."""

    max_resolution: int
    bitrate: int
    fps: int
    video_codec: VideoCodec
    audio_bitrate: int = 128
