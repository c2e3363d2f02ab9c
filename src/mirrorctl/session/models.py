"""Session data models — mirroring options and session state."""

from __future__ import annotations

import dataclasses
import enum
import time
from dataclasses import dataclass, field


class VideoCodec(enum.Enum):
    H264 = "h264"
    H265 = "h265"


class RenderDriver(enum.Enum):
    AUTO = "auto"
    DIRECT3D = "direct3d"
    OPENGL = "opengl"
    SOFTWARE = "software"


class AudioCodec(enum.Enum):
    OPUS = "opus"
    AAC = "aac"
    RAW = "raw"


class InputMode(enum.Enum):
    """Keyboard/mouse emulation mode passed to scrcpy."""

    DEFAULT = "default"
    UHID = "uhid"
    AOA = "aoa"
    DISABLED = "disabled"


class SessionStatus(enum.Enum):
    """Lifecycle state of the mirroring session."""

    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


@dataclass(frozen=True)
class SessionOptions:
    """Mirroring parameters used to build the scrcpy command line."""

    # Video
    video_enabled: bool = True
    use_max_resolution: bool = False
    max_resolution: int = 1920
    bitrate: int = 8
    fps: int = 60
    video_codec: VideoCodec = VideoCodec.H264
    render_driver: RenderDriver = RenderDriver.AUTO
    borderless: bool = False
    fullscreen: bool = False

    # Audio
    audio_enabled: bool = True
    audio_only: bool = False
    audio_codec: AudioCodec = AudioCodec.OPUS
    audio_bitrate: int = 128

    # Behaviour
    start_minimized: bool = False
    hide_window: bool = False
    no_control: bool = False
    keyboard_mode: InputMode = InputMode.DEFAULT
    mouse_mode: InputMode = InputMode.DEFAULT
    turn_screen_off: bool = False
    stay_awake: bool = True
    always_on_top: bool = False

    def with_video(self, enabled: bool) -> SessionOptions:
        """Toggle video; turning it on leaves audio-only mode."""
        return dataclasses.replace(
            self,
            video_enabled=enabled,
            audio_only=False if enabled else self.audio_only,
        )

    def with_audio_only(self, enabled: bool) -> SessionOptions:
        """Toggle audio-only mode.

        Enabling it also disables video and control, hides the window and
        forces audio on. Disabling it touches nothing else.
        """
        if not enabled:
            return dataclasses.replace(self, audio_only=False)
        return dataclasses.replace(
            self,
            audio_only=True,
            video_enabled=False,
            hide_window=True,
            audio_enabled=True,
            no_control=True,
        )

    def with_controls(self, enabled: bool) -> SessionOptions:
        """Toggle input forwarding; enabling it also shows the window."""
        return dataclasses.replace(
            self,
            no_control=not enabled,
            hide_window=False if enabled else self.hide_window,
        )


@dataclass(frozen=True)
class LastSession:
    """The (device, options) pair retained for reconnection."""

    device_id: str
    options: SessionOptions


@dataclass
class SessionState:
    """The single mirroring session owned by the controller."""

    device_id: str
    options: SessionOptions
    pid: int = 0
    alive: bool = False
    start_time: float = field(default_factory=time.time)
    end_time: float | None = None
    returncode: int | None = None

    def as_last_session(self) -> LastSession:
        return LastSession(device_id=self.device_id, options=self.options)


@dataclass(frozen=True)
class SessionStatusReport:
    """Result of ``SessionController.status()``."""

    running: bool
    status: SessionStatus = SessionStatus.IDLE
    device_id: str | None = None
